from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Callable, get_args

from ...errors import Conflict, NotFound, Unauthorized, ValidationFailed
from ...notifications.notifier import Notifier
from ...observability.logging import get_logger
from ...repositories.base_repository import LiftoutRepository
from ...settings import settings
from ..identity.models import Recipient
from .models import (
    CreateInterestInput,
    Direction,
    ExpressionOfInterest,
    InterestPage,
    InterestPagination,
    InterestResponse,
    Party,
)

_RESPONSES = get_args(InterestResponse)
_DIRECTIONS = get_args(Direction)

log = get_logger("interest_service")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InterestService:
    """
    Expressions of interest: a team or company signals interest in a team or
    opportunity before any application exists. At most one pending interest
    per (from, to) pair; once answered it is terminal and the pair is free
    again.
    """

    def __init__(
        self,
        *,
        repo: LiftoutRepository,
        notifier: Notifier,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._repo = repo
        self._notifier = notifier
        self._clock = clock

    # ---- sender resolution ----

    def _resolve_team_sender(self, actor_id: str, requested: str | None) -> str:
        eligible = [
            m.teamId
            for m in self._repo.list_team_memberships_for_user(actor_id)
            if m.is_active and m.can_manage
        ]
        if requested:
            if requested in eligible:
                return requested
        elif eligible:
            return eligible[0]
        raise Unauthorized("You must be a team lead or admin to express interest")

    def _resolve_company_sender(self, actor_id: str, requested: str | None) -> str:
        cm = self._repo.get_company_membership_for_user(actor_id)
        if cm is None or (requested and requested != cm.companyId):
            raise Unauthorized("You must belong to a company to express interest")
        return cm.companyId

    # ---- notification ----

    def _representatives(self, eoi: ExpressionOfInterest) -> tuple[list[Recipient], str]:
        if eoi.toType == "team":
            team = self._repo.get_team(eoi.toId)
            members = [m for m in self._repo.list_team_members(eoi.toId) if m.is_active and m.can_manage]
            recipients = [Recipient(userId=m.userId, email=m.email, firstName=m.firstName) for m in members if m.email]
            return recipients, (team.name if team else "your team")

        opp = self._repo.get_opportunity(eoi.toId)
        if opp is None:
            return [], "your opportunity"
        users = self._repo.list_company_members(opp.companyId)
        recipients = [Recipient(userId=u.userId, email=u.email, firstName=u.firstName) for u in users if u.email]
        return recipients, opp.title

    def _sender_name(self, eoi: ExpressionOfInterest) -> str:
        if eoi.fromType == "team":
            team = self._repo.get_team(eoi.fromId)
            return team.name if team else "A team"
        company = self._repo.get_company(eoi.fromId)
        return company.name if company else "A company"

    def _notify_target(self, eoi: ExpressionOfInterest) -> None:
        try:
            recipients, target_name = self._representatives(eoi)
            self._notifier.notify_expression_of_interest(
                recipients=recipients,
                interested_party_name=self._sender_name(eoi),
                interested_party_type=eoi.fromType,
                target_name=target_name,
                message=eoi.message,
                interest_id=eoi.id,
            )
        except Exception:
            log.exception("interest_notification_failed", interest_id=eoi.id)

    # ---- operations ----

    def create(self, data: CreateInterestInput, *, actor_id: str) -> ExpressionOfInterest:
        if data.fromType == "team":
            from_id = self._resolve_team_sender(actor_id, data.fromId)
        else:
            from_id = self._resolve_company_sender(actor_id, data.fromId)

        if data.toType == "team":
            if self._repo.get_team(data.toId) is None:
                raise NotFound("Target team not found", details={"toId": data.toId})
            if data.fromType == "team" and from_id == data.toId:
                raise ValidationFailed("A team cannot express interest in itself", details={"teamId": from_id})
        else:
            opp = self._repo.get_opportunity(data.toId)
            if opp is None:
                raise NotFound("Target opportunity not found", details={"toId": data.toId})
            if data.fromType == "company" and opp.companyId == from_id:
                raise ValidationFailed(
                    "A company cannot express interest in its own opportunity",
                    details={"companyId": from_id, "opportunityId": opp.id},
                )

        existing = self._repo.find_pending_interest(
            from_type=data.fromType, from_id=from_id, to_type=data.toType, to_id=data.toId
        )
        if existing is not None:
            raise Conflict("An expression of interest already exists", details={"interestId": existing.id})

        eoi = ExpressionOfInterest(
            id=uuid.uuid4().hex,
            fromType=data.fromType,
            fromId=from_id,
            toType=data.toType,
            toId=data.toId,
            status="pending",
            message=data.message,
            interestLevel=data.interestLevel,
            specificRole=data.specificRole,
            timeline=data.timeline,
            budgetRange=data.budgetRange,
            createdBy=actor_id,
            createdAt=self._clock(),
        )
        saved = self._repo.create_interest(eoi)
        log.info(
            "interest_created",
            interest_id=saved.id,
            from_type=saved.fromType,
            from_id=saved.fromId,
            to_type=saved.toType,
            to_id=saved.toId,
            actor_id=actor_id,
        )
        self._notify_target(saved)
        return saved

    def _can_respond(self, eoi: ExpressionOfInterest, actor_id: str) -> bool:
        if eoi.toType == "team":
            m = self._repo.get_team_membership(team_id=eoi.toId, user_id=actor_id)
            return m is not None and m.is_active and m.can_manage
        cm = self._repo.get_company_membership_for_opportunity(opportunity_id=eoi.toId, user_id=actor_id)
        return cm is not None

    def respond(self, interest_id: str, response: InterestResponse, *, actor_id: str) -> ExpressionOfInterest:
        if response not in _RESPONSES:
            raise ValidationFailed(
                "Response must be accepted or declined", details={"interestId": interest_id, "response": response}
            )
        eoi = self._repo.get_interest(interest_id)
        if eoi is None:
            raise NotFound("Expression of interest not found", details={"interestId": interest_id})
        if eoi.status != "pending":
            raise Conflict(
                "This expression of interest has already been responded to",
                details={"interestId": eoi.id, "status": eoi.status},
            )
        if not self._can_respond(eoi, actor_id):
            raise Unauthorized("You do not have permission to respond to this expression of interest")

        answered = eoi.model_copy(
            update={"status": response, "respondedAt": self._clock(), "respondedBy": actor_id}
        )
        saved = self._repo.save_interest_response(answered)
        log.info("interest_responded", interest_id=saved.id, response=response, actor_id=actor_id)
        return saved

    def list_for_user(
        self,
        user_id: str,
        *,
        direction: Direction,
        page: int | None = None,
        limit: int | None = None,
    ) -> InterestPage:
        if direction not in _DIRECTIONS:
            raise ValidationFailed("Direction must be sent or received", details={"direction": direction})
        page_num = max(1, int(page or 1))
        lim = settings.clamp_page_limit(limit)

        team_ids = [m.teamId for m in self._repo.list_team_memberships_for_user(user_id) if m.is_active]
        cm = self._repo.get_company_membership_for_user(user_id)

        if direction == "sent":
            parties = [Party(type="team", id=t) for t in team_ids]
            if cm is not None:
                parties.append(Party(type="company", id=cm.companyId))
            items = self._repo.list_interests(from_parties=parties) if parties else []
        else:
            parties = [Party(type="team", id=t) for t in team_ids]
            if cm is not None:
                parties += [
                    Party(type="opportunity", id=oid) for oid in self._repo.list_company_opportunity_ids(cm.companyId)
                ]
            items = self._repo.list_interests(to_parties=parties) if parties else []

        total = len(items)
        start = (page_num - 1) * lim
        return InterestPage(
            data=items[start : start + lim],
            pagination=InterestPagination(page=page_num, limit=lim, total=total, pages=math.ceil(total / lim)),
        )
