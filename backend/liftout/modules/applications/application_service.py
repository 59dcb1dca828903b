from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from ...errors import Conflict, NotFound, Unauthorized, ValidationFailed
from ...notifications.notifier import Notifier
from ...observability.logging import get_logger
from ...repositories.base_repository import LiftoutRepository
from ...settings import settings
from ..identity.models import Recipient
from ..opportunities.models import OPPORTUNITY_FILLED
from .authorization import ApplicationAction, AuthorizationResolver
from .models import (
    CONTENT_FIELDS,
    Application,
    ApplicationDetail,
    ApplicationFilter,
    ApplicationPage,
    ApplicationStats,
    CreateApplicationInput,
    InterviewFeedback,
    InterviewFeedbackInput,
    InterviewRecord,
    MakeOfferInput,
    OfferDetails,
    PageRequest,
    ScheduleInterviewInput,
    UpdateContentInput,
    UpdateStatusInput,
)
from .state_machine import is_valid_transition

log = get_logger("application_service")

_REVIEW_FIELDS = ("rejectionReason", "responseMessage", "recruiterNotes", "hiringManagerNotes", "responseDeadline")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_interview_summary(interview: ScheduleInterviewInput) -> str:
    at = interview.scheduledAt
    when = f"{at:%A}, {at:%B} {at.day}, {at.year} at {at:%I:%M %p}"
    if at.utcoffset() == timedelta(0):
        when += " UTC"
    out = f"Your interview has been scheduled for {when}. Format: {interview.format}"
    if interview.meetingLink:
        out += f". Meeting link: {interview.meetingLink}"
    return out


def format_offer_summary(offer: MakeOfferInput) -> str:
    out = f"Congratulations! You have received an offer with a compensation of ${offer.compensation:,.0f}"
    if offer.equityOffer:
        out += f" plus {offer.equityOffer} equity"
    out += "."
    if offer.expirationDate:
        d = offer.expirationDate
        out += f" Please respond by {d.month}/{d.day}/{d.year}."
    return out


class ApplicationService:
    """
    Application lifecycle: submit, edit, review, interview, offer, withdraw.

    Every mutating operation follows the same shape: load, authorize through
    the resolver, check the status rules, then one conditional write keyed on
    the version that was loaded. Notifications go out after the write and
    never fail the operation.
    """

    def __init__(
        self,
        *,
        repo: LiftoutRepository,
        notifier: Notifier,
        resolver: AuthorizationResolver | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._repo = repo
        self._notifier = notifier
        self._resolver = resolver or AuthorizationResolver(repo)
        self._clock = clock

    # ---- helpers ----

    def _load(self, application_id: str) -> Application:
        aid = str(application_id or "").strip()
        app = self._repo.get_application(aid) if aid else None
        if app is None:
            raise NotFound("Application not found", details={"applicationId": aid})
        return app

    def _authorize(self, *, actor_id: str, application: Application, action: ApplicationAction) -> None:
        decision = self._resolver.can_act(actor_id=actor_id, application=application, action=action)
        if not decision.allowed:
            log.info(
                "application_action_denied",
                application_id=application.id,
                action=action.value,
                actor_id=actor_id,
                reason=decision.reason,
            )
            raise Unauthorized(decision.reason or "Access denied", details={"action": action.value})

    def _require_transition(self, app: Application, requested: str) -> None:
        if not is_valid_transition(app.status, requested):
            raise Conflict(
                f"Cannot transition from {app.status} to {requested}",
                details={"applicationId": app.id, "from": app.status, "to": requested},
            )

    def _save(
        self,
        app: Application,
        changes: dict[str, Any],
        *,
        opportunity_status: str | None = None,
    ) -> Application:
        changed = app.model_copy(update={**changes, "updatedAt": self._clock()})
        return self._repo.save_application(
            changed,
            expected_version=app.version,
            opportunity_status=opportunity_status,
        )

    def _team_recipients(self, team_id: str) -> list[Recipient]:
        return [
            Recipient(userId=m.userId, email=m.email, firstName=m.firstName)
            for m in self._repo.list_team_members(team_id)
            if m.is_active and m.email
        ]

    def _notify_team(self, app: Application, *, status: str, message: str | None) -> None:
        try:
            team = self._repo.get_team(app.teamId)
            opp = self._repo.get_opportunity(app.opportunityId)
            company = self._repo.get_company(opp.companyId) if opp else None
            self._notifier.notify_application_status(
                recipients=self._team_recipients(app.teamId),
                team_name=team.name if team else "Your team",
                opportunity_title=opp.title if opp else "the opportunity",
                company_name=company.name if company else "The company",
                status=status,
                message=message,
                application_id=app.id,
                dedupe_key=f"application:{app.id}:v{app.version}",
            )
        except Exception:
            log.exception("application_notification_failed", application_id=app.id, status=status)

    # ---- reads ----

    def get_by_id(self, application_id: str, *, actor_id: str) -> ApplicationDetail:
        app = self._load(application_id)
        self._authorize(actor_id=actor_id, application=app, action=ApplicationAction.VIEW)
        opp = self._repo.get_opportunity(app.opportunityId)
        return ApplicationDetail(
            application=app,
            team=self._repo.get_team(app.teamId),
            opportunity=opp,
            company=self._repo.get_company(opp.companyId) if opp else None,
        )

    def list_by_team(
        self,
        team_id: str,
        *,
        actor_id: str,
        status: str | None = None,
        limit: int | None = None,
        next_token: str | None = None,
    ) -> ApplicationPage:
        member = self._repo.get_team_membership(team_id=team_id, user_id=actor_id)
        if member is None or not member.is_active:
            raise Unauthorized("You are not a member of this team", details={"teamId": team_id})
        return self._repo.list_applications(
            ApplicationFilter(teamId=team_id, status=status or None),
            PageRequest(limit=settings.clamp_page_limit(limit), nextToken=next_token),
        )

    def list_by_opportunity(
        self,
        opportunity_id: str,
        *,
        actor_id: str,
        status: str | None = None,
        limit: int | None = None,
        next_token: str | None = None,
    ) -> ApplicationPage:
        if self._repo.get_opportunity(opportunity_id) is None:
            raise NotFound("Opportunity not found", details={"opportunityId": opportunity_id})
        cm = self._repo.get_company_membership_for_opportunity(opportunity_id=opportunity_id, user_id=actor_id)
        if cm is None:
            raise Unauthorized(
                "You do not have access to this opportunity", details={"opportunityId": opportunity_id}
            )
        return self._repo.list_applications(
            ApplicationFilter(opportunityId=opportunity_id, status=status or None),
            PageRequest(limit=settings.clamp_page_limit(limit), nextToken=next_token),
        )

    def get_stats(self, *, actor_id: str) -> ApplicationStats:
        team_ids = [m.teamId for m in self._repo.list_team_memberships_for_user(actor_id) if m.is_active]
        team_counts = self._repo.count_applications_by_status(team_ids=team_ids) if team_ids else {}

        received: dict[str, int] = {}
        cm = self._repo.get_company_membership_for_user(actor_id)
        if cm is not None:
            opp_ids = self._repo.list_company_opportunity_ids(cm.companyId)
            if opp_ids:
                received = self._repo.count_applications_by_status(opportunity_ids=opp_ids)
        return ApplicationStats(teamApplications=team_counts, receivedApplications=received)

    # ---- team-side writes ----

    def create(self, data: CreateApplicationInput, *, actor_id: str) -> Application:
        now = self._clock()
        draft = Application(
            id=uuid.uuid4().hex,
            teamId=data.teamId,
            opportunityId=data.opportunityId,
            appliedBy=actor_id,
            status="submitted",
            appliedAt=now,
            updatedAt=now,
            **data.model_dump(include=set(CONTENT_FIELDS)),
        )
        self._authorize(actor_id=actor_id, application=draft, action=ApplicationAction.CREATE)

        opp = self._repo.get_opportunity(data.opportunityId)
        if opp is None:
            raise NotFound("Opportunity not found", details={"opportunityId": data.opportunityId})
        if not opp.is_accepting_applications:
            raise ValidationFailed(
                "Cannot apply to an inactive opportunity",
                details={"opportunityId": opp.id, "status": opp.status},
            )
        if self._repo.find_application(team_id=data.teamId, opportunity_id=data.opportunityId) is not None:
            raise Conflict(
                "Your team has already applied to this opportunity",
                details={"teamId": data.teamId, "opportunityId": data.opportunityId},
            )

        app = self._repo.create_application(draft)
        log.info(
            "application_created",
            application_id=app.id,
            team_id=app.teamId,
            opportunity_id=app.opportunityId,
            actor_id=actor_id,
        )
        return app

    def update_content(self, application_id: str, patch: UpdateContentInput, *, actor_id: str) -> Application:
        app = self._load(application_id)
        self._authorize(actor_id=actor_id, application=app, action=ApplicationAction.UPDATE_CONTENT)

        changes = patch.model_dump(exclude_unset=True, include=set(CONTENT_FIELDS))
        if not changes:
            raise ValidationFailed("No fields to update", details={"applicationId": app.id})
        if changes.get("attachments", []) is None:
            changes["attachments"] = []

        updated = self._save(app, changes)
        log.info("application_content_updated", application_id=app.id, fields=sorted(changes), actor_id=actor_id)
        return updated

    def withdraw(self, application_id: str, *, actor_id: str) -> Application:
        app = self._load(application_id)
        self._authorize(actor_id=actor_id, application=app, action=ApplicationAction.WITHDRAW)
        if app.status not in ("submitted", "reviewing"):
            raise Conflict(
                "Only submitted or reviewing applications can be withdrawn",
                details={"applicationId": app.id, "status": app.status},
            )
        self._repo.delete_application(app, expected_version=app.version)
        log.info("application_withdrawn", application_id=app.id, team_id=app.teamId, actor_id=actor_id)
        return app

    # ---- company-side writes ----

    def update_status(self, application_id: str, data: UpdateStatusInput, *, actor_id: str) -> Application:
        app = self._load(application_id)
        self._authorize(actor_id=actor_id, application=app, action=ApplicationAction.UPDATE_STATUS)
        self._require_transition(app, data.status)
        if data.status == "rejected" and not str(data.rejectionReason or "").strip():
            raise Conflict("Rejection reason is required", details={"applicationId": app.id})

        changes: dict[str, Any] = {"status": data.status}
        for f in _REVIEW_FIELDS:
            v = getattr(data, f)
            if v:
                changes[f] = v
        now = self._clock()
        if data.status == "reviewing":
            changes["reviewedAt"] = now
        elif data.status in ("accepted", "rejected"):
            changes["finalDecisionAt"] = now

        updated = self._save(
            app,
            changes,
            opportunity_status=OPPORTUNITY_FILLED if data.status == "accepted" else None,
        )
        log.info(
            "application_status_changed",
            application_id=app.id,
            from_status=app.status,
            to_status=updated.status,
            actor_id=actor_id,
        )
        self._notify_team(updated, status=updated.status, message=data.responseMessage or data.rejectionReason)
        return updated

    def schedule_interview(self, application_id: str, data: ScheduleInterviewInput, *, actor_id: str) -> Application:
        app = self._load(application_id)
        self._authorize(actor_id=actor_id, application=app, action=ApplicationAction.SCHEDULE_INTERVIEW)
        if app.status != "reviewing":
            raise Conflict(
                "Application must be reviewing to schedule an interview",
                details={"applicationId": app.id, "status": app.status},
            )
        self._require_transition(app, "interviewing")

        interview = InterviewRecord(**data.model_dump(), feedback=[])
        updated = self._save(app, {"status": "interviewing", "interview": interview})
        log.info(
            "application_interview_scheduled",
            application_id=app.id,
            scheduled_at=data.scheduledAt.isoformat(),
            format=data.format,
            actor_id=actor_id,
        )
        self._notify_team(updated, status="interviewing", message=format_interview_summary(data))
        return updated

    def add_interview_feedback(
        self, application_id: str, data: InterviewFeedbackInput, *, actor_id: str
    ) -> Application:
        app = self._load(application_id)
        self._authorize(actor_id=actor_id, application=app, action=ApplicationAction.ADD_FEEDBACK)
        if app.status != "interviewing" or app.interview is None:
            raise Conflict(
                "Application must be interviewing to add feedback",
                details={"applicationId": app.id, "status": app.status},
            )

        entry = InterviewFeedback(**data.model_dump(), submittedBy=actor_id, submittedAt=self._clock())
        interview = app.interview.model_copy(update={"feedback": [*app.interview.feedback, entry]})
        updated = self._save(app, {"interview": interview})
        log.info(
            "application_feedback_added",
            application_id=app.id,
            rating=data.rating,
            recommendation=data.recommendation,
            feedback_count=len(interview.feedback),
        )
        return updated

    def make_offer(self, application_id: str, data: MakeOfferInput, *, actor_id: str) -> Application:
        app = self._load(application_id)
        self._authorize(actor_id=actor_id, application=app, action=ApplicationAction.MAKE_OFFER)
        if app.status != "interviewing":
            raise Conflict(
                "Application must be interviewing to make an offer",
                details={"applicationId": app.id, "status": app.status},
            )
        self._require_transition(app, "accepted")

        now = self._clock()
        changes: dict[str, Any] = {
            "status": "accepted",
            "offer": OfferDetails(**data.model_dump()),
            "offerMadeAt": now,
            "finalDecisionAt": now,
        }
        if data.expirationDate:
            changes["responseDeadline"] = data.expirationDate
        updated = self._save(app, changes, opportunity_status=OPPORTUNITY_FILLED)
        log.info(
            "application_offer_made",
            application_id=app.id,
            opportunity_id=app.opportunityId,
            actor_id=actor_id,
        )
        self._notify_team(updated, status="accepted", message=format_offer_summary(data))
        return updated
