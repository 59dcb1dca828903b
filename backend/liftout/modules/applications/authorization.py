from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ...repositories.base_repository import LiftoutRepository
from ..identity.roles import can_make_offers
from .models import Application


class ApplicationAction(str, Enum):
    VIEW = "view"
    CREATE = "create"
    UPDATE_CONTENT = "update_content"
    WITHDRAW = "withdraw"
    UPDATE_STATUS = "update_status"
    SCHEDULE_INTERVIEW = "schedule_interview"
    ADD_FEEDBACK = "add_feedback"
    MAKE_OFFER = "make_offer"


TEAM_ACTIONS = frozenset(
    {ApplicationAction.CREATE, ApplicationAction.UPDATE_CONTENT, ApplicationAction.WITHDRAW}
)
COMPANY_ACTIONS = frozenset(
    {
        ApplicationAction.UPDATE_STATUS,
        ApplicationAction.SCHEDULE_INTERVIEW,
        ApplicationAction.ADD_FEEDBACK,
        ApplicationAction.MAKE_OFFER,
    }
)


@dataclass(frozen=True, slots=True)
class AuthorizationDecision:
    allowed: bool
    reason: str | None = None


ALLOW = AuthorizationDecision(allowed=True)


def _deny(reason: str) -> AuthorizationDecision:
    return AuthorizationDecision(allowed=False, reason=reason)


def coerce_action(value: Any) -> ApplicationAction | None:
    if isinstance(value, ApplicationAction):
        return value
    try:
        return ApplicationAction(str(value or "").strip().lower())
    except ValueError:
        return None


class AuthorizationResolver:
    """
    Single decision point for "may this user do X to this application".

    Rules are evaluated in a fixed precedence: team-side actions, then
    company-side actions, then view. Denials are returned (never raised) and
    carry a reason callers surface verbatim.
    """

    def __init__(self, repo: LiftoutRepository):
        self._repo = repo

    def can_act(self, *, actor_id: str, application: Application, action: Any) -> AuthorizationDecision:
        act = coerce_action(action)
        if act is None:
            return _deny("Unknown action")
        if act in TEAM_ACTIONS:
            return self._team_decision(actor_id=actor_id, application=application, action=act)
        if act in COMPANY_ACTIONS:
            return self._company_decision(actor_id=actor_id, application=application, action=act)
        return self._view_decision(actor_id=actor_id, application=application)

    def _team_decision(
        self, *, actor_id: str, application: Application, action: ApplicationAction
    ) -> AuthorizationDecision:
        member = self._repo.get_team_membership(team_id=application.teamId, user_id=actor_id)
        if member is None or not member.is_active:
            return _deny("User is not a member of this team")
        if not member.can_manage:
            return _deny("Only team leads or admins can perform this action")
        if action is ApplicationAction.UPDATE_CONTENT and application.status != "submitted":
            return _deny("Cannot modify application after review has started")
        if action is ApplicationAction.WITHDRAW and application.status == "accepted":
            return _deny("Cannot withdraw an accepted application")
        return ALLOW

    def _company_decision(
        self, *, actor_id: str, application: Application, action: ApplicationAction
    ) -> AuthorizationDecision:
        if self._repo.get_opportunity(application.opportunityId) is None:
            return _deny("Opportunity not found")
        cm = self._repo.get_company_membership_for_opportunity(
            opportunity_id=application.opportunityId, user_id=actor_id
        )
        if cm is None:
            return _deny("User does not belong to the company that posted this opportunity")
        if action is ApplicationAction.MAKE_OFFER and not can_make_offers(cm.role):
            return _deny("Only company admins can make offers")
        return ALLOW

    def _view_decision(self, *, actor_id: str, application: Application) -> AuthorizationDecision:
        member = self._repo.get_team_membership(team_id=application.teamId, user_id=actor_id)
        if member is not None and member.is_active:
            return ALLOW
        cm = self._repo.get_company_membership_for_opportunity(
            opportunity_id=application.opportunityId, user_id=actor_id
        )
        if cm is not None:
            return ALLOW
        return _deny("User does not have permission to view this application")
