from __future__ import annotations

import sys
import threading
from collections import Counter
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable

import pytest

# Ensure `backend/` is on sys.path so `import liftout.*` works in tests.
BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))

from liftout.errors import Conflict, ValidationFailed  # noqa: E402
from liftout.modules.applications.application_service import ApplicationService  # noqa: E402
from liftout.modules.applications.models import (  # noqa: E402
    Application,
    ApplicationFilter,
    ApplicationPage,
    PageRequest,
)
from liftout.modules.identity.models import Company, CompanyMembership, Team, TeamMembership  # noqa: E402
from liftout.modules.interests.interest_service import InterestService  # noqa: E402
from liftout.modules.interests.models import ExpressionOfInterest, Party  # noqa: E402
from liftout.modules.opportunities.models import Opportunity  # noqa: E402
from liftout.notifications.notifier import Notifier  # noqa: E402
from liftout.repositories.applications_repo import STALE_WRITE_MESSAGE  # noqa: E402
from liftout.repositories.base_repository import LiftoutRepository  # noqa: E402


class InMemoryRepository(LiftoutRepository):
    """
    Dict-backed LiftoutRepository with the same atomicity guarantees as the
    DynamoDB one: uniqueness, version compare-and-swap and counters are all
    applied under one lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.applications: dict[str, Application] = {}
        self.opportunities: dict[str, Opportunity] = {}
        self.teams: dict[str, Team] = {}
        self.companies: dict[str, Company] = {}
        self.team_members: dict[tuple[str, str], TeamMembership] = {}
        self.company_members: dict[tuple[str, str], CompanyMembership] = {}
        self.interests: dict[str, ExpressionOfInterest] = {}

    # --- seeding ---

    def add_team(self, team_id: str, name: str) -> Team:
        self.teams[team_id] = Team(id=team_id, name=name)
        return self.teams[team_id]

    def add_team_member(
        self,
        team_id: str,
        user_id: str,
        *,
        is_admin: bool = False,
        is_lead: bool = False,
        status: str = "active",
        email: str | None = None,
    ) -> TeamMembership:
        m = TeamMembership(
            teamId=team_id,
            userId=user_id,
            isAdmin=is_admin,
            isLead=is_lead,
            status=status,
            email=email if email is not None else f"{user_id}@example.com",
            firstName=user_id.capitalize(),
        )
        self.team_members[(team_id, user_id)] = m
        return m

    def add_company(self, company_id: str, name: str) -> Company:
        self.companies[company_id] = Company(id=company_id, name=name)
        return self.companies[company_id]

    def add_company_member(self, company_id: str, user_id: str, *, role: str = "member") -> CompanyMembership:
        m = CompanyMembership(
            companyId=company_id,
            userId=user_id,
            role=role,
            email=f"{user_id}@example.com",
            firstName=user_id.capitalize(),
        )
        self.company_members[(company_id, user_id)] = m
        return m

    def add_opportunity(self, opportunity_id: str, company_id: str, title: str, *, status: str = "active") -> Opportunity:
        self.opportunities[opportunity_id] = Opportunity(
            id=opportunity_id, companyId=company_id, title=title, status=status
        )
        return self.opportunities[opportunity_id]

    # --- applications ---

    def get_application(self, application_id: str) -> Application | None:
        return self.applications.get(application_id)

    def find_application(self, *, team_id: str, opportunity_id: str) -> Application | None:
        for a in self.applications.values():
            if a.teamId == team_id and a.opportunityId == opportunity_id:
                return a
        return None

    def create_application(self, application: Application) -> Application:
        with self._lock:
            if self.find_application(team_id=application.teamId, opportunity_id=application.opportunityId):
                raise Conflict("Your team has already applied to this opportunity")
            opp = self.opportunities.get(application.opportunityId)
            if opp is None or opp.status != "active":
                raise ValidationFailed("Cannot apply to an inactive opportunity")
            self.applications[application.id] = application
            self.opportunities[opp.id] = opp.model_copy(update={"applicationsCount": opp.applicationsCount + 1})
            return application

    def save_application(
        self,
        application: Application,
        *,
        expected_version: int,
        opportunity_status: str | None = None,
    ) -> Application:
        with self._lock:
            stored = self.applications.get(application.id)
            if stored is None or stored.version != expected_version:
                raise Conflict(STALE_WRITE_MESSAGE)
            updated = application.model_copy(update={"version": expected_version + 1})
            self.applications[application.id] = updated
            if opportunity_status:
                opp = self.opportunities[application.opportunityId]
                self.opportunities[opp.id] = opp.model_copy(update={"status": opportunity_status})
            return updated

    def delete_application(self, application: Application, *, expected_version: int) -> None:
        with self._lock:
            stored = self.applications.get(application.id)
            if stored is None or stored.version != expected_version:
                raise Conflict(STALE_WRITE_MESSAGE)
            del self.applications[application.id]
            opp = self.opportunities.get(application.opportunityId)
            if opp is not None:
                self.opportunities[opp.id] = opp.model_copy(
                    update={"applicationsCount": max(0, opp.applicationsCount - 1)}
                )

    def list_applications(self, filters: ApplicationFilter, page: PageRequest) -> ApplicationPage:
        rows = [
            a
            for a in self.applications.values()
            if (not filters.teamId or a.teamId == filters.teamId)
            and (not filters.opportunityId or a.opportunityId == filters.opportunityId)
            and (not filters.status or a.status == filters.status)
        ]
        rows.sort(key=lambda a: (a.appliedAt, a.id), reverse=True)
        start = int(page.nextToken or 0)
        end = start + page.limit
        return ApplicationPage(data=rows[start:end], nextToken=str(end) if end < len(rows) else None)

    def count_applications_by_status(
        self,
        *,
        team_ids: Iterable[str] = (),
        opportunity_ids: Iterable[str] = (),
    ) -> dict[str, int]:
        tids, oids = set(team_ids), set(opportunity_ids)
        return dict(
            Counter(a.status for a in self.applications.values() if a.teamId in tids or a.opportunityId in oids)
        )

    # --- directory ---

    def get_opportunity(self, opportunity_id: str) -> Opportunity | None:
        return self.opportunities.get(opportunity_id)

    def list_company_opportunity_ids(self, company_id: str) -> list[str]:
        return [o.id for o in self.opportunities.values() if o.companyId == company_id]

    def get_team(self, team_id: str) -> Team | None:
        return self.teams.get(team_id)

    def get_company(self, company_id: str) -> Company | None:
        return self.companies.get(company_id)

    def get_team_membership(self, *, team_id: str, user_id: str) -> TeamMembership | None:
        return self.team_members.get((team_id, user_id))

    def list_team_members(self, team_id: str) -> list[TeamMembership]:
        return [m for (tid, _), m in self.team_members.items() if tid == team_id]

    def list_team_memberships_for_user(self, user_id: str) -> list[TeamMembership]:
        return [m for (_, uid), m in self.team_members.items() if uid == user_id]

    def get_company_membership_for_opportunity(
        self, *, opportunity_id: str, user_id: str
    ) -> CompanyMembership | None:
        opp = self.opportunities.get(opportunity_id)
        return self.company_members.get((opp.companyId, user_id)) if opp else None

    def get_company_membership_for_user(self, user_id: str) -> CompanyMembership | None:
        for (_, uid), m in self.company_members.items():
            if uid == user_id:
                return m
        return None

    def list_company_members(self, company_id: str) -> list[CompanyMembership]:
        return [m for (cid, _), m in self.company_members.items() if cid == company_id]

    # --- expressions of interest ---

    def get_interest(self, interest_id: str) -> ExpressionOfInterest | None:
        return self.interests.get(interest_id)

    def find_pending_interest(
        self, *, from_type: str, from_id: str, to_type: str, to_id: str
    ) -> ExpressionOfInterest | None:
        for e in self.interests.values():
            if e.status == "pending" and e.pair_key == (from_type, from_id, to_type, to_id):
                return e
        return None

    def create_interest(self, interest: ExpressionOfInterest) -> ExpressionOfInterest:
        with self._lock:
            if self.find_pending_interest(
                from_type=interest.fromType, from_id=interest.fromId, to_type=interest.toType, to_id=interest.toId
            ):
                raise Conflict("An expression of interest already exists")
            self.interests[interest.id] = interest
            return interest

    def save_interest_response(self, interest: ExpressionOfInterest) -> ExpressionOfInterest:
        with self._lock:
            stored = self.interests.get(interest.id)
            if stored is None or stored.status != "pending":
                raise Conflict("This expression of interest has already been responded to")
            self.interests[interest.id] = interest
            return interest

    def list_interests(
        self,
        *,
        from_parties: Iterable[Party] = (),
        to_parties: Iterable[Party] = (),
    ) -> list[ExpressionOfInterest]:
        senders = {(p.type, p.id) for p in from_parties}
        targets = {(p.type, p.id) for p in to_parties}
        rows = [
            e
            for e in self.interests.values()
            if (e.fromType, e.fromId) in senders or (e.toType, e.toId) in targets
        ]
        return sorted(rows, key=lambda e: (e.createdAt, e.id), reverse=True)


class RecordingNotifier(Notifier):
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.status_calls: list[dict[str, Any]] = []
        self.interest_calls: list[dict[str, Any]] = []

    def notify_application_status(self, **kwargs: Any) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.status_calls.append(kwargs)

    def notify_expression_of_interest(self, **kwargs: Any) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.interest_calls.append(kwargs)


class StepClock:
    """Deterministic clock: each call is one second after the previous one."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def repo() -> InMemoryRepository:
    """
    Two teams, two companies, three opportunities:

        team-alpha  "Alpha Squad"   alice (lead), carol (member), dave (admin, inactive)
        team-beta   "Beta Crew"     frank (admin)
        co-acme     "Acme Corp"     bob (admin), erin (member)
        co-globex   "Globex"        grace (owner)
        opp-platform  Acme, active
        opp-closed    Acme, closed
        opp-data      Globex, active
    """
    r = InMemoryRepository()
    r.add_team("team-alpha", "Alpha Squad")
    r.add_team_member("team-alpha", "alice", is_lead=True)
    r.add_team_member("team-alpha", "carol")
    r.add_team_member("team-alpha", "dave", is_admin=True, status="inactive")
    r.add_team("team-beta", "Beta Crew")
    r.add_team_member("team-beta", "frank", is_admin=True)

    r.add_company("co-acme", "Acme Corp")
    r.add_company_member("co-acme", "bob", role="admin")
    r.add_company_member("co-acme", "erin", role="member")
    r.add_company("co-globex", "Globex")
    r.add_company_member("co-globex", "grace", role="owner")

    r.add_opportunity("opp-platform", "co-acme", "Platform Engineering Team")
    r.add_opportunity("opp-closed", "co-acme", "Closed Role", status="closed")
    r.add_opportunity("opp-data", "co-globex", "Data Science Team")
    return r


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def app_service(repo, notifier, clock) -> ApplicationService:
    return ApplicationService(repo=repo, notifier=notifier, clock=clock)


@pytest.fixture
def interest_service(repo, notifier, clock) -> InterestService:
    return InterestService(repo=repo, notifier=notifier, clock=clock)
