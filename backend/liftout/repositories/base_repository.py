"""
Storage interface consumed by the lifecycle services.

The services never touch DynamoDB directly; everything goes through this
interface so the engine can run against any transactional store. Writes that
must stay consistent with each other (application + counter, application +
opportunity status, interest + pending guard) are single methods here so an
implementation can execute them in one transaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from ..modules.applications.models import (
    Application,
    ApplicationFilter,
    ApplicationPage,
    PageRequest,
)
from ..modules.identity.models import Company, CompanyMembership, Team, TeamMembership
from ..modules.interests.models import ExpressionOfInterest, Party
from ..modules.opportunities.models import Opportunity


class LiftoutRepository(ABC):
    # --- applications ---

    @abstractmethod
    def get_application(self, application_id: str) -> Application | None:
        pass

    @abstractmethod
    def find_application(self, *, team_id: str, opportunity_id: str) -> Application | None:
        """The live application for (team, opportunity), if any."""

    @abstractmethod
    def create_application(self, application: Application) -> Application:
        """
        Persist a new application and increment the opportunity's
        applicationsCount atomically. Raises Conflict when the (team,
        opportunity) pair already has an application and ValidationFailed when
        the opportunity stopped being active.
        """

    @abstractmethod
    def save_application(
        self,
        application: Application,
        *,
        expected_version: int,
        opportunity_status: str | None = None,
    ) -> Application:
        """
        Conditional write: succeeds only if the stored version still equals
        expected_version, and bumps the version. When opportunity_status is
        given it is written in the same transaction. Losers raise Conflict.
        """

    @abstractmethod
    def delete_application(self, application: Application, *, expected_version: int) -> None:
        """Delete and decrement applicationsCount (never below zero) atomically."""

    @abstractmethod
    def list_applications(self, filters: ApplicationFilter, page: PageRequest) -> ApplicationPage:
        pass

    @abstractmethod
    def count_applications_by_status(
        self,
        *,
        team_ids: Iterable[str] = (),
        opportunity_ids: Iterable[str] = (),
    ) -> dict[str, int]:
        pass

    # --- directory (read-only) ---

    @abstractmethod
    def get_opportunity(self, opportunity_id: str) -> Opportunity | None:
        pass

    @abstractmethod
    def list_company_opportunity_ids(self, company_id: str) -> list[str]:
        pass

    @abstractmethod
    def get_team(self, team_id: str) -> Team | None:
        pass

    @abstractmethod
    def get_company(self, company_id: str) -> Company | None:
        pass

    @abstractmethod
    def get_team_membership(self, *, team_id: str, user_id: str) -> TeamMembership | None:
        pass

    @abstractmethod
    def list_team_members(self, team_id: str) -> list[TeamMembership]:
        pass

    @abstractmethod
    def list_team_memberships_for_user(self, user_id: str) -> list[TeamMembership]:
        pass

    @abstractmethod
    def get_company_membership_for_opportunity(
        self, *, opportunity_id: str, user_id: str
    ) -> CompanyMembership | None:
        """The user's membership in the company that owns the opportunity."""

    @abstractmethod
    def get_company_membership_for_user(self, user_id: str) -> CompanyMembership | None:
        pass

    @abstractmethod
    def list_company_members(self, company_id: str) -> list[CompanyMembership]:
        pass

    # --- expressions of interest ---

    @abstractmethod
    def get_interest(self, interest_id: str) -> ExpressionOfInterest | None:
        pass

    @abstractmethod
    def find_pending_interest(
        self, *, from_type: str, from_id: str, to_type: str, to_id: str
    ) -> ExpressionOfInterest | None:
        pass

    @abstractmethod
    def create_interest(self, interest: ExpressionOfInterest) -> ExpressionOfInterest:
        """Persist a pending interest; Conflict if the pair already has one pending."""

    @abstractmethod
    def save_interest_response(self, interest: ExpressionOfInterest) -> ExpressionOfInterest:
        """
        Write the response only if the stored interest is still pending and
        release the pair's pending slot in the same transaction.
        """

    @abstractmethod
    def list_interests(
        self,
        *,
        from_parties: Iterable[Party] = (),
        to_parties: Iterable[Party] = (),
    ) -> list[ExpressionOfInterest]:
        """Interests sent by any of from_parties or addressed to any of to_parties."""
