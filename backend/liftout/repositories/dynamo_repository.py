from __future__ import annotations

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
from . import applications_repo, directory_repo, interests_repo
from .base_repository import LiftoutRepository


class DynamoLiftoutRepository(LiftoutRepository):
    """LiftoutRepository over the main DynamoDB table."""

    # --- applications ---

    def get_application(self, application_id: str) -> Application | None:
        return applications_repo.get_application(application_id)

    def find_application(self, *, team_id: str, opportunity_id: str) -> Application | None:
        return applications_repo.find_application(team_id=team_id, opportunity_id=opportunity_id)

    def create_application(self, application: Application) -> Application:
        return applications_repo.create_application(application)

    def save_application(
        self,
        application: Application,
        *,
        expected_version: int,
        opportunity_status: str | None = None,
    ) -> Application:
        return applications_repo.save_application(
            application,
            expected_version=expected_version,
            opportunity_status=opportunity_status,
        )

    def delete_application(self, application: Application, *, expected_version: int) -> None:
        applications_repo.delete_application(application, expected_version=expected_version)

    def list_applications(self, filters: ApplicationFilter, page: PageRequest) -> ApplicationPage:
        return applications_repo.list_applications(filters, page)

    def count_applications_by_status(
        self,
        *,
        team_ids: Iterable[str] = (),
        opportunity_ids: Iterable[str] = (),
    ) -> dict[str, int]:
        return applications_repo.count_applications_by_status(team_ids=team_ids, opportunity_ids=opportunity_ids)

    # --- directory ---

    def get_opportunity(self, opportunity_id: str) -> Opportunity | None:
        return directory_repo.get_opportunity(opportunity_id)

    def list_company_opportunity_ids(self, company_id: str) -> list[str]:
        return directory_repo.list_company_opportunity_ids(company_id)

    def get_team(self, team_id: str) -> Team | None:
        return directory_repo.get_team(team_id)

    def get_company(self, company_id: str) -> Company | None:
        return directory_repo.get_company(company_id)

    def get_team_membership(self, *, team_id: str, user_id: str) -> TeamMembership | None:
        return directory_repo.get_team_membership(team_id=team_id, user_id=user_id)

    def list_team_members(self, team_id: str) -> list[TeamMembership]:
        return directory_repo.list_team_members(team_id)

    def list_team_memberships_for_user(self, user_id: str) -> list[TeamMembership]:
        return directory_repo.list_team_memberships_for_user(user_id)

    def get_company_membership_for_opportunity(
        self, *, opportunity_id: str, user_id: str
    ) -> CompanyMembership | None:
        return directory_repo.get_company_membership_for_opportunity(opportunity_id=opportunity_id, user_id=user_id)

    def get_company_membership_for_user(self, user_id: str) -> CompanyMembership | None:
        return directory_repo.get_company_membership_for_user(user_id)

    def list_company_members(self, company_id: str) -> list[CompanyMembership]:
        return directory_repo.list_company_members(company_id)

    # --- expressions of interest ---

    def get_interest(self, interest_id: str) -> ExpressionOfInterest | None:
        return interests_repo.get_interest(interest_id)

    def find_pending_interest(
        self, *, from_type: str, from_id: str, to_type: str, to_id: str
    ) -> ExpressionOfInterest | None:
        return interests_repo.find_pending_interest(
            from_type=from_type, from_id=from_id, to_type=to_type, to_id=to_id
        )

    def create_interest(self, interest: ExpressionOfInterest) -> ExpressionOfInterest:
        return interests_repo.create_interest(interest)

    def save_interest_response(self, interest: ExpressionOfInterest) -> ExpressionOfInterest:
        return interests_repo.save_interest_response(interest)

    def list_interests(
        self,
        *,
        from_parties: Iterable[Party] = (),
        to_parties: Iterable[Party] = (),
    ) -> list[ExpressionOfInterest]:
        return interests_repo.list_interests(from_parties=from_parties, to_parties=to_parties)
