"""
Read-only access to teams, companies, opportunities and memberships.

These records belong to the profile/membership subsystem; this engine only
reads them (plus the two opportunity fields written by applications_repo).
"""

from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.table import get_main_table
from ..modules.identity.models import Company, CompanyMembership, Team, TeamMembership
from ..modules.opportunities.models import Opportunity
from .keys import (
    company_key,
    company_opportunities_pk,
    company_user_key,
    opportunity_key,
    strip_internal,
    team_key,
    team_member_key,
    user_companies_pk,
    user_teams_pk,
)


def _get(key: dict[str, str]) -> dict[str, Any] | None:
    return strip_internal(get_main_table().get_item(key=key))


def get_opportunity(opportunity_id: str) -> Opportunity | None:
    data = _get(opportunity_key(opportunity_id))
    return Opportunity.model_validate(data) if data else None


def list_company_opportunity_ids(company_id: str) -> list[str]:
    items = get_main_table().query_all(
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(company_opportunities_pk(company_id)),
    )
    return [str(it["id"]) for it in items if it.get("id")]


def get_team(team_id: str) -> Team | None:
    data = _get(team_key(team_id))
    return Team.model_validate(data) if data else None


def get_company(company_id: str) -> Company | None:
    data = _get(company_key(company_id))
    return Company.model_validate(data) if data else None


def get_team_membership(*, team_id: str, user_id: str) -> TeamMembership | None:
    data = _get(team_member_key(team_id=team_id, user_id=user_id))
    return TeamMembership.model_validate(data) if data else None


def list_team_members(team_id: str) -> list[TeamMembership]:
    items = get_main_table().query_all(
        key_condition_expression=Key("pk").eq(team_key(team_id)["pk"]) & Key("sk").begins_with("MEMBER#"),
        scan_index_forward=True,
    )
    return [TeamMembership.model_validate(strip_internal(it)) for it in items]


def list_team_memberships_for_user(user_id: str) -> list[TeamMembership]:
    items = get_main_table().query_all(
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(user_teams_pk(user_id)),
        scan_index_forward=True,
    )
    return [TeamMembership.model_validate(strip_internal(it)) for it in items]


def get_company_membership(*, company_id: str, user_id: str) -> CompanyMembership | None:
    data = _get(company_user_key(company_id=company_id, user_id=user_id))
    return CompanyMembership.model_validate(data) if data else None


def get_company_membership_for_opportunity(*, opportunity_id: str, user_id: str) -> CompanyMembership | None:
    opp = get_opportunity(opportunity_id)
    if opp is None:
        return None
    return get_company_membership(company_id=opp.companyId, user_id=user_id)


def get_company_membership_for_user(user_id: str) -> CompanyMembership | None:
    # A user belongs to at most one company; take the oldest link if data says otherwise.
    items = get_main_table().query_all(
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(user_companies_pk(user_id)),
        scan_index_forward=True,
        max_items=1,
    )
    return CompanyMembership.model_validate(strip_internal(items[0])) if items else None


def list_company_members(company_id: str) -> list[CompanyMembership]:
    items = get_main_table().query_all(
        key_condition_expression=Key("pk").eq(company_key(company_id)["pk"]) & Key("sk").begins_with("USER#"),
        scan_index_forward=True,
    )
    return [CompanyMembership.model_validate(strip_internal(it)) for it in items]
