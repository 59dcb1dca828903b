"""
Single-table key layout.

    APPLICATION#{id}            / PROFILE          application
    APPGUARD#{teamId}#{oppId}   / GUARD            one live application per pair
    OPPORTUNITY#{id}            / PROFILE          opportunity
    TEAM#{id}                   / PROFILE          team
    TEAM#{id}                   / MEMBER#{userId}  team membership
    COMPANY#{id}                / PROFILE          company
    COMPANY#{id}                / USER#{userId}    company membership
    EOI#{id}                    / PROFILE          expression of interest
    EOIGUARD#{from}#{to}        / GUARD            one pending interest per pair

GSI1 (gsi1pk/gsi1sk) and GSI2 (gsi2pk/gsi2sk) carry the reverse lookups:
applications by team / by opportunity, memberships by user, opportunities by
company, interests by sender / by target.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _req(name: str, value: str) -> str:
    v = str(value or "").strip()
    if not v:
        raise ValueError(f"{name} is required")
    return v


def application_key(application_id: str) -> dict[str, str]:
    return {"pk": f"APPLICATION#{_req('application_id', application_id)}", "sk": "PROFILE"}


def application_guard_key(*, team_id: str, opportunity_id: str) -> dict[str, str]:
    return {
        "pk": f"APPGUARD#{_req('team_id', team_id)}#{_req('opportunity_id', opportunity_id)}",
        "sk": "GUARD",
    }


def opportunity_key(opportunity_id: str) -> dict[str, str]:
    return {"pk": f"OPPORTUNITY#{_req('opportunity_id', opportunity_id)}", "sk": "PROFILE"}


def team_key(team_id: str) -> dict[str, str]:
    return {"pk": f"TEAM#{_req('team_id', team_id)}", "sk": "PROFILE"}


def team_member_key(*, team_id: str, user_id: str) -> dict[str, str]:
    return {"pk": f"TEAM#{_req('team_id', team_id)}", "sk": f"MEMBER#{_req('user_id', user_id)}"}


def company_key(company_id: str) -> dict[str, str]:
    return {"pk": f"COMPANY#{_req('company_id', company_id)}", "sk": "PROFILE"}


def company_user_key(*, company_id: str, user_id: str) -> dict[str, str]:
    return {"pk": f"COMPANY#{_req('company_id', company_id)}", "sk": f"USER#{_req('user_id', user_id)}"}


def interest_key(interest_id: str) -> dict[str, str]:
    return {"pk": f"EOI#{_req('interest_id', interest_id)}", "sk": "PROFILE"}


def party_ref(party_type: str, party_id: str) -> str:
    return f"{_req('party_type', party_type)}#{_req('party_id', party_id)}"


def interest_guard_key(*, from_type: str, from_id: str, to_type: str, to_id: str) -> dict[str, str]:
    return {
        "pk": f"EOIGUARD#{party_ref(from_type, from_id)}#{party_ref(to_type, to_id)}",
        "sk": "GUARD",
    }


# GSI partition values

def team_applications_pk(team_id: str) -> str:
    return f"TEAM#{team_id}#APPLICATIONS"


def opportunity_applications_pk(opportunity_id: str) -> str:
    return f"OPPORTUNITY#{opportunity_id}#APPLICATIONS"


def user_teams_pk(user_id: str) -> str:
    return f"USER#{user_id}#TEAMS"


def user_companies_pk(user_id: str) -> str:
    return f"USER#{user_id}#COMPANIES"


def company_opportunities_pk(company_id: str) -> str:
    return f"COMPANY#{company_id}#OPPORTUNITIES"


def interests_from_pk(party_type: str, party_id: str) -> str:
    return f"EOI#FROM#{party_ref(party_type, party_id)}"


def interests_to_pk(party_type: str, party_id: str) -> str:
    return f"EOI#TO#{party_ref(party_type, party_id)}"


# Item conversion

_INTERNAL_ATTRS = ("pk", "sk", "entityType", "gsi1pk", "gsi1sk", "gsi2pk", "gsi2sk")


def to_item(model: BaseModel) -> dict[str, Any]:
    """
    Model -> DynamoDB attribute map. Numbers go through Decimal (boto3 rejects
    float) and None values are dropped.
    """
    raw = model.model_dump_json(exclude_none=True)
    return json.loads(raw, parse_float=Decimal)


def strip_internal(item: dict[str, Any] | None) -> dict[str, Any] | None:
    if not item:
        return None
    return {k: v for k, v in item.items() if k not in _INTERNAL_ATTRS}
