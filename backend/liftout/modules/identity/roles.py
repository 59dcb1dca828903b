from __future__ import annotations

from typing import Any


COMPANY_ROLE_MEMBER = "member"
COMPANY_ROLE_ADMIN = "admin"
COMPANY_ROLE_OWNER = "owner"

# Roles allowed to commit the company (offers).
OFFER_ROLES = frozenset({COMPANY_ROLE_ADMIN, COMPANY_ROLE_OWNER})


def normalize_company_role(value: Any) -> str:
    """
    Normalize a stored company role to one of member/admin/owner.
    Unknown or empty values fall back to member, which grants the least.
    """
    low = str(value or "").strip().lower().replace("_", "").replace("-", "")
    if low in ("owner", "companyowner"):
        return COMPANY_ROLE_OWNER
    if low in ("admin", "administrator", "companyadmin"):
        return COMPANY_ROLE_ADMIN
    return COMPANY_ROLE_MEMBER


def can_make_offers(role: Any) -> bool:
    return normalize_company_role(role) in OFFER_ROLES
