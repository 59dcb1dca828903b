from __future__ import annotations

from pydantic import BaseModel

from .roles import normalize_company_role


class Team(BaseModel):
    id: str
    name: str
    size: int | None = None


class Company(BaseModel):
    id: str
    name: str


class TeamMembership(BaseModel):
    teamId: str
    userId: str
    isAdmin: bool = False
    isLead: bool = False
    status: str = "active"
    email: str | None = None
    firstName: str | None = None

    @property
    def is_active(self) -> bool:
        return str(self.status or "").strip().lower() == "active"

    @property
    def can_manage(self) -> bool:
        """Lead or admin: may act on behalf of the team."""
        return bool(self.isAdmin or self.isLead)


class CompanyMembership(BaseModel):
    companyId: str
    userId: str
    role: str = "member"
    email: str | None = None
    firstName: str | None = None

    @property
    def normalized_role(self) -> str:
        return normalize_company_role(self.role)


class Recipient(BaseModel):
    userId: str
    email: str
    firstName: str | None = None
