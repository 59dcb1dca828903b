from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


InterestStatus = Literal["pending", "accepted", "declined"]
InterestResponse = Literal["accepted", "declined"]
FromType = Literal["team", "company"]
ToType = Literal["team", "opportunity"]
InterestLevel = Literal["low", "medium", "high"]
Direction = Literal["sent", "received"]


class ExpressionOfInterest(BaseModel):
    id: str
    fromType: FromType
    fromId: str
    toType: ToType
    toId: str
    status: InterestStatus = "pending"

    message: str | None = None
    interestLevel: InterestLevel = "medium"
    specificRole: str | None = None
    timeline: str | None = None
    budgetRange: str | None = None

    createdBy: str
    createdAt: datetime
    respondedBy: str | None = None
    respondedAt: datetime | None = None

    @property
    def pair_key(self) -> tuple[str, str, str, str]:
        return (self.fromType, self.fromId, self.toType, self.toId)


class CreateInterestInput(BaseModel):
    fromType: FromType
    # Optional: which of the actor's teams/companies is sending. Defaults to
    # the first one the actor may act for.
    fromId: str | None = None
    toType: ToType
    toId: str = Field(..., min_length=1)
    message: str | None = Field(default=None, max_length=5000)
    interestLevel: InterestLevel = "medium"
    specificRole: str | None = None
    timeline: str | None = None
    budgetRange: str | None = None


class Party(BaseModel):
    type: str
    id: str


class InterestPagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class InterestPage(BaseModel):
    data: list[ExpressionOfInterest]
    pagination: InterestPagination
