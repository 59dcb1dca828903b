from __future__ import annotations

from pydantic import BaseModel

OPPORTUNITY_ACTIVE = "active"
OPPORTUNITY_FILLED = "filled"


class Opportunity(BaseModel):
    id: str
    companyId: str
    title: str
    status: str = OPPORTUNITY_ACTIVE
    applicationsCount: int = 0

    @property
    def is_accepting_applications(self) -> bool:
        return self.status == OPPORTUNITY_ACTIVE
