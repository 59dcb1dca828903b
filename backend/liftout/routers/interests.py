from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..dependencies import actor_id_from_request, get_interest_service
from ..modules.interests.interest_service import InterestService
from ..modules.interests.models import (
    CreateInterestInput,
    Direction,
    ExpressionOfInterest,
    InterestPage,
    InterestResponse,
)

router = APIRouter(tags=["interests"])


class RespondRequest(BaseModel):
    response: InterestResponse


@router.post("/interests", status_code=201, response_model=ExpressionOfInterest)
def create_interest(
    body: CreateInterestInput,
    actor_id: str = Depends(actor_id_from_request),
    svc: InterestService = Depends(get_interest_service),
):
    return svc.create(body, actor_id=actor_id)


@router.get("/interests", response_model=InterestPage)
def list_interests(
    direction: Direction = Query(default="received", alias="type"),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    actor_id: str = Depends(actor_id_from_request),
    svc: InterestService = Depends(get_interest_service),
):
    return svc.list_for_user(actor_id, direction=direction, page=page, limit=limit)


@router.post("/interests/{interestId}/respond", response_model=ExpressionOfInterest)
def respond_to_interest(
    interestId: str,
    body: RespondRequest,
    actor_id: str = Depends(actor_id_from_request),
    svc: InterestService = Depends(get_interest_service),
):
    return svc.respond(interestId, body.response, actor_id=actor_id)
