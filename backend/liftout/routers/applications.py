from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..dependencies import actor_id_from_request, get_application_service
from ..modules.applications.application_service import ApplicationService
from ..modules.applications.models import (
    Application,
    ApplicationDetail,
    ApplicationPage,
    ApplicationStats,
    ApplicationStatus,
    CreateApplicationInput,
    InterviewFeedbackInput,
    MakeOfferInput,
    ScheduleInterviewInput,
    UpdateContentInput,
    UpdateStatusInput,
)

router = APIRouter(tags=["applications"])


@router.post("/applications", status_code=201, response_model=Application)
def create_application(
    body: CreateApplicationInput,
    actor_id: str = Depends(actor_id_from_request),
    svc: ApplicationService = Depends(get_application_service),
):
    return svc.create(body, actor_id=actor_id)


@router.get("/applications/stats", response_model=ApplicationStats)
def application_stats(
    actor_id: str = Depends(actor_id_from_request),
    svc: ApplicationService = Depends(get_application_service),
):
    return svc.get_stats(actor_id=actor_id)


@router.get("/applications/{applicationId}", response_model=ApplicationDetail)
def get_application(
    applicationId: str,
    actor_id: str = Depends(actor_id_from_request),
    svc: ApplicationService = Depends(get_application_service),
):
    return svc.get_by_id(applicationId, actor_id=actor_id)


@router.patch("/applications/{applicationId}", response_model=Application)
def update_application_content(
    applicationId: str,
    body: UpdateContentInput,
    actor_id: str = Depends(actor_id_from_request),
    svc: ApplicationService = Depends(get_application_service),
):
    return svc.update_content(applicationId, body, actor_id=actor_id)


@router.post("/applications/{applicationId}/withdraw", response_model=Application)
def withdraw_application(
    applicationId: str,
    actor_id: str = Depends(actor_id_from_request),
    svc: ApplicationService = Depends(get_application_service),
):
    return svc.withdraw(applicationId, actor_id=actor_id)


@router.post("/applications/{applicationId}/status", response_model=Application)
def update_application_status(
    applicationId: str,
    body: UpdateStatusInput,
    actor_id: str = Depends(actor_id_from_request),
    svc: ApplicationService = Depends(get_application_service),
):
    return svc.update_status(applicationId, body, actor_id=actor_id)


@router.post("/applications/{applicationId}/interview", response_model=Application)
def schedule_interview(
    applicationId: str,
    body: ScheduleInterviewInput,
    actor_id: str = Depends(actor_id_from_request),
    svc: ApplicationService = Depends(get_application_service),
):
    return svc.schedule_interview(applicationId, body, actor_id=actor_id)


@router.post("/applications/{applicationId}/interview/feedback", response_model=Application)
def add_interview_feedback(
    applicationId: str,
    body: InterviewFeedbackInput,
    actor_id: str = Depends(actor_id_from_request),
    svc: ApplicationService = Depends(get_application_service),
):
    return svc.add_interview_feedback(applicationId, body, actor_id=actor_id)


@router.post("/applications/{applicationId}/offer", response_model=Application)
def make_offer(
    applicationId: str,
    body: MakeOfferInput,
    actor_id: str = Depends(actor_id_from_request),
    svc: ApplicationService = Depends(get_application_service),
):
    return svc.make_offer(applicationId, body, actor_id=actor_id)


@router.get("/teams/{teamId}/applications", response_model=ApplicationPage)
def list_team_applications(
    teamId: str,
    status: ApplicationStatus | None = None,
    limit: int | None = Query(default=None, ge=1),
    nextToken: str | None = None,
    actor_id: str = Depends(actor_id_from_request),
    svc: ApplicationService = Depends(get_application_service),
):
    return svc.list_by_team(teamId, actor_id=actor_id, status=status, limit=limit, next_token=nextToken)


@router.get("/opportunities/{opportunityId}/applications", response_model=ApplicationPage)
def list_opportunity_applications(
    opportunityId: str,
    status: ApplicationStatus | None = None,
    limit: int | None = Query(default=None, ge=1),
    nextToken: str | None = None,
    actor_id: str = Depends(actor_id_from_request),
    svc: ApplicationService = Depends(get_application_service),
):
    return svc.list_by_opportunity(
        opportunityId, actor_id=actor_id, status=status, limit=limit, next_token=nextToken
    )
