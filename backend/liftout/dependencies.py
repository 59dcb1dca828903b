from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, HTTPException, Request

from .modules.applications.application_service import ApplicationService
from .modules.interests.interest_service import InterestService
from .notifications.notifier import Notifier, build_notifier
from .repositories.base_repository import LiftoutRepository
from .repositories.dynamo_repository import DynamoLiftoutRepository
from .settings import settings


@lru_cache(maxsize=1)
def get_repository() -> LiftoutRepository:
    return DynamoLiftoutRepository()


@lru_cache(maxsize=1)
def get_notifier() -> Notifier:
    return build_notifier(enabled=settings.notifications_enabled)


def get_application_service(
    repo: LiftoutRepository = Depends(get_repository),
    notifier: Notifier = Depends(get_notifier),
) -> ApplicationService:
    return ApplicationService(repo=repo, notifier=notifier)


def get_interest_service(
    repo: LiftoutRepository = Depends(get_repository),
    notifier: Notifier = Depends(get_notifier),
) -> InterestService:
    return InterestService(repo=repo, notifier=notifier)


def actor_id_from_request(request: Request) -> str:
    # AuthMiddleware sets request.state.user for every /api/* route.
    user = getattr(request.state, "user", None)
    sub = str(getattr(user, "sub", "") or "").strip()
    if not sub:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return sub
