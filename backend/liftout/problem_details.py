"""
RFC 7807 problem documents.

Every error response leaves the service as `application/problem+json` with the
request id attached, whether it came from a domain error, a storage error, a
validation failure or the auth middleware.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.responses import ORJSONResponse

from .errors import LiftoutError
from .settings import get_settings

PROBLEM_JSON = "application/problem+json"


def _title_for(status_code: int) -> str:
    if status_code >= 500:
        return "Internal Server Error"
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def _request_id(request: Request) -> str | None:
    rid = getattr(getattr(request, "state", None), "request_id", None) or request.headers.get("x-request-id")
    return str(rid) if rid else None


@dataclass(slots=True)
class Problem:
    status: int
    title: str | None = None
    detail: str | None = None
    type: str = "about:blank"
    errors: list[dict[str, Any]] = field(default_factory=list)
    # Kept under one key so they never shadow the standard members.
    extensions: dict[str, Any] = field(default_factory=dict)

    def to_dict(self, request: Request) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "type": self.type or "about:blank",
            "title": self.title or _title_for(self.status),
            "status": self.status,
        }
        optional = {
            "detail": self.detail,
            "instance": str(request.url.path or "") or None,
            "requestId": _request_id(request),
            "errors": self.errors or None,
            "extensions": self.extensions or None,
        }
        doc.update({k: v for k, v in optional.items() if v})
        return doc


def problem_payload(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    type: str = "about:blank",
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return Problem(
        status=int(status_code),
        title=title,
        detail=str(detail) if detail else None,
        type=type,
        errors=list(errors or []),
        extensions=dict(extensions or {}),
    ).to_dict(request)


def problem_response(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    type: str = "about:blank",
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> ORJSONResponse:
    status_code = int(status_code)
    if status_code >= 500 and get_settings().is_production:
        detail = None
    return ORJSONResponse(
        status_code=status_code,
        content=problem_payload(
            request=request,
            status_code=status_code,
            title=title,
            detail=detail,
            type=type,
            errors=errors,
            extensions=extensions,
        ),
        media_type=PROBLEM_JSON,
    )


def error_response(request: Request, exc: LiftoutError) -> ORJSONResponse:
    """Domain failure -> problem document; the message is the detail, verbatim."""
    return problem_response(
        request=request,
        status_code=exc.status_code,
        title=exc.title,
        detail=exc.message,
        extensions=exc.details or None,
    )
