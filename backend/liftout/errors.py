from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class LiftoutError(Exception):
    """Base class for failures raised by the lifecycle services.

    Every subclass is recoverable by the caller. The HTTP layer maps the
    subclass to a status code and renders `message` verbatim as the detail.
    """

    message: str
    details: dict[str, Any] = field(default_factory=dict)

    status_code = 400
    title = "Bad Request"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class NotFound(LiftoutError):
    status_code = 404
    title = "Not Found"


@dataclass(slots=True)
class Unauthorized(LiftoutError):
    """The actor is authenticated but may not perform the action."""

    status_code = 403
    title = "Forbidden"


@dataclass(slots=True)
class Conflict(LiftoutError):
    status_code = 409
    title = "Conflict"


@dataclass(slots=True)
class ValidationFailed(LiftoutError):
    status_code = 400
    title = "Bad Request"
