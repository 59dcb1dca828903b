from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class DdbError(Exception):
    """Base error for DynamoDB operations.

    Caught by the FastAPI exception handler and rendered as RFC7807 problem
    details. Repositories translate the ones that carry domain meaning
    (conditional check failures) into domain errors before they get that far.
    """

    message: str
    operation: str | None = None
    table_name: str | None = None
    key: dict[str, Any] | None = None
    aws_request_id: str | None = None
    retryable: bool = False
    cause: Exception | None = None
    # One code per TransactItem ("None" when that item was fine).
    cancellation_reasons: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return self.message

    def failed_item_indexes(self) -> list[int]:
        return [
            i
            for i, code in enumerate(self.cancellation_reasons or [])
            if code and code != "None"
        ]


@dataclass(slots=True)
class DdbNotFound(DdbError):
    pass


@dataclass(slots=True)
class DdbConflict(DdbError):
    pass


@dataclass(slots=True)
class DdbValidation(DdbError):
    pass


@dataclass(slots=True)
class DdbThrottled(DdbError):
    pass


@dataclass(slots=True)
class DdbUnavailable(DdbError):
    pass


@dataclass(slots=True)
class DdbInternal(DdbError):
    pass
