from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from ...observability.context import get_deadline
from .errors import (
    DdbConflict,
    DdbError,
    DdbInternal,
    DdbThrottled,
    DdbUnavailable,
    DdbValidation,
)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 6
    base_delay_s: float = 0.05
    max_delay_s: float = 1.5
    # Absolute time.monotonic() cutoff; falls back to the request deadline.
    deadline: float | None = None


_RETRYABLE_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "InternalServerError",
    "ServiceUnavailable",
    "TransactionConflictException",
}


def _backoff_delay(policy: RetryPolicy, attempt: int) -> float:
    # Full jitter exponential backoff.
    exp = min(policy.max_delay_s, policy.base_delay_s * (2 ** max(0, attempt - 1)))
    return random.random() * exp


def _error_code(e: ClientError) -> str:
    return str(((e.response or {}).get("Error") or {}).get("Code") or "")


def _aws_request_id(e: ClientError) -> str | None:
    return ((e.response or {}).get("ResponseMetadata") or {}).get("RequestId")


def cancellation_reasons(e: ClientError) -> list[str]:
    """
    Per-item codes of a TransactionCanceledException, in TransactItems order.
    """
    reasons = (e.response or {}).get("CancellationReasons") or []
    out: list[str] = []
    for r in reasons:
        out.append(str((r or {}).get("Code") or "None"))
    if out:
        return out

    # Some botocore versions only expose the reasons inside the message:
    # "... cancelled, please refer cancellation reasons for specific reasons [None, ConditionalCheckFailed]"
    msg = str(((e.response or {}).get("Error") or {}).get("Message") or "")
    if "[" in msg and msg.endswith("]"):
        inner = msg[msg.rfind("[") + 1 : -1]
        return [p.strip() or "None" for p in inner.split(",")]
    return []


def _map_error(
    *,
    operation: str,
    table_name: str | None,
    key: dict[str, Any] | None,
    exc: Exception,
) -> DdbError:
    if isinstance(exc, DdbError):
        return exc

    ctx: dict[str, Any] = {"operation": operation, "table_name": table_name, "key": key, "cause": exc}

    if isinstance(exc, ClientError):
        code = _error_code(exc)
        ctx["aws_request_id"] = _aws_request_id(exc)

        if code == "ConditionalCheckFailedException":
            return DdbConflict(message="DynamoDB conditional check failed", **ctx)

        if code == "TransactionCanceledException":
            reasons = cancellation_reasons(exc)
            if "ConditionalCheckFailed" in reasons:
                return DdbConflict(
                    message="DynamoDB transaction condition failed",
                    cancellation_reasons=reasons,
                    **ctx,
                )
            if "TransactionConflict" in reasons:
                return DdbThrottled(
                    message="DynamoDB transaction conflicted with a concurrent write",
                    retryable=True,
                    cancellation_reasons=reasons,
                    **ctx,
                )
            return DdbInternal(
                message="DynamoDB transaction cancelled",
                cancellation_reasons=reasons,
                **ctx,
            )

        if code in ("ValidationException", "ParamValidationError"):
            return DdbValidation(message="DynamoDB request validation failed", **ctx)

        if code in ("AccessDeniedException", "UnrecognizedClientException"):
            return DdbUnavailable(message="DynamoDB access denied", **ctx)

        if code in _RETRYABLE_CODES:
            return DdbThrottled(
                message="DynamoDB request throttled or unavailable", retryable=True, **ctx
            )

        return DdbInternal(message=f"DynamoDB request failed ({code or 'ClientError'})", **ctx)

    if isinstance(exc, BotoCoreError):
        return DdbUnavailable(message="DynamoDB client error", retryable=True, **ctx)

    return DdbInternal(message="Unexpected DynamoDB error", **ctx)


def ddb_call(
    operation: str,
    fn: Callable[[], T],
    *,
    table_name: str | None = None,
    key: dict[str, Any] | None = None,
    retry_policy: RetryPolicy | None = None,
) -> T:
    """
    Run one DynamoDB call with app-layer retries for transient failures.

    Validation and conflict errors are never retried. Retries stop once the
    deadline has passed, surfacing the last error as DdbUnavailable so the
    caller sees a timeout rather than a partial write.
    """
    policy = retry_policy or RetryPolicy()
    deadline = policy.deadline if policy.deadline is not None else get_deadline()

    attempts = max(1, int(policy.max_attempts))
    for attempt in range(1, attempts + 1):
        if deadline is not None and time.monotonic() >= deadline:
            raise DdbUnavailable(
                message="Request deadline exceeded before DynamoDB call",
                operation=operation,
                table_name=table_name,
                key=key,
                retryable=True,
            )
        try:
            return fn()
        except Exception as e:  # noqa: BLE001
            mapped = _map_error(operation=operation, table_name=table_name, key=key, exc=e)
            delay = _backoff_delay(policy, attempt)
            give_up = (
                not mapped.retryable
                or attempt >= attempts
                or (deadline is not None and time.monotonic() + delay >= deadline)
            )
            if give_up:
                if mapped is e:
                    raise
                raise mapped from e
            time.sleep(delay)

    raise DdbInternal(message="DynamoDB request failed", operation=operation, table_name=table_name, key=key)
