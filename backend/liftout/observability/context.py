from __future__ import annotations

import time
from contextvars import ContextVar

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Absolute time.monotonic() value after which the current request is abandoned.
deadline_var: ContextVar[float | None] = ContextVar("request_deadline", default=None)


def get_request_id() -> str | None:
    return request_id_var.get()


def get_deadline() -> float | None:
    return deadline_var.get()


def seconds_remaining() -> float | None:
    dl = deadline_var.get()
    if dl is None:
        return None
    return dl - time.monotonic()
