from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from .context import get_request_id

SERVICE_NAME = "liftout-applications"

_CONFIGURED = False


def _add_request_id(_: Any, __: str, event_dict: dict) -> dict:
    rid = get_request_id()
    if rid:
        event_dict.setdefault("request_id", rid)
    return event_dict


def _add_service(_: Any, __: str, event_dict: dict) -> dict:
    from ..settings import settings

    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("env", settings.normalized_environment)
    return event_dict


def _drop_none(_: Any, __: str, event_dict: dict) -> dict:
    return {k: v for k, v in event_dict.items() if v is not None}


def _shared_processors() -> list[Any]:
    return [
        _add_request_id,
        _add_service,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def configure_logging(*, level: str | int = "INFO") -> None:
    """
    One JSON object per line on stdout, for structlog and stdlib loggers alike
    (uvicorn, botocore). Idempotent.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=_shared_processors(),
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.propagate = True
    # Per-request credential/endpoint chatter.
    for name in ("botocore", "boto3", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            *_shared_processors(),
            _drop_none,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: str | None = None):
    return structlog.get_logger(name)
