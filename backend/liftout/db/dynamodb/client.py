from __future__ import annotations

from functools import lru_cache
from typing import Any

import boto3
from botocore.config import Config

from ...settings import settings


def _connection_kwargs() -> dict[str, Any]:
    # botocore keeps a few adaptive retries of its own; ddb_call adds the
    # deadline-aware layer for the transient errors it knows are safe.
    kwargs: dict[str, Any] = {
        "region_name": settings.aws_region,
        "config": Config(
            retries={"max_attempts": 4, "mode": "adaptive"},
            connect_timeout=settings.ddb_connect_timeout_s,
            read_timeout=settings.ddb_read_timeout_s,
        ),
    }
    if settings.ddb_endpoint_url:
        # DynamoDB Local / localstack during development.
        kwargs["endpoint_url"] = settings.ddb_endpoint_url
    return kwargs


@lru_cache(maxsize=1)
def dynamodb_client():
    """Low-level client; used for TransactWriteItems."""
    return boto3.client("dynamodb", **_connection_kwargs())


@lru_cache(maxsize=8)
def table_resource(table_name: str):
    """Resource-level Table handle (plain Python values in and out), one per table name."""
    return boto3.resource("dynamodb", **_connection_kwargs()).Table(table_name)
