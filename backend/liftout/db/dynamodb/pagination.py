"""
Opaque cursor tokens for paginated queries.

A token wraps DynamoDB's LastEvaluatedKey together with the partition it was
issued for, then seals both with AES-GCM. Clients cannot read or forge the key,
and a token issued for one team's list is rejected on another's.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

from .errors import DdbValidation
from .token_crypto import seal, unseal

_TOKEN_VERSION = 1


def _json_default(v: Any) -> Any:
    if isinstance(v, Decimal):
        return int(v) if v == v.to_integral_value() else float(v)
    raise TypeError(f"Unserializable cursor value: {type(v).__name__}")


def _invalid() -> DdbValidation:
    return DdbValidation(message="Invalid nextToken", operation="Query")


def encode_next_token(last_evaluated_key: dict[str, Any] | None, *, scope: str | None = None) -> str | None:
    if not last_evaluated_key:
        return None
    body: dict[str, Any] = {"v": _TOKEN_VERSION, "lek": last_evaluated_key}
    if scope:
        body["scope"] = scope
    return seal(json.dumps(body, separators=(",", ":"), default=_json_default))


def decode_next_token(next_token: str | None, *, scope: str | None = None) -> dict[str, Any] | None:
    if not next_token:
        return None

    raw = unseal(next_token)
    if raw is None:
        raise _invalid()
    try:
        body = json.loads(raw)
    except ValueError as e:
        raise _invalid() from e

    if not isinstance(body, dict) or body.get("v") != _TOKEN_VERSION:
        raise _invalid()
    if (body.get("scope") or None) != (scope or None):
        raise _invalid()

    lek = body.get("lek")
    if lek is not None and not isinstance(lek, dict):
        raise _invalid()
    return lek
