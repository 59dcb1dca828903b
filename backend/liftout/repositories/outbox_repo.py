from __future__ import annotations

import uuid
from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.errors import DdbConflict
from ..db.dynamodb.table import get_main_table
from .keys import now_iso

PENDING_PK = "OUTBOX#PENDING"


def outbox_key(event_id: str) -> dict[str, str]:
    eid = str(event_id or "").strip()
    if not eid:
        raise ValueError("event_id is required")
    return {"pk": f"OUTBOX#{eid}", "sk": "EVENT"}


def _public(item: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in item.items() if k not in ("pk", "sk")}


def enqueue_event(*, event_type: str, payload: dict[str, Any], dedupe_key: str | None = None) -> dict[str, Any]:
    """
    Hand a side effect (email fan-out) to the outbox worker.

    When dedupe_key is given it becomes the event id, so a retried request
    collapses onto the event that is already queued instead of sending twice.
    """
    et = str(event_type or "").strip()
    if not et:
        raise ValueError("event_type is required")
    eid = str(dedupe_key or "").strip() or ("evt_" + uuid.uuid4().hex[:18])

    now = now_iso()
    item: dict[str, Any] = {
        **outbox_key(eid),
        "entityType": "OutboxEvent",
        "eventId": eid,
        "eventType": et,
        "status": "pending",
        "createdAt": now,
        "updatedAt": now,
        "payload": payload if isinstance(payload, dict) else {},
        # GSI1: pending queue, oldest first
        "gsi1pk": PENDING_PK,
        "gsi1sk": f"{now}#{eid}",
    }
    table = get_main_table()
    try:
        table.put_item(item=item, condition_expression="attribute_not_exists(pk)")
    except DdbConflict:
        existing = table.get_item(key=outbox_key(eid)) or {}
        return _public(existing)
    return _public(item)


def list_pending(*, limit: int = 50, next_token: str | None = None) -> dict[str, Any]:
    pg = get_main_table().query_page(
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(PENDING_PK),
        scan_index_forward=True,
        limit=max(1, min(200, int(limit or 50))),
        next_token=next_token,
    )
    return {"items": pg.items or [], "nextToken": pg.next_token}


def claim_event(*, event_id: str) -> dict[str, Any] | None:
    """
    Atomically move an event from pending to processing. Only one worker can
    win the claim, which is what keeps delivery at-most-once.
    """
    now = now_iso()
    try:
        return get_main_table().update_item(
            key=outbox_key(event_id),
            update_expression="SET #s = :processing, lockedAt = :now, updatedAt = :now REMOVE gsi1pk, gsi1sk",
            expression_attribute_names={"#s": "status"},
            expression_attribute_values={":processing": "processing", ":now": now, ":pending": "pending"},
            condition_expression="#s = :pending",
            return_values="ALL_NEW",
        )
    except DdbConflict:
        return None


def mark_done(*, event_id: str, result: dict[str, Any] | None = None) -> dict[str, Any] | None:
    return get_main_table().update_item(
        key=outbox_key(event_id),
        update_expression="SET #s = :s, updatedAt = :u, #r = :r",
        expression_attribute_names={"#s": "status", "#r": "result"},
        expression_attribute_values={":s": "done", ":u": now_iso(), ":r": result if isinstance(result, dict) else {}},
        return_values="ALL_NEW",
    )


def mark_failed(*, event_id: str, error: str) -> dict[str, Any] | None:
    """
    Terminal failure. Events are never re-queued: a partially delivered
    fan-out must not be replayed to recipients who already got it.
    """
    return get_main_table().update_item(
        key=outbox_key(event_id),
        update_expression="SET #s = :s, lastError = :e, updatedAt = :u",
        expression_attribute_names={"#s": "status"},
        expression_attribute_values={":s": "failed", ":e": str(error or "")[:800], ":u": now_iso()},
        return_values="ALL_NEW",
    )
