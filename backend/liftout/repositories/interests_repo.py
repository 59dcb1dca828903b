from __future__ import annotations

from typing import Any, Iterable

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.errors import DdbConflict
from ..db.dynamodb.table import get_main_table
from ..errors import Conflict
from ..modules.interests.models import ExpressionOfInterest, Party
from .keys import (
    interest_guard_key,
    interest_key,
    interests_from_pk,
    interests_to_pk,
    strip_internal,
    to_item,
)


def _guard_key(eoi: ExpressionOfInterest) -> dict[str, str]:
    return interest_guard_key(from_type=eoi.fromType, from_id=eoi.fromId, to_type=eoi.toType, to_id=eoi.toId)


def _interest_item(eoi: ExpressionOfInterest) -> dict[str, Any]:
    created = eoi.createdAt.isoformat()
    return {
        **to_item(eoi),
        **interest_key(eoi.id),
        "entityType": "ExpressionOfInterest",
        "gsi1pk": interests_from_pk(eoi.fromType, eoi.fromId),
        "gsi1sk": f"{created}#{eoi.id}",
        "gsi2pk": interests_to_pk(eoi.toType, eoi.toId),
        "gsi2sk": f"{created}#{eoi.id}",
    }


def _from_item(item: dict[str, Any] | None) -> ExpressionOfInterest | None:
    data = strip_internal(item)
    return ExpressionOfInterest.model_validate(data) if data else None


def get_interest(interest_id: str) -> ExpressionOfInterest | None:
    return _from_item(get_main_table().get_item(key=interest_key(interest_id)))


def find_pending_interest(*, from_type: str, from_id: str, to_type: str, to_id: str) -> ExpressionOfInterest | None:
    guard = get_main_table().get_item(
        key=interest_guard_key(from_type=from_type, from_id=from_id, to_type=to_type, to_id=to_id)
    )
    eid = str((guard or {}).get("interestId") or "").strip()
    return get_interest(eid) if eid else None


def create_interest(eoi: ExpressionOfInterest) -> ExpressionOfInterest:
    """
    Interest row + pending guard for the (from, to) pair, all-or-nothing. The
    guard is what makes "one pending interest per pair" hold under races.
    """
    t = get_main_table()
    try:
        t.transact_write(
            puts=[
                t.tx_put(item=_interest_item(eoi), condition_expression="attribute_not_exists(pk)"),
                t.tx_put(
                    item={
                        **_guard_key(eoi),
                        "entityType": "InterestGuard",
                        "interestId": eoi.id,
                        "createdAt": eoi.createdAt.isoformat(),
                    },
                    condition_expression="attribute_not_exists(pk)",
                ),
            ]
        )
    except DdbConflict as e:
        raise Conflict(
            "An expression of interest already exists",
            details={"fromType": eoi.fromType, "fromId": eoi.fromId, "toType": eoi.toType, "toId": eoi.toId},
        ) from e
    return eoi


def save_interest_response(eoi: ExpressionOfInterest) -> ExpressionOfInterest:
    t = get_main_table()
    try:
        t.transact_write(
            puts=[
                t.tx_put(
                    item=_interest_item(eoi),
                    condition_expression="#s = :pending",
                    expression_attribute_names={"#s": "status"},
                    expression_attribute_values={":pending": "pending"},
                )
            ],
            deletes=[t.tx_delete(key=_guard_key(eoi))],
        )
    except DdbConflict as e:
        raise Conflict(
            "This expression of interest has already been responded to",
            details={"interestId": eoi.id},
        ) from e
    return eoi


def list_interests(
    *,
    from_parties: Iterable[Party] = (),
    to_parties: Iterable[Party] = (),
) -> list[ExpressionOfInterest]:
    """
    Newest first. Each party is its own GSI partition, so results are merged
    and de-duplicated here.
    """
    t = get_main_table()
    partitions = [("GSI1", "gsi1pk", interests_from_pk(p.type, p.id)) for p in from_parties] + [
        ("GSI2", "gsi2pk", interests_to_pk(p.type, p.id)) for p in to_parties
    ]
    by_id: dict[str, ExpressionOfInterest] = {}
    for index_name, attr, pk in partitions:
        for it in t.query_all(index_name=index_name, key_condition_expression=Key(attr).eq(pk)):
            eoi = _from_item(it)
            if eoi is not None:
                by_id[eoi.id] = eoi
    return sorted(by_id.values(), key=lambda e: (e.createdAt, e.id), reverse=True)
