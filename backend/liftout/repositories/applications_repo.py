from __future__ import annotations

from collections import Counter
from typing import Any, Iterable

from boto3.dynamodb.conditions import Attr, Key

from ..db.dynamodb.errors import DdbConflict
from ..db.dynamodb.table import get_main_table
from ..errors import Conflict, ValidationFailed
from ..modules.applications.models import (
    Application,
    ApplicationFilter,
    ApplicationPage,
    PageRequest,
)
from ..observability.logging import get_logger
from .keys import (
    application_guard_key,
    application_key,
    now_iso,
    opportunity_applications_pk,
    opportunity_key,
    strip_internal,
    team_applications_pk,
    to_item,
)

log = get_logger("applications_repo")

STALE_WRITE_MESSAGE = "Application was modified by another request; reload it and retry"


def _application_item(app: Application) -> dict[str, Any]:
    applied = app.appliedAt.isoformat()
    return {
        **to_item(app),
        **application_key(app.id),
        "entityType": "Application",
        "gsi1pk": team_applications_pk(app.teamId),
        "gsi1sk": f"{applied}#{app.id}",
        "gsi2pk": opportunity_applications_pk(app.opportunityId),
        "gsi2sk": f"{applied}#{app.id}",
    }


def _from_item(item: dict[str, Any] | None) -> Application | None:
    data = strip_internal(item)
    return Application.model_validate(data) if data else None


def get_application(application_id: str) -> Application | None:
    return _from_item(get_main_table().get_item(key=application_key(application_id)))


def find_application(*, team_id: str, opportunity_id: str) -> Application | None:
    guard = get_main_table().get_item(
        key=application_guard_key(team_id=team_id, opportunity_id=opportunity_id)
    )
    app_id = str((guard or {}).get("applicationId") or "").strip()
    return get_application(app_id) if app_id else None


def create_application(app: Application) -> Application:
    """
    One transaction: application row, (team, opportunity) guard row, and the
    opportunity's applicationsCount increment (conditional on it being active).
    """
    t = get_main_table()
    now = now_iso()
    try:
        t.transact_write(
            puts=[
                t.tx_put(item=_application_item(app), condition_expression="attribute_not_exists(pk)"),
                t.tx_put(
                    item={
                        **application_guard_key(team_id=app.teamId, opportunity_id=app.opportunityId),
                        "entityType": "ApplicationGuard",
                        "applicationId": app.id,
                        "createdAt": now,
                    },
                    condition_expression="attribute_not_exists(pk)",
                ),
            ],
            updates=[
                t.tx_update(
                    key=opportunity_key(app.opportunityId),
                    update_expression="ADD applicationsCount :one SET updatedAt = :now",
                    expression_attribute_names={"#s": "status"},
                    expression_attribute_values={":one": 1, ":now": now, ":active": "active"},
                    condition_expression="attribute_exists(pk) AND #s = :active",
                ),
            ],
        )
    except DdbConflict as e:
        failed = e.failed_item_indexes()
        if 1 in failed:
            raise Conflict(
                "Your team has already applied to this opportunity",
                details={"teamId": app.teamId, "opportunityId": app.opportunityId},
            ) from e
        if 2 in failed:
            raise ValidationFailed(
                "Cannot apply to an inactive opportunity",
                details={"opportunityId": app.opportunityId},
            ) from e
        raise Conflict("Application could not be created; retry", details={"applicationId": app.id}) from e
    return app


def save_application(
    app: Application,
    *,
    expected_version: int,
    opportunity_status: str | None = None,
) -> Application:
    """
    Compare-and-swap on `version`. The opportunity status (e.g. filled) rides in
    the same transaction so the two can never disagree.
    """
    t = get_main_table()
    updated = app.model_copy(update={"version": int(expected_version) + 1})
    puts = [
        t.tx_put(
            item=_application_item(updated),
            condition_expression="attribute_exists(pk) AND version = :expected",
            expression_attribute_values={":expected": int(expected_version)},
        )
    ]
    updates = []
    if opportunity_status:
        updates.append(
            t.tx_update(
                key=opportunity_key(app.opportunityId),
                update_expression="SET #s = :s, updatedAt = :now",
                expression_attribute_names={"#s": "status"},
                expression_attribute_values={":s": opportunity_status, ":now": now_iso()},
                condition_expression="attribute_exists(pk)",
            )
        )
    try:
        t.transact_write(puts=puts, updates=updates)
    except DdbConflict as e:
        raise Conflict(
            STALE_WRITE_MESSAGE,
            details={"applicationId": app.id, "expectedVersion": int(expected_version)},
        ) from e
    return updated


def _decrement_count_item(t, opportunity_id: str) -> dict[str, Any]:
    return t.tx_update(
        key=opportunity_key(opportunity_id),
        update_expression="ADD applicationsCount :minus SET updatedAt = :now",
        expression_attribute_values={":minus": -1, ":zero": 0, ":now": now_iso()},
        condition_expression="applicationsCount > :zero",
    )


def delete_application(app: Application, *, expected_version: int) -> None:
    t = get_main_table()
    deletes = [
        t.tx_delete(
            key=application_key(app.id),
            condition_expression="version = :expected",
            expression_attribute_values={":expected": int(expected_version)},
        ),
        t.tx_delete(key=application_guard_key(team_id=app.teamId, opportunity_id=app.opportunityId)),
    ]
    try:
        t.transact_write(deletes=deletes, updates=[_decrement_count_item(t, app.opportunityId)])
        return
    except DdbConflict as e:
        if e.failed_item_indexes() != [2]:
            raise Conflict(STALE_WRITE_MESSAGE, details={"applicationId": app.id}) from e

    # Counter already at zero (drifted); withdraw anyway without taking it negative.
    log.warning(
        "applications_count_already_zero",
        application_id=app.id,
        opportunity_id=app.opportunityId,
    )
    try:
        t.transact_write(deletes=deletes)
    except DdbConflict as e:
        raise Conflict(STALE_WRITE_MESSAGE, details={"applicationId": app.id}) from e


def list_applications(filters: ApplicationFilter, page: PageRequest) -> ApplicationPage:
    if filters.teamId:
        index_name, attr, partition = "GSI1", "gsi1pk", team_applications_pk(filters.teamId)
    elif filters.opportunityId:
        index_name, attr, partition = "GSI2", "gsi2pk", opportunity_applications_pk(filters.opportunityId)
    else:
        raise ValueError("teamId or opportunityId is required")

    flt = Attr("status").eq(filters.status) if filters.status else None
    if filters.teamId and filters.opportunityId:
        opp = Attr("opportunityId").eq(filters.opportunityId)
        flt = opp if flt is None else (flt & opp)

    pg = get_main_table().query_page(
        index_name=index_name,
        key_condition_expression=Key(attr).eq(partition),
        filter_expression=flt,
        scan_index_forward=False,
        limit=page.limit,
        next_token=page.nextToken,
        token_scope=partition,
    )
    apps = [a for a in (_from_item(it) for it in pg.items) if a is not None]
    return ApplicationPage(data=apps, nextToken=pg.next_token)


def count_applications_by_status(
    *,
    team_ids: Iterable[str] = (),
    opportunity_ids: Iterable[str] = (),
) -> dict[str, int]:
    t = get_main_table()
    seen: dict[str, str] = {}
    partitions = [("GSI1", "gsi1pk", team_applications_pk(tid)) for tid in team_ids] + [
        ("GSI2", "gsi2pk", opportunity_applications_pk(oid)) for oid in opportunity_ids
    ]
    for index_name, attr, pk in partitions:
        for it in t.query_all(index_name=index_name, key_condition_expression=Key(attr).eq(pk)):
            app_id = str(it.get("id") or "")
            if app_id:
                seen[app_id] = str(it.get("status") or "")
    return dict(Counter(seen.values()))
