from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from liftout.db.dynamodb.errors import DdbConflict
from liftout.db.dynamodb.table import Page
from liftout.errors import Conflict, ValidationFailed
from liftout.modules.applications.models import Application, ApplicationFilter, PageRequest
from liftout.repositories import applications_repo


class FakeTable:
    """Records transaction items; raises queued errors from transact_write in order."""

    def __init__(self, *, errors=None, items=None, pages=None):
        self.errors = list(errors or [])
        self.items = dict(items or {})
        self.pages = list(pages or [])
        self.transactions: list[dict] = []
        self.queries: list[dict] = []

    def tx_put(self, **kw):
        return {"op": "put", **kw}

    def tx_delete(self, **kw):
        return {"op": "delete", **kw}

    def tx_update(self, **kw):
        return {"op": "update", **kw}

    def transact_write(self, *, puts=(), deletes=(), updates=(), condition_checks=()):
        self.transactions.append(
            {"puts": list(puts), "deletes": list(deletes), "updates": list(updates)}
        )
        if self.errors:
            raise self.errors.pop(0)
        return {"ok": True}

    def get_item(self, *, key):
        return self.items.get((key["pk"], key["sk"]))

    def query_page(self, **kw):
        self.queries.append(kw)
        return self.pages.pop(0)


def _app(**kw) -> Application:
    now = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)
    data = dict(
        id="app-1",
        teamId="team-alpha",
        opportunityId="opp-platform",
        appliedBy="alice",
        appliedAt=now,
        updatedAt=now,
        proposedCompensation=1250.5,
    )
    data.update(kw)
    return Application(**data)


def _cancelled(*codes: str) -> DdbConflict:
    return DdbConflict(message="DynamoDB transaction condition failed", cancellation_reasons=list(codes))


@pytest.fixture
def use_table(monkeypatch):
    def _use(ft: FakeTable) -> FakeTable:
        monkeypatch.setattr(applications_repo, "get_main_table", lambda: ft)
        return ft

    return _use


def test_create_writes_application_guard_and_counter_together(use_table):
    ft = use_table(FakeTable())
    applications_repo.create_application(_app())

    (tx,) = ft.transactions
    app_put, guard_put = tx["puts"]
    assert app_put["item"]["pk"] == "APPLICATION#app-1"
    assert app_put["item"]["gsi1pk"] == "TEAM#team-alpha#APPLICATIONS"
    assert app_put["item"]["gsi2pk"] == "OPPORTUNITY#opp-platform#APPLICATIONS"
    assert app_put["item"]["proposedCompensation"] == Decimal("1250.5")
    assert guard_put["item"]["pk"] == "APPGUARD#team-alpha#opp-platform"
    assert guard_put["item"]["applicationId"] == "app-1"
    assert guard_put["condition_expression"] == "attribute_not_exists(pk)"

    (counter,) = tx["updates"]
    assert counter["key"] == {"pk": "OPPORTUNITY#opp-platform", "sk": "PROFILE"}
    assert counter["update_expression"].startswith("ADD applicationsCount :one")
    assert counter["expression_attribute_values"][":active"] == "active"


def test_create_maps_guard_failure_to_duplicate(use_table):
    use_table(FakeTable(errors=[_cancelled("None", "ConditionalCheckFailed", "None")]))
    with pytest.raises(Conflict) as ei:
        applications_repo.create_application(_app())
    assert ei.value.message == "Your team has already applied to this opportunity"


def test_create_maps_counter_failure_to_inactive_opportunity(use_table):
    use_table(FakeTable(errors=[_cancelled("None", "None", "ConditionalCheckFailed")]))
    with pytest.raises(ValidationFailed):
        applications_repo.create_application(_app())


def test_save_is_conditional_on_loaded_version(use_table):
    ft = use_table(FakeTable())
    out = applications_repo.save_application(_app(version=3, status="reviewing"), expected_version=3)
    assert out.version == 4

    (tx,) = ft.transactions
    (put,) = tx["puts"]
    assert put["item"]["version"] == 4
    assert put["expression_attribute_values"] == {":expected": 3}
    assert tx["updates"] == []


def test_save_carries_opportunity_status_in_same_transaction(use_table):
    ft = use_table(FakeTable())
    applications_repo.save_application(_app(status="accepted"), expected_version=1, opportunity_status="filled")
    (update,) = ft.transactions[0]["updates"]
    assert update["expression_attribute_values"][":s"] == "filled"


def test_stale_save_is_a_conflict(use_table):
    use_table(FakeTable(errors=[_cancelled("ConditionalCheckFailed")]))
    with pytest.raises(Conflict) as ei:
        applications_repo.save_application(_app(), expected_version=1)
    assert ei.value.message == applications_repo.STALE_WRITE_MESSAGE


def test_delete_decrements_counter_with_floor(use_table):
    ft = use_table(FakeTable())
    applications_repo.delete_application(_app(version=2), expected_version=2)

    (tx,) = ft.transactions
    assert [d["key"]["pk"] for d in tx["deletes"]] == ["APPLICATION#app-1", "APPGUARD#team-alpha#opp-platform"]
    (dec,) = tx["updates"]
    assert dec["condition_expression"] == "applicationsCount > :zero"
    assert dec["expression_attribute_values"][":minus"] == -1


def test_delete_retries_without_counter_when_only_counter_fails(use_table):
    ft = use_table(FakeTable(errors=[_cancelled("None", "None", "ConditionalCheckFailed")]))
    applications_repo.delete_application(_app(), expected_version=1)

    assert len(ft.transactions) == 2
    assert ft.transactions[1]["updates"] == []
    assert len(ft.transactions[1]["deletes"]) == 2


def test_delete_with_stale_version_is_a_conflict(use_table):
    ft = use_table(FakeTable(errors=[_cancelled("ConditionalCheckFailed", "None", "None")]))
    with pytest.raises(Conflict):
        applications_repo.delete_application(_app(), expected_version=1)
    assert len(ft.transactions) == 1


def test_find_application_follows_guard(use_table):
    stored = applications_repo._application_item(_app())
    use_table(
        FakeTable(
            items={
                ("APPGUARD#team-alpha#opp-platform", "GUARD"): {"applicationId": "app-1"},
                ("APPLICATION#app-1", "PROFILE"): stored,
            }
        )
    )
    found = applications_repo.find_application(team_id="team-alpha", opportunity_id="opp-platform")
    assert found is not None and found.id == "app-1"
    assert applications_repo.find_application(team_id="team-beta", opportunity_id="opp-platform") is None


def test_list_by_team_queries_gsi1_newest_first(use_table):
    stored = applications_repo._application_item(_app())
    ft = use_table(FakeTable(pages=[Page(items=[stored], next_token="v1.cursor")]))
    page = applications_repo.list_applications(
        ApplicationFilter(teamId="team-alpha", status="submitted"), PageRequest(limit=10)
    )
    assert [a.id for a in page.data] == ["app-1"]
    assert page.nextToken == "v1.cursor"

    (q,) = ft.queries
    assert q["index_name"] == "GSI1"
    assert q["scan_index_forward"] is False
    assert q["filter_expression"] is not None
    assert q["limit"] == 10
    assert q["token_scope"] == "TEAM#team-alpha#APPLICATIONS"


def test_list_requires_a_partition():
    with pytest.raises(ValueError):
        applications_repo.list_applications(ApplicationFilter(), PageRequest())
