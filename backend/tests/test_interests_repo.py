from __future__ import annotations

from datetime import datetime, timezone

import pytest

from liftout.db.dynamodb.errors import DdbConflict
from liftout.errors import Conflict
from liftout.modules.interests.models import ExpressionOfInterest
from liftout.repositories import interests_repo


class FakeTable:
    def __init__(self, *, fail=False):
        self.fail = fail
        self.transactions: list[dict] = []

    def tx_put(self, **kw):
        return kw

    def tx_delete(self, **kw):
        return kw

    def transact_write(self, *, puts=(), deletes=(), updates=()):
        self.transactions.append({"puts": list(puts), "deletes": list(deletes)})
        if self.fail:
            raise DdbConflict(message="DynamoDB transaction condition failed", cancellation_reasons=["None", "ConditionalCheckFailed"])
        return {"ok": True}


def _eoi(**kw) -> ExpressionOfInterest:
    data = dict(
        id="eoi-1",
        fromType="company",
        fromId="co-acme",
        toType="team",
        toId="team-alpha",
        createdBy="bob",
        createdAt=datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc),
    )
    data.update(kw)
    return ExpressionOfInterest(**data)


def test_create_writes_interest_and_pair_guard(monkeypatch):
    ft = FakeTable()
    monkeypatch.setattr(interests_repo, "get_main_table", lambda: ft)
    interests_repo.create_interest(_eoi())

    row, guard = ft.transactions[0]["puts"]
    assert row["item"]["gsi1pk"] == "EOI#FROM#company#co-acme"
    assert row["item"]["gsi2pk"] == "EOI#TO#team#team-alpha"
    assert guard["item"]["pk"] == "EOIGUARD#company#co-acme#team#team-alpha"
    assert guard["item"]["interestId"] == "eoi-1"


def test_create_race_loser_gets_conflict(monkeypatch):
    monkeypatch.setattr(interests_repo, "get_main_table", lambda: FakeTable(fail=True))
    with pytest.raises(Conflict) as ei:
        interests_repo.create_interest(_eoi())
    assert ei.value.message == "An expression of interest already exists"


def test_response_is_conditional_on_pending_and_frees_the_pair(monkeypatch):
    ft = FakeTable()
    monkeypatch.setattr(interests_repo, "get_main_table", lambda: ft)
    interests_repo.save_interest_response(_eoi(status="accepted", respondedBy="alice"))

    (tx,) = ft.transactions
    (put,) = tx["puts"]
    assert put["condition_expression"] == "#s = :pending"
    assert put["item"]["status"] == "accepted"
    (guard_delete,) = tx["deletes"]
    assert guard_delete["key"]["pk"] == "EOIGUARD#company#co-acme#team#team-alpha"

    monkeypatch.setattr(interests_repo, "get_main_table", lambda: FakeTable(fail=True))
    with pytest.raises(Conflict):
        interests_repo.save_interest_response(_eoi(status="declined"))
