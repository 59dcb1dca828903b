from __future__ import annotations

from liftout.notifications import notifier as notifier_mod
from liftout.notifications.notifier import (
    EVENT_APPLICATION_STATUS,
    EVENT_EXPRESSION_OF_INTEREST,
    LoggingNotifier,
    OutboxNotifier,
    build_notifier,
)
from liftout.modules.identity.models import Recipient
from liftout.workers import outbox_worker


def _status_event(event_id="evt-1", recipients=None):
    return {
        "eventId": event_id,
        "eventType": EVENT_APPLICATION_STATUS,
        "payload": {
            "recipients": recipients
            if recipients is not None
            else [{"userId": "alice", "email": "alice@example.com", "firstName": "Alice"}],
            "teamName": "Alpha Squad",
            "opportunityTitle": "Platform Engineering Team",
            "companyName": "Acme Corp",
            "status": "reviewing",
            "message": "Looking now",
            "applicationId": "app-1",
        },
    }


class _Outbox:
    def __init__(self, events, *, claimable=None):
        self.events = {e["eventId"]: e for e in events}
        self.claimable = set(self.events if claimable is None else claimable)
        self.done: dict[str, dict] = {}
        self.failed: dict[str, str] = {}

    def install(self, monkeypatch):
        monkeypatch.setattr(
            outbox_worker, "list_pending", lambda **_kw: {"items": list(self.events.values()), "nextToken": None}
        )
        monkeypatch.setattr(outbox_worker, "claim_event", self.claim)
        monkeypatch.setattr(outbox_worker, "mark_done", self.mark_done)
        monkeypatch.setattr(outbox_worker, "mark_failed", self.mark_failed)
        return self

    def claim(self, *, event_id):
        if event_id not in self.claimable:
            return None
        self.claimable.discard(event_id)
        return self.events[event_id]

    def mark_done(self, *, event_id, result=None):
        self.done[event_id] = result

    def mark_failed(self, *, event_id, error):
        self.failed[event_id] = error


def test_status_event_renders_one_email_per_recipient(monkeypatch):
    sent = []

    def fake_send(*, to_email, subject, text):
        sent.append((to_email, subject, text))
        return {"ok": True, "to": to_email}

    monkeypatch.setattr(outbox_worker, "send_text_email", fake_send)
    box = _Outbox(
        [
            _status_event(
                recipients=[
                    {"userId": "alice", "email": "alice@example.com", "firstName": "Alice"},
                    {"userId": "carol", "email": "carol@example.com"},
                ]
            )
        ]
    ).install(monkeypatch)

    out = outbox_worker.run_once(limit=10)
    assert out == {"ok": True, "scanned": 1, "processed": 1, "failed": 0}
    assert box.done["evt-1"]["sent"] == 2

    to, subject, text = sent[0]
    assert to == "alice@example.com"
    assert subject == "Acme Corp is reviewing your application"
    assert text.startswith("Hi Alice,")
    assert "Message from Acme Corp:\nLooking now" in text
    assert "/app/applications/app-1" in text
    assert sent[1][2].startswith("Hi there,")


def test_event_claimed_elsewhere_is_skipped(monkeypatch):
    monkeypatch.setattr(outbox_worker, "send_text_email", lambda **_kw: {"ok": True})
    box = _Outbox([_status_event()], claimable=[]).install(monkeypatch)

    out = outbox_worker.run_once()
    assert out["scanned"] == 1 and out["processed"] == 0
    assert box.done == {} and box.failed == {}


def test_send_failure_marks_event_failed_without_retry(monkeypatch):
    calls = []

    def boom(**kw):
        calls.append(kw)
        raise RuntimeError("ses throttled")

    monkeypatch.setattr(outbox_worker, "send_text_email", boom)
    box = _Outbox([_status_event()]).install(monkeypatch)

    out = outbox_worker.run_once()
    assert out["failed"] == 1
    assert box.failed == {"evt-1": "ses throttled"}

    # A second pass finds nothing claimable and sends nothing.
    outbox_worker.run_once()
    assert len(calls) == 1


def test_unknown_event_type_is_parked(monkeypatch):
    box = _Outbox([{"eventId": "evt-x", "eventType": "sms.something", "payload": {}}]).install(monkeypatch)
    outbox_worker.run_once()
    assert box.failed == {"evt-x": "unknown_event_type"}


def test_interest_event_subject_depends_on_sender(monkeypatch):
    sent = []
    monkeypatch.setattr(
        outbox_worker, "send_text_email", lambda **kw: sent.append(kw) or {"ok": True}
    )
    base = {
        "recipients": [{"userId": "alice", "email": "alice@example.com", "firstName": "Alice"}],
        "targetName": "Alpha Squad",
        "message": None,
        "interestId": "eoi-1",
    }
    outbox_worker.dispatch_event(
        {
            "eventType": EVENT_EXPRESSION_OF_INTEREST,
            "payload": {**base, "interestedPartyName": "Acme Corp", "interestedPartyType": "company"},
        }
    )
    outbox_worker.dispatch_event(
        {
            "eventType": EVENT_EXPRESSION_OF_INTEREST,
            "payload": {**base, "interestedPartyName": "Beta Crew", "interestedPartyType": "team"},
        }
    )
    assert sent[0]["subject"] == "Acme Corp is interested in Alpha Squad"
    assert sent[1]["subject"] == "Beta Crew is interested in your opportunity"
    assert "/app/interests/eoi-1" in sent[0]["text"]


def test_outbox_notifier_dedupes_recipients_and_keys_events(monkeypatch):
    queued = []
    monkeypatch.setattr(notifier_mod, "enqueue_event", lambda **kw: queued.append(kw))

    n = OutboxNotifier()
    n.notify_application_status(
        recipients=[
            Recipient(userId="alice", email="alice@example.com"),
            Recipient(userId="alice2", email="ALICE@example.com"),
            Recipient(userId="nomail", email=""),
        ],
        team_name="Alpha Squad",
        opportunity_title="Platform Engineering Team",
        company_name="Acme Corp",
        status="reviewing",
        application_id="app-1",
        dedupe_key="application:app-1:v2",
    )
    n.notify_expression_of_interest(
        recipients=[],
        interested_party_name="Acme Corp",
        interested_party_type="company",
        target_name="Alpha Squad",
        message=None,
        interest_id="eoi-1",
    )

    (event,) = queued
    assert event["event_type"] == EVENT_APPLICATION_STATUS
    assert event["dedupe_key"] == "application:app-1:v2"
    assert [r["userId"] for r in event["payload"]["recipients"]] == ["alice"]


def test_build_notifier_honours_flag():
    assert isinstance(build_notifier(enabled=True), OutboxNotifier)
    assert isinstance(build_notifier(enabled=False), LoggingNotifier)
