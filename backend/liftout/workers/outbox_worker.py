from __future__ import annotations

from typing import Any

from ..notifications.notifier import EVENT_APPLICATION_STATUS, EVENT_EXPRESSION_OF_INTEREST
from ..notifications.templates import render_application_status, render_expression_of_interest
from ..observability.logging import configure_logging, get_logger
from ..repositories.outbox_repo import claim_event, list_pending, mark_done, mark_failed
from ..services.email_ses import send_text_email
from ..settings import settings

log = get_logger("outbox_worker")


def _recipients(payload: dict[str, Any]) -> list[dict[str, Any]]:
    raw = payload.get("recipients")
    return [r for r in raw if isinstance(r, dict)] if isinstance(raw, list) else []


def _send_each(payload: dict[str, Any], render) -> dict[str, Any]:
    sent = 0
    skipped = 0
    for r in _recipients(payload):
        subject, text = render(r)
        res = send_text_email(to_email=str(r.get("email") or ""), subject=subject, text=text)
        if res.get("ok"):
            sent += 1
        else:
            skipped += 1
    return {"ok": True, "sent": sent, "skipped": skipped}


def dispatch_event(event: dict[str, Any]) -> dict[str, Any]:
    """Send the emails for a single claimed outbox event."""
    et = str(event.get("eventType") or "").strip()
    payload_raw = event.get("payload")
    payload: dict[str, Any] = payload_raw if isinstance(payload_raw, dict) else {}

    if et == EVENT_APPLICATION_STATUS:
        return _send_each(
            payload,
            lambda r: render_application_status(
                first_name=r.get("firstName"),
                team_name=str(payload.get("teamName") or ""),
                opportunity_title=str(payload.get("opportunityTitle") or ""),
                company_name=str(payload.get("companyName") or ""),
                status=str(payload.get("status") or ""),
                message=payload.get("message"),
                application_id=payload.get("applicationId"),
            ),
        )

    if et == EVENT_EXPRESSION_OF_INTEREST:
        return _send_each(
            payload,
            lambda r: render_expression_of_interest(
                first_name=r.get("firstName"),
                interested_party_name=str(payload.get("interestedPartyName") or ""),
                interested_party_type=str(payload.get("interestedPartyType") or ""),
                target_name=str(payload.get("targetName") or ""),
                message=payload.get("message"),
                interest_id=str(payload.get("interestId") or ""),
            ),
        )

    return {"ok": False, "error": "unknown_event_type", "eventType": et}


def run_once(*, limit: int | None = None) -> dict[str, Any]:
    """
    Drain one batch of pending events. Safe to run from cron or a scheduled
    task, and safe to run concurrently: each event is claimed before sending
    and a failed event is parked as failed rather than retried.
    """
    lim = max(1, min(100, int(limit or settings.outbox_batch_limit or 30)))
    scanned = 0
    processed = 0
    failed = 0

    pg = list_pending(limit=lim, next_token=None)
    for it in pg.get("items") or []:
        scanned += 1
        eid = str((it or {}).get("eventId") or "").strip()
        if not eid:
            continue
        claimed = claim_event(event_id=eid)
        if not claimed:
            # Another worker owns it.
            continue
        try:
            res = dispatch_event(claimed)
        except Exception as e:
            failed += 1
            log.exception("outbox_event_failed", event_id=eid, event_type=claimed.get("eventType"))
            mark_failed(event_id=eid, error=str(e) or "dispatch_failed")
            continue
        if res.get("ok"):
            processed += 1
            mark_done(event_id=eid, result=res)
        else:
            failed += 1
            log.warning("outbox_event_rejected", event_id=eid, error=res.get("error"))
            mark_failed(event_id=eid, error=str(res.get("error") or "dispatch_failed"))

    out = {"ok": True, "scanned": scanned, "processed": processed, "failed": failed}
    log.info("outbox_run_once_done", **out)
    return out


if __name__ == "__main__":
    configure_logging(level=settings.log_level)
    run_once()
