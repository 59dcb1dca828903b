from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence

from ..modules.identity.models import Recipient
from ..observability.logging import get_logger
from ..repositories.outbox_repo import enqueue_event

log = get_logger("notifier")

EVENT_APPLICATION_STATUS = "email.application_status"
EVENT_EXPRESSION_OF_INTEREST = "email.expression_of_interest"


class Notifier(ABC):
    """
    Delivery of lifecycle messages to people.

    Implementations must return quickly: callers invoke them after the state
    change is already committed, inside the request.
    """

    @abstractmethod
    def notify_application_status(
        self,
        *,
        recipients: Sequence[Recipient],
        team_name: str,
        opportunity_title: str,
        company_name: str,
        status: str,
        message: str | None = None,
        application_id: str | None = None,
        dedupe_key: str | None = None,
    ) -> None:
        pass

    @abstractmethod
    def notify_expression_of_interest(
        self,
        *,
        recipients: Sequence[Recipient],
        interested_party_name: str,
        interested_party_type: str,
        target_name: str,
        message: str | None,
        interest_id: str,
    ) -> None:
        pass


def _recipients_payload(recipients: Sequence[Recipient]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    seen: set[str] = set()
    for r in recipients:
        email = str(r.email or "").strip()
        if not email or email.lower() in seen:
            continue
        seen.add(email.lower())
        out.append(r.model_dump(exclude_none=True))
    return out


class OutboxNotifier(Notifier):
    """Queues one outbox event per notification; outbox_worker sends the emails."""

    def notify_application_status(
        self,
        *,
        recipients: Sequence[Recipient],
        team_name: str,
        opportunity_title: str,
        company_name: str,
        status: str,
        message: str | None = None,
        application_id: str | None = None,
        dedupe_key: str | None = None,
    ) -> None:
        payload = _recipients_payload(recipients)
        if not payload:
            log.info("notification_skipped_no_recipients", event_type=EVENT_APPLICATION_STATUS)
            return
        enqueue_event(
            event_type=EVENT_APPLICATION_STATUS,
            payload={
                "recipients": payload,
                "teamName": team_name,
                "opportunityTitle": opportunity_title,
                "companyName": company_name,
                "status": status,
                "message": message,
                "applicationId": application_id,
            },
            dedupe_key=dedupe_key,
        )

    def notify_expression_of_interest(
        self,
        *,
        recipients: Sequence[Recipient],
        interested_party_name: str,
        interested_party_type: str,
        target_name: str,
        message: str | None,
        interest_id: str,
    ) -> None:
        payload = _recipients_payload(recipients)
        if not payload:
            log.info("notification_skipped_no_recipients", event_type=EVENT_EXPRESSION_OF_INTEREST)
            return
        enqueue_event(
            event_type=EVENT_EXPRESSION_OF_INTEREST,
            payload={
                "recipients": payload,
                "interestedPartyName": interested_party_name,
                "interestedPartyType": interested_party_type,
                "targetName": target_name,
                "message": message,
                "interestId": interest_id,
            },
            dedupe_key=f"interest:{interest_id}",
        )


class LoggingNotifier(Notifier):
    """Used when NOTIFICATIONS_ENABLED=false: records what would have been sent."""

    def notify_application_status(
        self,
        *,
        recipients: Sequence[Recipient],
        team_name: str,
        opportunity_title: str,
        company_name: str,
        status: str,
        message: str | None = None,
        application_id: str | None = None,
        dedupe_key: str | None = None,
    ) -> None:
        log.info(
            "notification_disabled",
            event_type=EVENT_APPLICATION_STATUS,
            application_id=application_id,
            status=status,
            recipients=len(recipients),
        )

    def notify_expression_of_interest(
        self,
        *,
        recipients: Sequence[Recipient],
        interested_party_name: str,
        interested_party_type: str,
        target_name: str,
        message: str | None,
        interest_id: str,
    ) -> None:
        log.info(
            "notification_disabled",
            event_type=EVENT_EXPRESSION_OF_INTEREST,
            interest_id=interest_id,
            recipients=len(recipients),
        )


def build_notifier(*, enabled: bool) -> Notifier:
    return OutboxNotifier() if enabled else LoggingNotifier()
