"""
Plain-text email bodies for lifecycle notifications.

Each renderer returns (subject, text). Rendering happens in the outbox worker,
not in the request path, so templates can change without touching queued
events.
"""

from __future__ import annotations

from typing import Any

from ..settings import settings


def _app_url(path: str) -> str:
    base = str(settings.frontend_base_url or "").rstrip("/")
    return f"{base}{path}"


def _greeting(first_name: Any) -> str:
    name = str(first_name or "").strip()
    return f"Hi {name}," if name else "Hi there,"


_STATUS_COPY: dict[str, tuple[str, str]] = {
    "submitted": (
        "Application submitted for {opportunity}",
        'Your team "{team}" has successfully submitted an application for the '
        "{opportunity} opportunity at {company}.",
    ),
    "reviewing": (
        "{company} is reviewing your application",
        'Great news! {company} has started reviewing "{team}\'s" application for '
        "the {opportunity} position.",
    ),
    "interviewing": (
        "Interview scheduled for {opportunity}",
        'Congratulations! {company} would like to interview "{team}" for the '
        "{opportunity} opportunity.",
    ),
    "accepted": (
        "Congratulations! Your application was accepted",
        'Amazing news! {company} has accepted "{team}\'s" application for the '
        "{opportunity} position. This is a major milestone in your liftout journey.",
    ),
    "rejected": (
        "Update on your application to {company}",
        'Thank you for "{team}\'s" interest in the {opportunity} opportunity at '
        "{company}. After careful consideration, they've decided to move forward "
        "with other candidates.",
    ),
}


def render_application_status(
    *,
    first_name: str | None,
    team_name: str,
    opportunity_title: str,
    company_name: str,
    status: str,
    message: str | None,
    application_id: str | None,
) -> tuple[str, str]:
    subject_tpl, body_tpl = _STATUS_COPY.get(
        str(status or "").strip(),
        ("Update on your application to {company}", "There is an update on your application for {opportunity}."),
    )
    fields = {"team": team_name, "opportunity": opportunity_title, "company": company_name}

    lines = [_greeting(first_name), "", body_tpl.format(**fields)]
    msg = str(message or "").strip()
    if msg:
        lines += ["", f"Message from {company_name}:", msg]
    if application_id:
        lines += ["", f"View your application: {_app_url(f'/app/applications/{application_id}')}"]
    lines += ["", "The Liftout team"]
    return subject_tpl.format(**fields)[:200], "\n".join(lines)


def render_expression_of_interest(
    *,
    first_name: str | None,
    interested_party_name: str,
    interested_party_type: str,
    target_name: str,
    message: str | None,
    interest_id: str,
) -> tuple[str, str]:
    from_company = str(interested_party_type or "") == "company"
    if from_company:
        subject = f"{interested_party_name} is interested in {target_name}"
        what = f'your team "{target_name}"'
    else:
        subject = f"{interested_party_name} is interested in your opportunity"
        what = "your liftout opportunity"

    lines = [
        _greeting(first_name),
        "",
        f"Great news! {interested_party_name} has expressed interest in {what}.",
    ]
    msg = str(message or "").strip()
    if msg:
        lines += ["", "Their message:", msg]
    lines += [
        "",
        "Review the details and respond to move the conversation forward:",
        _app_url(f"/app/interests/{interest_id}"),
        "",
        "The Liftout team",
    ]
    return subject[:200], "\n".join(lines)
