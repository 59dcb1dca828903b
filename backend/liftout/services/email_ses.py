from __future__ import annotations

from functools import lru_cache
from typing import Any

import boto3
from botocore.config import Config

from ..settings import settings


@lru_cache(maxsize=1)
def _sesv2_client():
    # No botocore retries: a retried SendEmail can deliver twice.
    return boto3.client(
        "sesv2",
        region_name=settings.aws_region,
        config=Config(retries={"max_attempts": 1, "mode": "standard"}, connect_timeout=2, read_timeout=10),
    )


def send_text_email(*, to_email: str, subject: str, text: str, from_email: str | None = None) -> dict[str, Any]:
    """
    Send one plain-text email. Missing addresses are reported, not raised;
    SES errors propagate to the caller.
    """
    to_ = str(to_email or "").strip()
    frm = str(from_email or settings.email_from_address or "").strip()
    if not to_ or not frm:
        return {"ok": False, "error": "missing_to_or_from", "to": to_ or None}

    resp = _sesv2_client().send_email(
        FromEmailAddress=frm,
        Destination={"ToAddresses": [to_]},
        Content={
            "Simple": {
                "Subject": {"Data": str(subject or "").strip()[:200] or "Update from Liftout"},
                "Body": {"Text": {"Data": str(text or "").strip() or "(empty)"}},
            }
        },
    )
    return {"ok": True, "to": to_, "messageId": (resp or {}).get("MessageId")}
