from __future__ import annotations

import base64
import binascii
import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ...settings import settings

_PREFIX = "v1."
_DEV_KEY = "liftout-dev-pagination-key"


def _get_key() -> bytes:
    raw = settings.pagination_token_key or _DEV_KEY
    return hashlib.sha256(str(raw).encode("utf-8")).digest()


def seal(plain_text: str) -> str:
    """
    Encrypt a short string into an opaque, URL-safe token.
    """
    iv = os.urandom(12)
    ct = AESGCM(_get_key()).encrypt(iv, str(plain_text).encode("utf-8"), None)
    body = base64.urlsafe_b64encode(iv + ct).decode("ascii").rstrip("=")
    return _PREFIX + body


def unseal(token: str) -> str | None:
    """
    Reverse of seal(). Returns None for anything tampered, truncated or foreign.
    """
    raw = str(token or "")
    if not raw.startswith(_PREFIX):
        return None
    body = raw[len(_PREFIX):]
    try:
        blob = base64.urlsafe_b64decode(body + "=" * (-len(body) % 4))
    except (binascii.Error, ValueError):
        return None
    if len(blob) <= 12 + 16:
        return None
    try:
        pt = AESGCM(_get_key()).decrypt(blob[:12], blob[12:], None)
    except InvalidTag:
        return None
    return pt.decode("utf-8")
