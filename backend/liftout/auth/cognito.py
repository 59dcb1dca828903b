from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
from cachetools import TTLCache
from jose import JWTError, jwt

from ..settings import settings


class CognitoAuthError(Exception):
    def __init__(self, message: str, *, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class VerifiedUser:
    sub: str
    email: str | None
    claims: dict[str, Any]


_JWKS_CACHE: TTLCache[str, dict[str, Any]] = TTLCache(maxsize=4, ttl=60 * 60)


def _issuer() -> str:
    if not settings.cognito_user_pool_id:
        raise RuntimeError("COGNITO_USER_POOL_ID is not set")
    region = settings.cognito_region or settings.aws_region
    return f"https://cognito-idp.{region}.amazonaws.com/{settings.cognito_user_pool_id}"


def _get_jwks() -> dict[str, Any]:
    url = f"{_issuer()}/.well-known/jwks.json"
    cached = _JWKS_CACHE.get(url)
    if cached:
        return cached

    with httpx.Client(timeout=10.0) as client:
        resp = client.get(url)
        resp.raise_for_status()
        jwks = resp.json()

    _JWKS_CACHE[url] = jwks
    return jwks


def verify_bearer_token(token: str) -> VerifiedUser:
    """
    Verify a Cognito ID or access token and return the caller. Token issuance
    lives in the identity service; this side only checks signatures and claims.
    """
    if not token:
        raise CognitoAuthError("Missing token")
    if not settings.cognito_client_id:
        raise RuntimeError("COGNITO_CLIENT_ID is not set")

    try:
        claims = jwt.decode(
            token,
            _get_jwks(),
            algorithms=["RS256"],
            # Access tokens carry client_id instead of aud; checked below.
            issuer=_issuer(),
            options={"verify_aud": False, "verify_iss": True, "verify_exp": True},
        )
    except JWTError as e:
        raise CognitoAuthError("Invalid token") from e

    token_use = claims.get("token_use")
    if token_use == "id":
        if claims.get("aud") != settings.cognito_client_id:
            raise CognitoAuthError("Invalid token audience")
    elif token_use == "access":
        if claims.get("client_id") != settings.cognito_client_id:
            raise CognitoAuthError("Invalid token audience")
    else:
        raise CognitoAuthError("Invalid token_use")

    sub = str(claims.get("sub") or "")
    if not sub:
        raise CognitoAuthError("Missing sub")

    email = claims.get("email")
    return VerifiedUser(sub=sub, email=str(email) if email is not None else None, claims=claims)
