from __future__ import annotations

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..auth.cognito import CognitoAuthError, verify_bearer_token
from ..observability.logging import get_logger
from ..problem_details import problem_response

log = get_logger("auth_middleware")


def is_public_path(path: str) -> bool:
    return path in ("/", "/health")


def require_auth(request: Request) -> None:
    # CORS preflight carries no credentials.
    if request.method.upper() == "OPTIONS":
        return

    path = request.url.path
    if not path.startswith("/api/") or is_public_path(path):
        return

    auth = request.headers.get("authorization")
    if not auth:
        raise HTTPException(status_code=401, detail="Unauthorized")

    parts = str(auth).split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        user = verify_bearer_token(parts[1].strip())
    except CognitoAuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

    request.state.user = user


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Bearer-token enforcement for /api/*. Added before CORSMiddleware so CORS
    wraps auth failures too.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            require_auth(request)
        except HTTPException as exc:
            log.info("auth_middleware_denied", status_code=exc.status_code, path=request.url.path)
            return problem_response(
                request=request,
                status_code=exc.status_code,
                title="Unauthorized" if exc.status_code == 401 else None,
                detail=str(exc.detail) if isinstance(exc.detail, str) else None,
            )
        except Exception:
            log.exception("auth_middleware_error", path=request.url.path)
            return problem_response(request=request, status_code=500, detail="Authentication unavailable")
        return await call_next(request)
