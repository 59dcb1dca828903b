from __future__ import annotations

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.context import deadline_var, request_id_var
from ..settings import settings


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Accepts inbound X-Request-Id (if present) or generates a UUIDv4.
    - Stores it in request.state.request_id and a contextvar for logging.
    - Starts the request deadline that storage retries honour.
    - Always echoes X-Request-Id on the response.
    """

    header_name = "X-Request-Id"

    async def dispatch(self, request: Request, call_next):
        inbound = request.headers.get("x-request-id")
        request_id = (str(inbound).strip()[:128] if inbound else "") or str(uuid.uuid4())

        request.state.request_id = request_id
        rid_token = request_id_var.set(request_id)
        dl_token = deadline_var.set(time.monotonic() + float(settings.request_timeout_s))
        try:
            response = await call_next(request)
            response.headers[self.header_name] = request_id
            return response
        finally:
            deadline_var.reset(dl_token)
            request_id_var.reset(rid_token)
