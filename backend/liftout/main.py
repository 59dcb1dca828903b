from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .db.dynamodb.errors import (
    DdbConflict,
    DdbError,
    DdbNotFound,
    DdbThrottled,
    DdbUnavailable,
    DdbValidation,
)
from .errors import LiftoutError
from .middleware.access_log import AccessLogMiddleware
from .middleware.auth import AuthMiddleware
from .middleware.cors import build_allowed_origins
from .middleware.request_context import RequestContextMiddleware
from .observability.logging import configure_logging, get_logger
from .problem_details import error_response, problem_response
from .routers.applications import router as applications_router
from .routers.health import router as health_router
from .routers.interests import router as interests_router
from .settings import settings


def create_app() -> FastAPI:
    configure_logging(level=settings.log_level)
    log = get_logger("startup")

    app = FastAPI(
        title="Liftout Applications API",
        version="1.0.0",
        default_response_class=ORJSONResponse,
        redirect_slashes=False,
    )

    log.info("app_starting", settings=settings.to_log_safe_dict())

    # Last added is outermost. Auth sits inside CORS so auth failures still get CORS headers.
    app.add_middleware(AuthMiddleware)
    app.add_middleware(AccessLogMiddleware, exclude_paths={"/"})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=build_allowed_origins(
            frontend_base_url=settings.frontend_base_url,
            extra_origins=settings.cors_allowed_origins,
        ),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
        max_age=3000,
    )
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(LiftoutError, _liftout_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DdbError, _ddb_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    app.include_router(health_router)
    app.include_router(applications_router, prefix="/api")
    app.include_router(interests_router, prefix="/api")
    return app


def _liftout_error_handler(request: Request, exc: LiftoutError) -> Response:
    return error_response(request, exc)


def _ddb_error_handler(request: Request, exc: DdbError) -> Response:
    status_code = 500
    title = "Storage Error"
    if isinstance(exc, DdbValidation):
        status_code, title = 400, "Bad Request"
    elif isinstance(exc, DdbNotFound):
        status_code, title = 404, "Not Found"
    elif isinstance(exc, DdbConflict):
        status_code, title = 409, "Conflict"
    elif isinstance(exc, (DdbThrottled, DdbUnavailable)):
        status_code, title = 503, "Service Unavailable"

    if status_code >= 500:
        get_logger("storage").error(
            "storage_error",
            operation=exc.operation,
            table=exc.table_name,
            aws_request_id=exc.aws_request_id,
            retryable=exc.retryable,
            error=exc.message,
        )

    extensions = {
        "operation": exc.operation,
        "retryable": bool(exc.retryable),
        "awsRequestId": exc.aws_request_id,
    }
    return problem_response(
        request=request,
        status_code=status_code,
        title=title,
        detail=exc.message,
        extensions={k: v for k, v in extensions.items() if v is not None},
    )


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    status_code = int(getattr(exc, "status_code", 500) or 500)
    detail = getattr(exc, "detail", None)
    safe_detail = str(detail) if detail is not None else None
    if status_code == 404 and not safe_detail:
        safe_detail = "Route not found"
    return problem_response(request=request, status_code=status_code, detail=safe_detail)


def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors: list[dict[str, object]] = []
    for e in exc.errors():
        loc = e.get("loc") or ()
        errors.append(
            {
                "location": list(loc),
                "path": ".".join(str(x) for x in loc if x != "body"),
                "message": e.get("msg", "Invalid value"),
                "type": e.get("type"),
            }
        )
    return problem_response(
        request=request,
        status_code=422,
        title="Validation Failed",
        detail="Request validation failed",
        errors=errors,
    )


def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    user = getattr(getattr(request, "state", None), "user", None)
    get_logger("unhandled").exception(
        "unhandled_exception",
        http_method=str(request.method or "").upper(),
        path=request.url.path,
        actor_id=getattr(user, "sub", None),
    )
    return problem_response(
        request=request,
        status_code=500,
        title="Internal Server Error",
        detail=str(exc) if exc else None,
    )


app = create_app()
