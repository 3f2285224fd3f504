import json
import logging
import time
import traceback
from contextvars import ContextVar
from uuid import uuid4

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from stockdesk.core.config import settings
from stockdesk.core.errors import DomainError

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
logger = logging.getLogger("stockdesk.api")

REQUEST_ID_HEADER = "X-Request-ID"
TIMEOUT_HINT_HEADER = "X-API-Timeout-Hint-Ms"

ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    422: "validation_error",
    500: "internal_error",
}


def setup_observability() -> None:
    """Send every ``stockdesk.*`` logger to stderr as one JSON document per line."""
    package_logger = logging.getLogger("stockdesk")
    if package_logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.INFO)
    package_logger.propagate = False


def get_request_id() -> str:
    return request_id_ctx.get()


def log_event(target: logging.Logger, event: str, *, level: int = logging.INFO, **fields) -> None:
    payload = {"event": event, "request_id": get_request_id()}
    payload.update(fields)
    target.log(level, json.dumps(payload, default=str))


def _request_id_for(request: Request) -> str:
    return (
        getattr(request.state, "request_id", None)
        or request.headers.get(REQUEST_ID_HEADER)
        or get_request_id()
    )


def error_envelope(
    request: Request,
    status_code: int,
    message: str,
    *,
    code: str | None = None,
    details: list[dict] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Failure counterpart of the success envelope: same keys, ``data`` null, plus ``error``."""
    body = {
        "statusCode": status_code,
        "success": False,
        "message": message,
        "data": None,
        "error": {
            "code": code or ERROR_CODES.get(status_code, "http_error"),
            "request_id": _request_id_for(request),
            "path": request.url.path,
            "details": details,
        },
    }
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
    request.state.request_id = request_id
    token = request_id_ctx.set(request_id)
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
    finally:
        log_event(
            logger,
            "request",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        request_id_ctx.reset(token)

    response.headers[REQUEST_ID_HEADER] = request_id
    response.headers[TIMEOUT_HINT_HEADER] = str(settings.api_timeout_hint_ms)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    log_event(
        logger,
        "unhandled_exception",
        level=logging.ERROR,
        path=request.url.path,
        error=str(exc),
        traceback=traceback.format_exc(limit=10),
    )
    return error_envelope(request, 500, "Internal server error")


async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, str):
        return error_envelope(request, exc.status_code, exc.detail, headers=exc.headers)
    return error_envelope(request, exc.status_code, "HTTP error", details=exc.detail, headers=exc.headers)


async def domain_exception_handler(request: Request, exc: DomainError):
    return error_envelope(request, exc.status_code, exc.message, code=exc.code)


async def integrity_error_handler(request: Request, exc: IntegrityError):
    # Unique and check constraints that a concurrent writer hit first.
    log_event(
        logger,
        "integrity_error",
        level=logging.WARNING,
        path=request.url.path,
        error=str(exc.orig),
    )
    return error_envelope(request, 409, "Request conflicts with existing data")


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        location = [str(part) for part in err.get("loc", ()) if part != "body"]
        details.append(
            {
                "field": ".".join(location) or "body",
                "message": err.get("msg", "Invalid value"),
                "type": err.get("type"),
            }
        )
    return error_envelope(request, 422, "Validation failed", details=details)
