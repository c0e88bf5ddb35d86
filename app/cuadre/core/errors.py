from decimal import Decimal

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from app.cuadre.core.error_catalog import AppError, ErrorCatalog, ErrorDefinition
from app.cuadre.core.metrics import metrics

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}

# Driver messages that mean "gave up waiting for a lock" on SQLite and PostgreSQL.
LOCK_TIMEOUT_MARKERS = (
    "database is locked",
    "lock timeout",
    "lock wait timeout",
    "deadlock detected",
    "could not obtain lock",
)


def is_lock_timeout(exc: Exception) -> bool:
    if not isinstance(exc, OperationalError):
        return False
    message = str(exc).lower()
    return any(marker in message for marker in LOCK_TIMEOUT_MARKERS)


def _json_safe(value):
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def error_response(code: str, message: str, details: object, trace_id: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": code,
            "message": message,
            "details": details,
            "trace_id": trace_id,
        },
    )


def _respond(request: Request, exc: Exception, code: str, message: str, details, status_code: int) -> JSONResponse:
    # Read back by the observability middleware for the request log line.
    request.state.error_code = code
    request.state.error_class = exc.__class__.__name__
    return error_response(
        code=code,
        message=message,
        details=_json_safe(details),
        trace_id=getattr(request.state, "trace_id", ""),
        status_code=status_code,
    )


def _respond_with(request: Request, exc: Exception, definition: ErrorDefinition, details) -> JSONResponse:
    return _respond(request, exc, definition.code, definition.message, details, definition.status_code)


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        field = ".".join(part for part in loc if part not in {"body", "query", "path", "header"})
        errors.append(
            {
                "field": field or None,
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "validation_error"),
                "loc": loc,
            }
        )
    return errors


def _http_exception_parts(exc: HTTPException) -> tuple[str, object]:
    detail = exc.detail
    if isinstance(detail, dict):
        extra = {key: value for key, value in detail.items() if key != "message"}
        return str(detail.get("message", "HTTP error")), extra or None
    if isinstance(detail, list):
        return "HTTP error", {"errors": detail}
    return (str(detail) if detail is not None else "HTTP error"), None


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return _respond_with(request, exc, exc.error, exc.details)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        message, details = _http_exception_parts(exc)
        code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        response = _respond(request, exc, code, message, details, exc.status_code)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _respond_with(request, exc, ErrorCatalog.VALIDATION_ERROR, {"errors": _validation_errors(exc)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        details = {"type": exc.__class__.__name__}
        if is_lock_timeout(exc):
            metrics.increment_lock_wait_timeout()
            return _respond_with(request, exc, ErrorCatalog.LOCK_TIMEOUT, details)
        return _respond_with(request, exc, ErrorCatalog.INTERNAL_ERROR, details)
