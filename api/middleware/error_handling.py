from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.logging import get_api_logger_safe, get_error_logger_safe
from core.utils.exceptions import AppError, ValidationError, create_error_context

logger = get_api_logger_safe("api.middleware.error_handling")
error_logger = get_error_logger_safe("api.middleware.error_handling")

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def _request_fields(request: Optional[Request]) -> dict:
    if request is None:
        return {}
    return {"path": request.url.path, "method": request.method}


def error_to_response(error: Exception, request: Optional[Request] = None) -> JSONResponse:
    """Convert any exception into the JSON error body and status code."""
    if isinstance(error, AppError):
        context = create_error_context(error, "http_request", _request_fields(request))
        if error.status_code >= 500:
            error_logger.error(f"{error.name}: {error.message}", **context)
        else:
            logger.warning(f"{error.name}: {error.message}", **context)

        headers = None
        retry_after = getattr(error, "retry_after", None)
        if retry_after is not None:
            headers = {"Retry-After": str(retry_after)}
        return JSONResponse(status_code=error.status_code, content=error.to_dict(), headers=headers)

    # Full detail stays in the logs; the client gets a generic body
    error_logger.error(
        "Unhandled API exception",
        error=str(error),
        exc_info=error,
        **_request_fields(request),
    )
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content={"error": "InternalServerError", "message": GENERIC_ERROR_MESSAGE},
    )


def _http_error_name(status_code: int) -> str:
    if status_code == HTTPStatus.NOT_FOUND:
        return "NotFoundError"
    try:
        return HTTPStatus(status_code).phrase.replace(" ", "").replace("-", "")
    except ValueError:
        return "HTTPError"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == HTTPStatus.NOT_FOUND and exc.detail == "Not Found":
        message = f"Endpoint not found: {request.method} {request.url.path}"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": _http_error_name(exc.status_code), "message": message},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report missing/invalid query or body fields by name."""
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("query", "body", "path", "header")]
        name = ".".join(loc) or "request"
        if name not in fields:
            fields.append(name)
    missing = [e for e in exc.errors() if e.get("type") == "missing"]
    if missing and len(missing) == len(exc.errors()):
        message = f"Missing required parameters: {', '.join(fields)}"
    else:
        message = f"Invalid parameters: {', '.join(fields)}"
    return error_to_response(ValidationError(message, field=fields[0] if fields else None), request)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return error_to_response(exc, request)


def register_exception_handlers(app: FastAPI) -> None:
    """Route-level errors share the body format of the chain boundary."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
