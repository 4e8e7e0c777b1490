"""FastAPI exception handlers.

Every error leaves the API as an ErrorResponse body: ``detail``, ``code`` and,
for validation problems, ``errors``.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from catalog_sync.domain.errors import DomainError

logger = logging.getLogger(__name__)

STATUS_CODE_MAP: dict[str, int] = {
    "VALIDATION_ERROR": 422,  # HTTP_422_UNPROCESSABLE_CONTENT
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CONFLICT": status.HTTP_409_CONFLICT,
    "LOCKED_KEY": status.HTTP_409_CONFLICT,
    "FETCH_ERROR": status.HTTP_502_BAD_GATEWAY,
}


def _request_context(request: Request) -> dict[str, str]:
    return {"path": request.url.path, "method": request.method}


def _error_body(detail: str, code: str, errors: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"detail": detail, "code": code}
    if errors:
        body["errors"] = errors
    return body


async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    """Map a DomainError to its status code (unknown codes become 400).

    Upstream failures (5xx) are logged as errors, client mistakes as info.
    """
    status_code = STATUS_CODE_MAP.get(exc.error_code, status.HTTP_400_BAD_REQUEST)
    extra = {"error_code": exc.error_code, "error_message": exc.message, **_request_context(request)}

    if status_code >= 500:
        logger.error("Upstream error", extra={**extra, "context": exc.context})
    else:
        logger.info("Client error", extra=extra)

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.message, exc.error_code, getattr(exc, "errors", None)),
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies or parameters, reported per field."""
    errors = [
        {
            # 'body' and 'query' prefixes carry no information for the client
            "field": ".".join(str(loc) for loc in error["loc"] if loc not in ("body", "query")),
            "message": error["msg"],
            "code": error["type"],
        }
        for error in exc.errors()
    ]

    logger.info("Request validation error", extra={"errors": errors, **_request_context(request)})

    return JSONResponse(
        status_code=422,  # HTTP_422_UNPROCESSABLE_CONTENT
        content=_error_body("Invalid request parameters", "VALIDATION_ERROR", errors),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unexpected error occurred",
        exc_info=exc,
        extra={"error_type": type(exc).__name__, **_request_context(request)},
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("An unexpected error occurred", "INTERNAL_ERROR"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, handle_domain_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
