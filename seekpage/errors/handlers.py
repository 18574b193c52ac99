"""Exception handlers turning errors into Problem Details responses."""

import logging
from typing import Any, Dict, Iterable, Mapping, Union

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .problem_details import ProblemDetailException, create_problem_response

logger = logging.getLogger(__name__)

STATUS_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _request_context(request: Request, **extra: Any) -> Dict[str, Any]:
    return {"path": str(request.url.path), "method": request.method, **extra}


def _format_errors(errors: Iterable[Mapping[str, Any]]) -> str:
    return "; ".join(
        f"{' -> '.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in errors
    )


async def problem_detail_exception_handler(
    request: Request,
    exc: ProblemDetailException
) -> JSONResponse:
    """Render an error raised by the pagination engine or a store."""
    log = logger.warning if exc.status >= 500 else logger.info
    log(
        f"{exc.title} ({exc.type_uri}): {exc.detail}",
        extra=_request_context(request, status_code=exc.status)
    )
    return exc.to_response(request)


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException]
) -> JSONResponse:
    """Render framework HTTP errors such as unknown routes."""
    logger.info(
        f"HTTP {exc.status_code}: {exc.detail}",
        extra=_request_context(request, status_code=exc.status_code)
    )
    response = create_problem_response(
        status=exc.status_code,
        title=STATUS_TITLES.get(exc.status_code, "HTTP Error"),
        detail=str(exc.detail) if exc.detail else None,
        request=request
    )
    response.headers.update(getattr(exc, "headers", None) or {})
    return response


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Render query parameters FastAPI could not coerce."""
    errors = exc.errors()
    logger.info(f"Request validation failed with {len(errors)} errors", extra=_request_context(request))
    return create_problem_response(
        status=422,
        title="Validation Error",
        detail="Validation failed: " + _format_errors(errors),
        request=request
    )


async def pagination_validation_handler(
    request: Request,
    exc: ValidationError
) -> JSONResponse:
    """Render invalid pagination parameters built from a request."""
    logger.info(f"Invalid pagination parameters: {exc.error_count()} errors", extra=_request_context(request))
    return create_problem_response(
        status=400,
        title="Bad Request",
        detail="Invalid pagination parameters: " + _format_errors(exc.errors()),
        request=request
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Render anything unexpected as an opaque 500."""
    logger.error(
        f"Unhandled {type(exc).__name__}: {exc}",
        extra=_request_context(request, exception_type=type(exc).__name__),
        exc_info=True
    )
    return create_problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred",
        request=request
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install every handler on ``app``, most specific first."""
    handlers = [
        (ProblemDetailException, problem_detail_exception_handler),
        (HTTPException, http_exception_handler),
        (StarletteHTTPException, http_exception_handler),
        (RequestValidationError, validation_exception_handler),
        (ValidationError, pagination_validation_handler),
        (Exception, general_exception_handler),
    ]
    for exc_class, handler in handlers:
        app.add_exception_handler(exc_class, handler)
