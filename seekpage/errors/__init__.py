"""Error handling module for seekpage."""

from .problem_details import (
    ProblemDetail,
    ProblemDetailException,
    BadRequestError,
    InvalidCursorError,
    NoValidFieldsError,
    InternalServerError,
    ServiceUnavailableError,
    StoreError,
    create_problem_response
)
from .handlers import register_exception_handlers

__all__ = [
    "ProblemDetail",
    "ProblemDetailException",
    "BadRequestError",
    "InvalidCursorError",
    "NoValidFieldsError",
    "InternalServerError",
    "ServiceUnavailableError",
    "StoreError",
    "create_problem_response",
    "register_exception_handlers"
]
