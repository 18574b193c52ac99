"""Problem Details (RFC 9457) errors raised by seekpage.

Each error class fixes its status, title and problem type; raising one
anywhere below a FastAPI route yields an ``application/problem+json``
response through the handlers in ``seekpage.errors.handlers``.
"""

from typing import Any, ClassVar, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

PROBLEM_JSON = "application/problem+json"
PROBLEM_TYPE_PREFIX = "urn:seekpage:problem:"


class ProblemDetail(BaseModel):
    """Problem Details body as defined in RFC 9457."""

    # Extension members are carried as extra fields
    model_config = ConfigDict(extra="allow")

    type: str = Field(default="about:blank", description="A URI reference that identifies the problem type")
    title: str = Field(description="A short, human-readable summary of the problem type")
    status: int = Field(description="The HTTP status code")
    detail: Optional[str] = Field(default=None, description="A human-readable explanation specific to this occurrence")
    instance: Optional[str] = Field(default=None, description="A URI reference that identifies the specific occurrence")


def problem_response(problem: ProblemDetail) -> JSONResponse:
    """Render a problem as a JSON response with the problem media type."""
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        headers={"Content-Type": PROBLEM_JSON}
    )


class ProblemDetailException(Exception):
    """Base exception carrying a Problem Details description.

    Subclasses set ``status``, ``title``, ``type_uri`` and ``default_detail``
    as class attributes; any of them may still be overridden per instance.
    Extra keyword arguments become extension members of the problem body.
    """

    status: ClassVar[int] = 500
    title: ClassVar[str] = "Internal Server Error"
    type_uri: ClassVar[str] = "about:blank"
    default_detail: ClassVar[Optional[str]] = None

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        status: Optional[int] = None,
        title: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        **extensions: Any
    ):
        if status is not None:
            self.status = status
        if title is not None:
            self.title = title
        if type_uri is not None:
            self.type_uri = type_uri
        self.detail = detail if detail is not None else self.default_detail
        self.instance = instance
        self.extensions: Dict[str, Any] = extensions
        super().__init__(self.detail or self.title)

    def to_problem_detail(self, request: Optional[Request] = None) -> ProblemDetail:
        """Build the problem body, using the request path as the instance."""
        instance = self.instance
        if instance is None and request is not None:
            instance = str(request.url.path)
        return ProblemDetail(
            type=self.type_uri,
            title=self.title,
            status=self.status,
            detail=self.detail,
            instance=instance,
            **self.extensions
        )

    def to_response(self, request: Optional[Request] = None) -> JSONResponse:
        return problem_response(self.to_problem_detail(request))


class BadRequestError(ProblemDetailException):
    """400 Bad Request error."""

    status = 400
    title = "Bad Request"
    default_detail = "The request could not be processed"


class InvalidCursorError(BadRequestError):
    """A pagination cursor could not be decoded.

    Raised for corrupt, tampered or wrongly shaped cursors.
    """

    type_uri = PROBLEM_TYPE_PREFIX + "invalid-cursor"
    default_detail = "Invalid pagination cursor"


class NoValidFieldsError(BadRequestError):
    """Projection resolution narrowed the requested fields to nothing."""

    type_uri = PROBLEM_TYPE_PREFIX + "no-valid-fields"
    default_detail = "No valid fields provided"


class InternalServerError(ProblemDetailException):
    """500 Internal Server Error."""

    default_detail = "Internal server error"


class ServiceUnavailableError(ProblemDetailException):
    """503 Service Unavailable error."""

    status = 503
    title = "Service Unavailable"
    default_detail = "Service temporarily unavailable"


class StoreError(ServiceUnavailableError):
    """The backing document store failed to execute a query."""

    type_uri = PROBLEM_TYPE_PREFIX + "store-error"
    default_detail = "Document store error"


def create_problem_response(
    status: int,
    title: str,
    detail: Optional[str] = None,
    type_uri: str = "about:blank",
    instance: Optional[str] = None,
    request: Optional[Request] = None,
    **extensions: Any
) -> JSONResponse:
    """Create a Problem Details response without raising."""
    if instance is None and request is not None:
        instance = str(request.url.path)
    return problem_response(ProblemDetail(
        type=type_uri,
        title=title,
        status=status,
        detail=detail,
        instance=instance,
        **extensions
    ))
