"""Pagination request models and parameter sanitization."""

import logging
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .codec import decode_cursor
from .ordering import Direction, SortSpec, boundary_values

if TYPE_CHECKING:
    from ..db.store import DocumentStore


logger = logging.getLogger(__name__)


class PaginationConfig(BaseModel):
    """Limits and identity settings passed explicitly into every call."""

    model_config = ConfigDict(frozen=True)

    default_limit: int = Field(default=50, ge=1, description="Page size when none is requested")
    max_limit: int = Field(default=300, ge=1, description="Largest permitted page size")
    allow_unbounded: bool = Field(default=False, description="Permit full-drain requests without a limit")
    id_field: str = Field(default="_id", description="Unique identity field used as the tie-break")

    @model_validator(mode="after")
    def validate_limits(self) -> "PaginationConfig":
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit cannot exceed max_limit")
        return self


class FindParams(BaseModel):
    """Caller-facing parameters of a paginated find."""

    query: Dict[str, Any] = Field(default_factory=dict, description="Additional store filter")
    sort: Optional[SortSpec] = Field(default=None, description="Sort order, defaults to id descending")
    limit: Optional[int] = Field(default=None, description="Page size, clamped to the configured range")
    unbounded: bool = Field(default=False, description="Return every matching row in one page")
    fields: Optional[Dict[str, Any]] = Field(default=None, description="Projection, or allowed fields for request decoding")
    override_fields: Optional[Dict[str, Any]] = Field(default=None, description="Fields always included or excluded")
    next: Optional[str] = Field(default=None, description="Cursor of the last row of the previous page")
    previous: Optional[str] = Field(default=None, description="Cursor of the first row of the next page")
    after: Optional[Any] = Field(default=None, description="Id of the row to start after")
    before: Optional[Any] = Field(default=None, description="Id of the row to end before")
    get_total: bool = Field(default=False, description="Also count every row matching the query")
    row_cursors: bool = Field(default=False, description="Attach a _cursor to each returned row")


class PaginationRequest(BaseModel):
    """A fully sanitized page request."""

    model_config = ConfigDict(frozen=True)

    sort: SortSpec
    direction: Direction = Direction.FORWARD
    cursor: Optional[Tuple[Any, ...]] = None
    limit: Optional[int] = Field(default=None, ge=1, description="None means unbounded")

    @model_validator(mode="after")
    def validate_cursor(self) -> "PaginationRequest":
        if self.cursor is not None and len(self.cursor) != self.sort.cursor_arity:
            raise ValueError(
                f"Cursor has {len(self.cursor)} values, expected {self.sort.cursor_arity}"
            )
        return self

    @property
    def cursor_supplied(self) -> bool:
        return self.cursor is not None

    def with_boundary(self, boundary: Tuple[Any, ...], direction: Direction) -> "PaginationRequest":
        return self.model_copy(update={"cursor": boundary, "direction": direction})


def default_sort(config: PaginationConfig) -> SortSpec:
    return SortSpec.single(config.id_field, ascending=False, id_field=config.id_field)


def clamp_limit(limit: Optional[int], config: PaginationConfig, unbounded: bool = False) -> Optional[int]:
    """Clamp a requested page size into ``[1, max_limit]``.

    Returns ``None`` only for an unbounded request that the configuration
    permits; otherwise an unbounded request gets the maximum page size.
    """
    if unbounded:
        if config.allow_unbounded:
            return None
        return config.max_limit
    if limit is None:
        limit = config.default_limit
    return max(1, min(limit, config.max_limit))


def sanitize_params(params: FindParams, config: PaginationConfig) -> PaginationRequest:
    """Turn caller parameters into a page request without touching the store.

    ``next`` takes precedence over ``previous``. The id shorthands ``after``
    and ``before`` need a store lookup and are applied by ``resolve_request``.

    Raises:
        InvalidCursorError: If a supplied cursor cannot be decoded
    """
    sort = params.sort or default_sort(config)
    limit = clamp_limit(params.limit, config, params.unbounded)

    if params.next:
        cursor = decode_cursor(params.next, arity=sort.cursor_arity)
        return PaginationRequest(sort=sort, direction=Direction.FORWARD, cursor=cursor, limit=limit)
    if params.previous:
        cursor = decode_cursor(params.previous, arity=sort.cursor_arity)
        return PaginationRequest(sort=sort, direction=Direction.BACKWARD, cursor=cursor, limit=limit)
    return PaginationRequest(sort=sort, limit=limit)


async def resolve_boundary(
    store: "DocumentStore",
    sort: SortSpec,
    doc_id: Any
) -> Optional[Tuple[Any, ...]]:
    """Look up the boundary tuple of the document identified by ``doc_id``.

    Returns:
        The boundary tuple, or None if no such document exists
    """
    if sort.paths == [sort.id_field]:
        return (doc_id, doc_id)

    doc = await store.find_one(doc_id, sort.paths)
    if doc is None:
        logger.info(f"Boundary document {doc_id!r} not found, paging from the start")
        return None
    return boundary_values({**doc, sort.id_field: doc_id}, sort)


async def resolve_request(
    store: "DocumentStore",
    params: FindParams,
    config: PaginationConfig
) -> PaginationRequest:
    """Sanitize ``params`` and apply the ``after``/``before`` id shorthands.

    Precedence is ``after``, ``next``, ``before``, ``previous``. A shorthand
    whose id is unknown is ignored.
    """
    request = sanitize_params(params, config)

    if params.after is not None:
        boundary = await resolve_boundary(store, request.sort, params.after)
        if boundary is not None:
            return request.with_boundary(boundary, Direction.FORWARD)

    if request.cursor_supplied and request.direction is Direction.FORWARD:
        return request

    if params.before is not None:
        boundary = await resolve_boundary(store, request.sort, params.before)
        if boundary is not None:
            return request.with_boundary(boundary, Direction.BACKWARD)

    return request
