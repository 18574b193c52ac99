"""Paginated find against a document store."""

import logging
from typing import Optional, TYPE_CHECKING

from .fields import ensure_sort_fields, strip_fields
from .page import Page, assemble
from .params import FindParams, PaginationConfig, resolve_request
from .query import build_store_query

if TYPE_CHECKING:
    from ..db.store import DocumentStore


logger = logging.getLogger(__name__)


async def find(
    store: "DocumentStore",
    params: FindParams,
    config: Optional[PaginationConfig] = None
) -> Page:
    """Fetch one page of documents ordered by ``params.sort``.

    The sort fields should be orderable, indexed, immutable and of one type
    per field (null and absent aside). Rows whose sort values change between
    two calls may be skipped or repeated.

    Args:
        store: The document store to query
        params: Caller parameters (sort, limit, cursors, projection, query)
        config: Limits and identity settings

    Returns:
        The requested page

    Raises:
        InvalidCursorError: If ``next`` or ``previous`` cannot be decoded
        StoreError: If the store fails; it is never retried here
    """
    config = config or PaginationConfig()
    request = await resolve_request(store, params, config)

    projection, injected = ensure_sort_fields(params.fields, request.sort)
    store_query = build_store_query(request, params.query, projection)

    rows = await store.find(store_query)
    logger.debug(f"Store returned {len(rows)} rows for limit {request.limit}")

    page = assemble(
        rows,
        request.sort,
        request.direction,
        request.cursor_supplied,
        request.limit,
        row_cursors=params.row_cursors,
    )

    # Remove fields added only to build cursors
    if injected:
        page.results = [strip_fields(row, injected) for row in page.results]

    if params.get_total:
        page.total_count = await store.count(params.query)

    return page
