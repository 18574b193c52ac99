"""Document listing endpoint."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response

from ..config import get_settings
from ..db.connection import get_db_pool
from ..db.postgres import PostgresStore
from ..errors.problem_details import BadRequestError
from ..models.documents import DocumentListResponse
from ..pagination import FindParams, find_with_request, parse_sort, create_link_header


logger = logging.getLogger(__name__)

CURSOR_PARAMS = ("next", "previous", "after", "before")

documents_router = APIRouter(
    prefix="/collections/{collection}/documents",
    tags=["Documents"],
    responses={
        400: {"description": "Bad Request - Invalid cursor, sort or fields"},
        503: {"description": "Service Unavailable - Document store error"}
    }
)


async def get_document_store(collection: str) -> PostgresStore:
    """Build a store for the collection named in the path."""
    settings = get_settings()
    pool = await get_db_pool()
    return PostgresStore(pool, collection, table=settings.documents_table, id_field=settings.id_field)


@documents_router.get(
    "",
    response_model=DocumentListResponse,
    summary="List documents",
    description=(
        "List documents of a collection with cursor-based pagination. "
        "Pass `limit`, `fields` (comma-separated), and one of `next`/`previous` "
        "(cursors from an earlier page) or `after`/`before` (document ids)."
    ),
    responses={
        200: {"description": "Documents retrieved successfully"}
    }
)
async def list_documents(
    collection: str,
    request: Request,
    response: Response,
    store: Annotated[PostgresStore, Depends(get_document_store)],
    sort: Annotated[str | None, Query(description="Comma-separated sort fields, '-' prefix for descending")] = None,
    case_insensitive: Annotated[bool, Query(description="Order string sort fields ignoring case")] = False,
    get_total: Annotated[bool, Query(description="Include the total number of documents")] = False,
) -> DocumentListResponse:
    """List documents of a collection with seek-based pagination.

    Documents are ordered by the requested sort fields with the document id
    as the final tie-break, so pages stay stable even when sort values repeat.

    Args:
        collection: Name of the collection to list documents from
        request: FastAPI request object, read for pagination parameters
        response: FastAPI response object for adding headers
        store: Document store for the collection
        sort: Sort fields, e.g. ``-created,title``
        case_insensitive: Whether string sort fields ignore case
        get_total: Whether to count all matching documents

    Returns:
        Page of documents with cursors and a Link header
    """
    settings = get_settings()
    config = settings.pagination_config()

    try:
        sort_spec = parse_sort(sort, id_field=config.id_field, case_insensitive=case_insensitive)
    except ValueError as e:
        raise BadRequestError(f"Invalid sort parameter: {e}")

    params = FindParams(sort=sort_spec, get_total=get_total)
    page = await find_with_request(request, store, params, config)

    link_params = {k: v for k, v in request.query_params.items() if k not in CURSOR_PARAMS}
    link_header = create_link_header(
        base_url=str(request.url).split('?')[0],
        params=link_params,
        next_cursor=page.next if page.has_next else None,
        prev_cursor=page.previous if page.has_previous else None
    )
    if link_header:
        response.headers["Link"] = link_header

    logger.info(f"Retrieved {len(page.results)} documents from collection '{collection}'")
    return DocumentListResponse(**page.model_dump())
