"""Decoding of HTTP query strings into paginated finds."""

import re
from typing import Any, Dict, List, Mapping, Optional, TYPE_CHECKING
from urllib.parse import urlencode

from starlette.requests import Request

from .fields import resolve_fields
from .find import find
from .ordering import SortField, SortSpec
from .page import Page
from .params import FindParams, PaginationConfig

if TYPE_CHECKING:
    from ..db.store import DocumentStore

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def normalize_query_array(query: Mapping[str, Any], param: str) -> List[str]:
    """Read a list parameter given as ``a,b`` or as repeated ``param=a&param=b``.

    Raises:
        TypeError: If the parameter is neither a string nor a list of strings
    """
    if hasattr(query, "getlist"):
        values = query.getlist(param)
        if len(values) > 1:
            return [v for value in values for v in value.split(",") if v]
        value = values[0] if values else None
    else:
        value = query.get(param)

    if isinstance(value, (list, tuple)):
        if not all(isinstance(v, str) for v in value):
            raise TypeError(f"expected string array or comma-separated string for {param}")
        return list(value)
    if not value:
        return []
    if isinstance(value, str):
        return [v for v in value.split(",") if v]
    raise TypeError(f"expected string array or comma-separated string for {param}")


def parse_query(
    query: Mapping[str, Any],
    params: Optional[FindParams] = None,
    config: Optional[PaginationConfig] = None
) -> FindParams:
    """Merge query-string values into server-side find parameters.

    The query string may lower but never raise a limit set in ``params``.
    Requested ``fields`` are whitelisted against ``params.fields`` and
    ``params.override_fields``.

    Args:
        query: Parsed query string (``limit``, ``next``, ``previous``,
            ``after``, ``before``, ``fields``)
        params: Server-side parameters
        config: Pagination configuration

    Returns:
        New parameters; ``params`` is left untouched

    Raises:
        NoValidFieldsError: If none of the requested fields are permitted
    """
    params = params or FindParams()
    config = config or PaginationConfig()
    update: Dict[str, Any] = {}

    raw_limit = query.get("limit")
    if raw_limit:
        # Leading integer, so "5abc" and " 7" read as 5 and 7
        match = _LEADING_INT.match(str(raw_limit))
        limit = int(match.group(1)) if match else None
        if limit is not None and (params.limit is None or params.limit > limit):
            update["limit"] = limit

    for name in ("next", "previous", "after", "before"):
        value = query.get(name)
        if value:
            update[name] = value

    id_field = params.sort.id_field if params.sort else config.id_field
    fields = resolve_fields(
        normalize_query_array(query, "fields"),
        params.fields,
        params.override_fields,
        id_field=id_field,
    )
    update["fields"] = fields or None

    return params.model_copy(update=update)


async def find_with_request(
    request: Request,
    store: "DocumentStore",
    params: Optional[FindParams] = None,
    config: Optional[PaginationConfig] = None
) -> Page:
    """Run ``find`` with parameters taken from an HTTP request's query string."""
    return await find(store, parse_query(request.query_params, params, config), config)


def parse_sort(value: Optional[str], id_field: str = "_id", case_insensitive: bool = False) -> Optional[SortSpec]:
    """Parse ``"-created,name"`` style sort parameters.

    A leading ``-`` sorts that field descending. Returns None for an empty value.

    Raises:
        ValueError: If a field path is invalid or repeated
    """
    if not value:
        return None
    fields = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        ascending = not part.startswith("-")
        path = part.lstrip("-+")
        fields.append(SortField(
            path=path,
            ascending=ascending,
            case_insensitive=case_insensitive and path != id_field,
        ))
    if not fields:
        return None
    return SortSpec(fields=tuple(fields), id_field=id_field)


def create_link_header(
    base_url: str,
    params: Dict[str, Any],
    next_cursor: Optional[str] = None,
    prev_cursor: Optional[str] = None
) -> Optional[str]:
    """Create Link header for pagination as per RFC 8288.

    Args:
        base_url: Base URL for the resource
        params: Current query parameters, without cursors
        next_cursor: Cursor for next page
        prev_cursor: Cursor for previous page

    Returns:
        Link header value or None if no links
    """
    links = []

    if next_cursor:
        next_params = {**params, "next": next_cursor}
        links.append(f'<{base_url}?{urlencode(next_params)}>; rel="next"')

    if prev_cursor:
        prev_params = {**params, "previous": prev_cursor}
        links.append(f'<{base_url}?{urlencode(prev_params)}>; rel="prev"')

    return ", ".join(links) if links else None
