"""Range predicate synthesis.

Turns a sort specification, a direction and an optional boundary tuple into a
store filter and a store sort order, both expressed in a Mongo-style filter
dialect that the store adapters understand.

For keys ``k1..kK`` and boundary values ``v1..vK`` the filter is the
lexicographic decomposition::

    (k1 beyond v1)
    OR (k1 == v1 AND k2 beyond v2)
    OR ...
    OR (k1 == v1 AND ... AND kK-1 == vK-1 AND kK beyond vK)

where "beyond" is ``$gt`` for an ascending key and ``$lt`` for a descending
one. Null and absent boundary values are handled bucket-wise: "equal" means
"also in the null bucket", and the bucket boundary is crossed exactly once.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .ordering import Direction, SortKey, SortSpec, in_null_bucket
from .params import PaginationRequest


logger = logging.getLogger(__name__)

StoreSort = List[Tuple[str, int]]


@dataclass(frozen=True)
class StoreQuery:
    """Everything a store adapter needs to fetch one page."""

    filter: Dict[str, Any]
    sort: StoreSort
    projection: Optional[Dict[str, Any]] = None
    limit: Optional[int] = None
    # Derived field name -> source path, lower-cased by the store
    folded: Dict[str, str] = field(default_factory=dict)


def _equal(key: SortKey, value: Any) -> Dict[str, Any]:
    if in_null_bucket(value):
        return {key.store_path: None}
    return {key.store_path: {"$eq": value}}


def _beyond(key: SortKey, value: Any) -> Optional[Dict[str, Any]]:
    """Predicate for rows strictly past ``value`` on ``key``, or None if none can be."""
    if in_null_bucket(value):
        # The null bucket is first ascending and last descending
        if key.ascending:
            return {key.store_path: {"$ne": None}}
        return None
    if key.ascending:
        return {key.store_path: {"$gt": value}}
    if not key.nullable:
        return {key.store_path: {"$lt": value}}
    return {"$or": [{key.store_path: None}, {key.store_path: {"$lt": value}}]}


def generate_cursor_query(
    sort: SortSpec,
    direction: Direction = Direction.FORWARD,
    cursor: Optional[Sequence[Any]] = None
) -> Dict[str, Any]:
    """Build the range filter selecting rows past ``cursor`` in ``direction``.

    Args:
        sort: The sort specification
        direction: Forward walks the declared order, backward its reverse
        cursor: Boundary tuple, or None for the first page

    Returns:
        Filter dict; empty when no cursor is given
    """
    if cursor is None:
        return {}

    keys = sort.keys(direction)
    values = sort.key_values(cursor)

    clauses = []
    prefix: Dict[str, Any] = {}
    for key, value in zip(keys, values):
        beyond = _beyond(key, value)
        if beyond is not None:
            clauses.append({**prefix, **beyond})
        prefix = {**prefix, **_equal(key, value)}

    if not clauses:
        return {sort.id_field: {"$in": []}}
    if len(clauses) == 1:
        return clauses[0]
    return {"$or": clauses}


def generate_sort(sort: SortSpec, direction: Direction = Direction.FORWARD) -> StoreSort:
    """Build the direction-adjusted store sort, one entry per key."""
    return [(key.store_path, 1 if key.ascending else -1) for key in sort.keys(direction)]


def synthesize(
    sort: SortSpec,
    direction: Direction = Direction.FORWARD,
    cursor: Optional[Sequence[Any]] = None
) -> Tuple[Dict[str, Any], StoreSort]:
    """Return the ``(filter, store_sort)`` pair for one page request."""
    return generate_cursor_query(sort, direction, cursor), generate_sort(sort, direction)


def build_store_query(
    request: PaginationRequest,
    query: Optional[Dict[str, Any]] = None,
    projection: Optional[Dict[str, Any]] = None
) -> StoreQuery:
    """Combine the range predicate with the caller's own filter.

    One row beyond the limit is requested so the page assembler can tell
    whether more rows exist; unbounded requests fetch everything.
    """
    cursor_filter, store_sort = synthesize(request.sort, request.direction, request.cursor)

    if cursor_filter and query:
        combined = {"$and": [cursor_filter, query]}
    else:
        combined = cursor_filter or dict(query or {})

    logger.debug(
        f"Synthesized {request.direction.value} query",
        extra={"store_filter": combined, "store_sort": store_sort, "limit": request.limit}
    )

    return StoreQuery(
        filter=combined,
        sort=store_sort,
        projection=projection or None,
        limit=None if request.limit is None else request.limit + 1,
        folded=request.sort.folded_fields,
    )
