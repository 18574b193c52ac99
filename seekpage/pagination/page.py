"""Page assembly from an overfetched row set."""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from .codec import encode_cursor
from .ordering import Direction, SortSpec, boundary_values


class Page(BaseModel):
    """One page of results with the cursors to reach its neighbours."""

    results: List[Dict[str, Any]] = Field(description="Rows in natural (forward) order")
    previous: Optional[str] = Field(default=None, description="Cursor of the first row")
    has_previous: bool = Field(default=False, description="Whether rows exist before this page")
    next: Optional[str] = Field(default=None, description="Cursor of the last row")
    has_next: bool = Field(default=False, description="Whether rows exist after this page")
    total_count: Optional[int] = Field(default=None, description="Rows matching the query, if requested")


def build_cursor(doc: Mapping[str, Any], sort: SortSpec) -> str:
    """Encode the position of ``doc`` in the order defined by ``sort``."""
    return encode_cursor(boundary_values(doc, sort))


def assemble(
    rows: Sequence[Mapping[str, Any]],
    sort: SortSpec,
    direction: Direction,
    cursor_supplied: bool,
    limit: Optional[int],
    row_cursors: bool = False
) -> Page:
    """Turn the rows fetched for a page request into a ``Page``.

    Args:
        rows: Up to ``limit + 1`` rows in store (direction-adjusted) order
        sort: The sort specification the rows were fetched with
        direction: Direction of the request
        cursor_supplied: Whether the request started from a boundary
        limit: Page size, or None for an unbounded request
        row_cursors: Attach each row's own cursor under ``_cursor``

    Returns:
        The assembled page
    """
    results = [dict(row) for row in rows]

    has_more = limit is not None and len(results) > limit
    if has_more:
        # Drop the peek row
        results = results[:limit]

    backward = direction is Direction.BACKWARD
    has_next = backward or has_more
    has_previous = (not backward and cursor_supplied) or (backward and has_more)

    if backward:
        results.reverse()

    if not results:
        # has_previous stays as computed so a page past the end can still step back
        return Page(results=[], has_previous=has_previous, has_next=False)

    if row_cursors:
        for row in results:
            row["_cursor"] = build_cursor(row, sort)

    return Page(
        results=results,
        previous=build_cursor(results[0], sort),
        has_previous=has_previous,
        next=build_cursor(results[-1], sort),
        has_next=has_next,
    )
