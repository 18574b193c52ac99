"""Keyset pagination engine: cursors, ordering, range queries and page assembly."""

from .codec import encode_cursor, decode_cursor, UNDEFINED_SENTINEL
from .ordering import (
    UNDEFINED,
    Direction,
    SortField,
    SortSpec,
    get_path,
    boundary_values,
    compare_values,
    sort_documents,
)
from .params import (
    PaginationConfig,
    FindParams,
    PaginationRequest,
    clamp_limit,
    sanitize_params,
    resolve_boundary,
    resolve_request,
)
from .query import StoreQuery, synthesize, generate_cursor_query, generate_sort, build_store_query
from .page import Page, assemble, build_cursor
from .fields import FieldSet, dot_field_intersect, resolve_fields, ensure_sort_fields, project, strip_fields
from .find import find
from .request import parse_query, find_with_request, parse_sort, create_link_header

__all__ = [
    "encode_cursor",
    "decode_cursor",
    "UNDEFINED_SENTINEL",
    "UNDEFINED",
    "Direction",
    "SortField",
    "SortSpec",
    "get_path",
    "boundary_values",
    "compare_values",
    "sort_documents",
    "PaginationConfig",
    "FindParams",
    "PaginationRequest",
    "clamp_limit",
    "sanitize_params",
    "resolve_boundary",
    "resolve_request",
    "StoreQuery",
    "synthesize",
    "generate_cursor_query",
    "generate_sort",
    "build_store_query",
    "Page",
    "assemble",
    "build_cursor",
    "FieldSet",
    "dot_field_intersect",
    "resolve_fields",
    "ensure_sort_fields",
    "project",
    "strip_fields",
    "find",
    "parse_query",
    "find_with_request",
    "parse_sort",
    "create_link_header",
]
