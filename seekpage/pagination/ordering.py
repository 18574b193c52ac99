"""Sort specifications and the total order they define over documents.

A sort specification is a non-empty sequence of fields, each ascending or
descending and optionally case-insensitive. The document identity field is
appended as a final tie-break (unless it is already the last field), so no two
documents ever compare equal.

Null and absent values share one ordering bucket: it sorts before every
present value in ascending order and after every present value in descending
order. Within the bucket documents are ordered by the tie-break only.
"""

import functools
import math
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, NamedTuple, Sequence, Tuple, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _Undefined:
    """Marker for a field that is absent from a document."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_Undefined, ())


UNDEFINED = _Undefined()

FOLDED_PREFIX = "__lower_case_value_"


class Direction(str, Enum):
    """Which way a page request walks the sort order."""

    FORWARD = "forward"
    BACKWARD = "backward"


class SortField(BaseModel):
    """One field of a sort specification."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(min_length=1, description="Dotted path of the field to sort on")
    ascending: bool = Field(default=True, description="Sort ascending when true")
    case_insensitive: bool = Field(default=False, description="Order strings by their lower-cased value")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Reject empty path segments and operator-like names."""
        if any(not part for part in v.split(".")):
            raise ValueError(f"Invalid sort path: {v!r}")
        if v.startswith("$"):
            raise ValueError(f"Sort path may not start with '$': {v!r}")
        return v


class SortKey(NamedTuple):
    """A direction-adjusted key of the effective total order."""

    path: str
    store_path: str
    ascending: bool
    case_insensitive: bool
    nullable: bool


SortFieldLike = Union[SortField, str, Tuple[str, bool], Mapping[str, Any]]


class SortSpec(BaseModel):
    """An ordered, non-empty list of sort fields plus the identity tie-break."""

    model_config = ConfigDict(frozen=True)

    fields: Tuple[SortField, ...] = Field(min_length=1)
    id_field: str = "_id"

    @model_validator(mode="after")
    def validate_fields(self) -> "SortSpec":
        paths = [f.path for f in self.fields]
        if len(set(paths)) != len(paths):
            raise ValueError(f"Duplicate sort fields: {paths}")
        if self.id_field in paths[:-1]:
            raise ValueError(f"'{self.id_field}' may only appear as the last sort field")
        return self

    @classmethod
    def single(
        cls,
        path: str = "_id",
        ascending: bool = True,
        case_insensitive: bool = False,
        id_field: str = "_id",
    ) -> "SortSpec":
        """Build a single-field sort specification."""
        return cls(
            fields=(SortField(path=path, ascending=ascending, case_insensitive=case_insensitive),),
            id_field=id_field,
        )

    @classmethod
    def of(cls, fields: Iterable[SortFieldLike], id_field: str = "_id") -> "SortSpec":
        """Build a multi-field sort specification.

        Each entry may be a ``SortField``, a path (ascending), a
        ``(path, ascending)`` pair or a mapping of ``SortField`` attributes.
        """
        built = []
        for entry in fields:
            if isinstance(entry, SortField):
                built.append(entry)
            elif isinstance(entry, str):
                built.append(SortField(path=entry))
            elif isinstance(entry, tuple):
                built.append(SortField(path=entry[0], ascending=entry[1]))
            else:
                built.append(SortField(**entry))
        return cls(fields=tuple(built), id_field=id_field)

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.fields]

    @property
    def appends_tie_break(self) -> bool:
        """Whether the identity field is appended after the explicit fields."""
        return self.fields[-1].path != self.id_field

    @property
    def cursor_arity(self) -> int:
        """Number of values in a boundary tuple: one per field plus the id."""
        return len(self.fields) + 1

    @property
    def folded_fields(self) -> Dict[str, str]:
        """Derived case-folded field names mapped to their source paths."""
        return {folded_path(f.path): f.path for f in self.fields if f.case_insensitive}

    def keys(self, direction: Direction = Direction.FORWARD) -> List[SortKey]:
        """Return the effective ordered keys for ``direction``.

        Backward reverses the polarity of every key, including the tie-break.
        """
        flip = direction is Direction.BACKWARD
        keys = [
            SortKey(
                path=f.path,
                store_path=folded_path(f.path) if f.case_insensitive else f.path,
                ascending=f.ascending != flip,
                case_insensitive=f.case_insensitive,
                nullable=f.path != self.id_field,
            )
            for f in self.fields
        ]
        if self.appends_tie_break:
            keys.append(SortKey(
                path=self.id_field,
                store_path=self.id_field,
                ascending=self.fields[-1].ascending != flip,
                case_insensitive=False,
                nullable=False,
            ))
        return keys

    def key_values(self, boundary: Sequence[Any]) -> List[Any]:
        """Align a boundary tuple with ``keys()``."""
        values = list(boundary[:len(self.fields)])
        if self.appends_tie_break:
            values.append(boundary[-1])
        return values


def folded_path(path: str) -> str:
    """Name of the derived field holding the lower-cased value of ``path``."""
    return FOLDED_PREFIX + path.replace(".", "_")


def get_path(doc: Any, path: str) -> Any:
    """Read a dotted path from a document, returning ``UNDEFINED`` when absent."""
    value = doc
    for part in path.split("."):
        if isinstance(value, Mapping):
            if part not in value:
                return UNDEFINED
            value = value[part]
        elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            return UNDEFINED
    return value


def in_null_bucket(value: Any) -> bool:
    return value is None or value is UNDEFINED


def fold(value: Any) -> Any:
    """Lower-case strings; every other value is returned unchanged."""
    if isinstance(value, str):
        return value.lower()
    return value


def boundary_values(doc: Mapping[str, Any], sort: SortSpec) -> Tuple[Any, ...]:
    """Extract the boundary tuple of ``doc``: folded field values plus the id."""
    values = []
    for field in sort.fields:
        value = get_path(doc, field.path)
        values.append(fold(value) if field.case_insensitive else value)
    values.append(get_path(doc, sort.id_field))
    return tuple(values)


# Type brackets, in BSON comparison order
_RANK_NULL = 0
_RANK_NUMBER = 1
_RANK_STRING = 2
_RANK_MAPPING = 3
_RANK_ARRAY = 4
_RANK_BYTES = 5
_RANK_IDENTITY = 6
_RANK_BOOL = 7
_RANK_DATE = 8


def type_rank(value: Any) -> int:
    """Return the comparison bracket of ``value``."""
    if in_null_bucket(value):
        return _RANK_NULL
    if isinstance(value, bool):
        return _RANK_BOOL
    if isinstance(value, (int, float, Decimal)):
        return _RANK_NUMBER
    if isinstance(value, str):
        return _RANK_STRING
    if isinstance(value, Mapping):
        return _RANK_MAPPING
    if isinstance(value, (list, tuple)):
        return _RANK_ARRAY
    if isinstance(value, (bytes, bytearray)):
        return _RANK_BYTES
    if isinstance(value, (datetime, date)):
        return _RANK_DATE
    return _RANK_IDENTITY


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def compare_values(a: Any, b: Any) -> int:
    """Compare two values under the store's total order.

    Returns a negative number, zero or a positive number. Values in different
    type brackets compare by bracket. Null and absent compare equal.
    """
    rank_a, rank_b = type_rank(a), type_rank(b)
    if rank_a != rank_b:
        return _cmp(rank_a, rank_b)

    if rank_a == _RANK_NULL:
        return 0
    if rank_a == _RANK_NUMBER:
        # NaN sorts below every other number
        nan_a = isinstance(a, float) and math.isnan(a)
        nan_b = isinstance(b, float) and math.isnan(b)
        if nan_a or nan_b:
            return _cmp(not nan_a, not nan_b)
        if isinstance(a, Decimal) or isinstance(b, Decimal):
            return _cmp(Decimal(str(a)), Decimal(str(b)))
        return _cmp(a, b)
    if rank_a == _RANK_MAPPING:
        for (key_a, value_a), (key_b, value_b) in zip(a.items(), b.items()):
            result = _cmp(key_a, key_b) or compare_values(value_a, value_b)
            if result:
                return result
        return _cmp(len(a), len(b))
    if rank_a == _RANK_ARRAY:
        for item_a, item_b in zip(a, b):
            result = compare_values(item_a, item_b)
            if result:
                return result
        return _cmp(len(a), len(b))
    if rank_a == _RANK_BYTES:
        return _cmp(len(a), len(b)) or _cmp(bytes(a), bytes(b))
    if rank_a == _RANK_DATE:
        return _cmp(_as_datetime(a), _as_datetime(b))
    if rank_a == _RANK_IDENTITY:
        if isinstance(a, UUID) and isinstance(b, UUID):
            return _cmp(a.bytes, b.bytes)
        if type(a) is not type(b):
            return _cmp(type(a).__name__, type(b).__name__)
    return _cmp(a, b)


def document_comparator(
    sort_entries: Sequence[Tuple[str, int]],
    read: Callable[[Mapping[str, Any], str], Any] = get_path,
) -> Callable[[Mapping[str, Any], Mapping[str, Any]], int]:
    """Build a ``cmp``-style function for ``(path, 1 | -1)`` sort entries."""

    def compare(doc_a: Mapping[str, Any], doc_b: Mapping[str, Any]) -> int:
        for path, order in sort_entries:
            result = compare_values(read(doc_a, path), read(doc_b, path))
            if result:
                return result if order > 0 else -result
        return 0

    return compare


def sort_documents(
    docs: Iterable[Mapping[str, Any]],
    sort: SortSpec,
    direction: Direction = Direction.FORWARD,
) -> List[Mapping[str, Any]]:
    """Sort documents in memory by the effective order of ``sort``."""
    keys = sort.keys(direction)
    entries = [(k.path, 1 if k.ascending else -1) for k in keys]
    folded = {k.path for k in keys if k.case_insensitive}

    def read(doc: Mapping[str, Any], path: str) -> Any:
        value = get_path(doc, path)
        return fold(value) if path in folded else value

    return sorted(docs, key=functools.cmp_to_key(document_comparator(entries, read)))
