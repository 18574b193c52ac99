"""Projection whitelisting and projection helpers.

Field paths are handled as sets of dotted paths. The intersection of two sets
keeps the narrowest of any two related paths, so a broad request narrowed by a
specific allowance yields the specific allowance, and a specific request under
a broad allowance yields the specific request.
"""

import copy
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors.problem_details import NoValidFieldsError
from .ordering import SortSpec

Path = Tuple[str, ...]


def _is_prefix(prefix: Path, path: Path) -> bool:
    return path[:len(prefix)] == prefix


class FieldSet:
    """An immutable set of field paths.

    The empty path ``()`` stands for the whole document. Paths that have an
    ancestor in the set are redundant and are dropped.
    """

    def __init__(self, paths: Iterable[Sequence[str]] = ()):
        unique = {tuple(p) for p in paths}
        self._paths = frozenset(
            p for p in unique
            if not any(q != p and _is_prefix(q, p) for q in unique)
        )

    @classmethod
    def from_dotted(cls, dotted: Iterable[str]) -> "FieldSet":
        return cls(tuple(d.split(".")) for d in dotted)

    @classmethod
    def everything(cls) -> "FieldSet":
        return cls([()])

    @property
    def paths(self) -> frozenset:
        return self._paths

    def intersect(self, other: "FieldSet") -> "FieldSet":
        """Narrowest intersection of two field sets."""
        result = []
        for a in self._paths:
            for b in other._paths:
                if _is_prefix(b, a):
                    result.append(a)
                elif _is_prefix(a, b):
                    result.append(b)
        return FieldSet(result)

    def union(self, other: "FieldSet") -> "FieldSet":
        return FieldSet(self._paths | other._paths)

    def is_empty(self) -> bool:
        return not self._paths

    def is_everything(self) -> bool:
        return () in self._paths

    def contains(self, path: Sequence[str]) -> bool:
        """Whether ``path`` is fully covered by this set."""
        path = tuple(path)
        return any(_is_prefix(p, path) for p in self._paths)

    def to_dotted(self) -> List[str]:
        return sorted(".".join(p) for p in self._paths if p)

    def to_projection(self) -> Dict[str, int]:
        """Inclusion projection; empty when the whole document is included."""
        return {dotted: 1 for dotted in self.to_dotted()}

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FieldSet) and self._paths == other._paths

    def __repr__(self) -> str:
        if self.is_everything():
            return "FieldSet(<everything>)"
        return f"FieldSet({self.to_dotted()!r})"


def dot_field_intersect(fields_a: Iterable[str], fields_b: Iterable[str]) -> List[str]:
    """Narrowest intersection of two lists of dotted fields."""
    return FieldSet.from_dotted(fields_a).intersect(FieldSet.from_dotted(fields_b)).to_dotted()


def fields_from_projection(
    projection: Optional[Mapping[str, Any]],
    id_field: str = "_id",
    include_id_default: bool = False
) -> FieldSet:
    """Build a field set from an inclusion projection.

    Raises:
        ValueError: If the projection excludes any field other than the id
    """
    included = []
    for key, value in (projection or {}).items():
        if key != id_field and value is not None and not value:
            raise ValueError("Projection includes an exclusion, which is only supported for the id")
        if value or (key == id_field and value is None and include_id_default):
            included.append(key)
    return FieldSet.from_dotted(included)


def resolve_fields(
    desired: Optional[Sequence[str]] = None,
    allowed: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    id_field: str = "_id"
) -> Dict[str, int]:
    """Resolve untrusted requested fields against an application whitelist.

    Args:
        desired: Dotted fields requested by the caller; empty means no restriction
        allowed: Inclusion projection of permitted fields; None allows anything,
            an empty mapping allows nothing
        overrides: Projection of fields always included, or ``{id: 0}`` to
            drop the id
        id_field: Name of the identity field

    Returns:
        The projection to send to the store; empty means all fields

    Raises:
        NoValidFieldsError: If no fields survive the whitelist
        ValueError: If ``allowed`` or ``overrides`` exclude a non-id field
    """
    desired_set = FieldSet.from_dotted(desired) if desired else FieldSet.everything()
    allowed_set = FieldSet.everything() if allowed is None else fields_from_projection(allowed, id_field)

    fields = desired_set.intersect(allowed_set).union(fields_from_projection(overrides, id_field))
    if fields.is_empty():
        raise NoValidFieldsError(
            "None of the requested fields are permitted",
            requested_fields=list(desired or []),
        )

    projection = fields.to_projection()
    disable_id = bool(overrides) and id_field in overrides and not overrides[id_field]
    if not fields.contains((id_field,)) or disable_id:
        projection[id_field] = 0
    return projection


def ensure_sort_fields(
    projection: Optional[Mapping[str, Any]],
    sort: SortSpec
) -> Tuple[Optional[Dict[str, Any]], List[str]]:
    """Make every sort field and the id retrievable under ``projection``.

    Returns:
        Tuple of (projection, injected fields the caller did not ask for)
    """
    if not projection:
        return None, []

    id_field = sort.id_field
    if not any(projection.values()):
        # Exclusion-only projection: everything but the id is already present
        if projection.get(id_field, 1):
            return dict(projection), []
        return {k: v for k, v in projection.items() if k != id_field} or None, [id_field]

    result = dict(projection)
    included = FieldSet.from_dotted(k for k, v in result.items() if v)
    injected = []
    for path in sort.paths:
        if path != id_field and not included.contains(path.split(".")):
            result[path] = 1
            injected.append(path)
    if not result.get(id_field, 1):
        result[id_field] = 1
        injected.append(id_field)
    return result, injected


def _copy_path(source: Any, target: Dict[str, Any], parts: Sequence[str]) -> None:
    head, rest = parts[0], parts[1:]
    if not isinstance(source, Mapping) or head not in source:
        return
    value = source[head]
    if not rest:
        target[head] = copy.deepcopy(value)
    elif isinstance(value, Mapping):
        child = target.setdefault(head, {})
        if isinstance(child, dict):
            _copy_path(value, child, rest)
    elif isinstance(value, list):
        items = target.setdefault(head, [{} for _ in value])
        for item, child in zip(value, items):
            if isinstance(item, Mapping) and isinstance(child, dict):
                _copy_path(item, child, rest)


def project(doc: Mapping[str, Any], projection: Optional[Mapping[str, Any]], id_field: str = "_id") -> Dict[str, Any]:
    """Apply an inclusion projection (or a lone id exclusion) to a document."""
    if not projection:
        return copy.deepcopy(dict(doc))

    include_id = bool(projection.get(id_field, 1))
    inclusions = [path for path, value in projection.items() if value and path != id_field]

    if not inclusions and not projection.get(id_field):
        result = copy.deepcopy(dict(doc))
        if not include_id:
            result.pop(id_field, None)
        return result

    result: Dict[str, Any] = {}
    if include_id and id_field in doc:
        result[id_field] = copy.deepcopy(doc[id_field])
    for path in inclusions:
        _copy_path(doc, result, path.split("."))
    return result


def strip_fields(doc: Mapping[str, Any], paths: Iterable[str]) -> Dict[str, Any]:
    """Return a copy of ``doc`` without the given dotted paths."""
    result = dict(doc)
    for path in paths:
        _drop_path(result, path.split("."))
    return result


def _drop_path(doc: Dict[str, Any], parts: Sequence[str]) -> None:
    head, rest = parts[0], parts[1:]
    if head not in doc:
        return
    if not rest:
        del doc[head]
        return
    value = doc[head]
    if isinstance(value, Mapping):
        doc[head] = dict(value)
        _drop_path(doc[head], rest)
