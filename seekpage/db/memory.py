"""In-memory document store."""

import copy
import functools
import itertools
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..pagination.fields import project
from ..pagination.ordering import (
    UNDEFINED,
    compare_values,
    document_comparator,
    fold,
    get_path,
    in_null_bucket,
    type_rank,
)
from ..pagination.query import StoreQuery
from .store import DocumentStore


logger = logging.getLogger(__name__)


def _equals(value: Any, target: Any) -> bool:
    if target is None:
        return in_null_bucket(value)
    if in_null_bucket(value):
        return False
    return type_rank(value) == type_rank(target) and compare_values(value, target) == 0


def _compare(value: Any, target: Any) -> Optional[int]:
    """Compare within one type bracket; None when the values are not comparable."""
    if in_null_bucket(value) or in_null_bucket(target):
        return None
    if type_rank(value) != type_rank(target):
        return None
    return compare_values(value, target)


def _match_operators(value: Any, operators: Mapping[str, Any]) -> bool:
    for op, target in operators.items():
        if op == "$eq":
            ok = _equals(value, target)
        elif op == "$ne":
            ok = not _equals(value, target)
        elif op in ("$gt", "$gte", "$lt", "$lte"):
            result = _compare(value, target)
            ok = result is not None and {
                "$gt": result > 0,
                "$gte": result >= 0,
                "$lt": result < 0,
                "$lte": result <= 0,
            }[op]
        elif op == "$in":
            ok = any(_equals(value, t) for t in target)
        elif op == "$nin":
            ok = not any(_equals(value, t) for t in target)
        elif op == "$exists":
            ok = (value is not UNDEFINED) == bool(target)
        else:
            raise ValueError(f"Unsupported filter operator: {op}")
        if not ok:
            return False
    return True


def _is_operator_block(condition: Any) -> bool:
    return (
        isinstance(condition, Mapping)
        and bool(condition)
        and all(isinstance(k, str) and k.startswith("$") for k in condition)
    )


def matches(doc: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    """Evaluate a filter against a document."""
    for key, condition in filter.items():
        if key == "$and":
            if not all(matches(doc, c) for c in condition):
                return False
        elif key == "$or":
            if not any(matches(doc, c) for c in condition):
                return False
        elif key.startswith("$"):
            raise ValueError(f"Unsupported filter operator: {key}")
        else:
            value = get_path(doc, key)
            if _is_operator_block(condition):
                if not _match_operators(value, condition):
                    return False
            elif not _equals(value, condition):
                return False
    return True


class MemoryStore(DocumentStore):
    """Document store holding its documents in a list.

    Documents without an id get the next value of an increasing integer
    sequence, so insertion order and id order agree.
    """

    def __init__(self, documents: Iterable[Mapping[str, Any]] = (), id_field: str = "_id"):
        self.id_field = id_field
        self._documents: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)
        self.insert_many(documents)

    def insert(self, document: Mapping[str, Any]) -> Dict[str, Any]:
        doc = copy.deepcopy(dict(document))
        if self.id_field not in doc:
            doc[self.id_field] = next(self._ids)
        self._documents.append(doc)
        return copy.deepcopy(doc)

    def insert_many(self, documents: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        return [self.insert(doc) for doc in documents]

    def __len__(self) -> int:
        return len(self._documents)

    def _view(self, doc: Dict[str, Any], folded: Mapping[str, str]) -> Dict[str, Any]:
        if not folded:
            return doc
        view = dict(doc)
        for name, source in folded.items():
            view[name] = fold(get_path(doc, source))
        return view

    async def find(self, query: StoreQuery) -> List[Dict[str, Any]]:
        views = []
        for doc in self._documents:
            view = self._view(doc, query.folded)
            if matches(view, query.filter):
                views.append((view, doc))

        comparator = document_comparator(query.sort)
        views.sort(key=functools.cmp_to_key(lambda a, b: comparator(a[0], b[0])))
        if query.limit is not None:
            views = views[:query.limit]
        logger.debug(f"Matched {len(views)} of {len(self._documents)} documents")
        return [project(doc, query.projection, self.id_field) for _, doc in views]

    async def find_one(self, doc_id: Any, fields: Sequence[str]) -> Optional[Dict[str, Any]]:
        for doc in self._documents:
            if _equals(doc.get(self.id_field, UNDEFINED), doc_id):
                projection = {field: 1 for field in fields}
                projection.setdefault(self.id_field, 0)
                return project(doc, projection, self.id_field)
        return None

    async def count(self, filter: Dict[str, Any]) -> int:
        return sum(1 for doc in self._documents if matches(doc, filter))
