"""Document store port consumed by the pagination engine."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from ..pagination.query import StoreQuery


class DocumentStore(ABC):
    """A sorted document collection the engine can page through.

    Adapters evaluate the Mongo-style filter dialect produced by
    ``seekpage.pagination.query``: ``$and``/``$or`` lists, plain equality,
    ``{path: None}`` for "null or absent" and the ``$eq``, ``$ne``, ``$gt``,
    ``$gte``, ``$lt``, ``$lte``, ``$in``, ``$nin`` and ``$exists`` operators.
    Range operators only match values of the same type as their operand.
    """

    id_field: str = "_id"

    @abstractmethod
    async def find(self, query: StoreQuery) -> List[Dict[str, Any]]:
        """Return up to ``query.limit`` projected rows in ``query.sort`` order."""

    @abstractmethod
    async def find_one(self, doc_id: Any, fields: Sequence[str]) -> Optional[Dict[str, Any]]:
        """Return the given fields of one document, or None if it does not exist."""

    @abstractmethod
    async def count(self, filter: Dict[str, Any]) -> int:
        """Count the documents matching ``filter``."""
