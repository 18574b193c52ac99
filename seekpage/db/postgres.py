"""PostgreSQL document store over a JSONB ``documents`` table."""

import base64
import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence
from uuid import UUID

import asyncpg
from asyncpg import Pool

from ..errors.problem_details import InvalidCursorError, StoreError
from ..pagination.fields import project
from ..pagination.query import StoreQuery, StoreSort
from .store import DocumentStore


logger = logging.getLogger(__name__)

_RANGE_OPERATORS = {"$gt": ">", "$gte": ">=", "$lt": "<", "$lte": "<="}


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(value: Any) -> str:
    return json.dumps(value, default=_json_default)


def _to_uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


def _is_operator_block(condition: Any) -> bool:
    return (
        isinstance(condition, Mapping)
        and bool(condition)
        and all(isinstance(k, str) and k.startswith("$") for k in condition)
    )


class SqlCompiler:
    """Compiles the filter dialect and store sorts into parameterized SQL.

    Document fields are read as ``body #> path``; the id field maps to the
    ``id`` column. Null and absent are both treated as the null bucket.
    """

    def __init__(self, id_field: str = "_id", folded: Optional[Mapping[str, str]] = None, params: Optional[List[Any]] = None):
        self.id_field = id_field
        self.folded = dict(folded or {})
        self.params: List[Any] = list(params or [])

    def add(self, value: Any) -> str:
        """Register a query parameter and return its placeholder."""
        self.params.append(value)
        return f"${len(self.params)}"

    def expression(self, path: str) -> str:
        """SQL expression yielding the jsonb value of ``path`` (NULL when absent)."""
        if path in self.folded:
            raw = self.expression(self.folded[path])
            return (
                f"(CASE WHEN jsonb_typeof({raw}) = 'string' "
                f"THEN to_jsonb(lower({raw} #>> '{{}}')) ELSE {raw} END)"
            )
        return f"(body #> {self.add(path.split('.'))}::text[])"

    def compile(self, filter: Mapping[str, Any]) -> str:
        """Compile a filter into a boolean SQL expression."""
        parts = []
        for key, condition in filter.items():
            if key == "$and":
                parts.append(self._join([self.compile(c) for c in condition], "AND", "TRUE"))
            elif key == "$or":
                parts.append(self._join([self.compile(c) for c in condition], "OR", "FALSE"))
            elif key.startswith("$"):
                raise ValueError(f"Unsupported filter operator: {key}")
            elif key == self.id_field:
                parts.append(self._id_condition(condition))
            else:
                parts.append(self._field_condition(key, condition))
        return self._join(parts, "AND", "TRUE")

    def order_by(self, sort: StoreSort) -> str:
        """Compile store sort entries into an ORDER BY list."""
        entries = []
        for path, order in sort:
            direction = "ASC" if order > 0 else "DESC"
            if path == self.id_field:
                entries.append(f"id {direction}")
            else:
                # jsonb null sorts below every other value
                entries.append(f"COALESCE({self.expression(path)}, 'null'::jsonb) {direction}")
        return ", ".join(entries)

    @staticmethod
    def _join(parts: Sequence[str], op: str, empty: str) -> str:
        if not parts:
            return empty
        if len(parts) == 1:
            return parts[0]
        return "(" + f" {op} ".join(parts) + ")"

    def _field_condition(self, path: str, condition: Any) -> str:
        expr = self.expression(path)
        if _is_operator_block(condition):
            return self._join([self._operator(expr, op, t) for op, t in condition.items()], "AND", "TRUE")
        return self._operator(expr, "$eq", condition)

    def _operator(self, expr: str, op: str, target: Any) -> str:
        is_null = f"({expr} IS NULL OR {expr} = 'null'::jsonb)"
        not_null = f"({expr} IS NOT NULL AND {expr} <> 'null'::jsonb)"

        if op == "$eq":
            if target is None:
                return is_null
            return f"{expr} = {self.add(to_json(target))}::jsonb"
        if op == "$ne":
            if target is None:
                return not_null
            return f"({expr} IS NULL OR {expr} <> {self.add(to_json(target))}::jsonb)"
        if op in _RANGE_OPERATORS:
            if target is None:
                return "FALSE"
            p = self.add(to_json(target))
            return f"(jsonb_typeof({expr}) = jsonb_typeof({p}::jsonb) AND {expr} {_RANGE_OPERATORS[op]} {p}::jsonb)"
        if op in ("$in", "$nin"):
            values = [to_json(t) for t in target if t is not None]
            options = []
            if values:
                options.append(f"{expr} = ANY({self.add(values)}::jsonb[])")
            if any(t is None for t in target):
                options.append(is_null)
            member = self._join(options, "OR", "FALSE")
            if op == "$in":
                return member
            return f"NOT COALESCE({member}, FALSE)"
        if op == "$exists":
            return f"{expr} IS NOT NULL" if target else f"{expr} IS NULL"
        raise ValueError(f"Unsupported filter operator: {op}")

    @staticmethod
    def _id_value(value: Any) -> UUID:
        try:
            return _to_uuid(value)
        except (TypeError, ValueError) as e:
            raise InvalidCursorError(f"Invalid id value {value!r}: {e}") from e

    def _id_param(self, value: Any) -> str:
        return self.add(self._id_value(value))

    def _id_condition(self, condition: Any) -> str:
        if not _is_operator_block(condition):
            condition = {"$eq": condition}
        parts = []
        for op, target in condition.items():
            if op == "$eq":
                parts.append("FALSE" if target is None else f"id = {self._id_param(target)}::uuid")
            elif op == "$ne":
                parts.append("TRUE" if target is None else f"id <> {self._id_param(target)}::uuid")
            elif op in _RANGE_OPERATORS:
                if target is None:
                    parts.append("FALSE")
                else:
                    parts.append(f"id {_RANGE_OPERATORS[op]} {self._id_param(target)}::uuid")
            elif op in ("$in", "$nin"):
                ids = [self._id_value(t) for t in target if t is not None]
                member = f"id = ANY({self.add(ids)}::uuid[])" if ids else "FALSE"
                parts.append(member if op == "$in" else f"NOT ({member})")
            elif op == "$exists":
                parts.append("TRUE" if target else "FALSE")
            else:
                raise ValueError(f"Unsupported filter operator: {op}")
        return self._join(parts, "AND", "TRUE")


class PostgresStore(DocumentStore):
    """Document store reading one collection of the documents table."""

    def __init__(self, pool: Pool, collection: str, table: str = "documents", id_field: str = "_id"):
        self.pool = pool
        self.collection = collection
        self.table = table
        self.id_field = id_field

    def _compiler(self, folded: Optional[Mapping[str, str]] = None) -> SqlCompiler:
        return SqlCompiler(self.id_field, folded, params=[self.collection])

    def _row_to_document(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        body = row["body"]
        if isinstance(body, str):
            body = json.loads(body)
        doc = dict(body)
        doc[self.id_field] = row["id"]
        return doc

    async def _run(self, method: str, sql: str, *args: Any) -> Any:
        logger.debug(f"Executing on '{self.collection}': {sql}")
        try:
            async with self.pool.acquire() as conn:
                return await getattr(conn, method)(sql, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error(f"Database error querying collection '{self.collection}': {e}")
            raise StoreError(f"Database error: {e}") from e

    def build_find_sql(self, query: StoreQuery) -> tuple[str, List[Any]]:
        """Build the SELECT statement and parameters for ``query``."""
        compiler = self._compiler(query.folded)
        where = compiler.compile(query.filter)
        sql = f'SELECT id, body FROM "{self.table}" WHERE collection = $1 AND {where}'
        order = compiler.order_by(query.sort)
        if order:
            sql += f" ORDER BY {order}"
        if query.limit is not None:
            sql += f" LIMIT {compiler.add(query.limit)}"
        return sql, compiler.params

    async def find(self, query: StoreQuery) -> List[Dict[str, Any]]:
        sql, params = self.build_find_sql(query)
        rows = await self._run("fetch", sql, *params)
        return [
            project(self._row_to_document(row), query.projection, self.id_field)
            for row in rows
        ]

    async def find_one(self, doc_id: Any, fields: Sequence[str]) -> Optional[Dict[str, Any]]:
        try:
            uuid = _to_uuid(doc_id)
        except ValueError:
            logger.debug(f"Ignoring lookup of non-UUID id {doc_id!r}")
            return None

        row = await self._run(
            "fetchrow",
            f'SELECT id, body FROM "{self.table}" WHERE collection = $1 AND id = $2',
            self.collection,
            uuid,
        )
        if row is None:
            return None
        projection = {field: 1 for field in fields}
        projection.setdefault(self.id_field, 0)
        return project(self._row_to_document(row), projection, self.id_field)

    async def count(self, filter: Dict[str, Any]) -> int:
        compiler = self._compiler()
        where = compiler.compile(filter)
        sql = f'SELECT count(*) FROM "{self.table}" WHERE collection = $1 AND {where}'
        return await self._run("fetchval", sql, *compiler.params)

    async def insert(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert one document and return it with its generated id."""
        row = await self._run(
            "fetchrow",
            f'INSERT INTO "{self.table}" (collection, body) VALUES ($1, $2::jsonb) RETURNING id, body',
            self.collection,
            to_json({k: v for k, v in body.items() if k != self.id_field}),
        )
        return self._row_to_document(row)

    async def insert_many(self, bodies: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        return [await self.insert(body) for body in bodies]
