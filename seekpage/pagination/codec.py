"""Opaque cursor encoding.

A cursor is a boundary tuple serialized to canonical, type-tagged JSON and
then encoded with URL-safe base64 (padding stripped), so it can be passed as a
single query-string value without further escaping.

JSON has no "absent" value, so ``UNDEFINED`` positions are written as a
private sentinel literal and restored on decode.
"""

import base64
import binascii
import json
import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from ..errors.problem_details import InvalidCursorError
from .ordering import UNDEFINED

UNDEFINED_SENTINEL = "__seekpage__undefined__"

MAX_CURSOR_LENGTH = 8192
MAX_NESTING = 32

_NON_FINITE = {"NaN": math.nan, "Infinity": math.inf, "-Infinity": -math.inf}


def _to_json(value: Any) -> Any:
    if value is UNDEFINED:
        return UNDEFINED_SENTINEL
    if value is None or isinstance(value, (bool, str, int)):
        return value
    if isinstance(value, float):
        if math.isfinite(value):
            return value
        return {"$float": "NaN" if math.isnan(value) else ("Infinity" if value > 0 else "-Infinity")}
    if isinstance(value, datetime):
        return {"$date": value.isoformat()}
    if isinstance(value, date):
        return {"$day": value.isoformat()}
    if isinstance(value, UUID):
        return {"$uuid": str(value)}
    if isinstance(value, Decimal):
        return {"$decimal": str(value)}
    if isinstance(value, (bytes, bytearray)):
        return {"$bytes": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, Mapping):
        return {"$doc": {str(k): _to_json(v) for k, v in value.items()}}
    if isinstance(value, (list, tuple)):
        return [_to_json(v) for v in value]
    raise TypeError(f"Cannot encode {type(value).__name__} in a cursor")


def _from_json(value: Any, depth: int = 0) -> Any:
    if depth > MAX_NESTING:
        raise ValueError(f"nesting deeper than {MAX_NESTING} levels")
    if value == UNDEFINED_SENTINEL:
        return UNDEFINED
    if isinstance(value, list):
        return [_from_json(v, depth + 1) for v in value]
    if not isinstance(value, dict):
        return value

    if len(value) != 1:
        raise ValueError("tagged value must have exactly one key")
    tag, payload = next(iter(value.items()))
    if tag == "$doc" and isinstance(payload, dict):
        return {k: _from_json(v, depth + 1) for k, v in payload.items()}
    if not isinstance(payload, str):
        raise ValueError(f"invalid payload for {tag}")
    if tag == "$date":
        return datetime.fromisoformat(payload)
    if tag == "$day":
        return date.fromisoformat(payload)
    if tag == "$uuid":
        return UUID(payload)
    if tag == "$decimal":
        return Decimal(payload)
    if tag == "$bytes":
        return base64.b64decode(payload, validate=True)
    if tag == "$float" and payload in _NON_FINITE:
        return _NON_FINITE[payload]
    raise ValueError(f"unknown tag {tag!r}")


def encode_cursor(values: Sequence[Any]) -> str:
    """Encode a boundary tuple as an opaque, URL-safe cursor string.

    Args:
        values: The boundary values, one per sort field plus the id

    Returns:
        Cursor string

    Raises:
        TypeError: If a value has no cursor representation
    """
    payload = json.dumps(
        [_to_json(v) for v in values],
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: str, arity: Optional[int] = None) -> Tuple[Any, ...]:
    """Decode a cursor string back into its boundary tuple.

    Args:
        cursor: Cursor string produced by ``encode_cursor``
        arity: Expected number of values, checked when given

    Returns:
        The boundary tuple

    Raises:
        InvalidCursorError: If the cursor is malformed, tampered with or has
            the wrong shape
    """
    if not cursor or not isinstance(cursor, str):
        raise InvalidCursorError("Empty cursor provided")
    if len(cursor) > MAX_CURSOR_LENGTH:
        raise InvalidCursorError(f"Cursor exceeds {MAX_CURSOR_LENGTH} characters")

    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        raw = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
        decoded = json.loads(raw.decode("utf-8"), parse_constant=_reject_constant)
        if not isinstance(decoded, list):
            raise ValueError("cursor payload is not an array")
        values = tuple(_from_json(v) for v in decoded)
    except (ValueError, TypeError, RecursionError, binascii.Error, UnicodeError, InvalidOperation) as e:
        raise InvalidCursorError(f"Invalid cursor format: {e}") from e

    if arity is not None and len(values) != arity:
        raise InvalidCursorError(f"Cursor has {len(values)} values, expected {arity}")
    return values


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")
