"""Coercion of raw filter scalars into typed values."""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from pyfilter2sql._constants import DATE_FORMATS, NULL_SENTINELS
from pyfilter2sql._errors import ERR_MSG_TYPE_MISMATCH, TypeMismatchError
from pyfilter2sql.predicate import NULL, PRIMITIVE_TYPES, TypedValue, ValueType

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")

_BOOL_LITERALS: dict[str, bool] = {
    "true": True, "yes": True, "1": True, "y": True,
    "false": False, "no": False, "0": False, "n": False,
}

# Schema type name -> primitive type
_TYPE_NAMES: dict[str, ValueType] = {
    "bool": ValueType.BOOL,
    "boolean": ValueType.BOOL,
    "int": ValueType.INT,
    "integer": ValueType.INT,
    "smallint": ValueType.INT,
    "bigint": ValueType.INT,
    "double": ValueType.DOUBLE,
    "double precision": ValueType.DOUBLE,
    "float": ValueType.DOUBLE,
    "real": ValueType.DOUBLE,
    "numeric": ValueType.DOUBLE,
    "decimal": ValueType.DOUBLE,
    "string": ValueType.STRING,
    "text": ValueType.STRING,
    "varchar": ValueType.STRING,
    "uuid": ValueType.STRING,
    "date": ValueType.DATE,
    "datetime": ValueType.DATE,
    "timestamp": ValueType.DATE,
    "timestamptz": ValueType.DATE,
}


def normalize_type(type_name: str | ValueType | None) -> ValueType | None:
    """Map a schema type name to a primitive type, or None if unknown."""
    if type_name is None:
        return None
    if isinstance(type_name, ValueType):
        return type_name if type_name in PRIMITIVE_TYPES else None
    return _TYPE_NAMES.get(type_name.strip().lower())


def is_null_sentinel(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and raw in NULL_SENTINELS)


# ---- Per-type parsers: return None when the raw value does not fit ----


def parse_bool(raw: Any) -> bool | None:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        return _BOOL_LITERALS.get(raw.strip().lower())
    return None


def parse_int(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str) and _INT_RE.match(raw.strip()):
        return int(raw.strip())
    return None


def parse_double(raw: Any) -> float | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None
    if isinstance(raw, str) and _FLOAT_RE.match(raw.strip()):
        return float(raw.strip())
    return None


def _from_epoch(seconds: float) -> datetime | None:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_date(raw: Any) -> datetime | None:
    """Parse a date trying :data:`DATE_FORMATS` in order, then epoch seconds."""
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return _from_epoch(float(raw))
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    if _FLOAT_RE.match(text):
        return _from_epoch(float(text))
    return None


def parse_string(raw: Any) -> str | None:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, (int, float)):
        return str(raw)
    return None


_PARSERS: dict[ValueType, Callable[[Any], Any]] = {
    ValueType.BOOL: parse_bool,
    ValueType.INT: parse_int,
    ValueType.DOUBLE: parse_double,
    ValueType.DATE: parse_date,
    ValueType.STRING: parse_string,
}

# Inference order for textual scalars of unknown type.
_INFERENCE_ORDER = (
    ValueType.BOOL,
    ValueType.INT,
    ValueType.DOUBLE,
    ValueType.DATE,
    ValueType.STRING,
)


def _mismatch(raw: Any, declared: ValueType | str) -> TypeMismatchError:
    return TypeMismatchError(
        ERR_MSG_TYPE_MISMATCH,
        f"cannot coerce {raw!r} to {declared}",
    )


def _infer(raw: Any) -> TypedValue:
    # JSON-typed scalars keep their type; only text is inferred.
    if isinstance(raw, bool):
        return TypedValue(ValueType.BOOL, raw)
    if isinstance(raw, int):
        return TypedValue(ValueType.INT, raw)
    if isinstance(raw, float):
        return TypedValue(ValueType.DOUBLE, raw)
    if isinstance(raw, str):
        for value_type in _INFERENCE_ORDER:
            value = _PARSERS[value_type](raw)
            if value is not None:
                return TypedValue(value_type, value)
    raise _mismatch(raw, "a scalar")


def coerce(raw: Any, declared: ValueType | None = None) -> TypedValue:
    """Coerce a raw scalar to a :class:`TypedValue`.

    With ``declared`` set, the raw value must parse as exactly that type.
    Without it, text is tried as bool, int, double, date and finally string.

    Raises:
        TypeMismatchError: If the value cannot be coerced.
    """
    if raw is None:
        return NULL
    if declared is None:
        return _infer(raw)
    parser = _PARSERS.get(declared)
    if parser is None:
        raise ValueError(f"{declared} is not a primitive type")
    value = parser(raw)
    if value is None:
        raise _mismatch(raw, declared)
    return TypedValue(declared, value)


def coerce_multiple(raws: Sequence[Any], declared: ValueType | None = None) -> TypedValue:
    """Coerce each element, returning an ``ARRAY`` typed value."""
    return TypedValue(ValueType.ARRAY, tuple(coerce(raw, declared) for raw in raws))


def _coerce_bounds(
    bounds: Sequence[Any], value_type: ValueType
) -> list[TypedValue | None] | None:
    parser = _PARSERS[value_type]
    result: list[TypedValue | None] = []
    for bound in bounds:
        if bound is None:
            result.append(None)
            continue
        value = parser(bound)
        if value is None:
            return None
        result.append(TypedValue(value_type, value))
    return result


def coerce_range(
    lower: Any, upper: Any, declared: ValueType | None = None
) -> tuple[TypedValue | None, TypedValue | None]:
    """Coerce range bounds; a null-sentinel bound becomes ``None`` (unbounded).

    Without a declared type both bounds are tried as numbers, then as
    dates, then compared as strings, always sharing one type.

    Raises:
        TypeMismatchError: If a bound does not fit the declared type.
    """
    bounds = [None if is_null_sentinel(b) else b for b in (lower, upper)]
    if declared is not None:
        coerced = _coerce_bounds(bounds, declared)
        if coerced is None:
            raise _mismatch(bounds, declared)
        return coerced[0], coerced[1]

    for value_type in (ValueType.INT, ValueType.DOUBLE, ValueType.DATE, ValueType.STRING):
        coerced = _coerce_bounds(bounds, value_type)
        if coerced is not None:
            return coerced[0], coerced[1]
    raise _mismatch(bounds, "a range")
