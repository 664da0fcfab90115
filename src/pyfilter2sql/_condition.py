"""Filter DSL: the Condition AST and its JSON decoder."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from pyfilter2sql._constants import DEFAULT_MAX_DEPTH
from pyfilter2sql._errors import (
    ERR_MSG_DEPTH_EXCEEDED,
    ERR_MSG_INVALID_FILTER,
    InvalidFilterConfigurationError,
    MaxDepthExceededError,
)
from pyfilter2sql._operators import (
    SENTINEL_OPERATORS,
    Operator,
    RangeKind,
    ValueShape,
    resolve,
)
from pyfilter2sql._range import SEPARATORS, parse_range_value

_SCALAR_TYPES = (str, int, float, bool, type(None))

# RangeKind -> separator used when re-encoding a literal
_KIND_SEPARATORS: dict[RangeKind, str] = {}
for _sep, _kind in SEPARATORS.items():
    _KIND_SEPARATORS.setdefault(_kind, _sep)


# ---- Value shapes ----


@dataclass(frozen=True)
class Single:
    raw: Any


@dataclass(frozen=True)
class Multiple:
    raws: tuple[Any, ...]


@dataclass(frozen=True)
class RangeValue:
    """Two raw bounds; ``kind`` is set when a range literal chose the inclusivity."""

    lower: Any
    upper: Any
    kind: RangeKind | None = None


Value = Union[Single, Multiple, RangeValue]


# ---- Conditions ----


@dataclass(frozen=True)
class Where:
    field: str
    operator: Operator
    value: Value

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "method": self.operator.value,
            "value": _encode_value(self.value),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass(frozen=True)
class And:
    conditions: tuple[Condition, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"and": [c.to_dict() for c in self.conditions]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass(frozen=True)
class Or:
    conditions: tuple[Condition, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"or": [c.to_dict() for c in self.conditions]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


Condition = Union[Where, And, Or]


def _encode_value(value: Value) -> Any:
    if isinstance(value, Single):
        return value.raw
    if isinstance(value, Multiple):
        return list(value.raws)
    if value.kind is None:
        return [value.lower, value.upper]
    lower = "<null>" if value.lower is None else value.lower
    upper = "<null>" if value.upper is None else value.upper
    return f"{lower}{_KIND_SEPARATORS[value.kind]}{upper}"


# ---- Decoding ----


def _invalid(details: str, wrapped: Exception | None = None) -> InvalidFilterConfigurationError:
    return InvalidFilterConfigurationError(ERR_MSG_INVALID_FILTER, details, wrapped)


def _is_scalar(raw: Any) -> bool:
    return isinstance(raw, _SCALAR_TYPES)


class _Decoder:
    """Decodes parsed JSON into a Condition tree, bounding nesting depth."""

    def __init__(self, max_depth: int) -> None:
        self._max_depth = max_depth
        self._depth = 0

    def decode(self, node: Any) -> Condition:
        self._depth += 1
        try:
            if self._depth > self._max_depth:
                raise MaxDepthExceededError(
                    ERR_MSG_DEPTH_EXCEEDED,
                    f"depth {self._depth} exceeds limit {self._max_depth}",
                )
            return self._decode_node(node)
        finally:
            self._depth -= 1

    def _decode_node(self, node: Any) -> Condition:
        if not isinstance(node, dict):
            raise _invalid(f"condition must be a JSON object, got {type(node).__name__}")
        # First match wins: where, then and, then or.
        if {"field", "method", "value"} <= node.keys():
            return self._decode_where(node)
        if "and" in node:
            return And(self._decode_group(node["and"], "and"))
        if "or" in node:
            return Or(self._decode_group(node["or"], "or"))
        raise _invalid(
            f"condition has keys {sorted(node)}; expected field/method/value, and, or or"
        )

    def _decode_group(self, items: Any, key: str) -> tuple[Condition, ...]:
        if not isinstance(items, list):
            raise _invalid(f"'{key}' must be an array, got {type(items).__name__}")
        return tuple(self.decode(item) for item in items)

    def _decode_where(self, node: dict[str, Any]) -> Where:
        field = node["field"]
        if not isinstance(field, str) or not field:
            raise _invalid(f"'field' must be a non-empty string, got {field!r}")
        operator = resolve(node["method"])
        return Where(field, operator, decode_value(operator, node["value"]))


def decode_value(operator: Operator, raw: Any) -> Value:
    """Shape a raw JSON value according to the operator's expected value shape.

    Raises:
        InvalidFilterConfigurationError: If the value does not fit the shape.
        MalformedRangeError: If a range literal string is malformed.
    """
    shape = operator.expected_value_shape
    if shape is ValueShape.MULTIPLE:
        if isinstance(raw, list):
            if not all(_is_scalar(item) for item in raw):
                raise _invalid(f"'{operator}' values must be scalars")
            return Multiple(tuple(raw))
        if _is_scalar(raw):
            return Multiple((raw,))
        raise _invalid(f"'{operator}' expects an array of values")

    if shape is ValueShape.RANGE:
        if isinstance(raw, list):
            if len(raw) != 2 or not all(_is_scalar(item) for item in raw):
                raise _invalid(
                    f"'{operator}' expects a 2-element array, got {len(raw)} elements"
                )
            return RangeValue(raw[0], raw[1])
        if isinstance(raw, str):
            literal = parse_range_value(raw)
            return RangeValue(literal.lower, literal.upper, literal.kind)
        raise _invalid(f"'{operator}' expects a 2-element array or a range literal")

    if operator in SENTINEL_OPERATORS:
        return Single(raw)
    if operator is Operator.FILTER and isinstance(raw, dict):
        return Single(raw)
    if not _is_scalar(raw):
        raise _invalid(f"'{operator}' expects a single value, got {type(raw).__name__}")
    return Single(raw)


def decode_condition(node: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Condition:
    """Decode an already-parsed JSON value into a Condition."""
    return _Decoder(max_depth).decode(node)


def parse_condition(text: str | None, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Condition:
    """Parse a JSON filter expression into a Condition.

    Empty or whitespace-only input means "no filter" and yields an empty
    ``And`` group.

    Raises:
        InvalidFilterConfigurationError: If the JSON is malformed or a node
            has an unsupported shape.
        UnknownOperatorError: If a method matches no operator or alias.
        MalformedRangeError: If a range literal is malformed.
        MaxDepthExceededError: If nesting exceeds ``max_depth``.
    """
    if text is None or not text.strip():
        return And(())
    try:
        node = json.loads(text)
    except json.JSONDecodeError as e:
        raise _invalid(f"filter is not valid JSON: {e}", e) from e
    return decode_condition(node, max_depth=max_depth)
