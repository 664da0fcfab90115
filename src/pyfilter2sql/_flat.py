"""Legacy flat query-parameter filters: ``?field=method:value``."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from pyfilter2sql._condition import And, Multiple, RangeValue, Single, Value, Where
from pyfilter2sql._errors import (
    ERR_MSG_INVALID_FILTER,
    InvalidFilterConfigurationError,
    UnknownOperatorError,
)
from pyfilter2sql._operators import Operator, ValueShape, resolve
from pyfilter2sql._range import parse_range_value
from pyfilter2sql.schema import Schema


def _flat_value(operator: Operator, raw: str) -> Value:
    shape = operator.expected_value_shape
    if shape is ValueShape.MULTIPLE:
        return Multiple(tuple(part.strip() for part in raw.split(",")))
    if shape is ValueShape.RANGE:
        literal = parse_range_value(raw)
        return RangeValue(literal.lower, literal.upper, literal.kind)
    return Single(raw)


def is_flat_filter(raw: str) -> bool:
    """True when ``raw`` starts with a known ``method:`` prefix."""
    if not isinstance(raw, str) or ":" not in raw:
        return False
    method = raw.partition(":")[0].strip()
    try:
        resolve(method)
    except UnknownOperatorError:
        return False
    return True


def parse_flat_filter(field: str, raw: str) -> Where:
    """Parse one ``method:value`` parameter for ``field``.

    ``multiple`` operators split the value on ``,``; ``range`` operators
    accept ``[lower,upper]`` or a range literal such as ``5..<15``.

    Raises:
        InvalidFilterConfigurationError: If ``raw`` has no ``method:`` prefix.
        UnknownOperatorError: If the method matches no operator or alias.
    """
    if not isinstance(raw, str) or ":" not in raw:
        raise InvalidFilterConfigurationError(
            ERR_MSG_INVALID_FILTER,
            f"parameter {field!r} is not of the form method:value: {raw!r}",
        )
    method, _, value = raw.partition(":")
    operator = resolve(method.strip())
    return Where(field, operator, _flat_value(operator, value))


def parse_query_parameters(
    params: Mapping[str, str | Sequence[str]], schema: Schema
) -> And:
    """Collect flat filters for every schema field present in ``params``.

    Values without a known ``method:`` prefix (plain text, URLs, times)
    are not filters and are skipped.
    A parameter given more than once (as from ``parse_qs``) yields one
    condition per occurrence.
    """
    conditions: list[Where] = []
    for field in schema.fields:
        raw = params.get(field.name)
        if raw is None:
            continue
        values = [raw] if isinstance(raw, str) else list(raw)
        for value in values:
            if is_flat_filter(value):
                conditions.append(parse_flat_filter(field.name, value))
    return And(tuple(conditions))
