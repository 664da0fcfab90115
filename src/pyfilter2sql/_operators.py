"""Filter method registry: canonical operators, aliases and their expansions."""

from __future__ import annotations

import enum

from pyfilter2sql._errors import ERR_MSG_UNKNOWN_OPERATOR, UnknownOperatorError
from pyfilter2sql.predicate import ComparisonOp


class ValueShape(enum.StrEnum):
    SINGLE = "single"
    MULTIPLE = "multiple"
    RANGE = "range"


class RangeKind(enum.StrEnum):
    """Inclusivity of the two range bounds."""

    INCLUSIVE = "inclusive"
    EXCLUSIVE = "exclusive"
    INCLUSIVE_EXCLUSIVE = "inclusiveExclusive"
    EXCLUSIVE_INCLUSIVE = "exclusiveInclusive"

    @property
    def lower_op(self) -> ComparisonOp:
        if self in (RangeKind.INCLUSIVE, RangeKind.INCLUSIVE_EXCLUSIVE):
            return ComparisonOp.GTE
        return ComparisonOp.GT

    @property
    def upper_op(self) -> ComparisonOp:
        if self in (RangeKind.INCLUSIVE, RangeKind.EXCLUSIVE_INCLUSIVE):
            return ComparisonOp.LTE
        return ComparisonOp.LT


class Operator(enum.StrEnum):
    # Material React Table filters
    BETWEEN = "between"
    BETWEEN_INCLUSIVE = "betweenInclusive"
    CONTAINS = "contains"
    EMPTY = "empty"
    ENDS_WITH = "endsWith"
    FUZZY = "fuzzy"
    GREATER_THAN = "greaterThan"
    GREATER_THAN_OR_EQUAL_TO = "greaterThanOrEqualTo"
    LESS_THAN = "lessThan"
    LESS_THAN_OR_EQUAL_TO = "lessThanOrEqualTo"
    NOT_EMPTY = "notEmpty"
    NOT_EQUALS = "notEquals"
    STARTS_WITH = "startsWith"

    # TanStack Table filters
    ARR_INCLUDES = "arrIncludes"
    ARR_INCLUDES_ALL = "arrIncludesAll"
    ARR_INCLUDES_SOME = "arrIncludesSome"
    EQUALS = "equals"
    EQUALS_STRING = "equalsString"
    EQUALS_STRING_SENSITIVE = "equalsStringSensitive"
    INCLUDES_STRING = "includesString"
    INCLUDES_STRING_SENSITIVE = "includesStringSensitive"
    IN_NUMBER_RANGE = "inNumberRange"
    WEAK_EQUALS = "weakEquals"

    # Custom filters
    FILTER = "filter"
    SEARCH_TEXT = "searchText"
    NOT_STARTS_WITH = "notStartsWith"
    NOT_ENDS_WITH = "notEndsWith"
    ARR_IS_CONTAINED_BY = "arrIsContainedBy"
    IS_NULL = "isNull"
    IS_NOT_NULL = "isNotNull"
    EQUALS_ANY = "equalsAny"
    NOT_EQUAL_TO_ANY = "notEqualToAny"
    NOT_CONTAINS = "notContains"

    @property
    def expected_value_shape(self) -> ValueShape:
        if self in MULTIPLE_VALUE_OPERATORS:
            return ValueShape.MULTIPLE
        if self in RANGE_OPERATORS:
            return ValueShape.RANGE
        return ValueShape.SINGLE

    @property
    def default_range_kind(self) -> RangeKind | None:
        return _DEFAULT_RANGE_KINDS.get(self)

    def to_comparison_ops(self, kind: RangeKind | None = None) -> tuple[ComparisonOp, ...]:
        """Return the primitive comparisons this operator expands into.

        Range operators expand into ``(lower, upper)``; ``kind`` overrides the
        operator's default inclusivity.
        """
        if self in RANGE_OPERATORS:
            kind = kind or _DEFAULT_RANGE_KINDS[self]
            return (kind.lower_op, kind.upper_op)
        return _COMPARISONS[self]


MULTIPLE_VALUE_OPERATORS = frozenset({
    Operator.ARR_INCLUDES_ALL,
    Operator.ARR_INCLUDES_SOME,
    Operator.ARR_IS_CONTAINED_BY,
    Operator.EQUALS_ANY,
    Operator.NOT_EQUAL_TO_ANY,
})

RANGE_OPERATORS = frozenset({
    Operator.BETWEEN,
    Operator.BETWEEN_INCLUSIVE,
    Operator.IN_NUMBER_RANGE,
})

# Operators compared against a fixed sentinel; their value is ignored.
SENTINEL_OPERATORS = frozenset({
    Operator.IS_NULL,
    Operator.IS_NOT_NULL,
    Operator.EMPTY,
    Operator.NOT_EMPTY,
})

_DEFAULT_RANGE_KINDS: dict[Operator, RangeKind] = {
    Operator.BETWEEN: RangeKind.EXCLUSIVE,
    Operator.BETWEEN_INCLUSIVE: RangeKind.INCLUSIVE,
    Operator.IN_NUMBER_RANGE: RangeKind.EXCLUSIVE,
}

_COMPARISONS: dict[Operator, tuple[ComparisonOp, ...]] = {
    Operator.EQUALS: (ComparisonOp.EQ,),
    Operator.EQUALS_STRING: (ComparisonOp.EQ,),
    Operator.EQUALS_STRING_SENSITIVE: (ComparisonOp.EQ,),
    Operator.WEAK_EQUALS: (ComparisonOp.EQ,),
    Operator.NOT_EQUALS: (ComparisonOp.NE,),
    Operator.GREATER_THAN: (ComparisonOp.GT,),
    Operator.GREATER_THAN_OR_EQUAL_TO: (ComparisonOp.GTE,),
    Operator.LESS_THAN: (ComparisonOp.LT,),
    Operator.LESS_THAN_OR_EQUAL_TO: (ComparisonOp.LTE,),
    Operator.STARTS_WITH: (ComparisonOp.STARTS_WITH,),
    Operator.NOT_STARTS_WITH: (ComparisonOp.NOT_STARTS_WITH,),
    Operator.ENDS_WITH: (ComparisonOp.ENDS_WITH,),
    Operator.NOT_ENDS_WITH: (ComparisonOp.NOT_ENDS_WITH,),
    Operator.CONTAINS: (ComparisonOp.CONTAINS,),
    Operator.INCLUDES_STRING: (ComparisonOp.CONTAINS,),
    Operator.INCLUDES_STRING_SENSITIVE: (ComparisonOp.CONTAINS,),
    Operator.NOT_CONTAINS: (ComparisonOp.NOT_CONTAINS,),
    Operator.FUZZY: (ComparisonOp.SIMILAR_TO,),
    Operator.SEARCH_TEXT: (ComparisonOp.FULL_TEXT_SEARCH,),
    Operator.ARR_INCLUDES: (ComparisonOp.ARRAY_OVERLAPS,),
    Operator.ARR_INCLUDES_ALL: (ComparisonOp.ARRAY_CONTAINS,),
    Operator.ARR_INCLUDES_SOME: (ComparisonOp.ARRAY_OVERLAPS,),
    Operator.ARR_IS_CONTAINED_BY: (ComparisonOp.ARRAY_CONTAINED_BY,),
    # Expanded per element: OR of equalities / AND of inequalities
    Operator.EQUALS_ANY: (ComparisonOp.EQ,),
    Operator.NOT_EQUAL_TO_ANY: (ComparisonOp.NE,),
    Operator.IS_NULL: (ComparisonOp.EQ,),
    Operator.IS_NOT_NULL: (ComparisonOp.NE,),
    Operator.EMPTY: (ComparisonOp.EQ,),
    Operator.NOT_EMPTY: (ComparisonOp.NE,),
    Operator.FILTER: (),
}

ALIASES: dict[str, Operator] = {
    "eq": Operator.EQUALS,
    "neq": Operator.NOT_EQUALS,
    "nin": Operator.NOT_EQUAL_TO_ANY,
    "gt": Operator.GREATER_THAN,
    "gte": Operator.GREATER_THAN_OR_EQUAL_TO,
    "lt": Operator.LESS_THAN,
    "lte": Operator.LESS_THAN_OR_EQUAL_TO,
    "sw": Operator.STARTS_WITH,
    "nsw": Operator.NOT_STARTS_WITH,
    "ew": Operator.ENDS_WITH,
    "new": Operator.NOT_ENDS_WITH,
    "ct": Operator.CONTAINS,
    "nct": Operator.NOT_CONTAINS,
    "ca": Operator.ARR_INCLUDES_ALL,
    "cb": Operator.ARR_IS_CONTAINED_BY,
    "cany": Operator.ARR_INCLUDES_SOME,
    "in": Operator.EQUALS_ANY,
    "notIn": Operator.NOT_EQUAL_TO_ANY,
    "bt": Operator.BETWEEN,
    "bti": Operator.BETWEEN_INCLUSIVE,
    "fz": Operator.FUZZY,
    "emp": Operator.EMPTY,
    "nemp": Operator.NOT_EMPTY,
    "nul": Operator.IS_NULL,
    "nnul": Operator.IS_NOT_NULL,
    "rng": Operator.IN_NUMBER_RANGE,
    "st": Operator.SEARCH_TEXT,
    "wk": Operator.WEAK_EQUALS,
    "es": Operator.EQUALS_STRING,
    "ess": Operator.EQUALS_STRING_SENSITIVE,
    "inc": Operator.INCLUDES_STRING,
    "incs": Operator.INCLUDES_STRING_SENSITIVE,
}


def _check_registry() -> None:
    missing = set(Operator) - set(_COMPARISONS) - RANGE_OPERATORS
    if missing:
        raise RuntimeError(f"operators without comparison expansion: {sorted(missing)}")
    if set(_DEFAULT_RANGE_KINDS) != RANGE_OPERATORS:
        raise RuntimeError("every range operator needs a default range kind")
    for op in SENTINEL_OPERATORS:
        if len(_COMPARISONS[op]) != 1:
            raise RuntimeError(f"sentinel operator {op} must expand to one comparison")
    clashes = set(ALIASES) & {op.value for op in Operator}
    if clashes:
        raise RuntimeError(f"aliases shadow canonical names: {sorted(clashes)}")


_check_registry()


def resolve(token: str) -> Operator:
    """Resolve a canonical method name or alias to an :class:`Operator`.

    Matching is exact and case-sensitive.

    Raises:
        UnknownOperatorError: If the token matches nothing.
    """
    if not isinstance(token, str):
        raise UnknownOperatorError(
            ERR_MSG_UNKNOWN_OPERATOR,
            f"method must be a string, got {type(token).__name__}",
        )
    try:
        return Operator(token)
    except ValueError:
        pass
    op = ALIASES.get(token)
    if op is None:
        raise UnknownOperatorError(
            ERR_MSG_UNKNOWN_OPERATOR,
            f"unknown filter method: {token!r}",
        )
    return op
