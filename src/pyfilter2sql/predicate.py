"""Backend-neutral compiled predicate tree."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from collections.abc import Mapping
from typing import Any, Union

from pyfilter2sql._errors import ERR_MSG_UNSUPPORTED_OPERATION, UnsupportedFilterOperationError


class ComparisonOp(enum.StrEnum):
    """Primitive comparisons operators expand into."""

    EQ = "="
    NE = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    STARTS_WITH = "startsWith"
    NOT_STARTS_WITH = "notStartsWith"
    ENDS_WITH = "endsWith"
    NOT_ENDS_WITH = "notEndsWith"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    SIMILAR_TO = "similarTo"
    ARRAY_CONTAINS = "arrayContains"
    ARRAY_CONTAINED_BY = "arrayContainedBy"
    ARRAY_OVERLAPS = "arrayOverlaps"
    FULL_TEXT_SEARCH = "fullTextSearch"


class ValueType(enum.StrEnum):
    BOOL = "bool"
    INT = "int"
    DOUBLE = "double"
    STRING = "string"
    DATE = "date"
    NULL = "null"
    ARRAY = "array"


PRIMITIVE_TYPES = frozenset(
    {ValueType.BOOL, ValueType.INT, ValueType.DOUBLE, ValueType.STRING, ValueType.DATE}
)


@dataclass(frozen=True)
class TypedValue:
    """A coerced filter value.

    ``value`` is a ``bool``, ``int``, ``float``, ``str``, aware ``datetime``,
    ``None`` (for ``NULL``) or a tuple of ``TypedValue`` (for ``ARRAY``).
    """

    type: ValueType
    value: Any

    @property
    def is_null(self) -> bool:
        return self.type is ValueType.NULL


NULL = TypedValue(ValueType.NULL, None)
EMPTY_STRING = TypedValue(ValueType.STRING, "")


@dataclass(frozen=True)
class FieldPath:
    """A column reference: the owning table and one or more key segments.

    More than one segment addresses a grouped field whose columns are
    flattened as ``<group>_<field>``.
    """

    schema: str
    keys: tuple[str, ...]

    @property
    def column(self) -> str:
        return "_".join(self.keys)

    def __str__(self) -> str:
        if self.schema:
            return f"{self.schema}.{self.column}"
        return self.column


class GroupOp(enum.StrEnum):
    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class Compare:
    path: FieldPath
    op: ComparisonOp
    value: TypedValue


@dataclass(frozen=True)
class Group:
    children: tuple[Predicate, ...]
    op: GroupOp


@dataclass(frozen=True)
class TruePredicate:
    """Identity element: matches every row."""

    def __repr__(self) -> str:
        return "TRUE"


TRUE = TruePredicate()

Predicate = Union[Compare, Group, TruePredicate]


@dataclass(frozen=True)
class Join:
    """An inner join of ``schema`` on ``left = right``."""

    schema: str
    left: FieldPath
    right: FieldPath


def check_join(join: Join, root: str, joins: Mapping[str, Join]) -> None:
    """Reject joins a query cannot express without table aliases.

    Joined tables are addressed by name, so a join back to the root table
    (a self relation) or a second join to one table on different keys
    would silently filter the wrong rows.

    Raises:
        UnsupportedFilterOperationError: For either case.
    """
    if join.schema == root:
        raise UnsupportedFilterOperationError(
            ERR_MSG_UNSUPPORTED_OPERATION,
            f"cannot join root table {root!r} to itself",
        )
    existing = joins.get(join.schema)
    if existing is not None and existing != join:
        raise UnsupportedFilterOperationError(
            ERR_MSG_UNSUPPORTED_OPERATION,
            f"table {join.schema!r} is already joined on {existing.left} = {existing.right}",
        )



@dataclass(frozen=True)
class CompiledFilter:
    """A compiled predicate plus the joins its nested filters require."""

    predicate: Predicate = TRUE
    joins: tuple[Join, ...] = field(default_factory=tuple)
