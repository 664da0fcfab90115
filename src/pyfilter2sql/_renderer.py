"""Renders Predicate trees and SELECT queries as SQL for a Dialect."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from datetime import datetime
from io import StringIO
from typing import Any

from pyfilter2sql._constants import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_SQL_OUTPUT_LENGTH,
    PREDICATE_DEPTH_OVERHEAD,
)
from pyfilter2sql._errors import (
    ERR_MSG_DEPTH_EXCEEDED,
    ERR_MSG_TYPE_MISMATCH,
    ERR_MSG_UNSUPPORTED_OPERATION,
    MaxDepthExceededError,
    MaxOutputLengthExceededError,
    TypeMismatchError,
    UnsupportedFilterOperationError,
)
from pyfilter2sql._sort import SortDirection
from pyfilter2sql._utils import escape_like_pattern, validate_no_null_bytes
from pyfilter2sql.dialect._base import Dialect
from pyfilter2sql.predicate import (
    Compare,
    ComparisonOp,
    FieldPath,
    Group,
    GroupOp,
    Join,
    Predicate,
    TruePredicate,
    TypedValue,
    ValueType,
)

log = logging.getLogger(__name__)

_ORDERING_OPS = frozenset({
    ComparisonOp.EQ,
    ComparisonOp.NE,
    ComparisonOp.GT,
    ComparisonOp.GTE,
    ComparisonOp.LT,
    ComparisonOp.LTE,
})

# op -> (negated, prefix wildcard, suffix wildcard)
_LIKE_PATTERNS: dict[ComparisonOp, tuple[bool, str, str]] = {
    ComparisonOp.STARTS_WITH: (False, "", "%"),
    ComparisonOp.NOT_STARTS_WITH: (True, "", "%"),
    ComparisonOp.ENDS_WITH: (False, "%", ""),
    ComparisonOp.NOT_ENDS_WITH: (True, "%", ""),
    ComparisonOp.CONTAINS: (False, "%", "%"),
    ComparisonOp.NOT_CONTAINS: (True, "%", "%"),
}


class Renderer:
    """Writes SQL for one predicate or query into a StringIO buffer.

    With ``parameterize=True`` values become dialect placeholders and are
    collected in :attr:`parameters`; otherwise they are inlined as literals.
    """

    def __init__(
        self,
        dialect: Dialect,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_output_length: int = DEFAULT_MAX_SQL_OUTPUT_LENGTH,
        parameterize: bool = False,
    ) -> None:
        self._w = StringIO()
        self._dialect = dialect
        # max_depth bounds the condition tree the predicate was compiled from
        self._max_depth = max_depth + PREDICATE_DEPTH_OVERHEAD
        self._max_output_length = max_output_length
        self._depth = 0
        self._parameterize = parameterize
        self._parameters: list[Any] = []
        self._param_count = 0

    @property
    def result(self) -> str:
        return self._w.getvalue()

    @property
    def parameters(self) -> list[Any]:
        return self._parameters

    def _check_limits(self) -> None:
        if self._depth > self._max_depth:
            raise MaxDepthExceededError(
                ERR_MSG_DEPTH_EXCEEDED,
                f"depth {self._depth} exceeds limit {self._max_depth}",
            )
        if self._w.tell() > self._max_output_length:
            raise MaxOutputLengthExceededError(
                "maximum SQL output length exceeded",
                f"output length exceeds limit {self._max_output_length}",
            )

    def _add_param(self, value: Any) -> int:
        """Add a parameter and return its 1-based index."""
        self._param_count += 1
        self._parameters.append(value)
        return self._param_count

    # ---- Queries ----

    def write_select(
        self,
        table: str,
        joins: Sequence[Join] = (),
        predicate: Predicate | None = None,
        sorts: Sequence[tuple[FieldPath, SortDirection]] = (),
    ) -> None:
        """Write ``SELECT table.* FROM table`` with joins, filter and ordering.

        Joined rows are made ``DISTINCT`` so to-many joins do not repeat rows.
        """
        self._dialect.validate_field_name(table)
        self._w.write("SELECT ")
        if joins:
            self._w.write("DISTINCT ")
        self._w.write(f"{table}.* FROM {table}")
        for join in joins:
            self._dialect.validate_field_name(join.schema)
            self._w.write(f" INNER JOIN {join.schema} ON ")
            self._write_path(join.left)
            self._w.write(" = ")
            self._write_path(join.right)
        if predicate is not None and not isinstance(predicate, TruePredicate):
            self._w.write(" WHERE ")
            self.write_predicate(predicate)
        if sorts:
            self._w.write(" ORDER BY ")
            for i, (path, direction) in enumerate(sorts):
                if i:
                    self._w.write(", ")
                self._write_path(path)
                self._w.write(" DESC" if direction is SortDirection.DESC else " ASC")
        self._check_limits()

    # ---- Predicates ----

    def write_predicate(self, predicate: Predicate) -> None:
        self._write_child(predicate, nested=False)

    def _write_child(self, predicate: Predicate, *, nested: bool) -> None:
        self._depth += 1
        try:
            self._check_limits()
            if isinstance(predicate, Group):
                self._write_group(predicate, nested=nested)
            elif isinstance(predicate, Compare):
                self._write_compare(predicate)
            else:
                self._w.write("TRUE")
        finally:
            self._depth -= 1

    def _write_group(self, group: Group, *, nested: bool) -> None:
        if not group.children:
            self._w.write("TRUE")
            return
        if len(group.children) == 1:
            self._write_child(group.children[0], nested=nested)
            return
        joiner = " AND " if group.op is GroupOp.AND else " OR "
        if nested:
            self._w.write("(")
        for i, child in enumerate(group.children):
            if i:
                self._w.write(joiner)
            self._write_child(child, nested=True)
        if nested:
            self._w.write(")")

    def _write_compare(self, compare: Compare) -> None:
        op = compare.op
        value = compare.value

        def write_path() -> None:
            self._write_path(compare.path)

        if value.is_null:
            if op not in (ComparisonOp.EQ, ComparisonOp.NE):
                raise UnsupportedFilterOperationError(
                    ERR_MSG_UNSUPPORTED_OPERATION,
                    f"operator {op} cannot compare against null",
                )
            write_path()
            self._w.write(" IS NULL" if op is ComparisonOp.EQ else " IS NOT NULL")
            return

        if op in _ORDERING_OPS:
            write_path()
            if value.type is ValueType.BOOL and op in (ComparisonOp.EQ, ComparisonOp.NE):
                negation = "" if op is ComparisonOp.EQ else "NOT "
                self._w.write(f" IS {negation}{'TRUE' if value.value else 'FALSE'}")
                return
            self._w.write(f" {op.value} ")
            self._write_value(value)
            return

        like = _LIKE_PATTERNS.get(op)
        if like is not None:
            negated, prefix, suffix = like
            pattern = prefix + escape_like_pattern(self._text(value, op)) + suffix
            write_path()
            self._w.write(" NOT LIKE " if negated else " LIKE ")
            self._write_value(TypedValue(ValueType.STRING, pattern))
            self._dialect.write_like_escape(self._w)
            return

        if op is ComparisonOp.SIMILAR_TO:
            self._text(value, op)
            self._dialect.write_similar_to(self._w, write_path, lambda: self._write_value(value))
        elif op is ComparisonOp.FULL_TEXT_SEARCH:
            self._text(value, op)
            self._dialect.write_full_text_search(
                self._w, write_path, lambda: self._write_value(value)
            )
        elif op is ComparisonOp.ARRAY_CONTAINS:
            self._dialect.write_array_contains(self._w, write_path, lambda: self._write_array(value))
        elif op is ComparisonOp.ARRAY_CONTAINED_BY:
            self._dialect.write_array_contained_by(
                self._w, write_path, lambda: self._write_array(value)
            )
        elif op is ComparisonOp.ARRAY_OVERLAPS:
            self._dialect.write_array_overlaps(self._w, write_path, lambda: self._write_array(value))
        else:
            raise UnsupportedFilterOperationError(
                ERR_MSG_UNSUPPORTED_OPERATION,
                f"no SQL rendering for comparison {op}",
            )

    @staticmethod
    def _text(value: TypedValue, op: ComparisonOp) -> str:
        if value.type is not ValueType.STRING:
            raise TypeMismatchError(
                ERR_MSG_TYPE_MISMATCH,
                f"operator {op} requires a string operand, got {value.type}",
            )
        return value.value

    def _write_path(self, path: FieldPath) -> None:
        if path.schema:
            self._dialect.validate_field_name(path.schema)
            self._w.write(f"{path.schema}.")
        self._dialect.validate_field_name(path.column)
        self._w.write(path.column)

    # ---- Values ----

    def _write_value(self, value: TypedValue) -> None:
        if value.type is ValueType.ARRAY:
            self._write_array(value)
        elif self._parameterize and not value.is_null:
            index = self._add_param(self._param_value(value))
            self._dialect.write_param_placeholder(self._w, index)
        else:
            self._write_literal(value)

    def _write_literal(self, value: TypedValue) -> None:
        if value.type is ValueType.STRING:
            validate_no_null_bytes(value.value)
            self._dialect.write_string_literal(self._w, value.value)
        elif value.type is ValueType.BOOL:
            self._dialect.write_bool_literal(self._w, value.value)
        elif value.type is ValueType.INT:
            self._w.write(str(value.value))
        elif value.type is ValueType.DOUBLE:
            self._w.write(repr(value.value))
        elif value.type is ValueType.DATE:
            self._dialect.write_date_literal(self._w, value.value)
        elif value.type is ValueType.NULL:
            self._w.write("NULL")
        else:
            raise TypeMismatchError(
                ERR_MSG_TYPE_MISMATCH,
                f"cannot write {value.type} value as a scalar literal",
            )

    def _param_value(self, value: TypedValue) -> Any:
        if value.type is ValueType.STRING:
            validate_no_null_bytes(value.value)
        if value.type is ValueType.DATE:
            return self._dialect.date_parameter(value.value)
        return value.value

    def _write_array(self, value: TypedValue) -> None:
        if value.type is not ValueType.ARRAY:
            raise TypeMismatchError(
                ERR_MSG_TYPE_MISMATCH,
                f"array comparison requires an array operand, got {value.type}",
            )
        elements: tuple[TypedValue, ...] = value.value
        if not self._dialect.supports_native_arrays():
            # JSON text, read by the dialect's JSON functions
            document = json.dumps([self._json_value(e) for e in elements])
            self._write_value(TypedValue(ValueType.STRING, document))
            return
        if self._parameterize:
            index = self._add_param([self._param_value(e) for e in elements])
            self._dialect.write_param_placeholder(self._w, index)
            return
        if not elements:
            self._dialect.write_empty_array(self._w)
            return
        self._dialect.write_array_literal_open(self._w)
        for i, element in enumerate(elements):
            if i:
                self._w.write(", ")
            self._write_literal(element)
        self._dialect.write_array_literal_close(self._w)

    def _json_value(self, value: TypedValue) -> Any:
        result = self._param_value(value)
        if isinstance(result, datetime):
            return result.isoformat()
        return result


def render_predicate(
    predicate: Predicate,
    dialect: Dialect,
    *,
    parameterize: bool = False,
    max_output_length: int = DEFAULT_MAX_SQL_OUTPUT_LENGTH,
) -> tuple[str, list[Any]]:
    """Render a predicate as a SQL boolean expression and its parameters."""
    renderer = Renderer(
        dialect, max_output_length=max_output_length, parameterize=parameterize
    )
    renderer.write_predicate(predicate)
    log.debug("rendered %s predicate: %s", dialect.name, renderer.result)
    return renderer.result, renderer.parameters
