"""Predicate compiler: Condition AST -> backend-neutral Predicate tree."""

from __future__ import annotations

import logging
from urllib.parse import unquote

from pyfilter2sql._coercion import coerce, coerce_multiple, coerce_range
from pyfilter2sql._condition import (
    And,
    Condition,
    Multiple,
    Or,
    RangeValue,
    Single,
    Where,
    decode_condition,
    parse_condition,
)
from pyfilter2sql._constants import DEFAULT_MAX_DEPTH
from pyfilter2sql._errors import (
    ERR_MSG_DEPTH_EXCEEDED,
    ERR_MSG_INVALID_FILTER,
    ERR_MSG_TYPE_MISMATCH,
    ERR_MSG_UNKNOWN_FIELD,
    ERR_MSG_UNSUPPORTED_OPERATION,
    InvalidFilterConfigurationError,
    InvalidSchemaError,
    MaxDepthExceededError,
    TypeMismatchError,
    UnsupportedFilterOperationError,
)
from pyfilter2sql._operators import SENTINEL_OPERATORS, Operator
from pyfilter2sql.config import BuilderConfig
from pyfilter2sql.predicate import (
    EMPTY_STRING,
    NULL,
    TRUE,
    Compare,
    CompiledFilter,
    ComparisonOp,
    FieldPath,
    Group,
    GroupOp,
    Join,
    Predicate,
    TypedValue,
    ValueType,
    check_join,
)
from pyfilter2sql.schema import FieldSchema, Schema

log = logging.getLogger(__name__)

# Comparisons whose operand is always a text pattern.
_STRING_COMPARISONS = frozenset({
    ComparisonOp.STARTS_WITH,
    ComparisonOp.NOT_STARTS_WITH,
    ComparisonOp.ENDS_WITH,
    ComparisonOp.NOT_ENDS_WITH,
    ComparisonOp.CONTAINS,
    ComparisonOp.NOT_CONTAINS,
    ComparisonOp.SIMILAR_TO,
    ComparisonOp.FULL_TEXT_SEARCH,
})

_NUMERIC_TYPES = frozenset({ValueType.INT, ValueType.DOUBLE})


class CompileContext:
    """View of the compiler handed to field overrides and nested builders."""

    def __init__(self, compiler: Compiler, schema: Schema, config: BuilderConfig) -> None:
        self._compiler = compiler
        self.schema = schema
        self.config = config

    def require_join(self, join: Join) -> None:
        """Ask the query to join ``join.schema``; identical joins are kept once.

        Raises:
            UnsupportedFilterOperationError: For a join back to the root
                table or a conflicting join to an already joined table.
        """
        self._compiler._add_join(join)

    def compile_nested(
        self,
        condition: Condition,
        schema: Schema,
        config: BuilderConfig | None = None,
    ) -> Predicate:
        """Compile ``condition`` against a related schema."""
        nested = CompileContext(self._compiler, schema, config or BuilderConfig())
        return self._compiler._compile_root(condition, nested)

    def find_field(self, field: str) -> FieldSchema | None:
        found = self.schema.find_field(field)
        if found is None and "." in field:
            found = self.schema.find_field(field.replace(".", "_"))
        if found is None and self._compiler.validate_schema:
            raise InvalidSchemaError(
                ERR_MSG_UNKNOWN_FIELD,
                f"field '{field}' not found in schema for '{self.schema.name}'",
            )
        return found

    def field_path(self, field: str, field_schema: FieldSchema | None = None) -> FieldPath:
        """Resolve a DSL field name to its physical column path."""
        mapped = self.config.field_key_map.get(field)
        if isinstance(mapped, str):
            keys: tuple[str, ...] = (mapped,)
        elif mapped is not None:
            keys = tuple(mapped)
        elif field_schema is not None and field_schema.key:
            keys = (field_schema.key,)
        else:
            keys = tuple(field.split("."))
        return FieldPath(self.schema.name, keys)


class Compiler:
    """Compiles Condition trees into Predicate trees for one root schema.

    A compiler collects the joins requested by nested filters; use a new
    instance per compilation.
    """

    def __init__(
        self,
        schema: Schema,
        config: BuilderConfig | None = None,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        validate_schema: bool = False,
    ) -> None:
        self._schema = schema
        self._config = config or BuilderConfig()
        self._max_depth = max_depth
        self._depth = 0
        self._joins: dict[str, Join] = {}
        self.validate_schema = validate_schema

    def compile(self, condition: Condition) -> CompiledFilter:
        context = CompileContext(self, self._schema, self._config)
        predicate = self._compile_root(condition, context)
        return CompiledFilter(predicate, tuple(self._joins.values()))

    # ---- Internals used by CompileContext ----

    def _add_join(self, join: Join) -> None:
        check_join(join, self._schema.name, self._joins)
        if join.schema in self._joins:
            return
        log.debug("joining %s on %s = %s", join.schema, join.left, join.right)
        self._joins[join.schema] = join

    def _compile_root(self, condition: Condition, context: CompileContext) -> Predicate:
        predicate = self._compile(condition, context)
        return TRUE if predicate is None else predicate

    # ---- Tree walk ----

    def _compile(self, condition: Condition, context: CompileContext) -> Predicate | None:
        self._depth += 1
        try:
            if self._depth > self._max_depth:
                raise MaxDepthExceededError(
                    ERR_MSG_DEPTH_EXCEEDED,
                    f"depth {self._depth} exceeds limit {self._max_depth}",
                )
            if isinstance(condition, And):
                return self._compile_group(condition.conditions, GroupOp.AND, context)
            if isinstance(condition, Or):
                return self._compile_group(condition.conditions, GroupOp.OR, context)
            return self._compile_where(condition, context)
        finally:
            self._depth -= 1

    def _compile_group(
        self,
        conditions: tuple[Condition, ...],
        op: GroupOp,
        context: CompileContext,
    ) -> Predicate:
        children = []
        for condition in conditions:
            predicate = self._compile(condition, context)
            if predicate is not None:
                children.append(predicate)
        if not children:
            return TRUE
        return Group(tuple(children), op)

    def _compile_where(self, where: Where, context: CompileContext) -> Predicate | None:
        override = context.config.field_overrides.get(where.field)
        if override is not None:
            log.debug("field override replaces compilation of %r", where.field)
            return override(where, context)

        if where.operator is Operator.FILTER:
            return self._compile_nested(where, context)

        field_schema = context.find_field(where.field)
        path = context.field_path(where.field, field_schema)
        declared = field_schema.value_type if field_schema is not None else None
        operator = where.operator
        value = where.value

        if operator in SENTINEL_OPERATORS:
            sentinel = NULL if operator in (Operator.IS_NULL, Operator.IS_NOT_NULL) else EMPTY_STRING
            return Compare(path, operator.to_comparison_ops()[0], sentinel)

        if isinstance(value, RangeValue):
            return self._compile_range(operator, path, value, declared)

        (comparison,) = operator.to_comparison_ops()
        if comparison in _STRING_COMPARISONS:
            declared = ValueType.STRING

        if isinstance(value, Multiple):
            return self._compile_multiple(operator, comparison, path, value, declared)

        typed = coerce(value.raw, declared)
        if operator is Operator.ARR_INCLUDES:
            typed = TypedValue(ValueType.ARRAY, (typed,))
        return Compare(path, comparison, typed)

    def _compile_multiple(
        self,
        operator: Operator,
        comparison: ComparisonOp,
        path: FieldPath,
        value: Multiple,
        declared: ValueType | None,
    ) -> Predicate | None:
        typed = coerce_multiple(value.raws, declared)
        if operator is Operator.EQUALS_ANY:
            group_op = GroupOp.OR
        elif operator is Operator.NOT_EQUAL_TO_ANY:
            group_op = GroupOp.AND
        else:
            return Compare(path, comparison, typed)
        if not typed.value:
            return None
        return Group(tuple(Compare(path, comparison, v) for v in typed.value), group_op)

    def _compile_range(
        self,
        operator: Operator,
        path: FieldPath,
        value: RangeValue,
        declared: ValueType | None,
    ) -> Predicate | None:
        lower, upper = coerce_range(value.lower, value.upper, declared)
        if operator is Operator.IN_NUMBER_RANGE:
            for bound in (lower, upper):
                if bound is not None and bound.type not in _NUMERIC_TYPES:
                    raise TypeMismatchError(
                        ERR_MSG_TYPE_MISMATCH,
                        f"'{operator}' requires numeric bounds, got {bound.type}",
                    )
        lower_op, upper_op = operator.to_comparison_ops(value.kind)
        parts = []
        if lower is not None:
            parts.append(Compare(path, lower_op, lower))
        if upper is not None:
            parts.append(Compare(path, upper_op, upper))
        if not parts:
            return None
        if len(parts) == 1:
            return parts[0]
        return Group(tuple(parts), GroupOp.AND)

    def _compile_nested(self, where: Where, context: CompileContext) -> Predicate | None:
        builder = context.config.nested_builders.get(where.field)
        if builder is None:
            if context.config.strict_nested:
                raise UnsupportedFilterOperationError(
                    ERR_MSG_UNSUPPORTED_OPERATION,
                    f"no nested filter builder registered for field '{where.field}'",
                )
            log.debug("dropping nested filter on %r: no builder registered", where.field)
            return None

        raw = where.value.raw if isinstance(where.value, Single) else None
        remaining = self._max_depth - self._depth
        if isinstance(raw, dict):
            nested = decode_condition(raw, max_depth=remaining)
        elif isinstance(raw, str):
            nested = parse_condition(unquote(raw), max_depth=remaining)
        else:
            raise InvalidFilterConfigurationError(
                ERR_MSG_INVALID_FILTER,
                f"nested filter on '{where.field}' must be an encoded filter string",
            )
        return builder(nested, context)
