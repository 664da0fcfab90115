"""pyfilter2sql - Compile JSON query-string filters into SQL."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyfilter2sql")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0.dev0"

from collections.abc import Mapping, Sequence
from typing import Any

from pyfilter2sql._compiler import CompileContext, Compiler
from pyfilter2sql._condition import (
    And,
    Condition,
    Multiple,
    Or,
    RangeValue,
    Single,
    Where,
    parse_condition,
)
from pyfilter2sql._constants import (
    DEFAULT_FILTER_PARAMETER,
    DEFAULT_SORT_PARAMETER,
)
from pyfilter2sql._errors import (
    FilterError,
    InvalidFieldNameError,
    InvalidFilterConfigurationError,
    InvalidSchemaError,
    InvalidSortError,
    MalformedRangeError,
    MaxDepthExceededError,
    MaxOutputLengthExceededError,
    TypeMismatchError,
    UnknownOperatorError,
    UnsupportedFilterOperationError,
)
from pyfilter2sql._flat import parse_flat_filter, parse_query_parameters
from pyfilter2sql._operators import Operator, resolve
from pyfilter2sql._sort import Sort, SortDirection, parse_sort
from pyfilter2sql.config import BuilderConfig, children, parent, siblings
from pyfilter2sql.dialect._base import Dialect
from pyfilter2sql.dialect.duckdb import DuckDBDialect
from pyfilter2sql.dialect.mysql import MySQLDialect
from pyfilter2sql.dialect.postgres import PostgresDialect
from pyfilter2sql.dialect.sqlite import SQLiteDialect
from pyfilter2sql.predicate import CompiledFilter, Predicate
from pyfilter2sql.query import Query, Result, apply
from pyfilter2sql.schema import FieldSchema, Schema

__all__ = [
    "parse",
    "compile_filter",
    "convert",
    "convert_parameterized",
    "query_from_params",
    "parse_flat_filter",
    "parse_query_parameters",
    "parse_sort",
    "resolve",
    "apply",
    "And",
    "Or",
    "Where",
    "Single",
    "Multiple",
    "RangeValue",
    "Condition",
    "CompiledFilter",
    "CompileContext",
    "Compiler",
    "Operator",
    "Query",
    "Result",
    "Sort",
    "SortDirection",
    "BuilderConfig",
    "children",
    "parent",
    "siblings",
    "FieldSchema",
    "Schema",
    "FilterError",
    "InvalidFieldNameError",
    "InvalidFilterConfigurationError",
    "InvalidSchemaError",
    "InvalidSortError",
    "MalformedRangeError",
    "MaxDepthExceededError",
    "MaxOutputLengthExceededError",
    "TypeMismatchError",
    "UnknownOperatorError",
    "UnsupportedFilterOperationError",
    "Dialect",
    "DuckDBDialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
]


def parse(filter_text: str | None, *, max_depth: int | None = None) -> Condition:
    """Parse a JSON filter expression into a Condition.

    Empty input means "no filter".

    Raises:
        FilterError: If the filter is malformed.
    """
    if max_depth is not None:
        return parse_condition(filter_text, max_depth=max_depth)
    return parse_condition(filter_text)


def compile_filter(
    condition: Condition | str | None,
    schema: Schema,
    *,
    config: BuilderConfig | None = None,
    max_depth: int | None = None,
    validate_schema: bool = False,
) -> CompiledFilter:
    """Compile a Condition (or JSON filter text) against ``schema``.

    Args:
        condition: A parsed Condition, or JSON filter text to parse first.
        schema: The root table schema.
        config: Field overrides, nested builders and field key mapping.
        max_depth: Maximum nesting depth. Defaults to 100.
        validate_schema: If True, raise InvalidSchemaError for fields the
            schema does not declare.

    Returns:
        The compiled predicate and the joins nested filters require.

    Raises:
        FilterError: If parsing or compilation fails.
    """
    kwargs: dict[str, Any] = {}
    if max_depth is not None:
        kwargs["max_depth"] = max_depth
    if condition is None or isinstance(condition, str):
        condition = parse(condition, **kwargs)
    compiler = Compiler(schema, config, validate_schema=validate_schema, **kwargs)
    return compiler.compile(condition)


def _sort_key_map(config: BuilderConfig | None) -> dict[str, str] | None:
    if config is None or not config.field_key_map:
        return None
    # Grouped keys are rejoined with "." and split again by Query.
    return {
        name: key if isinstance(key, str) else ".".join(key)
        for name, key in config.field_key_map.items()
    }


def _build_query(
    filter_text: Condition | str | None,
    schema: Schema,
    *,
    dialect: Dialect | None,
    config: BuilderConfig | None,
    sort: str | Sequence[Sort] | None,
    max_depth: int | None,
    max_output_length: int | None,
    validate_schema: bool,
) -> Query:
    compiled = compile_filter(
        filter_text,
        schema,
        config=config,
        max_depth=max_depth,
        validate_schema=validate_schema,
    )
    kwargs: dict[str, Any] = {}
    if max_output_length is not None:
        kwargs["max_output_length"] = max_output_length
    if max_depth is not None:
        kwargs["max_depth"] = max_depth
    query = apply(compiled, Query(schema, dialect=dialect, **kwargs))
    if isinstance(sort, str):
        sort = parse_sort(sort, key_map=_sort_key_map(config))
    if sort:
        query.sort(*sort)
    return query


def convert(
    filter_text: Condition | str | None,
    schema: Schema,
    *,
    dialect: Dialect | None = None,
    config: BuilderConfig | None = None,
    sort: str | Sequence[Sort] | None = None,
    max_depth: int | None = None,
    max_output_length: int | None = None,
    validate_schema: bool = False,
) -> str:
    """Convert a filter into a SELECT over ``schema`` with inline literals.

    Args:
        filter_text: JSON filter text or an already parsed Condition.
        schema: The root table schema.
        dialect: SQL dialect to use. Defaults to PostgreSQL.
        config: Field overrides, nested builders and field key mapping.
        sort: A sort parameter (``"age:desc,name"``) or parsed sorts.
        max_depth: Maximum nesting depth. Defaults to 100.
        max_output_length: Maximum SQL output length. Defaults to 50000.
        validate_schema: If True, raise InvalidSchemaError for fields the
            schema does not declare.

    Returns:
        The SQL SELECT statement.

    Raises:
        FilterError: If parsing, compilation or rendering fails.
    """
    return _build_query(
        filter_text,
        schema,
        dialect=dialect,
        config=config,
        sort=sort,
        max_depth=max_depth,
        max_output_length=max_output_length,
        validate_schema=validate_schema,
    ).to_sql()


def convert_parameterized(
    filter_text: Condition | str | None,
    schema: Schema,
    *,
    dialect: Dialect | None = None,
    config: BuilderConfig | None = None,
    sort: str | Sequence[Sort] | None = None,
    max_depth: int | None = None,
    max_output_length: int | None = None,
    validate_schema: bool = False,
) -> Result:
    """Convert a filter into a parameterized SELECT over ``schema``.

    Takes the same arguments as :func:`convert`.

    Returns:
        Result with SQL containing dialect placeholders and the parameter list.

    Raises:
        FilterError: If parsing, compilation or rendering fails.
    """
    return _build_query(
        filter_text,
        schema,
        dialect=dialect,
        config=config,
        sort=sort,
        max_depth=max_depth,
        max_output_length=max_output_length,
        validate_schema=validate_schema,
    ).to_parameterized()


def query_from_params(
    params: Mapping[str, str | Sequence[str]],
    schema: Schema,
    *,
    dialect: Dialect | None = None,
    config: BuilderConfig | None = None,
    filter_parameter: str = DEFAULT_FILTER_PARAMETER,
    sort_parameter: str = DEFAULT_SORT_PARAMETER,
    flat: bool = True,
    validate_schema: bool = False,
) -> Query:
    """Build a Query from decoded query-string parameters.

    Combines the JSON filter in ``filter_parameter``, flat
    ``field=method:value`` filters for schema fields (when ``flat`` is
    True) and the sort specification in ``sort_parameter``.
    """

    def single(name: str) -> str | None:
        raw = params.get(name)
        if raw is None or isinstance(raw, str):
            return raw
        return raw[-1] if raw else None

    query = Query(schema, dialect=dialect)
    compiled = compile_filter(
        single(filter_parameter), schema, config=config, validate_schema=validate_schema
    )
    apply(compiled, query)
    if flat:
        flat_compiled = compile_filter(
            parse_query_parameters(params, schema),
            schema,
            config=config,
            validate_schema=validate_schema,
        )
        apply(flat_compiled, query)
    query.sort(*parse_sort(single(sort_parameter), key_map=_sort_key_map(config)))
    return query
