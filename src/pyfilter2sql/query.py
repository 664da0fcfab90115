"""SELECT builder that compiled filters are applied to."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pyfilter2sql._constants import DEFAULT_MAX_DEPTH, DEFAULT_MAX_SQL_OUTPUT_LENGTH
from pyfilter2sql._renderer import Renderer
from pyfilter2sql._sort import Sort
from pyfilter2sql.dialect._base import Dialect
from pyfilter2sql.dialect.postgres import PostgresDialect
from pyfilter2sql.predicate import (
    TRUE,
    CompiledFilter,
    FieldPath,
    Group,
    GroupOp,
    Join,
    Predicate,
    TruePredicate,
    check_join,
)
from pyfilter2sql.schema import Schema

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Result:
    """Result of a parameterized conversion."""

    sql: str
    parameters: list[Any] = field(default_factory=list)


class Query:
    """A ``SELECT`` over one table with joins, filters and ordering.

    Identical joins are kept once; multiple filters are ANDed.
    """

    def __init__(
        self,
        schema: Schema,
        *,
        dialect: Dialect | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_output_length: int = DEFAULT_MAX_SQL_OUTPUT_LENGTH,
    ) -> None:
        self.schema = schema
        self.dialect = dialect or PostgresDialect()
        self._max_depth = max_depth
        self._max_output_length = max_output_length
        self._joins: dict[str, Join] = {}
        self._filters: list[Predicate] = []
        self._sorts: list[Sort] = []

    @property
    def joins(self) -> tuple[Join, ...]:
        return tuple(self._joins.values())

    @property
    def predicate(self) -> Predicate:
        filters = [p for p in self._filters if not isinstance(p, TruePredicate)]
        if not filters:
            return TRUE
        if len(filters) == 1:
            return filters[0]
        return Group(tuple(filters), GroupOp.AND)

    def join(self, join: Join) -> Query:
        """Add an inner join; an identical join already present is kept once.

        Raises:
            UnsupportedFilterOperationError: If the join targets the root
                table or a table already joined on different keys.
        """
        check_join(join, self.schema.name, self._joins)
        if join.schema in self._joins:
            log.debug("join to %s already present", join.schema)
            return self
        self._joins[join.schema] = join
        return self

    def filter(self, predicate: Predicate) -> Query:
        self._filters.append(predicate)
        return self

    def sort(self, *sorts: Sort) -> Query:
        self._sorts.extend(sorts)
        return self

    def _sort_path(self, sort: Sort) -> FieldPath:
        found = self.schema.find_field(sort.field)
        if found is not None:
            return FieldPath(self.schema.name, (found.column,))
        return FieldPath(self.schema.name, tuple(sort.field.split(".")))

    def _render(self, parameterize: bool) -> Renderer:
        renderer = Renderer(
            self.dialect,
            max_depth=self._max_depth,
            max_output_length=self._max_output_length,
            parameterize=parameterize,
        )
        renderer.write_select(
            self.schema.name,
            self.joins,
            self.predicate,
            [(self._sort_path(s), s.direction) for s in self._sorts],
        )
        return renderer

    def to_sql(self) -> str:
        """Render the query with inline literals."""
        return self._render(parameterize=False).result

    def to_parameterized(self) -> Result:
        """Render the query with dialect placeholders and a parameter list."""
        renderer = self._render(parameterize=True)
        return Result(sql=renderer.result, parameters=renderer.parameters)


def apply(compiled: CompiledFilter, query: Query) -> Query:
    """Add a compiled filter's joins and predicate to ``query``."""
    for join in compiled.joins:
        query.join(join)
    return query.filter(compiled.predicate)
