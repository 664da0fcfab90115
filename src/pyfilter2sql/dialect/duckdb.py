"""DuckDB dialect implementation."""

from __future__ import annotations

from datetime import datetime
from io import StringIO

from pyfilter2sql._utils import check_identifier, escape_string_literal
from pyfilter2sql.dialect._base import Dialect, DialectName, WriteFunc, unsupported

# DuckDB reserved keywords
_DUCKDB_RESERVED: set[str] = {
    "all", "alter", "and", "any", "array", "as", "asc", "between",
    "by", "case", "cast", "check", "column", "constraint", "create",
    "cross", "current", "current_date", "current_time", "current_timestamp",
    "default", "delete", "desc", "distinct", "drop", "else", "end",
    "except", "exists", "false", "for", "foreign", "from", "full",
    "grant", "group", "having", "in", "index", "inner", "insert",
    "intersect", "into", "is", "isnull", "join", "lateral", "left",
    "like", "limit", "not", "notnull", "null", "offset", "on", "or",
    "order", "outer", "primary", "references", "right", "select", "set",
    "table", "then", "to", "true", "union", "unique", "update", "using",
    "values", "when", "where", "with",
}


class DuckDBDialect(Dialect):
    """DuckDB dialect: native lists, no built-in full-text search."""

    name = DialectName.DUCKDB

    # --- Literals ---

    def write_string_literal(self, w: StringIO, value: str) -> None:
        w.write(f"'{escape_string_literal(value)}'")

    def write_bool_literal(self, w: StringIO, value: bool) -> None:
        w.write("TRUE" if value else "FALSE")

    def write_date_literal(self, w: StringIO, value: datetime) -> None:
        w.write(f"TIMESTAMPTZ '{value.isoformat(sep=' ')}'")

    def write_param_placeholder(self, w: StringIO, param_index: int) -> None:
        w.write(f"${param_index}")

    # --- Pattern matching ---

    def write_like_escape(self, w: StringIO) -> None:
        w.write(" ESCAPE '\\'")

    def write_similar_to(
        self, w: StringIO, write_target: WriteFunc, write_pattern: WriteFunc
    ) -> None:
        write_target()
        w.write(" SIMILAR TO ")
        write_pattern()

    def write_full_text_search(
        self, w: StringIO, write_target: WriteFunc, write_query: WriteFunc
    ) -> None:
        raise unsupported(self.name, "full-text search")

    # --- Arrays ---

    def write_array_literal_open(self, w: StringIO) -> None:
        w.write("[")

    def write_array_literal_close(self, w: StringIO) -> None:
        w.write("]")

    def write_empty_array(self, w: StringIO) -> None:
        w.write("[]")

    def write_array_contains(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        w.write("list_has_all(")
        write_column()
        w.write(", ")
        write_array()
        w.write(")")

    def write_array_contained_by(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        w.write("list_has_all(")
        write_array()
        w.write(", ")
        write_column()
        w.write(")")

    def write_array_overlaps(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        w.write("list_has_any(")
        write_column()
        w.write(", ")
        write_array()
        w.write(")")

    # --- Validation ---

    def max_identifier_length(self) -> int:
        return 0  # No limit

    def validate_field_name(self, name: str) -> None:
        check_identifier(name, reserved=_DUCKDB_RESERVED, dialect_label="DuckDB")

    # --- Capabilities ---

    def supports_native_arrays(self) -> bool:
        return True
