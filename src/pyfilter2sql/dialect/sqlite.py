"""SQLite dialect implementation."""

from __future__ import annotations

from datetime import datetime
from io import StringIO
from typing import Any

from pyfilter2sql._utils import check_identifier, escape_string_literal
from pyfilter2sql.dialect._base import (
    Dialect,
    DialectName,
    WriteFunc,
    format_utc,
    unsupported,
)

# SQLite reserved keywords
_SQLITE_RESERVED: set[str] = {
    "abort", "action", "add", "after", "all", "alter", "always", "analyze",
    "and", "as", "asc", "attach", "autoincrement", "before", "begin",
    "between", "by", "cascade", "case", "cast", "check", "collate",
    "column", "commit", "conflict", "constraint", "create", "cross",
    "current", "current_date", "current_time", "current_timestamp",
    "database", "default", "deferrable", "deferred", "delete", "desc",
    "detach", "distinct", "do", "drop", "each", "else", "end", "escape",
    "except", "exclude", "exclusive", "exists", "explain", "fail",
    "filter", "first", "following", "for", "foreign", "from", "full",
    "generated", "glob", "group", "groups", "having", "if", "ignore",
    "immediate", "in", "index", "indexed", "initially", "inner", "insert",
    "instead", "intersect", "into", "is", "isnull", "join", "key",
    "last", "left", "like", "limit", "match", "materialized", "natural",
    "no", "not", "nothing", "notnull", "null", "nulls", "of", "offset",
    "on", "or", "order", "others", "outer", "over", "partition", "plan",
    "pragma", "preceding", "primary", "query", "raise", "range",
    "recursive", "references", "regexp", "reindex", "release", "rename",
    "replace", "restrict", "returning", "right", "rollback", "row",
    "rows", "savepoint", "select", "set", "table", "temp", "temporary",
    "then", "ties", "to", "transaction", "trigger", "true", "unbounded",
    "union", "unique", "update", "using", "vacuum", "values", "view",
    "virtual", "when", "where", "window", "with", "without",
}


class SQLiteDialect(Dialect):
    """SQLite dialect: arrays are JSON text read through json_each()."""

    name = DialectName.SQLITE

    # --- Literals ---

    def write_string_literal(self, w: StringIO, value: str) -> None:
        w.write(f"'{escape_string_literal(value)}'")

    def write_bool_literal(self, w: StringIO, value: bool) -> None:
        w.write("1" if value else "0")

    def write_date_literal(self, w: StringIO, value: datetime) -> None:
        w.write(f"'{format_utc(value)}'")

    def write_param_placeholder(self, w: StringIO, param_index: int) -> None:
        w.write("?")

    def date_parameter(self, value: datetime) -> Any:
        return format_utc(value)

    # --- Pattern matching ---

    def write_like_escape(self, w: StringIO) -> None:
        w.write(" ESCAPE '\\'")

    def write_similar_to(
        self, w: StringIO, write_target: WriteFunc, write_pattern: WriteFunc
    ) -> None:
        raise unsupported(self.name, "SIMILAR TO matching")

    def write_full_text_search(
        self, w: StringIO, write_target: WriteFunc, write_query: WriteFunc
    ) -> None:
        raise unsupported(self.name, "full-text search")

    # --- Arrays ---

    def write_array_literal_open(self, w: StringIO) -> None:
        w.write("json_array(")

    def write_array_literal_close(self, w: StringIO) -> None:
        w.write(")")

    def write_empty_array(self, w: StringIO) -> None:
        w.write("json_array()")

    def write_array_contains(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        w.write("NOT EXISTS (SELECT 1 FROM json_each(")
        write_array()
        w.write(") WHERE value NOT IN (SELECT value FROM json_each(")
        write_column()
        w.write(")))")

    def write_array_contained_by(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        w.write("NOT EXISTS (SELECT 1 FROM json_each(")
        write_column()
        w.write(") WHERE value NOT IN (SELECT value FROM json_each(")
        write_array()
        w.write(")))")

    def write_array_overlaps(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        w.write("EXISTS (SELECT 1 FROM json_each(")
        write_column()
        w.write(") WHERE value IN (SELECT value FROM json_each(")
        write_array()
        w.write(")))")

    # --- Validation ---

    def max_identifier_length(self) -> int:
        return 0  # No limit

    def validate_field_name(self, name: str) -> None:
        check_identifier(name, reserved=_SQLITE_RESERVED, dialect_label="SQLite")

    # --- Capabilities ---

    def supports_native_arrays(self) -> bool:
        return False
