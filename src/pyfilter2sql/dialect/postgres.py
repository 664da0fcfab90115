"""PostgreSQL dialect implementation."""

from __future__ import annotations

from datetime import datetime
from io import StringIO

from pyfilter2sql._utils import escape_string_literal, validate_field_name
from pyfilter2sql.dialect._base import Dialect, DialectName, WriteFunc


class PostgresDialect(Dialect):
    """PostgreSQL dialect: native arrays, SIMILAR TO and text search."""

    name = DialectName.POSTGRESQL

    # --- Literals ---

    def write_string_literal(self, w: StringIO, value: str) -> None:
        w.write(f"'{escape_string_literal(value)}'")

    def write_bool_literal(self, w: StringIO, value: bool) -> None:
        w.write("TRUE" if value else "FALSE")

    def write_date_literal(self, w: StringIO, value: datetime) -> None:
        w.write(f"TIMESTAMP WITH TIME ZONE '{value.isoformat(sep=' ')}'")

    def write_param_placeholder(self, w: StringIO, param_index: int) -> None:
        w.write(f"${param_index}")

    # --- Pattern matching ---

    def write_like_escape(self, w: StringIO) -> None:
        w.write(" ESCAPE E'\\\\'")

    def write_similar_to(
        self, w: StringIO, write_target: WriteFunc, write_pattern: WriteFunc
    ) -> None:
        write_target()
        w.write(" SIMILAR TO ")
        write_pattern()

    def write_full_text_search(
        self, w: StringIO, write_target: WriteFunc, write_query: WriteFunc
    ) -> None:
        w.write("to_tsvector(")
        write_target()
        w.write(") @@ plainto_tsquery(")
        write_query()
        w.write(")")

    # --- Arrays ---

    def write_array_literal_open(self, w: StringIO) -> None:
        w.write("ARRAY[")

    def write_array_literal_close(self, w: StringIO) -> None:
        w.write("]")

    def write_empty_array(self, w: StringIO) -> None:
        # Untyped literal; takes the column's array type.
        w.write("'{}'")

    def write_array_contains(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        write_column()
        w.write(" @> ")
        write_array()

    def write_array_contained_by(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        write_column()
        w.write(" <@ ")
        write_array()

    def write_array_overlaps(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        write_column()
        w.write(" && ")
        write_array()

    # --- Validation ---

    def max_identifier_length(self) -> int:
        return 63

    def validate_field_name(self, name: str) -> None:
        validate_field_name(name)

    # --- Capabilities ---

    def supports_native_arrays(self) -> bool:
        return True
