"""MySQL dialect implementation."""

from __future__ import annotations

from datetime import datetime
from io import StringIO
from typing import Any

from pyfilter2sql._utils import check_identifier
from pyfilter2sql.dialect._base import (
    Dialect,
    DialectName,
    WriteFunc,
    format_utc,
    unsupported,
)

# MySQL reserved keywords
_MYSQL_RESERVED: set[str] = {
    "accessible", "add", "all", "alter", "analyze", "and", "as", "asc",
    "asensitive", "before", "between", "bigint", "binary", "blob", "both",
    "by", "call", "cascade", "case", "change", "char", "character", "check",
    "collate", "column", "condition", "constraint", "continue", "convert",
    "create", "cross", "cube", "cume_dist", "current_date", "current_time",
    "current_timestamp", "current_user", "cursor", "database", "databases",
    "day_hour", "day_microsecond", "day_minute", "day_second", "dec",
    "decimal", "declare", "default", "delayed", "delete", "dense_rank",
    "desc", "describe", "deterministic", "distinct", "distinctrow", "div",
    "double", "drop", "dual", "each", "else", "elseif", "empty",
    "enclosed", "escaped", "except", "exists", "exit", "explain", "false",
    "fetch", "float", "float4", "float8", "for", "force", "foreign",
    "from", "fulltext", "function", "generated", "get", "grant", "group",
    "grouping", "groups", "having", "high_priority", "hour_microsecond",
    "hour_minute", "hour_second", "if", "ignore", "in", "index", "infile",
    "inner", "inout", "insensitive", "insert", "int", "int1", "int2",
    "int3", "int4", "int8", "integer", "interval", "into", "io_after_gtids",
    "io_before_gtids", "is", "iterate", "join", "json_table", "key",
    "keys", "kill", "lag", "last_value", "lateral", "lead", "leading",
    "leave", "left", "like", "limit", "linear", "lines", "load",
    "localtime", "localtimestamp", "lock", "long", "longblob", "longtext",
    "loop", "low_priority", "master_bind", "master_ssl_verify_server_cert",
    "match", "maxvalue", "mediumblob", "mediumint", "mediumtext", "member",
    "merge", "middleint", "minute_microsecond", "minute_second", "mod",
    "modifies", "natural", "not", "no_write_to_binlog", "null",
    "numeric", "of", "on", "optimize", "optimizer_costs", "option",
    "optionally", "or", "order", "out", "outer", "outfile", "over",
    "partition", "percent_rank", "primary", "procedure", "purge",
    "range", "rank", "read", "reads", "read_write", "real", "recursive",
    "references", "regexp", "release", "rename", "repeat", "replace",
    "require", "resignal", "restrict", "return", "revoke", "right",
    "rlike", "row", "rows", "row_number", "schema", "schemas",
    "second_microsecond", "select", "sensitive", "separator", "set",
    "show", "signal", "smallint", "spatial", "specific", "sql",
    "sqlexception", "sqlstate", "sqlwarning", "sql_big_result",
    "sql_calc_found_rows", "sql_small_result", "ssl", "starting",
    "stored", "straight_join", "system", "table", "terminated", "then",
    "tinyblob", "tinyint", "tinytext", "to", "trailing", "trigger",
    "true", "undo", "union", "unique", "unlock", "unsigned", "update",
    "usage", "use", "using", "utc_date", "utc_time", "utc_timestamp",
    "values", "varbinary", "varchar", "varcharacter", "varying", "virtual",
    "when", "where", "while", "window", "with", "write", "xor",
    "year_month", "zerofill",
}


class MySQLDialect(Dialect):
    """MySQL dialect: arrays are JSON columns, full-text via MATCH ... AGAINST."""

    name = DialectName.MYSQL

    # --- Literals ---

    def write_string_literal(self, w: StringIO, value: str) -> None:
        # Backslash is an escape character in MySQL string literals.
        escaped = value.replace("\\", "\\\\").replace("'", "''")
        w.write(f"'{escaped}'")

    def write_bool_literal(self, w: StringIO, value: bool) -> None:
        w.write("TRUE" if value else "FALSE")

    def write_date_literal(self, w: StringIO, value: datetime) -> None:
        w.write(f"'{format_utc(value)}'")

    def write_param_placeholder(self, w: StringIO, param_index: int) -> None:
        w.write("?")

    def date_parameter(self, value: datetime) -> Any:
        return format_utc(value)

    # --- Pattern matching ---

    def write_like_escape(self, w: StringIO) -> None:
        w.write(" ESCAPE '\\\\'")

    def write_similar_to(
        self, w: StringIO, write_target: WriteFunc, write_pattern: WriteFunc
    ) -> None:
        raise unsupported(self.name, "SIMILAR TO matching")

    def write_full_text_search(
        self, w: StringIO, write_target: WriteFunc, write_query: WriteFunc
    ) -> None:
        w.write("MATCH(")
        write_target()
        w.write(") AGAINST(")
        write_query()
        w.write(" IN NATURAL LANGUAGE MODE)")

    # --- Arrays ---

    def write_array_literal_open(self, w: StringIO) -> None:
        raise unsupported(self.name, "native array literals")

    def write_array_literal_close(self, w: StringIO) -> None:
        raise unsupported(self.name, "native array literals")

    def write_empty_array(self, w: StringIO) -> None:
        w.write("'[]'")

    def write_array_contains(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        w.write("JSON_CONTAINS(")
        write_column()
        w.write(", ")
        write_array()
        w.write(")")

    def write_array_contained_by(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        w.write("JSON_CONTAINS(")
        write_array()
        w.write(", ")
        write_column()
        w.write(")")

    def write_array_overlaps(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None:
        w.write("JSON_OVERLAPS(")
        write_column()
        w.write(", ")
        write_array()
        w.write(")")

    # --- Validation ---

    def max_identifier_length(self) -> int:
        return 64

    def validate_field_name(self, name: str) -> None:
        check_identifier(
            name,
            max_length=self.max_identifier_length(),
            reserved=_MYSQL_RESERVED,
            dialect_label="MySQL",
        )

    # --- Capabilities ---

    def supports_native_arrays(self) -> bool:
        return False
