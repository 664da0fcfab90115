"""Validation helpers and escaping utilities."""

from __future__ import annotations

import re

from pyfilter2sql._errors import (
    ERR_MSG_INVALID_FILTER,
    InvalidFieldNameError,
    InvalidFilterConfigurationError,
)

MAX_POSTGRESQL_IDENTIFIER_LENGTH = 63

FIELD_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

RESERVED_SQL_KEYWORDS: set[str] = {
    "all", "alter", "and", "any", "array", "as", "asc", "between",
    "by", "case", "cast", "check", "column", "constraint", "create",
    "cross", "current", "current_date", "current_time", "current_timestamp",
    "current_user", "default", "delete", "desc", "distinct", "drop",
    "else", "end", "except", "exists", "false", "for", "foreign",
    "from", "full", "grant", "group", "having", "in", "index", "inner",
    "insert", "intersect", "into", "is", "join", "left", "like", "limit",
    "not", "null", "offset", "on", "or", "order", "outer", "primary",
    "references", "right", "select", "session_user", "set", "some",
    "table", "then", "to", "true", "union", "unique", "update", "user",
    "using", "values", "when", "where", "with",
}


def check_identifier(
    name: str,
    *,
    max_length: int = 0,
    reserved: set[str] | frozenset[str] = frozenset(),
    dialect_label: str = "SQL",
) -> None:
    """Validate an unquoted SQL identifier against a dialect's rules.

    A ``max_length`` of 0 means no length limit.
    """
    if not name:
        raise InvalidFieldNameError(
            "field name cannot be empty",
            "empty field name provided",
        )
    if max_length and len(name) > max_length:
        raise InvalidFieldNameError(
            "field name too long",
            f"field name '{name}' exceeds {max_length} characters",
        )
    if not FIELD_NAME_RE.match(name):
        raise InvalidFieldNameError(
            "invalid field name format",
            f"field name '{name}' contains invalid characters",
        )
    if name.lower() in reserved:
        raise InvalidFieldNameError(
            "field name is a reserved SQL keyword",
            f"field name '{name}' is a reserved {dialect_label} keyword",
        )


def validate_field_name(name: str) -> None:
    """Validate a SQL field/identifier name."""
    check_identifier(
        name,
        max_length=MAX_POSTGRESQL_IDENTIFIER_LENGTH,
        reserved=RESERVED_SQL_KEYWORDS,
    )


def escape_like_pattern(pattern: str) -> str:
    """Escape LIKE wildcards so the pattern matches literally.

    Quotes are left alone; literal quoting is the dialect's job.
    """
    result = pattern.replace("\\", "\\\\")
    result = result.replace("%", "\\%")
    result = result.replace("_", "\\_")
    return result


def escape_string_literal(value: str) -> str:
    """Escape a string for use as a SQL string literal."""
    return value.replace("'", "''")


def validate_no_null_bytes(value: str, context: str = "string values") -> None:
    """Reject strings containing null bytes."""
    if "\x00" in value:
        raise InvalidFilterConfigurationError(
            ERR_MSG_INVALID_FILTER,
            f"null byte found in {context}: {value!r}",
        )
