"""Abstract base class for SQL dialects."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone
from io import StringIO
from typing import Any

from pyfilter2sql._errors import (
    ERR_MSG_UNSUPPORTED_OPERATION,
    UnsupportedFilterOperationError,
)


class DialectName(enum.StrEnum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    DUCKDB = "duckdb"


WriteFunc = Callable[[], None]
"""Callback that writes a sub-expression to the shared StringIO buffer."""


def format_utc(value: datetime) -> str:
    """Format an aware datetime as naive UTC ``YYYY-MM-DD HH:MM:SS[.ffffff]``."""
    utc = value.astimezone(timezone.utc)
    if utc.microsecond:
        return utc.strftime("%Y-%m-%d %H:%M:%S.%f")
    return utc.strftime("%Y-%m-%d %H:%M:%S")


def unsupported(dialect: str, operation: str) -> UnsupportedFilterOperationError:
    return UnsupportedFilterOperationError(
        ERR_MSG_UNSUPPORTED_OPERATION,
        f"{operation} is not supported by the {dialect} dialect",
    )


class Dialect(ABC):
    """Abstract base class defining the SQL dialect interface.

    All SQL-syntax-specific code lives behind this interface.
    Methods receive a StringIO writer and callback functions for sub-expressions.
    """

    name: DialectName

    # --- Literals ---

    @abstractmethod
    def write_string_literal(self, w: StringIO, value: str) -> None: ...

    @abstractmethod
    def write_bool_literal(self, w: StringIO, value: bool) -> None: ...

    @abstractmethod
    def write_date_literal(self, w: StringIO, value: datetime) -> None: ...

    @abstractmethod
    def write_param_placeholder(self, w: StringIO, param_index: int) -> None: ...

    def date_parameter(self, value: datetime) -> Any:
        """Convert a date bound for the driver; drivers with timezone support take it as is."""
        return value

    # --- Pattern matching ---

    @abstractmethod
    def write_like_escape(self, w: StringIO) -> None: ...

    @abstractmethod
    def write_similar_to(
        self, w: StringIO, write_target: WriteFunc, write_pattern: WriteFunc
    ) -> None: ...

    @abstractmethod
    def write_full_text_search(
        self, w: StringIO, write_target: WriteFunc, write_query: WriteFunc
    ) -> None: ...

    # --- Arrays ---

    @abstractmethod
    def write_array_literal_open(self, w: StringIO) -> None: ...

    @abstractmethod
    def write_array_literal_close(self, w: StringIO) -> None: ...

    @abstractmethod
    def write_empty_array(self, w: StringIO) -> None: ...

    @abstractmethod
    def write_array_contains(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None: ...

    @abstractmethod
    def write_array_contained_by(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None: ...

    @abstractmethod
    def write_array_overlaps(
        self, w: StringIO, write_column: WriteFunc, write_array: WriteFunc
    ) -> None: ...

    # --- Validation ---

    @abstractmethod
    def max_identifier_length(self) -> int: ...

    @abstractmethod
    def validate_field_name(self, name: str) -> None: ...

    # --- Capabilities ---

    @abstractmethod
    def supports_native_arrays(self) -> bool:
        """Whether arrays are native; otherwise they are JSON text."""
