"""SQL dialects for rendering compiled filters."""

from pyfilter2sql.dialect._base import Dialect, DialectName
from pyfilter2sql.dialect.duckdb import DuckDBDialect
from pyfilter2sql.dialect.mysql import MySQLDialect
from pyfilter2sql.dialect.postgres import PostgresDialect
from pyfilter2sql.dialect.sqlite import SQLiteDialect

__all__ = [
    "Dialect",
    "DialectName",
    "DuckDBDialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "get_dialect",
]

_REGISTRY: dict[str, type[Dialect]] = {
    DialectName.POSTGRESQL: PostgresDialect,
    DialectName.DUCKDB: DuckDBDialect,
    DialectName.MYSQL: MySQLDialect,
    DialectName.SQLITE: SQLiteDialect,
}


def get_dialect(name: str) -> Dialect:
    """Get a dialect instance by name.

    Args:
        name: Dialect name ("postgresql", "mysql", "sqlite" or "duckdb").

    Returns:
        A Dialect instance.

    Raises:
        ValueError: If the dialect name is unknown.
    """
    cls = _REGISTRY.get(name)
    if cls is None:
        raise ValueError(
            f"unknown dialect: {name!r}. "
            f"Available: {', '.join(sorted(_REGISTRY))}"
        )
    return cls()
