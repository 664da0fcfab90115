"""Shared test fixtures."""

import pytest

from pyfilter2sql.dialect.duckdb import DuckDBDialect
from pyfilter2sql.dialect.mysql import MySQLDialect
from pyfilter2sql.dialect.postgres import PostgresDialect
from pyfilter2sql.dialect.sqlite import SQLiteDialect
from pyfilter2sql.schema import FieldSchema, Schema


@pytest.fixture
def pg_dialect():
    return PostgresDialect()


@pytest.fixture
def duckdb_dialect():
    return DuckDBDialect()


@pytest.fixture
def mysql_dialect():
    return MySQLDialect()


@pytest.fixture
def sqlite_dialect():
    return SQLiteDialect()


@pytest.fixture
def people():
    return Schema("people", [
        FieldSchema("id", "int"),
        FieldSchema("name", "text"),
        FieldSchema("age", "int"),
        FieldSchema("height", "double"),
        FieldSchema("active", "bool"),
        FieldSchema("email", "text"),
        FieldSchema("tags", "text", repeated=True),
        FieldSchema("created_at", "timestamp"),
        FieldSchema("team_id", "int"),
        FieldSchema("address.city", "text", key="address_city"),
    ])


@pytest.fixture
def pets():
    return Schema("pets", [
        FieldSchema("id", "int"),
        FieldSchema("owner_id", "int"),
        FieldSchema("name", "text"),
        FieldSchema("species", "text"),
    ])


@pytest.fixture
def teams():
    return Schema("teams", [
        FieldSchema("id", "int"),
        FieldSchema("name", "text"),
    ])


@pytest.fixture
def clubs():
    return Schema("clubs", [
        FieldSchema("id", "int"),
        FieldSchema("title", "text"),
    ])


ALL_DIALECTS = [
    PostgresDialect(),
    DuckDBDialect(),
    MySQLDialect(),
    SQLiteDialect(),
]
