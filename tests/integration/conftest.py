"""Fixtures and helpers for integration tests against real databases."""

from __future__ import annotations

import json
import os
import re
import shutil
import subprocess
from typing import Any

import pytest

from pyfilter2sql import convert, convert_parameterized
from pyfilter2sql.config import BuilderConfig, children, parent, siblings
from pyfilter2sql.dialect._base import Dialect
from pyfilter2sql.dialect.duckdb import DuckDBDialect
from pyfilter2sql.dialect.mysql import MySQLDialect
from pyfilter2sql.dialect.postgres import PostgresDialect
from pyfilter2sql.dialect.sqlite import SQLiteDialect
from pyfilter2sql.schema import FieldSchema, Schema


# ---------------------------------------------------------------------------
# Container runtime detection (Docker or Podman)
# ---------------------------------------------------------------------------

def _get_podman_socket() -> str | None:
    """Get the Podman machine socket path, if available."""
    try:
        result = subprocess.run(
            ["podman", "machine", "inspect", "--format",
             "{{.ConnectionInfo.PodmanSocket.Path}}"],
            capture_output=True, text=True, check=True, timeout=5,
        )
        sock = result.stdout.strip()
        if sock and os.path.exists(sock):
            return sock
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired,
            FileNotFoundError):
        pass
    return None


def _container_runtime_available() -> bool:
    """Check if Docker or Podman is available as a container runtime."""
    for cmd in ["docker", "podman"]:
        if shutil.which(cmd):
            try:
                subprocess.run(
                    [cmd, "info"], capture_output=True, check=True, timeout=10,
                )
                return True
            except (subprocess.CalledProcessError, subprocess.TimeoutExpired,
                    FileNotFoundError):
                continue
    return False


def _configure_testcontainers_for_podman() -> None:
    """Configure testcontainers to work with Podman."""
    if not shutil.which("podman"):
        return
    # Ryuk (resource reaper) is not always supported under Podman
    os.environ.setdefault("TESTCONTAINERS_RYUK_DISABLED", "true")
    if "DOCKER_HOST" not in os.environ:
        sock = _get_podman_socket()
        if sock:
            os.environ["DOCKER_HOST"] = f"unix://{sock}"


CONTAINER_RUNTIME_AVAILABLE = _container_runtime_available()

if CONTAINER_RUNTIME_AVAILABLE:
    _configure_testcontainers_for_podman()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

PEOPLE = Schema("people", [
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

PETS = Schema("pets", [
    FieldSchema("id", "int"),
    FieldSchema("owner_id", "int"),
    FieldSchema("name", "text"),
    FieldSchema("species", "text"),
])

TEAMS = Schema("teams", [
    FieldSchema("id", "int"),
    FieldSchema("name", "text"),
])

CLUBS = Schema("clubs", [
    FieldSchema("id", "int"),
    FieldSchema("title", "text"),
])

RELATIONS = BuilderConfig(nested_builders={
    "pets": children(PETS, "owner_id"),
    "team": parent(TEAMS, "team_id"),
    "clubs": siblings(CLUBS, "memberships", "person_id", "club_id"),
})


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

SEED_TEAMS = [(1, "Red"), (2, "Blue")]

SEED_ROWS = [
    {
        "id": 1,
        "name": "Alice",
        "age": 30,
        "height": 1.65,
        "active": True,
        "email": "alice@example.com",
        "tags": ["python", "sql"],
        "created_at": "2024-01-15T10:00:00Z",
        "team_id": 1,
        "address_city": "Paris",
    },
    {
        "id": 2,
        "name": "Bob",
        "age": 25,
        "height": 1.80,
        "active": True,
        "email": "bob@test.com",
        "tags": ["go", "rust"],
        "created_at": "2024-03-20T14:30:00Z",
        "team_id": 2,
        "address_city": "Berlin",
    },
    {
        "id": 3,
        "name": "Charlie",
        "age": 35,
        "height": 1.75,
        "active": False,
        "email": None,
        "tags": ["python", "go", "sql"],
        "created_at": "2023-06-01T08:00:00Z",
        "team_id": 1,
        "address_city": "Paris",
    },
    {
        "id": 4,
        "name": "Diana",
        "age": 28,
        "height": 1.60,
        "active": True,
        "email": "diana@example.com",
        "tags": ["rust"],
        "created_at": "2024-07-10T16:45:00Z",
        "team_id": 2,
        "address_city": "Rome",
    },
    {
        "id": 5,
        "name": "Eve",
        "age": 22,
        "height": 1.70,
        "active": False,
        "email": "eve@test.com",
        "tags": [],
        "created_at": "2024-11-05T12:00:00Z",
        "team_id": None,
        "address_city": "Berlin",
    },
]

# (id, owner_id, name, species)
SEED_PETS = [
    (1, 1, "Rex", "dog"),
    (2, 1, "Tom", "cat"),
    (3, 2, "Kitty", "cat"),
    (4, 4, "Bubbles", "fish"),
]

SEED_CLUBS = [(1, "Chess"), (2, "Hiking")]

# (person_id, club_id)
SEED_MEMBERSHIPS = [(1, 1), (3, 1), (3, 2), (5, 2)]

_PEOPLE_COLUMNS = (
    "id, name, age, height, active, email, tags, created_at, team_id, address_city"
)


def _naive_utc(value: str) -> str:
    return value.replace("T", " ").replace("Z", "")


def _person_values(row: dict[str, Any], *, tags: Any, active: Any, created_at: Any) -> tuple:
    return (
        row["id"], row["name"], row["age"], row["height"], active,
        row["email"], tags, created_at, row["team_id"], row["address_city"],
    )


# ---------------------------------------------------------------------------
# Table setup per dialect
# ---------------------------------------------------------------------------

def _setup_postgres(conn) -> None:
    cur = conn.cursor()
    cur.execute("CREATE TABLE teams (id INTEGER PRIMARY KEY, name TEXT NOT NULL)")
    cur.execute("""
        CREATE TABLE people (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            age INTEGER NOT NULL,
            height DOUBLE PRECISION NOT NULL,
            active BOOLEAN NOT NULL,
            email TEXT,
            tags TEXT[],
            created_at TIMESTAMP WITH TIME ZONE NOT NULL,
            team_id INTEGER,
            address_city TEXT
        )
    """)
    cur.execute("""
        CREATE TABLE pets (
            id INTEGER PRIMARY KEY, owner_id INTEGER NOT NULL,
            name TEXT NOT NULL, species TEXT NOT NULL
        )
    """)
    cur.execute("CREATE TABLE clubs (id INTEGER PRIMARY KEY, title TEXT NOT NULL)")
    cur.execute("CREATE TABLE memberships (person_id INTEGER NOT NULL, club_id INTEGER NOT NULL)")
    cur.executemany("INSERT INTO teams (id, name) VALUES (%s, %s)", SEED_TEAMS)
    for row in SEED_ROWS:
        cur.execute(
            f"INSERT INTO people ({_PEOPLE_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)",
            _person_values(
                row, tags=row["tags"], active=row["active"], created_at=row["created_at"]
            ),
        )
    cur.executemany(
        "INSERT INTO pets (id, owner_id, name, species) VALUES (%s, %s, %s, %s)", SEED_PETS
    )
    cur.executemany("INSERT INTO clubs (id, title) VALUES (%s, %s)", SEED_CLUBS)
    cur.executemany(
        "INSERT INTO memberships (person_id, club_id) VALUES (%s, %s)", SEED_MEMBERSHIPS
    )
    conn.commit()
    cur.close()


def _setup_duckdb(conn) -> None:
    conn.execute("CREATE TABLE teams (id INTEGER PRIMARY KEY, name VARCHAR NOT NULL)")
    conn.execute("""
        CREATE TABLE people (
            id INTEGER PRIMARY KEY,
            name VARCHAR NOT NULL,
            age INTEGER NOT NULL,
            height DOUBLE NOT NULL,
            active BOOLEAN NOT NULL,
            email VARCHAR,
            tags VARCHAR[],
            created_at TIMESTAMPTZ NOT NULL,
            team_id INTEGER,
            address_city VARCHAR
        )
    """)
    conn.execute("""
        CREATE TABLE pets (
            id INTEGER PRIMARY KEY, owner_id INTEGER NOT NULL,
            name VARCHAR NOT NULL, species VARCHAR NOT NULL
        )
    """)
    conn.execute("CREATE TABLE clubs (id INTEGER PRIMARY KEY, title VARCHAR NOT NULL)")
    conn.execute("CREATE TABLE memberships (person_id INTEGER NOT NULL, club_id INTEGER NOT NULL)")
    conn.executemany("INSERT INTO teams VALUES ($1, $2)", [list(t) for t in SEED_TEAMS])
    for row in SEED_ROWS:
        conn.execute(
            f"INSERT INTO people ({_PEOPLE_COLUMNS}) "
            "VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)",
            list(_person_values(
                row, tags=row["tags"], active=row["active"], created_at=row["created_at"]
            )),
        )
    conn.executemany("INSERT INTO pets VALUES ($1, $2, $3, $4)", [list(p) for p in SEED_PETS])
    conn.executemany("INSERT INTO clubs VALUES ($1, $2)", [list(c) for c in SEED_CLUBS])
    conn.executemany(
        "INSERT INTO memberships VALUES ($1, $2)", [list(m) for m in SEED_MEMBERSHIPS]
    )


def _setup_mysql(conn) -> None:
    cur = conn.cursor()
    cur.execute("CREATE TABLE teams (id INTEGER PRIMARY KEY, name VARCHAR(255) NOT NULL)")
    cur.execute("""
        CREATE TABLE people (
            id INTEGER PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            age INTEGER NOT NULL,
            height DOUBLE NOT NULL,
            active BOOLEAN NOT NULL,
            email VARCHAR(255),
            tags JSON,
            created_at DATETIME NOT NULL,
            team_id INTEGER,
            address_city VARCHAR(255)
        )
    """)
    cur.execute("""
        CREATE TABLE pets (
            id INTEGER PRIMARY KEY, owner_id INTEGER NOT NULL,
            name VARCHAR(255) NOT NULL, species VARCHAR(255) NOT NULL
        )
    """)
    cur.execute("CREATE TABLE clubs (id INTEGER PRIMARY KEY, title VARCHAR(255) NOT NULL)")
    cur.execute("CREATE TABLE memberships (person_id INTEGER NOT NULL, club_id INTEGER NOT NULL)")
    cur.executemany("INSERT INTO teams (id, name) VALUES (%s, %s)", SEED_TEAMS)
    for row in SEED_ROWS:
        cur.execute(
            f"INSERT INTO people ({_PEOPLE_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)",
            _person_values(
                row,
                tags=json.dumps(row["tags"]),
                active=row["active"],
                created_at=_naive_utc(row["created_at"]),
            ),
        )
    cur.executemany(
        "INSERT INTO pets (id, owner_id, name, species) VALUES (%s, %s, %s, %s)", SEED_PETS
    )
    cur.executemany("INSERT INTO clubs (id, title) VALUES (%s, %s)", SEED_CLUBS)
    cur.executemany(
        "INSERT INTO memberships (person_id, club_id) VALUES (%s, %s)", SEED_MEMBERSHIPS
    )
    conn.commit()
    cur.close()


def _setup_sqlite(conn) -> None:
    conn.execute("CREATE TABLE teams (id INTEGER PRIMARY KEY, name TEXT NOT NULL)")
    conn.execute("""
        CREATE TABLE people (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            age INTEGER NOT NULL,
            height REAL NOT NULL,
            active INTEGER NOT NULL,
            email TEXT,
            tags TEXT,
            created_at TEXT NOT NULL,
            team_id INTEGER,
            address_city TEXT
        )
    """)
    conn.execute("""
        CREATE TABLE pets (
            id INTEGER PRIMARY KEY, owner_id INTEGER NOT NULL,
            name TEXT NOT NULL, species TEXT NOT NULL
        )
    """)
    conn.execute("CREATE TABLE clubs (id INTEGER PRIMARY KEY, title TEXT NOT NULL)")
    conn.execute("CREATE TABLE memberships (person_id INTEGER NOT NULL, club_id INTEGER NOT NULL)")
    conn.executemany("INSERT INTO teams (id, name) VALUES (?, ?)", SEED_TEAMS)
    for row in SEED_ROWS:
        conn.execute(
            f"INSERT INTO people ({_PEOPLE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            _person_values(
                row,
                tags=json.dumps(row["tags"]),
                active=1 if row["active"] else 0,
                created_at=_naive_utc(row["created_at"]),
            ),
        )
    conn.executemany("INSERT INTO pets (id, owner_id, name, species) VALUES (?, ?, ?, ?)", SEED_PETS)
    conn.executemany("INSERT INTO clubs (id, title) VALUES (?, ?)", SEED_CLUBS)
    conn.executemany("INSERT INTO memberships (person_id, club_id) VALUES (?, ?)", SEED_MEMBERSHIPS)
    conn.commit()


# ---------------------------------------------------------------------------
# Session-scoped container fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def pg_container():
    if not CONTAINER_RUNTIME_AVAILABLE:
        pytest.skip("No container runtime (Docker/Podman) available")
    from testcontainers.postgres import PostgresContainer
    with PostgresContainer("postgres:16") as pg:
        yield pg


@pytest.fixture(scope="session")
def mysql_container():
    if not CONTAINER_RUNTIME_AVAILABLE:
        pytest.skip("No container runtime (Docker/Podman) available")
    from testcontainers.mysql import MySqlContainer
    with MySqlContainer("mysql:8.4") as mysql:
        yield mysql


# ---------------------------------------------------------------------------
# Session-scoped database fixtures (connection + tables + data)
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def pg_db(pg_container):
    import psycopg
    host = pg_container.get_container_host_ip()
    port = pg_container.get_exposed_port(5432)
    conn = psycopg.connect(
        host=host, port=port,
        user=pg_container.username,
        password=pg_container.password,
        dbname=pg_container.dbname,
    )
    _setup_postgres(conn)
    yield conn
    conn.close()


@pytest.fixture(scope="session")
def mysql_db(mysql_container):
    import mysql.connector
    conn = mysql.connector.connect(
        host=mysql_container.get_container_host_ip(),
        port=int(mysql_container.get_exposed_port(3306)),
        user=mysql_container.username,
        password=mysql_container.password,
        database=mysql_container.dbname,
    )
    _setup_mysql(conn)
    yield conn
    conn.close()


@pytest.fixture(scope="session")
def duckdb_db():
    import duckdb
    conn = duckdb.connect(":memory:")
    _setup_duckdb(conn)
    yield conn
    conn.close()


@pytest.fixture(scope="session")
def sqlite_db():
    import sqlite3
    conn = sqlite3.connect(":memory:")
    _setup_sqlite(conn)
    yield conn
    conn.close()


# ---------------------------------------------------------------------------
# Query execution helpers
# ---------------------------------------------------------------------------

def _adapt_params_for_driver(sql: str, db_name: str) -> str:
    """Adapt parameter placeholders for the database driver.

    - PostgreSQL ($1, $2): psycopg uses %s placeholders
    - DuckDB ($1, $2): native support, no change needed
    - MySQL (?): mysql-connector uses %s
    - SQLite (?): native support, no change needed
    """
    if db_name == "pg":
        return re.sub(r"\$\d+", "%s", sql)
    if db_name == "mysql":
        return sql.replace("?", "%s")
    return sql


def _rows_to_dicts(cursor_or_result) -> list[dict[str, Any]]:
    columns = [d[0] for d in cursor_or_result.description]
    rows = cursor_or_result.fetchall()
    return [dict(zip(columns, row)) for row in rows]


def run_query(conn, sql: str, db_name: str, params: list[Any] | None = None) -> list[dict[str, Any]]:
    """Execute ``sql`` (with dialect placeholders) and return row dicts."""
    if db_name == "duckdb":
        return _rows_to_dicts(conn.execute(sql, params or []))
    if db_name == "sqlite":
        return _rows_to_dicts(conn.execute(sql, params or []))
    # pg or mysql: use a cursor
    cur = conn.cursor()
    if params:
        cur.execute(_adapt_params_for_driver(sql, db_name), tuple(params))
    else:
        cur.execute(sql)
    rows = _rows_to_dicts(cur)
    cur.close()
    return rows


def execute_filter(
    conn,
    filter_text: str,
    dialect: Dialect,
    db_name: str,
    *,
    schema: Schema = PEOPLE,
    config: BuilderConfig | None = RELATIONS,
    sort: str | None = None,
) -> list[dict[str, Any]]:
    """Convert a filter to a SELECT with inline literals and execute it."""
    sql = convert(filter_text, schema, dialect=dialect, config=config, sort=sort)
    return run_query(conn, sql, db_name)


def execute_filter_parameterized(
    conn,
    filter_text: str,
    dialect: Dialect,
    db_name: str,
    *,
    schema: Schema = PEOPLE,
    config: BuilderConfig | None = RELATIONS,
    sort: str | None = None,
) -> list[dict[str, Any]]:
    """Convert a filter to a parameterized SELECT and execute it."""
    result = convert_parameterized(filter_text, schema, dialect=dialect, config=config, sort=sort)
    return run_query(conn, result.sql, db_name, result.parameters)


def where(field: str, method: str, value: Any = None) -> str:
    """Build a single-leaf JSON filter."""
    return json.dumps({"field": field, "method": method, "value": value})


def get_names(rows: list[dict[str, Any]]) -> set[str]:
    """Extract the set of 'name' values from result rows."""
    return {row["name"] for row in rows}


# ---------------------------------------------------------------------------
# Parametrized database fixture
# ---------------------------------------------------------------------------

ALL_DBS = ["pg", "duckdb", "mysql", "sqlite"]
NO_DOCKER_DBS = ["duckdb", "sqlite"]

DIALECTS: dict[str, Dialect] = {
    "pg": PostgresDialect(),
    "duckdb": DuckDBDialect(),
    "mysql": MySQLDialect(),
    "sqlite": SQLiteDialect(),
}


@pytest.fixture(params=ALL_DBS)
def db(request):
    """Yields (connection, dialect, db_name) for each database."""
    name = request.param
    conn = request.getfixturevalue(f"{name}_db")
    return conn, DIALECTS[name], name


@pytest.fixture(params=NO_DOCKER_DBS)
def local_db(request):
    """Yields (connection, dialect, db_name) for non-Docker databases only."""
    name = request.param
    conn = request.getfixturevalue(f"{name}_db")
    return conn, DIALECTS[name], name
