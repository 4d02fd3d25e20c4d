from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

SCHEMA_VERSION = 1

# The (city, date) key also serves the per-city "date IN (...)" lookups used for averages.
RECORDS_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS temperature_records (
    city TEXT NOT NULL CHECK (length(trim(city)) > 0),
    date TEXT NOT NULL CHECK (date GLOB '[0-9][0-9][0-9][0-9]-[0-9][0-9]-[0-9][0-9]'),
    max_temp REAL NOT NULL CHECK (max_temp >= -273.15 AND max_temp < 1000),
    min_temp REAL NOT NULL CHECK (min_temp >= -273.15 AND min_temp < 1000),
    updated_at TEXT NOT NULL,
    PRIMARY KEY (city, date)
) WITHOUT ROWID;
"""


def _prepare_db_path(db_path: Path) -> Path:
    normalized = Path(db_path)
    normalized.parent.mkdir(parents=True, exist_ok=True)
    return normalized


def connect(db_path: Path) -> sqlite3.Connection:
    normalized = _prepare_db_path(db_path)
    connection = sqlite3.connect(normalized)
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA journal_mode = WAL;")
    connection.execute("PRAGMA synchronous = NORMAL;")
    return connection


def schema_version(connection: sqlite3.Connection) -> int:
    return int(connection.execute("PRAGMA user_version;").fetchone()[0])


def ensure_schema(connection: sqlite3.Connection) -> None:
    connection.executescript(RECORDS_TABLE_SCHEMA)
    if schema_version(connection) < SCHEMA_VERSION:
        connection.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
    connection.commit()


@contextmanager
def open_db(db_path: Path) -> Iterator[sqlite3.Connection]:
    connection = connect(db_path)
    try:
        ensure_schema(connection)
        yield connection
    finally:
        connection.close()


def initialize_database(db_path: Path) -> None:
    with open_db(db_path):
        return
