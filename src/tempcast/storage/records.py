from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Protocol, TypeVar

from ..domain.dates import prior_year_dates
from ..domain.models import TemperatureRecord, round_half_up
from .db import open_db

T = TypeVar("T")

HISTORY_YEARS = 10


class StoreError(RuntimeError):
    """Raised when the temperature store cannot be read or written."""


class TemperatureStore(Protocol):
    def get(self, city: str, date: str) -> TemperatureRecord | None:
        """Return the record stored for (city, date), if any."""

    def put(self, record: TemperatureRecord) -> None:
        """Insert the record, replacing any existing one for the same key."""

    def average_max(self, city: str, date: str) -> float | None:
        """Mean max temperature over the prior years, only with full coverage."""

    def average_min(self, city: str, date: str) -> float | None:
        """Mean min temperature over the prior years, only with full coverage."""

    def clear_all(self) -> None:
        """Delete every stored record."""

    def list_records(self) -> list[TemperatureRecord]:
        """Return every stored record."""


def _row_to_record(row) -> TemperatureRecord:
    return TemperatureRecord(
        city=row["city"],
        date=row["date"],
        max_temp=float(row["max_temp"]),
        min_temp=float(row["min_temp"]),
    )


def put_record(db_path: Path, record: TemperatureRecord, *, updated_at: datetime | None = None) -> None:
    record_time = updated_at or datetime.now(timezone.utc)
    with open_db(db_path) as connection:
        connection.execute(
            """
            INSERT INTO temperature_records (city, date, max_temp, min_temp, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(city, date) DO UPDATE SET
                max_temp=excluded.max_temp,
                min_temp=excluded.min_temp,
                updated_at=excluded.updated_at
            """,
            (record.city, record.date, record.max_temp, record.min_temp, record_time.isoformat()),
        )
        connection.commit()


def get_record(db_path: Path, city: str, date: str) -> TemperatureRecord | None:
    with open_db(db_path) as connection:
        row = connection.execute(
            "SELECT city, date, max_temp, min_temp FROM temperature_records WHERE city = ? AND date = ?",
            (city, date),
        ).fetchone()

    if row is None:
        return None
    return _row_to_record(row)


def list_records(db_path: Path) -> list[TemperatureRecord]:
    with open_db(db_path) as connection:
        rows = connection.execute(
            "SELECT city, date, max_temp, min_temp FROM temperature_records ORDER BY city ASC, date ASC"
        ).fetchall()
    return [_row_to_record(row) for row in rows]


def count_records(db_path: Path) -> int:
    with open_db(db_path) as connection:
        row = connection.execute("SELECT COUNT(*) AS total FROM temperature_records").fetchone()
    return int(row["total"])


def clear_records(db_path: Path) -> int:
    with open_db(db_path) as connection:
        cursor = connection.execute("DELETE FROM temperature_records")
        deleted = cursor.rowcount
        connection.commit()
    return deleted


def _historical_average(
    db_path: Path,
    column: str,
    city: str,
    date: str,
    *,
    years: int,
) -> float | None:
    if column not in ("max_temp", "min_temp"):
        raise ValueError(f"Unsupported temperature column: {column}")

    candidate_dates = prior_year_dates(date, years)
    if len(candidate_dates) != years:
        return None

    placeholders = ", ".join("?" for _ in candidate_dates)
    with open_db(db_path) as connection:
        row = connection.execute(
            f"""
            SELECT COUNT(*) AS total, AVG({column}) AS average
            FROM temperature_records
            WHERE city = ? AND date IN ({placeholders})
            """,
            (city, *candidate_dates),
        ).fetchone()

    if row is None or int(row["total"]) != years or row["average"] is None:
        return None
    return round_half_up(float(row["average"]))


def average_max_temp(db_path: Path, city: str, date: str, *, years: int = HISTORY_YEARS) -> float | None:
    return _historical_average(db_path, "max_temp", city, date, years=years)


def average_min_temp(db_path: Path, city: str, date: str, *, years: int = HISTORY_YEARS) -> float | None:
    return _historical_average(db_path, "min_temp", city, date, years=years)


def _guarded(operation: Callable[[], T], *, action: str) -> T:
    try:
        return operation()
    except sqlite3.Error as exc:
        raise StoreError(f"Temperature store failed to {action}") from exc


class SqliteTemperatureStore:
    def __init__(self, db_path: Path, *, history_years: int = HISTORY_YEARS) -> None:
        self._db_path = Path(db_path)
        self._history_years = history_years

    @property
    def db_path(self) -> Path:
        return self._db_path

    def get(self, city: str, date: str) -> TemperatureRecord | None:
        return _guarded(lambda: get_record(self._db_path, city, date), action="read a record")

    def put(self, record: TemperatureRecord) -> None:
        _guarded(lambda: put_record(self._db_path, record), action="write a record")

    def average_max(self, city: str, date: str) -> float | None:
        return _guarded(
            lambda: average_max_temp(self._db_path, city, date, years=self._history_years),
            action="average max temperatures",
        )

    def average_min(self, city: str, date: str) -> float | None:
        return _guarded(
            lambda: average_min_temp(self._db_path, city, date, years=self._history_years),
            action="average min temperatures",
        )

    def clear_all(self) -> None:
        _guarded(lambda: clear_records(self._db_path), action="clear records")

    def list_records(self) -> list[TemperatureRecord]:
        return _guarded(lambda: list_records(self._db_path), action="list records")

    def count(self) -> int:
        return _guarded(lambda: count_records(self._db_path), action="count records")
