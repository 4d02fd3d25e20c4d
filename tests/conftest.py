from __future__ import annotations

from pathlib import Path

import pytest

from tempcast.adapters.weather import WeatherAdapterError
from tempcast.domain.models import DailyTemperatures
from tempcast.resolver import WeatherResolver
from tempcast.storage import SqliteTemperatureStore, initialize_database

FIXED_TODAY = "2025-01-15"


class FakeWeatherAdapter:
    """In-memory provider: known (city, date) pairs answer, everything else fails."""

    def __init__(self, days: dict[tuple[str, str], tuple[float, float]] | None = None) -> None:
        self.days = dict(days or {})
        self.calls: list[tuple[str, str]] = []

    def get_daily_temperatures(self, city: str, date: str) -> DailyTemperatures:
        self.calls.append((city, date))
        try:
            max_temp, min_temp = self.days[(city, date)]
        except KeyError as exc:
            raise WeatherAdapterError(f"no data for {city} on {date}") from exc
        return DailyTemperatures(date=date, max_temp=max_temp, min_temp=min_temp)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "data" / "tempcast.db"
    initialize_database(path)
    return path


@pytest.fixture
def store(db_path: Path) -> SqliteTemperatureStore:
    return SqliteTemperatureStore(db_path)


@pytest.fixture
def adapter() -> FakeWeatherAdapter:
    return FakeWeatherAdapter()


@pytest.fixture
def resolver(store: SqliteTemperatureStore, adapter: FakeWeatherAdapter) -> WeatherResolver:
    return WeatherResolver(store, adapter, today=lambda: FIXED_TODAY)
