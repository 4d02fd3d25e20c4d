from __future__ import annotations

from typing import Protocol

from ...domain.models import DailyTemperatures


class WeatherAdapterError(RuntimeError):
    """Raised when a weather provider request cannot be completed."""


class WeatherAdapter(Protocol):
    def get_daily_temperatures(self, city: str, date: str) -> DailyTemperatures:
        """Fetch the max/min temperatures reported for one city and day."""
