from __future__ import annotations

import json
import math
from typing import Any, Literal
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from ...domain.models import DailyTemperatures
from .base import WeatherAdapterError

VISUAL_CROSSING_TIMELINE_URL = (
    "https://weather.visualcrossing.com/VisualCrossingWebServices/rest/services/timeline"
)
DEFAULT_TIMEOUT_SECONDS = 10
USER_AGENT = "tempcast/0.1"


def _coerce_float(value: Any, *, field_name: str) -> float:
    if isinstance(value, bool):
        raise WeatherAdapterError(f"Invalid numeric value for {field_name}")
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise WeatherAdapterError(f"Invalid numeric value for {field_name}") from exc
    if not math.isfinite(result):
        raise WeatherAdapterError(f"Non-finite value for {field_name}")
    return result


def _fetch_json(url: str, *, timeout: float) -> dict[str, Any]:
    request = Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urlopen(request, timeout=timeout) as response:
            payload = json.loads(response.read().decode("utf-8"))
    except (HTTPError, URLError, TimeoutError, OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise WeatherAdapterError("Failed to fetch weather data from Visual Crossing") from exc

    if not isinstance(payload, dict):
        raise WeatherAdapterError("Unexpected Visual Crossing response shape")
    return payload


class VisualCrossingWeatherAdapter:
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = VISUAL_CROSSING_TIMELINE_URL,
        units: Literal["metric"] = "metric",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ValueError("Visual Crossing API key must not be empty")
        self._api_key = api_key.strip()
        self._base_url = base_url.rstrip("/")
        self._units = units
        self._timeout_seconds = timeout_seconds

    def build_url(self, city: str, date: str) -> str:
        params = {
            "unitGroup": self._units,
            "key": self._api_key,
            "include": "days",
        }
        location = quote(city.strip(), safe="")
        return f"{self._base_url}/{location}/{quote(date, safe='')}?{urlencode(params)}"

    def get_daily_temperatures(self, city: str, date: str) -> DailyTemperatures:
        payload = _fetch_json(self.build_url(city, date), timeout=self._timeout_seconds)
        return self._parse_first_day(payload, requested_date=date)

    @staticmethod
    def _parse_first_day(payload: dict[str, Any], *, requested_date: str) -> DailyTemperatures:
        days = payload.get("days")
        if not isinstance(days, list) or not days:
            raise WeatherAdapterError("Visual Crossing response did not include any days")

        day = days[0]
        if not isinstance(day, dict):
            raise WeatherAdapterError("Visual Crossing day entry was not an object")

        max_temp = _coerce_float(day.get("tempmax"), field_name="days[0].tempmax")
        min_temp = _coerce_float(day.get("tempmin"), field_name="days[0].tempmin")
        reported_date = day.get("datetime")
        return DailyTemperatures(
            date=reported_date if isinstance(reported_date, str) and reported_date else requested_date,
            max_temp=max_temp,
            min_temp=min_temp,
        )
