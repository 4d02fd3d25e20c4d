from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .dates import parse_strict_date

TWO_PLACES = Decimal("0.01")

EstimateSource = Literal["remote", "cache", "historical_average", "cached_average"]


def round_half_up(value: float) -> float:
    return float(Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def _validate_city(value: str) -> str:
    text = value.strip()
    if not text:
        raise ValueError("city must not be empty")
    return text


def _validate_date(value: str) -> str:
    return parse_strict_date(value).isoformat()


class WeatherQuery(BaseModel):
    model_config = ConfigDict(extra="ignore")

    city: str
    date: str

    @field_validator("city")
    @classmethod
    def validate_city(cls, value: str) -> str:
        return _validate_city(value)

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        return _validate_date(value)


class TemperatureRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    city: str
    date: str
    max_temp: float = Field(allow_inf_nan=False)
    min_temp: float = Field(allow_inf_nan=False)

    @field_validator("city")
    @classmethod
    def validate_city(cls, value: str) -> str:
        return _validate_city(value)

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        return _validate_date(value)


class WeatherEstimate(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    max_temp: float
    min_temp: float
    source: EstimateSource
    sample_size: int | None = Field(default=None, ge=1)

    @classmethod
    def from_record(cls, record: TemperatureRecord, *, source: EstimateSource) -> WeatherEstimate:
        return cls(max_temp=record.max_temp, min_temp=record.min_temp, source=source)


class DailyTemperatures(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str
    max_temp: float = Field(allow_inf_nan=False)
    min_temp: float = Field(allow_inf_nan=False)
