from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from pydantic import ValidationError

from .adapters.weather import WeatherAdapter, WeatherAdapterError
from .domain.dates import is_future, is_valid_date, prior_year_dates, today_string
from .domain.models import TemperatureRecord, WeatherEstimate, WeatherQuery, round_half_up
from .storage import HISTORY_YEARS, StoreError, TemperatureStore

LOGGER = logging.getLogger(__name__)


class InvalidQueryError(ValueError):
    """Raised when a city/date pair is rejected before any lookup happens."""


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class LookupOutcome:
    status: LookupStatus
    record: TemperatureRecord | None = None
    reason: str | None = None

    @classmethod
    def found(cls, record: TemperatureRecord) -> LookupOutcome:
        return cls(status=LookupStatus.FOUND, record=record)

    @classmethod
    def not_found(cls) -> LookupOutcome:
        return cls(status=LookupStatus.NOT_FOUND)

    @classmethod
    def failed(cls, reason: str) -> LookupOutcome:
        return cls(status=LookupStatus.FAILED, reason=reason)


class ResolutionStatus(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    NOT_FOUND = "not_found"
    INCOMPLETE_HISTORY = "incomplete_history"


@dataclass(frozen=True, slots=True)
class Resolution:
    status: ResolutionStatus
    estimate: WeatherEstimate | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is ResolutionStatus.OK


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid weather query"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}" if location else str(first.get("msg"))


class WeatherResolver:
    """Pick between the store, a single remote fetch and a historical average.

    Offline requests never leave the store. Online requests for past dates
    fetch that day once; online requests for future dates average the same
    calendar day over the preceding years. Every remote result is written to
    the store before it is returned.
    """

    def __init__(
        self,
        store: TemperatureStore,
        adapter: WeatherAdapter | None,
        *,
        history_years: int = HISTORY_YEARS,
        today: Callable[[], str] = today_string,
    ) -> None:
        if history_years < 1:
            raise ValueError("history_years must be >= 1")
        self._store = store
        self._adapter = adapter
        self._history_years = history_years
        self._today = today

    def is_future(self, date: str) -> bool:
        return is_future(date, self._today())

    def resolve(self, city: str, date: str, connectivity_available: bool) -> WeatherEstimate | None:
        resolution = self.resolve_detailed(city, date, connectivity_available)
        if resolution.status is ResolutionStatus.INVALID:
            raise InvalidQueryError(resolution.detail or "Invalid weather query")
        return resolution.estimate

    def resolve_detailed(self, city: str, date: str, connectivity_available: bool) -> Resolution:
        try:
            query = WeatherQuery(city=city, date=date)
        except ValidationError as exc:
            message = _validation_message(exc)
            LOGGER.info("Rejected weather query city=%r date=%r: %s", city, date, message)
            return Resolution(status=ResolutionStatus.INVALID, detail=message)

        self._log_store_contents()
        future = self.is_future(query.date)

        if not connectivity_available:
            LOGGER.info("No connectivity, resolving %s/%s from the store", query.city, query.date)
            return self._resolve_offline(query, future=future)
        if future:
            LOGGER.info("Averaging past years for future date %s/%s", query.city, query.date)
            return self._resolve_historical_average(query)

        LOGGER.info("Fetching %s/%s from the weather provider", query.city, query.date)
        return self._resolve_direct(query)

    def _resolve_direct(self, query: WeatherQuery) -> Resolution:
        outcome = self._fetch_and_store(query.city, query.date)
        if outcome.status is LookupStatus.FOUND and outcome.record is not None:
            return Resolution(
                status=ResolutionStatus.OK,
                estimate=WeatherEstimate.from_record(outcome.record, source="remote"),
            )
        return Resolution(status=ResolutionStatus.REMOTE_UNAVAILABLE, detail=outcome.reason)

    def _resolve_historical_average(self, query: WeatherQuery) -> Resolution:
        samples: list[TemperatureRecord] = []
        for year_date in prior_year_dates(query.date, self._history_years):
            if not is_valid_date(year_date):
                # e.g. Feb 29 in a non-leap year
                LOGGER.debug("Skipping %s, not a calendar date", year_date)
                continue
            outcome = self._fetch_and_store(query.city, year_date)
            if outcome.status is LookupStatus.FOUND and outcome.record is not None:
                samples.append(outcome.record)

        LOGGER.debug(
            "Collected %d of %d past years for %s/%s",
            len(samples),
            self._history_years,
            query.city,
            query.date,
        )
        if not samples:
            return Resolution(
                status=ResolutionStatus.REMOTE_UNAVAILABLE,
                detail="No past year could be fetched",
            )

        average = TemperatureRecord(
            city=query.city,
            date=query.date,
            max_temp=round_half_up(sum(sample.max_temp for sample in samples) / len(samples)),
            min_temp=round_half_up(sum(sample.min_temp for sample in samples) / len(samples)),
        )
        try:
            self._store.put(average)
        except StoreError as exc:
            LOGGER.warning("Could not store average for %s/%s: %s", query.city, query.date, exc)
            return Resolution(status=ResolutionStatus.NOT_FOUND, detail=str(exc))

        LOGGER.info("Stored %d-year average for %s/%s", len(samples), query.city, query.date)
        return Resolution(
            status=ResolutionStatus.OK,
            estimate=WeatherEstimate(
                max_temp=average.max_temp,
                min_temp=average.min_temp,
                source="historical_average",
                sample_size=len(samples),
            ),
        )

    def _resolve_offline(self, query: WeatherQuery, *, future: bool) -> Resolution:
        outcome = self._lookup(query.city, query.date)
        if outcome.status is LookupStatus.FOUND and outcome.record is not None:
            return Resolution(
                status=ResolutionStatus.OK,
                estimate=WeatherEstimate.from_record(outcome.record, source="cache"),
            )
        if outcome.status is LookupStatus.FAILED or not future:
            return Resolution(status=ResolutionStatus.NOT_FOUND, detail=outcome.reason)

        try:
            average_max = self._store.average_max(query.city, query.date)
            average_min = self._store.average_min(query.city, query.date)
        except StoreError as exc:
            LOGGER.warning("Store average failed for %s/%s: %s", query.city, query.date, exc)
            return Resolution(status=ResolutionStatus.NOT_FOUND, detail=str(exc))

        if average_max is None or average_min is None:
            LOGGER.info(
                "Store lacks all %d past years for %s/%s",
                self._history_years,
                query.city,
                query.date,
            )
            return Resolution(
                status=ResolutionStatus.INCOMPLETE_HISTORY,
                detail=f"All {self._history_years} past years are required offline",
            )

        return Resolution(
            status=ResolutionStatus.OK,
            estimate=WeatherEstimate(
                max_temp=average_max,
                min_temp=average_min,
                source="cached_average",
                sample_size=self._history_years,
            ),
        )

    def _lookup(self, city: str, date: str) -> LookupOutcome:
        try:
            record = self._store.get(city, date)
        except StoreError as exc:
            LOGGER.warning("Store lookup failed for %s/%s: %s", city, date, exc)
            return LookupOutcome.failed(str(exc))
        if record is None:
            LOGGER.debug("No stored record for %s/%s", city, date)
            return LookupOutcome.not_found()
        return LookupOutcome.found(record)

    def _fetch_and_store(self, city: str, date: str) -> LookupOutcome:
        """Fetch one day remotely and persist it; independent of any other day."""
        if self._adapter is None:
            LOGGER.warning("No weather provider configured, cannot fetch %s/%s", city, date)
            return LookupOutcome.failed("No weather provider configured")
        try:
            day = self._adapter.get_daily_temperatures(city, date)
        except WeatherAdapterError as exc:
            LOGGER.warning("Weather fetch failed for %s/%s: %s", city, date, exc)
            return LookupOutcome.failed(str(exc))

        record = TemperatureRecord(city=city, date=date, max_temp=day.max_temp, min_temp=day.min_temp)
        try:
            self._store.put(record)
        except StoreError as exc:
            LOGGER.warning("Could not store %s/%s: %s", city, date, exc)
            return LookupOutcome.failed(str(exc))

        LOGGER.debug("Stored fetched record %s/%s", city, date)
        return LookupOutcome.found(record)

    def _log_store_contents(self) -> None:
        if not LOGGER.isEnabledFor(logging.DEBUG):
            return
        try:
            records = self._store.list_records()
        except StoreError:
            LOGGER.debug("Store contents unavailable")
            return
        LOGGER.debug("Store holds %d records", len(records))
        for record in records:
            LOGGER.debug("Stored record: %s", record.model_dump())
