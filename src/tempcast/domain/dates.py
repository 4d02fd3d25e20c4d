from __future__ import annotations

import re
from datetime import date, datetime, tzinfo

DATE_FORMAT = "%Y-%m-%d"
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class InvalidDateError(ValueError):
    """Raised when a date string is not a real calendar date in YYYY-MM-DD form."""


def parse_strict_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` without leniency: no rollover, no short fields."""
    text = value.strip() if isinstance(value, str) else ""
    if not _DATE_PATTERN.match(text):
        raise InvalidDateError(f"Date must use the YYYY-MM-DD format: {value!r}")
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError as exc:
        raise InvalidDateError(f"Date is not a valid calendar date: {value!r}") from exc


def is_valid_date(value: str) -> bool:
    try:
        parse_strict_date(value)
    except InvalidDateError:
        return False
    return True


def today_string(tz: tzinfo | None = None) -> str:
    return datetime.now(tz).strftime(DATE_FORMAT)


def is_future(date_text: str, today: str) -> bool:
    # Fixed-width zero-padded strings order the same way the dates do.
    return date_text >= today


def split_year(date_text: str) -> tuple[int, str]:
    year_text, _, rest = date_text.partition("-")
    return int(year_text), rest


def prior_year_dates(date_text: str, years: int = 10) -> list[str]:
    """Same calendar day in each of the ``years`` years before ``date_text``, oldest first."""
    year, rest = split_year(date_text)
    return [f"{candidate:04d}-{rest}" for candidate in range(year - years, year) if candidate >= 1]
