import pytest

from tempcast.domain.dates import (
    InvalidDateError,
    is_future,
    is_valid_date,
    parse_strict_date,
    prior_year_dates,
    split_year,
)


@pytest.mark.parametrize("value", ["2024-02-29", "2020-06-01", "1999-12-31"])
def test_valid_dates(value):
    assert is_valid_date(value)
    assert parse_strict_date(value).isoformat() == value


@pytest.mark.parametrize(
    "value",
    ["2024-02-30", "2023-02-29", "2024-13-01", "2024-1-01", "24-01-01", "2024/01/01", "", "tomorrow"],
)
def test_rejects_lenient_or_malformed_dates(value):
    assert not is_valid_date(value)
    with pytest.raises(InvalidDateError):
        parse_strict_date(value)


def test_today_counts_as_future():
    assert is_future("2025-01-15", "2025-01-15")
    assert is_future("2025-01-16", "2025-01-15")
    assert not is_future("2025-01-14", "2025-01-15")


def test_split_year():
    assert split_year("2030-06-01") == (2030, "06-01")


def test_prior_year_dates_covers_ten_years_before():
    dates = prior_year_dates("2030-06-01")
    assert dates[0] == "2020-06-01"
    assert dates[-1] == "2029-06-01"
    assert len(dates) == 10
    assert "2030-06-01" not in dates


def test_prior_year_dates_custom_span():
    assert prior_year_dates("2030-06-01", 3) == ["2027-06-01", "2028-06-01", "2029-06-01"]
