"""Unit tests for CLI date parsing"""

from datetime import date

import pytest

from bankcli.domain.models import DateInterval
from bankcli.utils.date_utils import parse_date, resolve_date_range

TODAY = date(2024, 3, 15)


def test_parse_date_formats():
    assert parse_date("2024-01-15", "since", TODAY) == date(2024, 1, 15)
    assert parse_date("today", "since", TODAY) == TODAY
    assert parse_date("Yesterday", "since", TODAY) == date(2024, 3, 14)
    assert parse_date("7d", "since", TODAY) == date(2024, 3, 8)
    assert parse_date("30days", "since", TODAY) == date(2024, 2, 14)
    assert parse_date("2w", "since", TODAY) == date(2024, 3, 1)


def test_parse_date_rejects_bad_input():
    with pytest.raises(ValueError, match="--since"):
        parse_date("15/01/2024", "since", TODAY)
    with pytest.raises(ValueError, match="--until"):
        parse_date("2024-02-30", "until", TODAY)


def test_resolve_default_range():
    assert resolve_date_range(default_days_back=1, today=TODAY) == DateInterval(date(2024, 3, 14), TODAY)


def test_resolve_since_until():
    interval = resolve_date_range("2024-01-01", "2024-01-31", today=TODAY)

    assert interval == DateInterval(date(2024, 1, 1), date(2024, 1, 31))


def test_days_overrides_since():
    interval = resolve_date_range(since="2020-01-01", days=10, today=TODAY)

    assert interval.start == date(2024, 3, 5)
    assert interval.end == TODAY


def test_resolve_rejects_reversed_range():
    with pytest.raises(ValueError, match="after end date"):
        resolve_date_range("2024-02-01", "2024-01-01", today=TODAY)


def test_resolve_rejects_negative_days():
    with pytest.raises(ValueError):
        resolve_date_range(days=-1, today=TODAY)


def test_resolve_rejects_days_beyond_limit():
    assert resolve_date_range(days=36500, today=TODAY).start == date(1924, 4, 9)

    with pytest.raises(ValueError, match="at most 36500"):
        resolve_date_range(days=99999999, today=TODAY)
