"""Date manipulation utilities"""

import re
from datetime import date, timedelta
from typing import Optional

from bankcli.domain.models import DateInterval

_DAYS_PATTERN = re.compile(r"^(\d+)\s*d(?:ays?)?$")
_WEEKS_PATTERN = re.compile(r"^(\d+)\s*w(?:eeks?)?$")
MAX_DAYS_BACK = 36500  # ~100 years


def parse_date(value: str, field: str, today: Optional[date] = None) -> date:
    """
    Parse a CLI date.

    Accepts YYYY-MM-DD and the shortcuts "today", "yesterday", "Nd"/"Ndays"
    and "Nw"/"Nweeks" (N days/weeks before today).

    Raises:
        ValueError: with a message naming the --field that was wrong
    """
    today = today or date.today()
    normalized = value.strip().lower()

    if normalized == "today":
        return today
    if normalized == "yesterday":
        return today - timedelta(days=1)

    match = _DAYS_PATTERN.match(normalized)
    if match and int(match.group(1)) <= MAX_DAYS_BACK:
        return today - timedelta(days=int(match.group(1)))
    match = _WEEKS_PATTERN.match(normalized)
    if match and int(match.group(1)) * 7 <= MAX_DAYS_BACK:
        return today - timedelta(weeks=int(match.group(1)))

    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", normalized):
        raise ValueError(
            f'Invalid date format for --{field}: "{value}". '
            'Expected YYYY-MM-DD or a shortcut like "today", "yesterday", "7d", "2w".'
        )
    try:
        return date.fromisoformat(normalized)
    except ValueError:
        raise ValueError(f'Invalid date for --{field}: "{value}"') from None


def resolve_date_range(
    since: Optional[str] = None,
    until: Optional[str] = None,
    days: Optional[int] = None,
    default_days_back: int = 1,
    today: Optional[date] = None,
) -> DateInterval:
    """
    Resolve --since/--until/--days into an inclusive interval.

    --days overrides --since. With neither, the range starts
    `default_days_back` days before today. --until defaults to today.
    """
    today = today or date.today()
    end = parse_date(until, "until", today) if until else today

    if days is not None:
        if days < 0:
            raise ValueError("--days must be zero or positive")
        if days > MAX_DAYS_BACK:
            raise ValueError(f"--days must be at most {MAX_DAYS_BACK}")
        start = today - timedelta(days=days)
    elif since:
        start = parse_date(since, "since", today)
    else:
        start = today - timedelta(days=default_days_back)

    if start > end:
        raise ValueError(f"Start date {start.isoformat()} is after end date {end.isoformat()}")
    return DateInterval(start, end)
