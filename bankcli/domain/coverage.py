"""Range coverage tracking for the transaction cache"""

from datetime import timedelta
from typing import Iterable, List

from bankcli.domain.models import DateInterval

ONE_DAY = timedelta(days=1)


def is_covered(requested: DateInterval, coverage: Iterable[DateInterval]) -> bool:
    """
    Check whether a single cached interval fully contains the request.

    Coverage is containment by one interval, not a union: a request that
    spans the gap between two cached intervals is a miss even if together
    they would cover it.
    """
    return any(
        existing.start <= requested.start and existing.end >= requested.end
        for existing in coverage
    )


def merge_intervals(
    coverage: Iterable[DateInterval], new_interval: DateInterval | None = None
) -> List[DateInterval]:
    """
    Produce a new minimal coverage list with `new_interval` folded in.

    Intervals that overlap or sit within one calendar day of each other are
    fused, so Jan 1-15 and Jan 16-31 become Jan 1-31. Input order is not
    assumed to be sorted and the input is never mutated.
    """
    intervals = list(coverage)
    if new_interval is not None:
        intervals.append(new_interval)

    if len(intervals) <= 1:
        return intervals

    ordered = sorted(intervals, key=lambda interval: interval.start)

    merged: List[DateInterval] = []
    current = ordered[0]

    for interval in ordered[1:]:
        if interval.start <= current.end + ONE_DAY:
            if interval.end > current.end:
                current = DateInterval(current.start, interval.end)
        else:
            merged.append(current)
            current = interval

    merged.append(current)
    return merged
