"""Domain models - pure Python dataclasses for cache bookkeeping and retry policy"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

# Records are passed through exactly as the bank API returns them
TransactionRecord = Dict[str, Any]
AccountRecord = Dict[str, Any]


@dataclass(frozen=True, order=True)
class DateInterval:
    """Inclusive calendar-date range"""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Interval start {self.start} is after end {self.end}")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "DateInterval":
        return cls(date.fromisoformat(data["start"]), date.fromisoformat(data["end"]))


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff configuration for one Retry Executor (delays in seconds)"""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.retry_max_retries,
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
        )


@dataclass
class TransactionsResult:
    """Transactions returned by the orchestrator"""

    transactions: List[TransactionRecord]
    from_cache: bool
    cache_age: Optional[datetime] = None


@dataclass
class AccountsResult:
    """Accounts returned by the orchestrator"""

    accounts: List[AccountRecord]
    from_cache: bool
    cache_age: Optional[datetime] = None


@dataclass
class DatasetInfo:
    """Summary of one persisted cache"""

    count: int
    last_update: Optional[datetime]
    ranges: List[DateInterval] = field(default_factory=list)


@dataclass
class CacheInfo:
    """Cache status reported by `bank cache info`"""

    transactions: DatasetInfo
    accounts: DatasetInfo
