"""Transaction record helpers: content keys, date extraction and filtering"""

import hashlib
import json
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Iterable, List, Optional

from bankcli.domain.models import DateInterval, TransactionRecord

# Fields that identify a transaction's content. Everything else on the record
# is metadata that may drift between fetches without making it a new record.
KEY_FIELDS = ("_id", "_account", "amount", "date", "description", "updated_at")


def build_transaction_key(record: TransactionRecord) -> str:
    """
    Stable SHA-256 content key for deduplication.

    `updated_at` is part of the key so a pending transaction that changed
    between fetches is kept as a new record rather than silently merged.
    """
    payload = json.dumps(
        {field: record.get(field) for field in KEY_FIELDS},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def transaction_date(record: TransactionRecord) -> Optional[date]:
    """Calendar date of a record's ISO `date` field, or None if missing/invalid"""
    raw = record.get("date")
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or len(raw) < 10:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def filter_by_interval(
    records: Iterable[TransactionRecord], interval: DateInterval
) -> List[TransactionRecord]:
    """Records whose date falls inside the inclusive interval"""
    selected = []
    for record in records:
        day = transaction_date(record)
        if day is not None and interval.contains(day):
            selected.append(record)
    return selected


class Direction(str, Enum):
    IN = "in"
    OUT = "out"


@dataclass
class TransactionFilter:
    """Criteria for narrowing a list of transactions; unset fields match everything"""

    account: Optional[str] = None
    merchant: Optional[str] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    type: Optional[str] = None
    direction: Optional[Direction] = None
    search: Optional[str] = None

    def __post_init__(self) -> None:
        validate_amount_range(self.min_amount, self.max_amount)

    def matches(self, record: TransactionRecord) -> bool:
        amount = _amount(record)
        if self.account and record.get("_account") != self.account:
            return False
        if self.min_amount is not None and abs(amount) < self.min_amount:
            return False
        if self.max_amount is not None and abs(amount) > self.max_amount:
            return False
        if self.type and self.type.lower() not in str(record.get("type") or "").lower():
            return False
        if self.direction is Direction.IN and amount <= 0:
            return False
        if self.direction is Direction.OUT and amount >= 0:
            return False

        if self.merchant:
            # Comma-separated list, any one may match
            wanted = [m.strip().lower() for m in self.merchant.split(",") if m.strip()]
            name = _merchant_name(record).lower()
            if wanted and not any(m in name for m in wanted):
                return False

        if self.search:
            term = self.search.lower()
            if str(record.get("_id", "")).lower() != term and term not in str(record.get("description") or "").lower():
                return False
        return True

    def apply(self, records: Iterable[TransactionRecord]) -> List[TransactionRecord]:
        return [record for record in records if self.matches(record)]


def validate_amount_range(min_amount: Optional[float], max_amount: Optional[float]) -> None:
    """
    Raises:
        ValueError: negative bound, or min greater than max
    """
    if min_amount is not None and min_amount < 0:
        raise ValueError(f"Invalid --min-amount: {min_amount}. Amount filters must be non-negative.")
    if max_amount is not None and max_amount < 0:
        raise ValueError(f"Invalid --max-amount: {max_amount}. Amount filters must be non-negative.")
    if min_amount is not None and max_amount is not None and min_amount > max_amount:
        raise ValueError(
            f"Invalid amount range: --min-amount ({min_amount}) is greater than --max-amount ({max_amount})."
        )


def total_amount(records: Iterable[TransactionRecord]) -> float:
    """Signed sum of amounts, rounded to cents"""
    return round(sum(_amount(record) for record in records), 2)


def _amount(record: TransactionRecord) -> float:
    try:
        return float(record.get("amount") or 0)
    except (TypeError, ValueError):
        return 0.0


def _merchant_name(record: TransactionRecord) -> str:
    merchant = record.get("merchant")
    if isinstance(merchant, dict):
        return str(merchant.get("name") or "")
    return ""
