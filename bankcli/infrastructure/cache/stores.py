"""Transaction and account caches: an in-process memo over a durable JSON file"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Generic, List, Optional, Set, Type, TypeVar

from pydantic import BaseModel, ValidationError

from bankcli.domain.coverage import is_covered, merge_intervals
from bankcli.domain.models import AccountRecord, DatasetInfo, DateInterval, TransactionRecord
from bankcli.domain.transactions import build_transaction_key, filter_by_interval
from bankcli.infrastructure.cache.files import JsonDocumentFile
from bankcli.infrastructure.cache.schemas import AccountCacheFile, TransactionCacheFile
from bankcli.infrastructure.observability.metrics import cache_load_failure_counter, cache_write_failure_counter

Clock = Callable[[], datetime]
S = TypeVar("S")

TRANSACTION_TTL = timedelta(hours=1)
ACCOUNT_TTL = timedelta(hours=4)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class TransactionStoreState:
    """In-memory transaction cache"""

    last_update: Optional[datetime] = None
    transactions: List[TransactionRecord] = field(default_factory=list)
    keys: Set[str] = field(default_factory=set)
    cached_ranges: List[DateInterval] = field(default_factory=list)


@dataclass
class AccountStoreState:
    """In-memory account snapshot"""

    last_update: Optional[datetime] = None
    accounts: List[AccountRecord] = field(default_factory=list)


class CachedDocumentStore(Generic[S]):
    """
    Base for a cache held in memory for the life of the process.

    The file is read at most once, on first access. Every mutation replaces
    the whole file. Read and write failures never raise: they are recorded
    in `load_error_message` / `last_write_error` for the CLI to warn about.
    """

    dataset: str = ""
    schema: Type[BaseModel]

    def __init__(self, path: Path, ttl: timedelta, clock: Clock = utc_now):
        self.file = JsonDocumentFile(path)
        self.ttl = ttl
        self._clock = clock
        self._state: Optional[S] = None
        self.had_load_error = False
        self.load_error_message: Optional[str] = None
        self.last_write_error: Optional[str] = None

    @property
    def state(self) -> S:
        if self._state is None:
            self._state = self._load()
        return self._state

    def _load(self) -> S:
        try:
            raw = self.file.load()
            if raw is None:
                return self._empty_state()
            return self._state_from_document(self.schema.model_validate(raw))
        except (OSError, ValueError, ValidationError) as e:
            self.had_load_error = True
            self.load_error_message = f"Could not read {self.file.path}: {e}"
            cache_load_failure_counter.labels(dataset=self.dataset).inc()
            logging.warning(
                f"{self.dataset} cache unreadable, starting empty: {e}",
                extra={"dataset": self.dataset, "path": str(self.file.path)},
            )
            return self._empty_state()

    def _persist(self) -> None:
        document = self._document_from_state(self.state)
        try:
            self.file.save(document.model_dump(mode="json", by_alias=True))
        except OSError as e:
            self.last_write_error = f"Could not write {self.file.path}: {e}"
            cache_write_failure_counter.labels(dataset=self.dataset).inc()
            logging.warning(
                f"{self.dataset} cache write failed: {e}",
                extra={"dataset": self.dataset, "path": str(self.file.path)},
            )
        else:
            self.last_write_error = None

    def _is_fresh(self, last_update: Optional[datetime]) -> bool:
        if last_update is None:
            return False
        return self._clock() - last_update < self.ttl

    def clear(self) -> None:
        """Reset to an empty cache and persist it"""
        self._state = self._empty_state()
        self._persist()

    @property
    def last_update(self) -> Optional[datetime]:
        return self.state.last_update

    def _empty_state(self) -> S:
        raise NotImplementedError

    def _state_from_document(self, document) -> S:
        raise NotImplementedError

    def _document_from_state(self, state: S) -> BaseModel:
        raise NotImplementedError


class TransactionStore(CachedDocumentStore[TransactionStoreState]):
    """Deduplicated transactions plus the date ranges known to be complete"""

    dataset = "transactions"
    schema = TransactionCacheFile

    def __init__(self, path: Path, ttl: timedelta = TRANSACTION_TTL, clock: Clock = utc_now):
        super().__init__(path, ttl, clock)

    def _empty_state(self) -> TransactionStoreState:
        return TransactionStoreState()

    def _state_from_document(self, document: TransactionCacheFile) -> TransactionStoreState:
        state = TransactionStoreState(
            last_update=_as_utc(document.last_update),
            cached_ranges=merge_intervals(
                DateInterval(r.start, r.end) for r in document.cached_ranges
            ),
        )
        for record in document.transactions:
            key = build_transaction_key(record)
            if key not in state.keys:
                state.keys.add(key)
                state.transactions.append(record)
        return state

    def _document_from_state(self, state: TransactionStoreState) -> TransactionCacheFile:
        return TransactionCacheFile(
            last_update=state.last_update,
            transactions=state.transactions,
            cached_ranges=[r.to_dict() for r in state.cached_ranges],
        )

    @property
    def cached_ranges(self) -> List[DateInterval]:
        return list(self.state.cached_ranges)

    def is_valid(self, interval: DateInterval) -> bool:
        """Fresh (younger than the TTL) and the interval is inside one cached range"""
        state = self.state
        return self._is_fresh(state.last_update) and is_covered(interval, state.cached_ranges)

    def read(self, interval: DateInterval) -> List[TransactionRecord]:
        """Stored records dated inside the interval, regardless of freshness"""
        return filter_by_interval(self.state.transactions, interval)

    def merge(self, records: List[TransactionRecord], interval: Optional[DateInterval] = None) -> int:
        """
        Append records not already stored, extend coverage and persist.

        Returns the number of records that were new.
        """
        state = self.state
        added = 0
        for record in records:
            key = build_transaction_key(record)
            if key in state.keys:
                continue
            state.keys.add(key)
            state.transactions.append(record)
            added += 1

        if interval is not None:
            state.cached_ranges = merge_intervals(state.cached_ranges, interval)
        state.last_update = self._clock()
        self._persist()
        return added

    def info(self) -> DatasetInfo:
        state = self.state
        return DatasetInfo(
            count=len(state.transactions),
            last_update=state.last_update,
            ranges=list(state.cached_ranges),
        )


class AccountStore(CachedDocumentStore[AccountStoreState]):
    """Whole-snapshot account cache"""

    dataset = "accounts"
    schema = AccountCacheFile

    def __init__(self, path: Path, ttl: timedelta = ACCOUNT_TTL, clock: Clock = utc_now):
        super().__init__(path, ttl, clock)

    def _empty_state(self) -> AccountStoreState:
        return AccountStoreState()

    def _state_from_document(self, document: AccountCacheFile) -> AccountStoreState:
        return AccountStoreState(
            last_update=_as_utc(document.last_update),
            accounts=list(document.accounts),
        )

    def _document_from_state(self, state: AccountStoreState) -> AccountCacheFile:
        return AccountCacheFile(last_update=state.last_update, accounts=state.accounts)

    def is_valid(self) -> bool:
        """
        Fresh and non-empty.

        An empty snapshot almost always means an earlier failed or partial
        fetch, so it never counts as a hit.
        """
        state = self.state
        return self._is_fresh(state.last_update) and len(state.accounts) > 0

    def read(self) -> List[AccountRecord]:
        return list(self.state.accounts)

    def replace(self, accounts: List[AccountRecord]) -> None:
        """Overwrite the snapshot and persist"""
        self._state = AccountStoreState(last_update=self._clock(), accounts=list(accounts))
        self._persist()

    def info(self) -> DatasetInfo:
        state = self.state
        return DatasetInfo(count=len(state.accounts), last_update=state.last_update)
