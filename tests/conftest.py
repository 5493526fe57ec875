"""Pytest fixtures for testing"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator, List

import pytest
from fastapi.testclient import TestClient

from bankcli.domain.models import RetryPolicy
from bankcli.infrastructure.cache.stores import AccountStore, TransactionStore
from bankcli.infrastructure.clients.bank import BankClient
from bankcli.infrastructure.clients.retry import RetryExecutor
from bankcli.services.cache_service import CacheService
from mock_bank.server import create_app


class FakeClock:
    """Controllable UTC clock for TTL tests"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 2, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def sleeps() -> List[float]:
    """Delays the executor asked to sleep for, instead of sleeping"""
    return []


@pytest.fixture
def executor(sleeps: List[float]) -> RetryExecutor:
    return RetryExecutor(RetryPolicy(max_retries=3, base_delay=1.0, max_delay=10.0), sleep=sleeps.append)


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / ".bankcli"


@pytest.fixture
def transaction_store(cache_dir: Path, clock: FakeClock) -> TransactionStore:
    return TransactionStore(cache_dir / "transaction_cache.json", clock=clock)


@pytest.fixture
def account_store(cache_dir: Path, clock: FakeClock) -> AccountStore:
    return AccountStore(cache_dir / "account_cache.json", clock=clock)


@pytest.fixture
def cache_service(
    transaction_store: TransactionStore, account_store: AccountStore, executor: RetryExecutor
) -> CacheService:
    return CacheService(transaction_store, account_store, executor)


@pytest.fixture
def sample_transactions() -> list[dict]:
    """January 2024 history across two accounts"""
    return [
        {
            "_id": "trans_001",
            "_account": "acc_everyday01",
            "date": "2024-01-03T00:00:00.000Z",
            "amount": -54.2,
            "description": "COUNTDOWN AUCKLAND",
            "updated_at": "2024-01-04T02:00:00.000Z",
            "merchant": {"name": "Countdown"},
        },
        {
            "_id": "trans_002",
            "_account": "acc_everyday01",
            "date": "2024-01-10T00:00:00.000Z",
            "amount": 3200.0,
            "description": "SALARY ACME LTD",
            "updated_at": "2024-01-11T02:00:00.000Z",
        },
        {
            "_id": "trans_003",
            "_account": "acc_everyday01",
            "date": "2024-01-16T00:00:00.000Z",
            "amount": -1200.0,
            "description": "RENT",
            "updated_at": "2024-01-17T02:00:00.000Z",
        },
        {
            "_id": "trans_004",
            "_account": "acc_savings002",
            "date": "2024-01-20T00:00:00.000Z",
            "amount": 500.0,
            "description": "TRANSFER FROM EVERYDAY",
            "updated_at": "2024-01-21T02:00:00.000Z",
        },
        {
            "_id": "trans_005",
            "_account": "acc_everyday01",
            "date": "2024-01-28T00:00:00.000Z",
            "amount": -89.99,
            "description": "POWER CO",
            "updated_at": "2024-01-29T02:00:00.000Z",
        },
    ]


@pytest.fixture
def sample_accounts() -> list[dict]:
    return [
        {
            "_id": "acc_everyday01",
            "name": "Everyday",
            "type": "CHECKING",
            "formatted_account": "12-3456-7890123-00",
            "connection": {"name": "Mock Bank"},
            "balance": {"current": 1520.45, "available": 1500.0},
        },
        {
            "_id": "acc_savings002",
            "name": "Savings",
            "type": "SAVINGS",
            "formatted_account": "12-3456-7890123-01",
            "connection": {"name": "Mock Bank"},
            "balance": {"current": 10250.0},
        },
    ]


@pytest.fixture
def mock_bank(sample_accounts: list[dict], sample_transactions: list[dict]):
    """Mock bank app; tests script failures through app.state.fail_next"""
    return create_app(accounts=sample_accounts, transactions=sample_transactions, page_size=2)


@pytest.fixture
def bank_client(mock_bank) -> Generator[BankClient, None, None]:
    """BankClient talking to the mock bank in-process"""
    http_client = TestClient(mock_bank, base_url="http://testserver")
    client = BankClient(
        http_client=http_client,
        base_url="http://testserver",
        app_token="app_token_test",
        user_token="user_token_test",
        timeout=5.0,
    )
    try:
        yield client
    finally:
        http_client.close()


@pytest.fixture
def restore_root_logging() -> Generator[None, None, None]:
    """Undo setup_logging() so JSON handlers don't outlive a CLI test"""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        yield
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
