"""Per-invocation wiring for CLI commands"""

from datetime import timedelta

from bankcli.config import settings
from bankcli.domain.models import RetryPolicy
from bankcli.infrastructure.cache.stores import AccountStore, TransactionStore
from bankcli.infrastructure.clients.bank import BankClient
from bankcli.infrastructure.clients.retry import RetryExecutor
from bankcli.services.cache_service import CacheService
from bankcli.services.transfer_service import TransferService


def get_retry_executor() -> RetryExecutor:
    """Provide a retry executor using the configured policy"""
    return RetryExecutor(RetryPolicy.from_settings(settings))


def get_bank_client() -> BankClient:
    """Provide Bank API client instance"""
    return BankClient()


def get_cache_service() -> CacheService:
    """Provide the cache orchestrator and the two stores it owns"""
    return CacheService(
        transaction_store=TransactionStore(
            settings.transaction_cache_path,
            ttl=timedelta(seconds=settings.transaction_cache_ttl_seconds),
        ),
        account_store=AccountStore(
            settings.account_cache_path,
            ttl=timedelta(seconds=settings.account_cache_ttl_seconds),
        ),
        executor=get_retry_executor(),
    )


def get_transfer_service(bank_client: BankClient) -> TransferService:
    """Provide the transfer service with the configured safety limits"""
    return TransferService(
        bank_client,
        executor=get_retry_executor(),
        allowlist=settings.transfer_allowlist,
        max_amount=settings.transfer_max_amount,
        poll_interval=settings.transfer_poll_interval_seconds,
        poll_max_attempts=settings.transfer_poll_max_attempts,
    )
