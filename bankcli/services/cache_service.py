"""Cache orchestration between CLI commands and the bank API"""

from typing import Callable, List, Optional

from bankcli.domain.models import (
    AccountRecord,
    AccountsResult,
    CacheInfo,
    DateInterval,
    TransactionRecord,
    TransactionsResult,
)
from bankcli.infrastructure.cache.stores import AccountStore, TransactionStore
from bankcli.infrastructure.clients.retry import RetryExecutor
from bankcli.infrastructure.observability.logging import log_cache_lookup
from bankcli.infrastructure.observability.metrics import record_cache_lookup

TransactionFetch = Callable[[], List[TransactionRecord]]
AccountFetch = Callable[[], List[AccountRecord]]


class CacheService:
    """
    Decides per request whether to serve stored data or call the bank.

    Owns one TransactionStore and one AccountStore for the life of a CLI
    invocation. Remote failures propagate untouched and leave the stores
    unchanged; cache write failures never do, they are kept as diagnostics.
    """

    def __init__(
        self,
        transaction_store: TransactionStore,
        account_store: AccountStore,
        executor: Optional[RetryExecutor] = None,
    ):
        self.transaction_store = transaction_store
        self.account_store = account_store
        self.executor = executor or RetryExecutor()

    def get_transactions_with_cache(
        self,
        interval: DateInterval,
        force_refresh: bool,
        cache_enabled: bool,
        fetch: TransactionFetch,
    ) -> TransactionsResult:
        """
        Transactions for `interval`, from cache when it is fresh and covers it.

        Flow:
        1. Cache enabled, no forced refresh, store valid for the interval -> stored records
        2. Otherwise fetch through the retry executor
        3. Merge the fetched records into the store (cache enabled only)
        """
        use_cache = cache_enabled and not force_refresh
        hit = use_cache and self.transaction_store.is_valid(interval)
        record_cache_lookup("transactions", cache_enabled, force_refresh, hit)

        if hit:
            result = TransactionsResult(
                transactions=self.transaction_store.read(interval),
                from_cache=True,
                cache_age=self.transaction_store.last_update,
            )
        else:
            transactions = self.executor.execute(fetch, name="list_transactions")
            if cache_enabled:
                self.transaction_store.merge(transactions, interval)
            result = TransactionsResult(transactions=transactions, from_cache=False)

        log_cache_lookup("transactions", result.from_cache, result.cache_age, len(result.transactions))
        return result

    def get_accounts_with_cache(
        self,
        force_refresh: bool,
        cache_enabled: bool,
        fetch: AccountFetch,
    ) -> AccountsResult:
        """Accounts, from cache when the stored snapshot is fresh and non-empty"""
        use_cache = cache_enabled and not force_refresh
        hit = use_cache and self.account_store.is_valid()
        record_cache_lookup("accounts", cache_enabled, force_refresh, hit)

        if hit:
            result = AccountsResult(
                accounts=self.account_store.read(),
                from_cache=True,
                cache_age=self.account_store.last_update,
            )
        else:
            accounts = self.executor.execute(fetch, name="list_accounts")
            if cache_enabled:
                self.account_store.replace(accounts)
            result = AccountsResult(accounts=accounts, from_cache=False)

        log_cache_lookup("accounts", result.from_cache, result.cache_age, len(result.accounts))
        return result

    def get_cache_info(self) -> CacheInfo:
        return CacheInfo(
            transactions=self.transaction_store.info(),
            accounts=self.account_store.info(),
        )

    def clear_cache(self) -> None:
        self.clear_transaction_cache()
        self.clear_account_cache()

    def clear_transaction_cache(self) -> None:
        self.transaction_store.clear()

    def clear_account_cache(self) -> None:
        self.account_store.clear()

    # Diagnostics surfaced by CLI commands as non-fatal warnings

    @property
    def last_write_error(self) -> Optional[str]:
        return self.transaction_store.last_write_error or self.account_store.last_write_error

    @property
    def load_error_message(self) -> Optional[str]:
        return self.transaction_store.load_error_message or self.account_store.load_error_message

    @property
    def had_load_error(self) -> bool:
        return self.transaction_store.had_load_error or self.account_store.had_load_error
