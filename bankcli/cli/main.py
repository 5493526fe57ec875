"""`bank` command line interface"""

import json
from datetime import datetime, timezone
from typing import Any, NoReturn, Optional

import typer

from bankcli.cli import dependencies
from bankcli.config import settings
from bankcli.domain.accounts import filter_by_type, summarize_account
from bankcli.domain.exceptions import BankAPIError, TransferError
from bankcli.domain.transactions import (
    Direction,
    TransactionFilter,
    filter_by_interval,
    total_amount,
    transaction_date,
)
from bankcli.infrastructure.observability.logging import setup_logging
from bankcli.infrastructure.observability.metrics import render_metrics
from bankcli.services.cache_service import CacheService
from bankcli.services.transfer_service import sanitize_error_message
from bankcli.utils.date_utils import resolve_date_range

DEFAULT_TRANSACTION_DAYS_BACK = 1

app = typer.Typer(help="Personal finance CLI backed by a cached bank API", no_args_is_help=True)
cache_app = typer.Typer(help="Inspect or clear the local cache", no_args_is_help=True)
app.add_typer(cache_app, name="cache")


def _emit(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


def _fail(message: str) -> NoReturn:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _warn(message: str) -> None:
    typer.secho(f"Warning: {message}", err=True, fg=typer.colors.YELLOW)


def format_relative_time(moment: datetime, now: Optional[datetime] = None) -> str:
    """Human age like '5m ago' or '2h ago'"""
    now = now or datetime.now(timezone.utc)
    seconds = max(0, int((now - moment).total_seconds()))
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def _note_cached(cache_age: Optional[datetime], quiet: bool) -> None:
    if quiet:
        return
    age = format_relative_time(cache_age) if cache_age else "unknown age"
    typer.secho(f"(using cached data, updated {age})", err=True, fg=typer.colors.BRIGHT_BLACK)


def _warn_cache_diagnostics(service: CacheService, quiet: bool) -> None:
    if quiet:
        return
    if service.had_load_error:
        _warn("Cache file is corrupted or unreadable. Run `bank cache clear` to reset.")
    if service.last_write_error:
        _warn(f"Cache write error: {service.last_write_error}")


@app.callback()
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level (default from BANK_LOG_LEVEL)"),
    metrics: bool = typer.Option(False, "--metrics", help="Print Prometheus metrics for this run to stderr"),
):
    setup_logging(log_level or settings.log_level)
    if metrics:
        ctx.call_on_close(lambda: typer.echo(render_metrics(), err=True))


@app.command()
def accounts(
    account_type: Optional[str] = typer.Option(
        None, "--type", "-t", help="Account type to filter (loan, checking, savings, etc.)"
    ),
    refresh: bool = typer.Option(False, "--refresh", "-r", help="Force refresh from API (bypass cache)"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress informational messages"),
):
    """View account information"""
    service = dependencies.get_cache_service()
    bank_client = dependencies.get_bank_client()
    try:
        result = service.get_accounts_with_cache(refresh, settings.cache_enabled, bank_client.list_accounts)
    except BankAPIError as e:
        _fail(f"Error fetching accounts: {e}")
    finally:
        bank_client.close()

    records = filter_by_type(result.accounts, account_type) if account_type else result.accounts
    if result.from_cache:
        _note_cached(result.cache_age, quiet)
    _warn_cache_diagnostics(service, quiet)
    _emit([summarize_account(account) for account in records])


@app.command()
def transactions(
    search: Optional[str] = typer.Argument(None, help="Transaction ID or description to filter"),
    since: Optional[str] = typer.Option(None, "--since", "-s", help="Start date (YYYY-MM-DD, today, yesterday, 7d, 2w)"),
    until: Optional[str] = typer.Option(None, "--until", "-u", help="End date (default: today)"),
    days: Optional[int] = typer.Option(None, "--days", help="Number of days to look back. Overrides --since."),
    account: Optional[str] = typer.Option(None, "--account", "-a", help="Account ID to filter transactions"),
    merchant: Optional[str] = typer.Option(None, "--merchant", "-m", help="Merchant name(s), comma-separated"),
    min_amount: Optional[float] = typer.Option(None, "--min-amount", help="Minimum absolute amount"),
    max_amount: Optional[float] = typer.Option(None, "--max-amount", help="Maximum absolute amount"),
    transaction_type: Optional[str] = typer.Option(None, "--type", "-t", help="Transaction type to filter"),
    direction: Optional[Direction] = typer.Option(
        None, "--direction", case_sensitive=False, help='"in" for income, "out" for spending'
    ),
    count: bool = typer.Option(False, "--count", help="Print only the number of matching transactions"),
    total: bool = typer.Option(False, "--total", help="Print only the sum of matching amounts"),
    refresh: bool = typer.Option(False, "--refresh", "-r", help="Force refresh from API (bypass cache)"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress informational messages"),
):
    """Access transaction data"""
    if count and total:
        _fail("Cannot use --count and --total together. Use one or the other.")
    try:
        interval = resolve_date_range(since, until, days, DEFAULT_TRANSACTION_DAYS_BACK)
        criteria = TransactionFilter(
            account=account,
            merchant=merchant,
            min_amount=min_amount,
            max_amount=max_amount,
            type=transaction_type,
            direction=direction,
            search=search,
        )
    except ValueError as e:
        _fail(str(e))

    service = dependencies.get_cache_service()
    bank_client = dependencies.get_bank_client()
    try:
        result = service.get_transactions_with_cache(
            interval,
            refresh,
            settings.cache_enabled,
            lambda: bank_client.list_transactions(interval.start, interval.end),
        )
    except BankAPIError as e:
        _fail(f"Error fetching transactions: {e}")
    finally:
        bank_client.close()

    records = criteria.apply(filter_by_interval(result.transactions, interval))
    records.sort(key=lambda tx: transaction_date(tx), reverse=True)

    if result.from_cache:
        _note_cached(result.cache_age, quiet)
    _warn_cache_diagnostics(service, quiet)

    if count:
        typer.echo(str(len(records)))
    elif total:
        typer.echo(f"{total_amount(records):.2f}")
    else:
        _emit(records)


@app.command()
def refresh():
    """Trigger a data refresh for all linked accounts"""
    bank_client = dependencies.get_bank_client()
    executor = dependencies.get_retry_executor()
    try:
        executor.execute(bank_client.refresh_user_data, name="refresh_user_data")
    except BankAPIError as e:
        _fail(f"Error initiating data refresh: {e}")
    finally:
        bank_client.close()
    typer.echo("Data refresh initiated successfully.")


@app.command()
def transfer(
    from_account: str = typer.Option(..., "--from", "-f", help="Source account ID or name"),
    to_account: str = typer.Option(..., "--to", "-t", help="Destination account number"),
    amount: float = typer.Option(..., "--amount", "-a", help="Amount to transfer"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Transfer description"),
    reference: Optional[str] = typer.Option(None, "--reference", help="Transfer reference"),
    confirm: bool = typer.Option(False, "--confirm", "-c", help="Execute the transfer after reviewing the summary"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the transfer summary without executing"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the interactive confirmation prompt"),
):
    """Initiate a funds transfer"""
    if not confirm and not dry_run:
        _fail(
            "Transfer commands require either --confirm or --dry-run.\n"
            "Use --dry-run to preview the transfer without executing it."
        )

    service = dependencies.get_cache_service()
    bank_client = dependencies.get_bank_client()
    transfer_service = dependencies.get_transfer_service(bank_client)
    try:
        account_result = service.get_accounts_with_cache(False, settings.cache_enabled, bank_client.list_accounts)
        plan = transfer_service.plan(
            account_result.accounts, from_account, to_account, amount, description, reference
        )

        typer.echo("TRANSFER SUMMARY", err=True)
        for label, value in plan.summary().items():
            if value is not None:
                typer.echo(f"  {label}: {value}", err=True)

        if dry_run:
            typer.echo("DRY RUN - no transfer was executed.")
            return

        if not yes and not typer.confirm("Execute this transfer? This cannot be undone.", default=False):
            typer.echo("Transfer cancelled.")
            return

        outcome = transfer_service.execute(plan)
    except (BankAPIError, TransferError) as e:
        _fail(f"Error processing transfer: {sanitize_error_message(str(e))}")
    finally:
        bank_client.close()

    if outcome.completed:
        typer.echo("Transfer completed successfully.")
    else:
        _warn(f"Transfer submitted but not yet confirmed (status: {outcome.status}).")
    _emit({"transferId": outcome.transfer_id, "status": outcome.status})


@cache_app.command("info")
def cache_info():
    """Show cache status and statistics"""
    service = dependencies.get_cache_service()
    info = service.get_cache_info()

    if service.last_write_error:
        _warn(f"Cache write error: {service.last_write_error}")
    if service.load_error_message:
        _warn(f"Cache load error: {service.load_error_message}")
        typer.echo("  Run `bank cache clear` to reset the cache.", err=True)

    _emit(
        {
            "cacheEnabled": settings.cache_enabled,
            "transactions": {
                "count": info.transactions.count,
                "lastUpdate": info.transactions.last_update,
                "cachedRanges": [r.to_dict() for r in info.transactions.ranges],
            },
            "accounts": {
                "count": info.accounts.count,
                "lastUpdate": info.accounts.last_update,
            },
        }
    )


@cache_app.command("clear")
def cache_clear(
    accounts_only: bool = typer.Option(False, "--accounts", "-a", help="Clear only account cache"),
    transactions_only: bool = typer.Option(False, "--transactions", "-t", help="Clear only transaction cache"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """Clear cached data"""
    clear_both = accounts_only == transactions_only
    if clear_both:
        description = "all cached data (accounts and transactions)"
    elif accounts_only:
        description = "account cache"
    else:
        description = "transaction cache"

    if not yes and not typer.confirm(f"Clear {description}?", default=False):
        typer.echo("Cache clear cancelled.")
        return

    service = dependencies.get_cache_service()
    if clear_both:
        service.clear_cache()
    elif accounts_only:
        service.clear_account_cache()
    else:
        service.clear_transaction_cache()

    if service.last_write_error:
        _fail(f"Could not clear cache: {service.last_write_error}")
    typer.echo(f"Cleared {description}.")


if __name__ == "__main__":
    app()
