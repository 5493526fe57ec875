"""Account record helpers"""

from typing import Any, Dict, Iterable, List, Optional

from bankcli.domain.models import AccountRecord


def summarize_account(account: AccountRecord) -> Dict[str, Any]:
    """Flatten a raw bank account into the fields the CLI prints"""
    balance = account.get("balance") or {}
    connection = account.get("connection") or {}
    current = balance.get("current", 0) or 0
    return {
        "id": account.get("_id"),
        "accountNumber": account.get("formatted_account"),
        "name": account.get("name", ""),
        "type": account.get("type", ""),
        "institution": connection.get("name", ""),
        "balance": current,
        "availableBalance": balance.get("available", current),
    }


def find_account(accounts: Iterable[AccountRecord], identifier: str) -> Optional[AccountRecord]:
    """Match by account id (acc_...) or, case-insensitively, by name"""
    needle = identifier.strip()
    for account in accounts:
        if needle.startswith("acc_"):
            if account.get("_id") == needle:
                return account
        elif str(account.get("name", "")).lower() == needle.lower():
            return account
    return None


def filter_by_type(accounts: Iterable[AccountRecord], account_type: str) -> List[AccountRecord]:
    """Accounts whose type contains `account_type`, case-insensitively"""
    needle = account_type.lower()
    return [account for account in accounts if needle in str(account.get("type", "")).lower()]
