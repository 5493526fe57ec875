"""Funds transfers with local safety checks"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from bankcli.domain.accounts import find_account
from bankcli.domain.exceptions import TransferError
from bankcli.domain.models import AccountRecord
from bankcli.infrastructure.clients.bank import BankClient
from bankcli.infrastructure.clients.retry import RetryExecutor

TRANSFER_COMPLETE_STATUS = "SENT"


def mask_sensitive(value: str) -> str:
    """Keep the first and last four characters of anything longer than eight"""
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}{'*' * (len(value) - 8)}{value[-4:]}"


def mask_account_number(account_number: str) -> str:
    """Mask a XX-XXXX-XXXXXXX-XX bank account number, or fall back to mask_sensitive"""
    parts = account_number.split("-")
    if len(parts) == 4:
        return f"{parts[0]}-****-****{parts[2][-3:]}-{parts[3]}"
    return mask_sensitive(account_number)


def sanitize_error_message(message: str) -> str:
    """Strip account ids, account numbers and amounts from an error message"""
    message = re.sub(r"acc_[a-zA-Z0-9]+", "acc_****", message)
    message = re.sub(r"\d{2}-\d{4}-\d{7}-\d{2}", "**-****-*****-**", message)
    return re.sub(r"\$[\d,]+\.?\d*", "$***.**", message)


@dataclass
class TransferPlan:
    """Validated transfer, ready to show the user and execute"""

    from_account_id: str
    from_account_name: str
    from_account_masked: str
    to_account: str
    amount: float
    description: Optional[str] = None
    reference: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        return {
            "from": f"{self.from_account_name} ({self.from_account_masked})",
            "to": mask_account_number(self.to_account),
            "amount": round(self.amount, 2),
            "description": self.description,
            "reference": self.reference,
        }


@dataclass
class TransferOutcome:
    transfer_id: str
    status: Optional[str]
    completed: bool


class TransferService:
    """
    Plans and executes transfers.

    `initiate_transfer` is called exactly once per execution and is never
    retried. Status polling is read-only and goes through the executor.
    """

    def __init__(
        self,
        bank_client: BankClient,
        executor: Optional[RetryExecutor] = None,
        allowlist: Optional[List[str]] = None,
        max_amount: Optional[float] = None,
        poll_interval: float = 2.0,
        poll_max_attempts: int = 30,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.bank_client = bank_client
        self.executor = executor or RetryExecutor()
        self.allowlist = list(allowlist or [])
        self.max_amount = max_amount
        self.poll_interval = poll_interval
        self.poll_max_attempts = poll_max_attempts
        self._sleep = sleep

    def plan(
        self,
        accounts: List[AccountRecord],
        from_account: str,
        to_account: str,
        amount: float,
        description: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> TransferPlan:
        """
        Validate a transfer request against local rules.

        Raises:
            TransferError: invalid amount, amount over the cap, destination
                not in the allowlist, or unknown source account
        """
        if amount <= 0:
            raise TransferError("Invalid amount. Please enter a positive number.")
        if self.max_amount is not None and amount > self.max_amount:
            raise TransferError(f"Amount exceeds the configured transfer limit of {self.max_amount:.2f}.")
        if self.allowlist and to_account not in self.allowlist:
            raise TransferError(
                "Destination account not in allowlist. "
                f"Allowed destinations: {', '.join(self.allowlist)}"
            )

        source = find_account(accounts, from_account)
        if source is None:
            kind = "ID" if from_account.startswith("acc_") else "name"
            raise TransferError(f"Account with {kind} '{from_account}' not found.")

        source_id = source.get("_id", "")
        return TransferPlan(
            from_account_id=source_id,
            from_account_name=source.get("name", ""),
            from_account_masked=mask_account_number(source.get("formatted_account") or source.get("name", "")),
            to_account=to_account,
            amount=amount,
            description=description,
            reference=reference,
        )

    def execute(self, plan: TransferPlan) -> TransferOutcome:
        """Send the transfer once, then poll until it is SENT or the poll budget runs out"""
        transfer_id = self.bank_client.initiate_transfer(
            from_account=plan.from_account_id,
            to_account=plan.to_account,
            amount=plan.amount,
            description=plan.description,
            reference=plan.reference,
        )
        logging.info(
            "Transfer submitted",
            extra={"step": "transfer_submitted", "transfer_id": mask_sensitive(transfer_id)},
        )

        status = None
        for attempt in range(self.poll_max_attempts):
            item = self.executor.execute(
                lambda: self.bank_client.get_transfer_status(transfer_id),
                name="get_transfer_status",
            )
            status = item.get("status")
            if status == TRANSFER_COMPLETE_STATUS:
                return TransferOutcome(transfer_id=transfer_id, status=status, completed=True)
            if attempt < self.poll_max_attempts - 1:
                self._sleep(self.poll_interval)

        return TransferOutcome(transfer_id=transfer_id, status=status, completed=False)
