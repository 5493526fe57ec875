"""Bank API HTTP client for accounts, transactions and transfers"""

from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from bankcli.config import settings
from bankcli.domain.exceptions import BankAPIError, ErrorKind
from bankcli.domain.models import AccountRecord, TransactionRecord
from bankcli.infrastructure.clients.errors import error_from_response, translate_error
from bankcli.infrastructure.observability.metrics import bank_latency_histogram


class BankClient:
    """
    Client for the remote open-banking API.

    Every failure leaves this class as a BankAPIError, classified once here
    (status code, transport failure or malformed body). Retrying is the
    caller's decision; see RetryExecutor.
    """

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        base_url: str | None = None,
        app_token: str | None = None,
        user_token: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or settings.api_base).rstrip("/")
        self.app_token = app_token if app_token is not None else settings.app_token
        self.user_token = user_token if user_token is not None else settings.user_token
        self.timeout = timeout or settings.http_timeout_seconds
        self._client = http_client or httpx.Client(timeout=self.timeout)
        self._owns_client = http_client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "BankClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> Dict[str, str]:
        return {
            "X-Akahu-Id": self.app_token,
            "Authorization": f"Bearer {self.user_token}",
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            with bank_latency_histogram.labels(operation=operation).time():
                response = self._client.request(
                    method,
                    f"{self.base_url}{path}",
                    params=params,
                    json=json,
                    headers=self._headers(),
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            raise translate_error(e, operation) from e
        except OSError as e:
            raise translate_error(e, operation) from e

        if response.is_error:
            raise error_from_response(response, operation)

        try:
            body = response.json()
        except ValueError as e:
            raise BankAPIError(
                f"{operation} failed: response is not JSON",
                operation=operation,
                kind=ErrorKind.INVALID_RESPONSE,
                status_code=response.status_code,
            ) from e

        if not isinstance(body, dict) or body.get("success") is False:
            message = body.get("message") if isinstance(body, dict) else None
            raise BankAPIError(
                f"{operation} failed: {message or 'unexpected response body'}",
                operation=operation,
                kind=ErrorKind.INVALID_RESPONSE,
                status_code=response.status_code,
            )
        return body

    @staticmethod
    def _items(body: Dict[str, Any], operation: str) -> List[Dict[str, Any]]:
        items = body.get("items")
        if not isinstance(items, list):
            raise BankAPIError(
                f"{operation} failed: response has no item list",
                operation=operation,
                kind=ErrorKind.INVALID_RESPONSE,
            )
        return [item for item in items if isinstance(item, dict)]

    def list_accounts(self) -> List[AccountRecord]:
        """Fetch every connected account"""
        body = self._request("GET", "/accounts", "list_accounts")
        return self._items(body, "list_accounts")

    def list_transactions(self, start: date, end: date) -> List[TransactionRecord]:
        """
        Fetch settled transactions in [start, end] plus pending transactions.

        Follows `cursor.next` until the API reports no further pages, then
        appends the pending list.
        """
        operation = "list_transactions"
        params: Dict[str, Any] = {"start": start.isoformat(), "end": end.isoformat()}
        transactions: List[TransactionRecord] = []

        while True:
            body = self._request("GET", "/transactions", operation, params=params)
            transactions.extend(self._items(body, operation))
            next_cursor = (body.get("cursor") or {}).get("next")
            if not next_cursor:
                break
            params = {**params, "cursor": next_cursor}

        pending = self._request("GET", "/transactions/pending", operation)
        transactions.extend(self._items(pending, operation))
        return transactions

    def refresh_user_data(self) -> None:
        """Ask the bank to refresh data for every linked account"""
        self._request("POST", "/refresh", "refresh_user_data")

    def initiate_transfer(
        self,
        from_account: str,
        to_account: str,
        amount: float,
        description: str | None = None,
        reference: str | None = None,
    ) -> str:
        """
        Create a transfer and return its id.

        Must be called directly, never through RetryExecutor.
        """
        payload = {
            "from": from_account,
            "to": to_account,
            "amount": amount,
            "description": description,
            "reference": reference,
        }
        body = self._request("POST", "/transfers", "initiate_transfer", json=payload)
        try:
            transfer_id = body["item"]["_id"]
        except (KeyError, TypeError) as e:
            raise translate_error(e, "initiate_transfer") from e
        return transfer_id

    def get_transfer_status(self, transfer_id: str) -> Dict[str, Any]:
        """Fetch the current state of a transfer"""
        body = self._request("GET", f"/transfers/{transfer_id}", "get_transfer_status")
        item = body.get("item")
        if not isinstance(item, dict):
            raise BankAPIError(
                "get_transfer_status failed: response has no item",
                operation="get_transfer_status",
                kind=ErrorKind.INVALID_RESPONSE,
            )
        return item
