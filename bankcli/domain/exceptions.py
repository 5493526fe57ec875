"""Domain-specific exceptions and the typed remote-failure model"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Category of a failed remote call, decided where the HTTP response returns"""

    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    CLIENT = "client"
    TRANSPORT = "transport"
    INVALID_RESPONSE = "invalid_response"


class TransportFailure(str, Enum):
    """Network-level failure observed before any HTTP status was received"""

    HOST_NOT_FOUND = "host_not_found"
    CONNECTION_REFUSED = "connection_refused"
    CONNECTION_RESET = "connection_reset"
    TIMEOUT = "timeout"
    BROKEN_PIPE = "broken_pipe"


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class BankAPIError(DomainException):
    """Bank API returned an error or is unavailable"""

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        kind: ErrorKind = ErrorKind.CLIENT,
        status_code: Optional[int] = None,
        transport_failure: Optional[TransportFailure] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.kind = kind
        self.status_code = status_code
        self.transport_failure = transport_failure

    def __repr__(self) -> str:
        return (
            f"BankAPIError({str(self)!r}, kind={self.kind.value}, "
            f"status_code={self.status_code}, transport_failure="
            f"{self.transport_failure.value if self.transport_failure else None})"
        )


class TransferError(DomainException):
    """Transfer request rejected locally before reaching the bank"""

    pass
