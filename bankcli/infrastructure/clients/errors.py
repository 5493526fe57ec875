"""Translate HTTP and socket failures into typed BankAPIError values"""

import socket
from typing import Iterator, Optional

import httpx

from bankcli.domain.exceptions import BankAPIError, ErrorKind, TransportFailure

_HOST_NOT_FOUND_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated",
)


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _socket_failure(exc: BaseException) -> Optional[TransportFailure]:
    """Map a builtin socket exception to a transport failure, if it is one"""
    if isinstance(exc, socket.gaierror):
        return TransportFailure.HOST_NOT_FOUND
    if isinstance(exc, ConnectionRefusedError):
        return TransportFailure.CONNECTION_REFUSED
    if isinstance(exc, ConnectionResetError):
        return TransportFailure.CONNECTION_RESET
    if isinstance(exc, BrokenPipeError):
        return TransportFailure.BROKEN_PIPE
    if isinstance(exc, TimeoutError):
        return TransportFailure.TIMEOUT
    return None


def transport_failure_for(exc: BaseException) -> Optional[TransportFailure]:
    """
    Work out which network failure an exception represents.

    Looks through the exception's cause chain first, so an httpx error
    wrapping a socket error is reported as the underlying socket failure.
    Returns None for anything that is not a recognised transient transport
    failure.
    """
    for link in _exception_chain(exc):
        failure = _socket_failure(link)
        if failure is not None:
            return failure

    if isinstance(exc, httpx.TimeoutException):
        return TransportFailure.TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        message = str(exc).lower()
        if any(hint in message for hint in _HOST_NOT_FOUND_HINTS):
            return TransportFailure.HOST_NOT_FOUND
        return TransportFailure.CONNECTION_REFUSED
    if isinstance(exc, (httpx.ReadError, httpx.RemoteProtocolError)):
        return TransportFailure.CONNECTION_RESET
    if isinstance(exc, httpx.WriteError):
        return TransportFailure.BROKEN_PIPE
    return None


def error_from_response(response: httpx.Response, operation: str) -> BankAPIError:
    """Build a BankAPIError for a non-2xx response"""
    status = response.status_code
    if status == 429:
        kind = ErrorKind.RATE_LIMITED
    elif 500 <= status < 600:
        kind = ErrorKind.SERVER
    else:
        kind = ErrorKind.CLIENT

    detail = ""
    try:
        body = response.json()
        if isinstance(body, dict):
            detail = body.get("message") or body.get("detail") or ""
    except ValueError:
        detail = response.text[:200]

    message = f"{operation} failed: HTTP {status}"
    if detail:
        message = f"{message} ({detail})"
    return BankAPIError(message, operation=operation, kind=kind, status_code=status)


def translate_error(exc: BaseException, operation: str) -> BankAPIError:
    """Convert any failure raised by a remote call into a BankAPIError"""
    if isinstance(exc, BankAPIError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        return error_from_response(exc.response, operation)

    failure = transport_failure_for(exc)
    if failure is not None:
        return BankAPIError(
            f"{operation} failed: {failure.value} ({exc})",
            operation=operation,
            kind=ErrorKind.TRANSPORT,
            transport_failure=failure,
        )
    if isinstance(exc, httpx.TransportError):
        return BankAPIError(
            f"{operation} failed: {exc}", operation=operation, kind=ErrorKind.TRANSPORT
        )
    if isinstance(exc, (KeyError, ValueError, TypeError)):
        return BankAPIError(
            f"{operation} failed: invalid response from bank: {exc}",
            operation=operation,
            kind=ErrorKind.INVALID_RESPONSE,
        )
    return BankAPIError(f"{operation} failed: {exc}", operation=operation, kind=ErrorKind.CLIENT)
