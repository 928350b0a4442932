"""Typed errors raised by the DHIS2 client.

Every error carries the HTTP status code when one is available and a
human-readable message.  ``kind`` lets callers branch on the failure class
without matching on exception types.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import httpx


class ErrorKind(str, Enum):
    """Classification of client failures."""

    TRANSPORT = "transport"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    SERVER = "server"
    TIMEOUT = "timeout"
    DECODE = "decode"
    REQUEST = "request"


class Dhis2ClientError(Exception):
    """Base error for all DHIS2 client failures."""

    kind: ErrorKind = ErrorKind.REQUEST

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (HTTP {self.status_code})"


class TransportError(Dhis2ClientError):
    """Connection or I/O failure before a response was received."""

    kind = ErrorKind.TRANSPORT


class AuthenticationError(Dhis2ClientError):
    """The server rejected the credentials (401/403)."""

    kind = ErrorKind.AUTHENTICATION


class NotFoundError(Dhis2ClientError):
    kind = ErrorKind.NOT_FOUND


class ServerError(Dhis2ClientError):
    """5xx response, or an asynchronous job reported a failure."""

    kind = ErrorKind.SERVER


class JobTimeoutError(Dhis2ClientError, TimeoutError):
    """Polling passed its deadline without a terminal notification."""

    kind = ErrorKind.TIMEOUT


class DecodeError(Dhis2ClientError):
    """Response body did not match the expected shape."""

    kind = ErrorKind.DECODE


class RequestError(Dhis2ClientError):
    """Any other 4xx response."""

    kind = ErrorKind.REQUEST


def _server_message(response: httpx.Response) -> str | None:
    try:
        body: Any = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None


def error_for_response(response: httpx.Response) -> Dhis2ClientError:
    """Map a non-success response to a typed error.

    Args:
        response: The HTTP response with a 4xx or 5xx status.

    Returns:
        The matching ``Dhis2ClientError`` subclass instance.
    """
    status = response.status_code
    message = _server_message(response)
    if message is None:
        try:
            message = f"{response.request.method} {response.request.url} failed"
        except RuntimeError:
            # Response built without a request (tests, manual construction)
            message = f"Request failed with status {status}"
    if status in (401, 403):
        return AuthenticationError(message, status)
    if status == 404:
        return NotFoundError(message, status)
    if status >= 500:
        return ServerError(message, status)
    return RequestError(message, status)


def raise_for_response(response: httpx.Response) -> None:
    """Raise the typed error for *response* unless it is 2xx."""
    if not response.is_success:
        raise error_for_response(response)
