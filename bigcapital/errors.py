"""
Error Taxonomy
==============
Every failure the client surfaces derives from ``BigcapitalError``.

Surfaced to callers:
    - ``AuthenticationFailed`` — the login endpoint rejected the credentials
    - ``AccountInvalid``       — the re-authentication budget is exhausted
    - ``ApiError``             — any other non-2xx API response
    - ``NetworkError``         — transport failure (``RequestTimeout`` for deadlines)
    - ``ConfigurationError``   — no usable default credentials

Internal (logged and absorbed, never propagated out of the store):
    - ``MalformedCredentialRecord``
    - ``StoreWriteError``
"""

from __future__ import annotations

from typing import Optional


class BigcapitalError(Exception):
    """Base exception for all client errors."""


class AuthenticationFailed(BigcapitalError):
    """The login endpoint returned a non-success response."""

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class AccountInvalid(BigcapitalError):
    """Re-authentication failed ``max_retries`` times; the stored identity is void."""

    def __init__(self, attempts: int):
        super().__init__(
            f"Bigcapital account is invalid: failed to authenticate after "
            f"{attempts} attempts. Please re-enter your credentials."
        )
        self.attempts = attempts


class ApiError(BigcapitalError):
    """Non-2xx response from an authenticated endpoint."""

    def __init__(self, status: int, message: str):
        super().__init__(f"API Error {status}: {message}")
        self.status = status
        self.message = message


class NetworkError(BigcapitalError):
    """The request never produced an HTTP response."""


class RequestTimeout(NetworkError):
    """A per-call timeout or an ``execute`` deadline elapsed."""


class ConfigurationError(BigcapitalError):
    """Required configuration (e.g. default credentials) is missing."""


class MalformedCredentialRecord(BigcapitalError):
    """A persisted credential record could not be parsed."""


class StoreWriteError(BigcapitalError):
    """The credential store refused a write (e.g. read-only context)."""
