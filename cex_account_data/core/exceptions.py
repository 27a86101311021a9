"""
Custom exceptions for the account data synchronizer.

Exception hierarchy:
    AccountDataError (base)
    ├── ExchangeError
    │   ├── UpstreamError
    │   │   ├── AuthenticationError
    │   │   └── RateLimitError
    │   ├── ConnectionError
    │   └── StreamError
    ├── DataError
    │   ├── ParseError
    │   └── NotFoundError
    └── ConfigError
"""

from typing import Any


class AccountDataError(Exception):
    """Base exception for all account data errors."""

    default_message = "Account data error occurred"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.append(f"[{self.code}]")
        if self.details:
            parts.append(f"Details: {self.details}")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r})"
        )


# Exchange-related errors
class ExchangeError(AccountDataError):
    """Base exception for exchange-related errors."""

    default_message = "Exchange error occurred"


class UpstreamError(ExchangeError):
    """The exchange answered a REST call with a non-success response."""

    default_message = "Upstream request failed"

    def __init__(
        self,
        message: str | None = None,
        status: int | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
        self.status = status

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is not None:
            return f"{base} (HTTP {self.status})"
        return base


class AuthenticationError(UpstreamError):
    """Authentication with exchange failed."""

    default_message = "Authentication failed"


class RateLimitError(UpstreamError):
    """Rate limit exceeded on exchange API."""

    default_message = "Rate limit exceeded"

    def __init__(
        self,
        message: str | None = None,
        retry_after: int = 60,
        status: int | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status, code, details)
        self.retry_after = retry_after

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (retry after {self.retry_after}s)"


class ConnectionError(ExchangeError):
    """Connection to exchange REST API failed."""

    default_message = "Failed to connect to exchange"


class StreamError(ExchangeError):
    """User data stream transport failed or was closed."""

    default_message = "User data stream broken"


# Data-related errors
class DataError(AccountDataError):
    """Base exception for data-related errors."""

    default_message = "Data error occurred"


class ParseError(DataError):
    """A payload or decimal amount could not be decoded."""

    default_message = "Failed to parse payload"

    def __init__(
        self,
        message: str | None = None,
        event_type: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
        self.event_type = event_type


class NotFoundError(DataError):
    """Requested data not found."""

    default_message = "Data not found"


# Configuration error
class ConfigError(AccountDataError):
    """Configuration error."""

    default_message = "Configuration error"
