"""
Custom exceptions for tdma_http_core.

This module defines the exception hierarchy used throughout
the library. Every error is raised to the immediate caller;
nothing in the library catches and retries.
"""

from typing import Any, Optional


class TransportCoreError(Exception):
    """Base exception for all tdma_http_core errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConnectionException(TransportCoreError):
    """Raised when an operation's precondition does not hold (e.g. closed connection)."""


class OptionException(ConnectionException):
    """
    Raised when a configuration option could not be applied.

    Carries the option identifier and the attempted value so the
    failing assignment can be diagnosed.
    """

    def __init__(
        self,
        option: Any,
        value: Any,
        message: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        if message is None:
            message = (
                f"error setting connection option ({_option_label(option)}) "
                f"with value ({value})"
            )
        super().__init__(message, cause)
        self.option = option
        self.value = value


class ConnectionError(ConnectionException):
    """Raised when the transport's blocking perform call fails."""

    def __init__(self, code: int) -> None:
        super().__init__(f"connection error ({int(code)})")
        self.code = code


class APIException(TransportCoreError):
    """Raised when data returned by the API does not have the expected shape."""


class ServerError(APIException):
    """Raised when the API answers with an unexpected HTTP status."""

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        if message is None:
            message = f"server returned status code {status_code}"
        super().__init__(message)
        self.status_code = status_code


class ValueException(TransportCoreError, ValueError):
    """Raised when a value is outside the set the library accepts."""


def _option_label(option: Any) -> str:
    name = getattr(option, "name", None)
    if name is None:
        return str(option)
    return f"{name}={int(option)}"
