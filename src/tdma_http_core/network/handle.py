"""
Transport handle interface for tdma_http_core.

This module defines the TransportHandle interface: one configurable,
reusable request context that a Connection owns exclusively.
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any

from ..options import OptionKey


class TransportCode(IntEnum):
    """Result codes returned by transport handle operations."""
    OK = 0
    UNSUPPORTED_PROTOCOL = 1
    FAILED_INIT = 2
    URL_MALFORMAT = 3
    COULDNT_RESOLVE_HOST = 6
    COULDNT_CONNECT = 7
    WRITE_ERROR = 23
    OPERATION_TIMEDOUT = 28
    SSL_CONNECT_ERROR = 35
    BAD_FUNCTION_ARGUMENT = 43
    UNKNOWN_OPTION = 48
    GOT_NOTHING = 52
    SEND_ERROR = 55
    RECV_ERROR = 56
    PEER_FAILED_VERIFICATION = 60
    BAD_CONTENT_ENCODING = 61
    SSL_CACERT_BADFILE = 77


class Info(IntEnum):
    """Response metadata readable after a completed perform()."""
    EFFECTIVE_URL = 0x100001
    RESPONSE_CODE = 0x200002


class TransportHandle(ABC):
    """
    Interface for transport handle implementations.

    A handle accumulates options via setopt(), performs one blocking
    request per perform() call, and exposes response metadata through
    getinfo(). Response body bytes are delivered to the callback set
    with Option.WRITEFUNCTION, called as ``func(writedata, chunk)`` and
    expected to return the number of bytes it consumed. Setting the
    callback to None discards the body.
    """

    @abstractmethod
    def setopt(self, option: OptionKey, value: Any) -> TransportCode:
        """
        Set a named configuration value.

        Args:
            option: The option identifier.
            value: A string, integer, or callable/object depending on the option.

        Returns:
            TransportCode.OK if accepted, an error code otherwise.
        """
        pass

    @abstractmethod
    def perform(self) -> TransportCode:
        """
        Perform the configured request, blocking until it completes.

        Returns:
            TransportCode.OK on success, an error code otherwise.
        """
        pass

    @abstractmethod
    def getinfo(self, info: Info) -> Any:
        """
        Read metadata about the last completed request.

        Args:
            info: The item to retrieve.

        Returns:
            The requested value, or None if no request completed yet.
        """
        pass

    @abstractmethod
    def reset(self) -> None:
        """Restore every option to its default value."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the handle and any network resources it holds."""
        pass

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """
        Check if the handle is closed.

        Returns:
            True if the handle has been released, False otherwise.
        """
        pass
