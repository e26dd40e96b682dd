"""
Configurable HTTP connection for tdma_http_core.

This module implements the Connection class that owns one transport
handle, tracks every option applied to it, accumulates request headers
and executes blocking requests, plus the named presets used to build
TLS-verified GET and POST connections.
"""

import io
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from typing_extensions import Self

from .exceptions import ConnectionError, ConnectionException, OptionException
from .network.handle import Info, TransportCode, TransportHandle
from .network.runtime import HandleFactory, get_handle_factory
from .options import (
    Option,
    OptionKey,
    Pair,
    format_options,
    pairs_to_fields,
    serialize_option_value,
)

logger = logging.getLogger(__name__)

ExecuteResult = Tuple[int, str, datetime]


class HeaderList:
    """
    Ordered, append-only list of ``"key: value"`` header entries.

    Entries can only be appended; the owning connection drops the
    whole list to reset it.
    """

    def __init__(self) -> None:
        self._entries: List[str] = []

    def append(self, entry: str) -> None:
        """
        Append one header entry.

        Raises:
            ValueError: If the entry contains a line break
        """
        if "\r" in entry or "\n" in entry:
            raise ValueError(f"header entry contains a line break: {entry!r}")
        self._entries.append(entry)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"HeaderList({self._entries!r})"


class ResponseCapture:
    """Buffer collecting the response body of a single execute() call."""

    def __init__(self) -> None:
        self._buffer = io.BytesIO()

    @staticmethod
    def write_callback(capture: "ResponseCapture", data: bytes) -> int:
        """Write callback installed on the transport handle."""
        return capture._buffer.write(data)

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()

    def clear(self) -> None:
        self._buffer = io.BytesIO()


class Connection:
    """
    Configurable HTTP connection.

    A connection owns exactly one transport handle and one header list.
    Every option applied through set_option() is recorded so the full
    configuration can be inspected with get_option_strings() or str().
    Once closed, every configuration and request operation fails.

    Connections are not safe for concurrent use from multiple threads.
    """

    DEFAULT_ENCODING = "gzip"

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        handle_factory: Optional[HandleFactory] = None,
    ):
        """
        Open a connection. No network traffic happens until execute().

        Args:
            url: Optional URL to request
            handle_factory: Callable producing the transport handle; the
                            process-wide runtime factory is used if None

        Raises:
            ConnectionException: If no factory is given and the
                                 transport runtime is not initialized
            OptionException: If the handle rejects the initial options
        """
        self._handle: Optional[TransportHandle] = None
        self._headers: Optional[HeaderList] = None
        self._options: Dict[int, Any] = {}

        factory = handle_factory or get_handle_factory()
        self._handle = factory()
        if self._handle is None:
            logger.error("Failed to allocate transport handle")
            return

        with self._closing_on_error():
            self.set_option(Option.NOSIGNAL, 1)
            if url is not None:
                self.set_url(url)

        logger.debug(f"Connection opened: {url}")

    @classmethod
    def secure(cls, url: Optional[str] = None, **kwargs: Any) -> Self:
        """Create a connection with peer and host certificate verification."""
        connection = cls(url, **kwargs)
        with connection._closing_on_error():
            connection.set_ssl_verify()
        return connection

    @classmethod
    def secure_get(cls, url: Optional[str] = None, **kwargs: Any) -> Self:
        """Create a TLS-verified GET connection with gzip encoding and keep-alive."""
        connection = cls.secure(url, **kwargs)
        with connection._closing_on_error():
            connection.set_option(Option.HTTPGET, 1)
            connection.set_encoding(cls.DEFAULT_ENCODING)
            connection.set_keepalive()
        return connection

    @classmethod
    def secure_post(cls, url: Optional[str] = None, **kwargs: Any) -> Self:
        """Create a TLS-verified POST connection with gzip encoding and keep-alive."""
        connection = cls.secure(url, **kwargs)
        with connection._closing_on_error():
            connection.set_option(Option.POST, 1)
            connection.set_encoding(cls.DEFAULT_ENCODING)
            connection.set_keepalive()
        return connection

    def set_option(self, option: OptionKey, value: Any) -> None:
        """
        Apply one option to the transport handle and record it.

        Args:
            option: The option identifier
            value: The value to apply

        Raises:
            OptionException: If the connection is closed or the
                             handle rejects the value
        """
        if self._handle is None:
            raise OptionException(option, value, "connection/handle has been closed")

        code = self._handle.setopt(option, value)
        if code != TransportCode.OK:
            raise OptionException(option, value)

        # The header entry keeps the list itself; everything else is serialized
        if option == Option.HTTPHEADER:
            self._options[option] = value
        else:
            self._options[option] = serialize_option_value(option, value)

    def set_url(self, url: str) -> None:
        self.set_option(Option.URL, url)

    def set_ssl_verify(self) -> None:
        self.set_option(Option.SSL_VERIFYPEER, 1)
        self.set_option(Option.SSL_VERIFYHOST, 2)

    def set_ssl_verify_using_ca_bundle(self, path: str) -> None:
        self.set_ssl_verify()
        self.set_option(Option.CAINFO, path)

    def set_ssl_verify_using_ca_certs(self, directory: str) -> None:
        self.set_ssl_verify()
        self.set_option(Option.CAPATH, directory)

    def set_encoding(self, encoding: str) -> None:
        self.set_option(Option.ACCEPT_ENCODING, encoding)

    def set_keepalive(self) -> None:
        self.set_option(Option.TCP_KEEPALIVE, 1)

    def set_timeout(self, seconds: float) -> None:
        self.set_option(Option.TIMEOUT, seconds)

    def add_headers(self, headers: Iterable[Pair]) -> None:
        """
        Append request headers, keeping any added before.

        Each pair becomes a ``"key: value"`` entry, in order. If an
        entry is rejected, the entries appended before it stay in the
        list and the header option is not reapplied.

        Args:
            headers: (key, value) pairs to append

        Raises:
            ConnectionException: If the connection is closed
            OptionException: If an entry cannot be appended or the
                             header option cannot be applied
        """
        if self._handle is None:
            raise ConnectionException("connection/handle has been closed")

        headers = list(headers)
        if not headers:
            return

        if self._headers is None:
            self._headers = HeaderList()

        for key, value in headers:
            entry = f"{key}: {value}"
            try:
                self._headers.append(entry)
            except ValueError as e:
                raise OptionException(
                    Option.HTTPHEADER, entry, "failed trying to add header", cause=e
                )

        self.set_option(Option.HTTPHEADER, self._headers)

    def reset_headers(self) -> None:
        """Drop every header and the header option entry."""
        had_headers = Option.HTTPHEADER in self._options
        self._headers = None
        self._options.pop(Option.HTTPHEADER, None)

        # The handle must stop sending the dropped list
        if had_headers and self._handle is not None:
            code = self._handle.setopt(Option.HTTPHEADER, ())
            if code != TransportCode.OK:
                raise OptionException(Option.HTTPHEADER, ())

    def reset_options(self) -> None:
        """Drop headers and restore the handle's default configuration."""
        self.reset_headers()
        if self._handle is not None:
            self._handle.reset()
        self._options.clear()

    def set_fields(self, fields: Iterable[Pair]) -> None:
        """
        Set the POST body to ``key1=value1&...&keyN=valueN``.

        The serialized body is copied into the connection, so the
        caller's pairs need not outlive the call. An empty input leaves
        the body untouched.

        Raises:
            ConnectionException: If the connection is closed
            OptionException: If the body cannot be applied
        """
        if self._handle is None:
            raise ConnectionException("connection/handle has been closed")

        fields = list(fields)
        if fields:
            self.set_option(Option.COPYPOSTFIELDS, pairs_to_fields(fields))

    def execute(self) -> ExecuteResult:
        """
        Perform the configured request, blocking until it completes.

        Returns:
            Tuple of (status_code, body, timestamp) where timestamp is
            the local UTC time at which the transport call returned

        Raises:
            ConnectionException: If the connection is closed
            ConnectionError: If the transport reports a failure
        """
        if self._handle is None:
            raise ConnectionException("connection/handle has been closed")

        capture = ResponseCapture()
        try:
            self.set_option(Option.WRITEFUNCTION, ResponseCapture.write_callback)
            self.set_option(Option.WRITEDATA, capture)
            code = self._handle.perform()
            timestamp = datetime.now(timezone.utc)
        finally:
            self._unbind_capture()

        if code != TransportCode.OK:
            logger.error(f"Request failed with transport code {int(code)}")
            raise ConnectionError(code)

        body = capture.getvalue().decode("utf-8", errors="surrogateescape")
        capture.clear()
        status = self._handle.getinfo(Info.RESPONSE_CODE)

        logger.debug(f"Request completed: {status} ({len(body)} chars)")
        return status, body, timestamp

    def close(self) -> None:
        """Release the header list and the transport handle. Safe to call repeatedly."""
        self._headers = None
        if self._handle is not None:
            self._handle.close()
            self._handle = None
            logger.debug("Connection closed")
        self._options.clear()

    @property
    def is_closed(self) -> bool:
        """Check if the connection is closed."""
        return self._handle is None

    @property
    def headers(self) -> Tuple[str, ...]:
        """Get the header entries added so far."""
        if self._headers is None:
            return ()
        return tuple(self._headers)

    @property
    def options(self) -> Dict[int, Any]:
        """Get a copy of the recorded option store."""
        return dict(self._options)

    def get_option_strings(self) -> List[Tuple[int, str]]:
        """
        Get every recorded option with its serialized value.

        Returns:
            List of (option, serialized value) pairs in the order the
            options were first applied
        """
        return [
            (option, serialize_option_value(option, value) if option == Option.HTTPHEADER else value)
            for option, value in self._options.items()
        ]

    def __str__(self) -> str:
        return format_options(self.get_option_strings(), self._headers)

    @contextmanager
    def _closing_on_error(self) -> Iterator[None]:
        """Close the connection if setup inside the block fails."""
        try:
            yield
        except BaseException:
            self.close()
            raise

    def _unbind_capture(self) -> None:
        # The capture lives for one execute() call only
        for option in (Option.WRITEDATA, Option.WRITEFUNCTION):
            self._options.pop(option, None)
            if self._handle is not None:
                self._handle.setopt(option, None)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
