"""
Mock transport implementation for testing.

This module provides an in-memory TransportHandle that can be used
for unit testing without requiring actual network connections.
"""

from collections import deque
from typing import Any, Deque, Dict, List, NamedTuple, Optional, Set

from ..options import Option, OptionKey
from .handle import Info, TransportCode, TransportHandle


class MockResponse(NamedTuple):
    """A canned result for one perform() call."""
    status_code: int = 200
    body: bytes = b""
    code: TransportCode = TransportCode.OK


class MockTransportHandle(TransportHandle):
    """
    Mock transport handle for testing.

    This implementation records every option it is given and answers
    perform() with queued responses, delivering body bytes through the
    configured write callback exactly like a real handle.
    """

    def __init__(
        self,
        status_code: int = 200,
        body: bytes = b"",
        chunk_size: Optional[int] = None,
    ):
        """
        Initialize the mock handle.

        Args:
            status_code: Status returned when no response is queued.
            body: Body returned when no response is queued.
            chunk_size: Deliver bodies to the write callback in chunks
                        of this size (whole body at once if None).
        """
        self._options: Dict[int, Any] = {}
        self._default = MockResponse(status_code, body)
        self._responses: Deque[MockResponse] = deque()
        self._rejected: Set[int] = set()
        self._chunk_size = chunk_size
        self._closed = False
        self._last_status: Optional[int] = None
        self.performed: List[Dict[int, Any]] = []
        self.reset_count = 0

    def setopt(self, option: OptionKey, value: Any) -> TransportCode:
        """Record an option, unless it was marked as rejected."""
        if option in self._rejected:
            return TransportCode.BAD_FUNCTION_ARGUMENT
        self._options[option] = value
        return TransportCode.OK

    def perform(self) -> TransportCode:
        """
        Answer with the next queued response.

        Returns:
            The queued transport code; body bytes are only delivered
            when that code is OK.
        """
        self.performed.append(dict(self._options))
        response = self._responses.popleft() if self._responses else self._default
        if response.code != TransportCode.OK:
            return response.code

        write = self._options.get(Option.WRITEFUNCTION)
        sink = self._options.get(Option.WRITEDATA)
        if write is not None:
            for chunk in self._chunks(response.body):
                if write(sink, chunk) != len(chunk):
                    return TransportCode.WRITE_ERROR

        self._last_status = response.status_code
        return TransportCode.OK

    def getinfo(self, info: Info) -> Any:
        """Get metadata about the last mock request."""
        if info == Info.RESPONSE_CODE:
            return self._last_status
        if info == Info.EFFECTIVE_URL:
            return self._options.get(Option.URL)
        return None

    def reset(self) -> None:
        """Forget every recorded option."""
        self._options.clear()
        self.reset_count += 1

    def close(self) -> None:
        """Close the mock handle."""
        self._closed = True

    @property
    def is_closed(self) -> bool:
        """Check if the mock handle is closed."""
        return self._closed

    @property
    def options(self) -> Dict[int, Any]:
        """Get a copy of the options currently set."""
        return dict(self._options)

    def queue_response(
        self,
        status_code: int = 200,
        body: bytes = b"",
        code: TransportCode = TransportCode.OK,
    ) -> None:
        """
        Queue the result of a future perform() call.

        Args:
            status_code: Response status to report.
            body: Response body to deliver.
            code: Transport code perform() should return.
        """
        self._responses.append(MockResponse(status_code, body, code))

    def reject_option(self, option: OptionKey) -> None:
        """Make every later setopt() of this option fail."""
        self._rejected.add(option)

    def _chunks(self, body: bytes):
        if not body:
            return
        if self._chunk_size is None:
            yield body
            return
        for start in range(0, len(body), self._chunk_size):
            yield body[start:start + self._chunk_size]
