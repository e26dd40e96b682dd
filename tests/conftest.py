"""
Pytest configuration for tdma_http_core tests.

This file contains shared fixtures and configuration
for all tests in the project.
"""

import pytest
from typing import Any, Dict, List

from tdma_http_core.connection import Connection
from tdma_http_core.network import global_cleanup, is_initialized
from tdma_http_core.network.mock import MockTransportHandle
from tdma_http_core.streaming import Credentials


@pytest.fixture(autouse=True)
def clean_runtime():
    """Make sure no test leaks process-wide transport state."""
    yield
    while is_initialized():
        global_cleanup()


@pytest.fixture
def mock_handle():
    """Create a mock transport handle."""
    return MockTransportHandle()


@pytest.fixture
def connection(mock_handle):
    """Create a connection backed by the mock handle."""
    conn = Connection("https://api.example.com/v1/data", handle_factory=lambda: mock_handle)
    yield conn
    conn.close()


@pytest.fixture
def sample_headers():
    """Sample headers for testing."""
    return [
        ("Content-Type", "application/json"),
        ("Authorization", "Bearer token123"),
        ("User-Agent", "tdma_http_core/0.1.0"),
        ("Accept", "*/*"),
    ]


@pytest.fixture
def credentials():
    """Sample OAuth credentials."""
    return Credentials(access_token="access-123", refresh_token="refresh-456")


@pytest.fixture
def principals() -> Dict[str, Any]:
    """Sample user principals document with streamer fields."""
    return {
        "userId": "user1",
        "primaryAccountId": "123456789",
        "accounts": [
            {
                "accountId": "123456789",
                "company": "AMER",
                "segment": "ADVNCED",
                "accountCdDomainId": "A000000012345678",
            },
            {
                "accountId": "987654321",
                "company": "OTHER",
                "segment": "OTHER",
                "accountCdDomainId": "B000000000000000",
            },
        ],
        "streamerInfo": {
            "streamerSocketUrl": "streamer-ws.example.com",
            "token": "tok/en+1",
            "tokenTimestamp": "2018-06-12T02:18:23+0000",
            "userGroup": "ACCT",
            "accessLevel": "ACCT",
            "acl": "AKBPCFDTESF7G1",
            "appId": "APPX",
        },
    }


class FakeSocket:
    """Blocking socket stand-in replaying canned server bytes."""

    def __init__(self, response: bytes = b"", chunk_size: int = 7) -> None:
        self._response = response
        self._position = 0
        self._chunk_size = chunk_size
        self.sent: List[bytes] = []
        self.closed = False
        self.timeout = None

    def sendall(self, data: bytes) -> None:
        if self.closed:
            raise OSError("socket is closed")
        self.sent.append(bytes(data))

    def recv(self, max_bytes: int) -> bytes:
        if self.closed:
            raise OSError("socket is closed")
        end = min(self._position + self._chunk_size, self._position + max_bytes, len(self._response))
        data = self._response[self._position:end]
        self._position = end
        return data

    def settimeout(self, timeout) -> None:
        self.timeout = timeout

    def close(self) -> None:
        self.closed = True

    @property
    def sent_data(self) -> bytes:
        return b"".join(self.sent)


@pytest.fixture
def fake_socket_factory():
    """Create FakeSocket instances from canned response bytes."""
    def _create(response: bytes = b"", chunk_size: int = 7) -> FakeSocket:
        return FakeSocket(response, chunk_size)
    return _create
