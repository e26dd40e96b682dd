"""
Network transport components for tdma_http_core.

This module provides the transport handle abstraction, its blocking
HTTP/1.1 implementation, an in-memory mock and the process-wide
runtime that supplies handles to connections.
"""

from .handle import Info, TransportCode, TransportHandle
from .easy import EasyHandle
from .mock import MockResponse, MockTransportHandle
from .runtime import (
    HandleFactory,
    get_handle_factory,
    global_cleanup,
    global_init,
    is_initialized,
    transport_runtime,
)
from .utils import (
    create_ssl_context,
    format_host_header,
    open_tcp_connection,
    parse_url,
)

__all__ = [
    "Info",
    "TransportCode",
    "TransportHandle",
    "EasyHandle",
    "MockResponse",
    "MockTransportHandle",
    "HandleFactory",
    "get_handle_factory",
    "global_cleanup",
    "global_init",
    "is_initialized",
    "transport_runtime",
    "create_ssl_context",
    "format_host_header",
    "open_tcp_connection",
    "parse_url",
]
