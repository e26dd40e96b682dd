"""
tdma_http_core - HTTP transport for a brokerage API client

A small, blocking HTTP transport: configurable connections with
tracked options and headers, plus derivation of the credentials
needed to open a streaming session.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .connection import Connection, HeaderList, ResponseCapture
from .exceptions import (
    APIException,
    ConnectionError,
    ConnectionException,
    OptionException,
    ServerError,
    TransportCoreError,
    ValueException,
)
from .network import (
    EasyHandle,
    Info,
    TransportCode,
    TransportHandle,
    global_cleanup,
    global_init,
    transport_runtime,
)
from .options import Option, fields_to_pairs, format_options, header_list_to_pairs
from .streaming import (
    Credentials,
    StreamerCredentials,
    StreamerInfo,
    StreamerService,
    StreamerServiceType,
    get_streamer_info,
    timestamp_to_ms,
)

__all__ = [
    "Connection",
    "HeaderList",
    "ResponseCapture",
    "APIException",
    "ConnectionError",
    "ConnectionException",
    "OptionException",
    "ServerError",
    "TransportCoreError",
    "ValueException",
    "EasyHandle",
    "Info",
    "TransportCode",
    "TransportHandle",
    "global_cleanup",
    "global_init",
    "transport_runtime",
    "Option",
    "fields_to_pairs",
    "format_options",
    "header_list_to_pairs",
    "Credentials",
    "StreamerCredentials",
    "StreamerInfo",
    "StreamerService",
    "StreamerServiceType",
    "get_streamer_info",
    "timestamp_to_ms",
]
