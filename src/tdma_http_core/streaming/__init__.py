"""
Streaming session support for tdma_http_core.

This module derives streaming-session credentials from the user
principals document and resolves streaming service names.
"""

from .credentials import Credentials
from .info import StreamerCredentials, StreamerInfo, get_streamer_info, timestamp_to_ms
from .principals import build_user_principals_url, get_user_principals_for_streaming
from .service import SERVICE_NAMES, StreamerService, StreamerServiceType

__all__ = [
    "Credentials",
    "StreamerCredentials",
    "StreamerInfo",
    "get_streamer_info",
    "timestamp_to_ms",
    "build_user_principals_url",
    "get_user_principals_for_streaming",
    "SERVICE_NAMES",
    "StreamerService",
    "StreamerServiceType",
]
