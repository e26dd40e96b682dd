"""
Network utilities for tdma_http_core.

This module provides utility functions for the blocking transport:
TCP connection setup, SSL context construction and URL parsing.
"""

import socket
import ssl
from typing import Optional, Tuple
from urllib.parse import urlparse

SUPPORTED_SCHEMES = ("http", "https")


def open_tcp_connection(
    host: str,
    port: int,
    timeout: Optional[float] = None,
    keepalive: bool = False,
) -> socket.socket:
    """
    Open a blocking TCP connection with optimal settings.

    Args:
        host: Hostname or IP address to connect to
        port: Port number
        timeout: Connect and I/O timeout in seconds (None for blocking)
        keepalive: Whether to enable TCP keep-alive probes

    Returns:
        Connected socket object

    Raises:
        socket.gaierror: If the host cannot be resolved
        OSError: If the connection fails
    """
    sock = socket.create_connection((host, port), timeout=timeout)

    # Set socket options for better performance
    sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

    if keepalive:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)

        # Platform-specific keep-alive settings
        if hasattr(socket, 'TCP_KEEPIDLE'):
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, 60)
        if hasattr(socket, 'TCP_KEEPINTVL'):
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, 60)

    return sock


def create_ssl_context(
    verify_peer: bool = True,
    verify_host: bool = True,
    cafile: Optional[str] = None,
    capath: Optional[str] = None,
) -> ssl.SSLContext:
    """
    Create an SSL context with optimal settings.

    Args:
        verify_peer: Whether to verify the server certificate chain
        verify_host: Whether to verify the certificate matches the host
        cafile: Path to a CA bundle file
        capath: Path to a directory of CA certificates

    Returns:
        Configured SSL context

    Raises:
        ssl.SSLError: If SSL context creation fails
        OSError: If a CA file or directory cannot be loaded
    """
    context = ssl.create_default_context(cafile=cafile, capath=capath)
    if verify_peer:
        context.check_hostname = verify_host
        context.verify_mode = ssl.CERT_REQUIRED
    else:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    context.options |= ssl.OP_NO_COMPRESSION

    # Disable legacy protocols
    context.minimum_version = ssl.TLSVersion.TLSv1_2

    return context


def parse_url(url: str) -> Tuple[str, str, int, str]:
    """
    Parse URL into components.

    Args:
        url: URL string to parse

    Returns:
        Tuple of (scheme, host, port, target) where target is the
        path plus query string

    Raises:
        ValueError: If URL is malformed or its scheme is unsupported
    """
    parsed = urlparse(url)

    scheme = parsed.scheme.lower()
    if scheme not in SUPPORTED_SCHEMES:
        raise ValueError(f"Unsupported URL scheme: {parsed.scheme!r}")

    host = parsed.hostname or ""
    if not host:
        raise ValueError("No hostname found in URL")

    port = parsed.port
    if port is None:
        port = 443 if scheme == "https" else 80

    target = parsed.path or "/"
    if parsed.query:
        target += "?" + parsed.query

    return scheme, host, port, target


def format_host_header(host: str, port: int, scheme: str) -> str:
    """
    Format host header for HTTP requests.

    Args:
        host: Hostname
        port: Port number
        scheme: URL scheme

    Returns:
        Formatted host header string
    """
    if ":" in host:
        host = f"[{host}]"
    if (scheme == "https" and port == 443) or (scheme == "http" and port == 80):
        return host
    return f"{host}:{port}"
