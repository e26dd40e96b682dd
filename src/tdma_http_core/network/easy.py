"""
Blocking HTTP/1.1 transport handle for tdma_http_core.

This module implements EasyHandle, a TransportHandle that performs
requests over plain sockets (optionally wrapped in TLS) and uses h11
for HTTP/1.1 framing. The socket is kept open between perform() calls
when the server allows the connection to be reused.
"""

import logging
import socket
import ssl
import zlib
from typing import Any, Callable, Dict, List, Optional, Tuple

import h11

from ..options import Option, OptionKey, header_list_to_pairs
from .handle import Info, TransportCode, TransportHandle
from .utils import SUPPORTED_SCHEMES, create_ssl_context, format_host_header, open_tcp_connection, parse_url

logger = logging.getLogger(__name__)

Origin = Tuple[str, str, int]

_STRING_OPTIONS = frozenset({
    Option.URL,
    Option.CAINFO,
    Option.CAPATH,
    Option.ACCEPT_ENCODING,
    Option.COPYPOSTFIELDS,
})
_FLAG_OPTIONS = frozenset({
    Option.NOSIGNAL,
    Option.SSL_VERIFYPEER,
    Option.TCP_KEEPALIVE,
    Option.HTTPGET,
    Option.POST,
})

# Encodings this handle can decode, advertised when ACCEPT_ENCODING is "".
SUPPORTED_ENCODINGS = ("gzip", "deflate")


class _TransferFailed(Exception):
    """Internal signal carrying the TransportCode of a failed transfer."""

    def __init__(self, code: TransportCode, cause: Optional[BaseException] = None):
        super().__init__(code.name)
        self.code = code
        self.cause = cause


class EasyHandle(TransportHandle):
    """
    Blocking HTTP/1.1 transport handle.

    Options are validated when set; anything this handle does not
    understand is rejected with TransportCode.UNKNOWN_OPTION and values
    of the wrong type with TransportCode.BAD_FUNCTION_ARGUMENT.
    """

    # Default configuration
    DEFAULT_TIMEOUT = 30.0  # seconds, per socket operation
    DEFAULT_USER_AGENT = "tdma_http_core/0.1.0"
    READ_CHUNK_SIZE = 65536  # 64KB chunks

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
    ):
        """
        Initialize the handle.

        Args:
            timeout: Socket timeout used when Option.TIMEOUT is not set
            user_agent: User-Agent sent unless a header overrides it
        """
        self._default_timeout = timeout or self.DEFAULT_TIMEOUT
        self._user_agent = user_agent or self.DEFAULT_USER_AGENT
        self._options: Dict[int, Any] = {}
        self._method = "GET"
        self._closed = False

        # Live connection, kept between requests when reusable
        self._sock: Optional[socket.socket] = None
        self._h11: Optional[h11.Connection] = None
        self._origin: Optional[Origin] = None

        # Last response metadata
        self._status: Optional[int] = None
        self._effective_url: Optional[str] = None

    def setopt(self, option: OptionKey, value: Any) -> TransportCode:
        """Validate and record an option."""
        try:
            option = Option(option)
        except ValueError:
            return TransportCode.UNKNOWN_OPTION

        if not self._valid_value(option, value):
            return TransportCode.BAD_FUNCTION_ARGUMENT

        self._options[option] = value
        if option == Option.HTTPGET and value:
            self._method = "GET"
        elif option == Option.POST:
            self._method = "POST" if value else "GET"
        elif option == Option.COPYPOSTFIELDS:
            self._method = "POST"
        return TransportCode.OK

    def perform(self) -> TransportCode:
        """
        Perform the configured request.

        A reused connection that turns out to be stale is replaced by a
        fresh one once before the failure is reported.
        """
        if self._closed:
            return TransportCode.FAILED_INIT

        url = self._options.get(Option.URL)
        if not url:
            return TransportCode.URL_MALFORMAT
        if url.split(":", 1)[0].lower() not in SUPPORTED_SCHEMES:
            return TransportCode.UNSUPPORTED_PROTOCOL
        try:
            scheme, host, port, target = parse_url(url)
        except ValueError:
            return TransportCode.URL_MALFORMAT

        self._status = None
        origin = (scheme, host, port)
        try:
            reused = self._ensure_connection(origin)
            try:
                status = self._transfer(origin, target)
            except _TransferFailed as e:
                stale = e.code in (TransportCode.GOT_NOTHING, TransportCode.SEND_ERROR)
                if not (reused and stale):
                    raise
                logger.debug(f"Reused connection to {host}:{port} was stale, reconnecting")
                self._drop_connection()
                self._ensure_connection(origin)
                status = self._transfer(origin, target)
        except _TransferFailed as e:
            self._drop_connection()
            logger.error(f"{self._method} {url} failed: {e.code.name} ({e.cause})")
            return e.code

        self._status = status
        self._effective_url = url
        logger.debug(f"{self._method} {url} -> {status}")
        return TransportCode.OK

    def getinfo(self, info: Info) -> Any:
        """Get metadata about the last completed request."""
        if info == Info.RESPONSE_CODE:
            return self._status
        if info == Info.EFFECTIVE_URL:
            return self._effective_url
        return None

    def reset(self) -> None:
        """Restore default options; a live connection is kept."""
        self._options.clear()
        self._method = "GET"

    def close(self) -> None:
        """Close the live connection and release the handle."""
        self._drop_connection()
        self._closed = True

    @property
    def is_closed(self) -> bool:
        """Check if the handle is closed."""
        return self._closed

    def _valid_value(self, option: Option, value: Any) -> bool:
        if option in _STRING_OPTIONS:
            return isinstance(value, str)
        if option in _FLAG_OPTIONS:
            return isinstance(value, int) and value in (0, 1)
        if option == Option.SSL_VERIFYHOST:
            return isinstance(value, int) and value in (0, 2)
        if option == Option.TIMEOUT:
            return isinstance(value, (int, float)) and value >= 0
        if option == Option.HTTPHEADER:
            if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
                return False
            return all(isinstance(h, str) for h in value)
        if option == Option.WRITEFUNCTION:
            return value is None or callable(value)
        return True

    def _timeout(self) -> Optional[float]:
        timeout = self._options.get(Option.TIMEOUT)
        if timeout is None:
            return self._default_timeout
        # Zero means no timeout
        return timeout or None

    def _ensure_connection(self, origin: Origin) -> bool:
        """
        Make sure a usable connection to origin is open.

        Returns:
            True if an existing connection is reused
        """
        if (
            self._sock is not None
            and self._origin == origin
            and self._h11 is not None
            and self._h11.our_state is h11.IDLE
        ):
            self._sock.settimeout(self._timeout())
            return True

        self._drop_connection()
        scheme, host, port = origin
        self._sock = self._connect(scheme, host, port)
        self._h11 = h11.Connection(h11.CLIENT)
        self._origin = origin
        return False

    def _connect(self, scheme: str, host: str, port: int) -> socket.socket:
        context = None
        if scheme == "https":
            try:
                context = create_ssl_context(
                    verify_peer=bool(self._options.get(Option.SSL_VERIFYPEER, 1)),
                    verify_host=self._options.get(Option.SSL_VERIFYHOST, 2) == 2,
                    cafile=self._options.get(Option.CAINFO),
                    capath=self._options.get(Option.CAPATH),
                )
            except (OSError, ssl.SSLError) as e:
                raise _TransferFailed(TransportCode.SSL_CACERT_BADFILE, e)

        try:
            sock = open_tcp_connection(
                host,
                port,
                timeout=self._timeout(),
                keepalive=bool(self._options.get(Option.TCP_KEEPALIVE, 0)),
            )
        except socket.timeout as e:
            raise _TransferFailed(TransportCode.OPERATION_TIMEDOUT, e)
        except socket.gaierror as e:
            raise _TransferFailed(TransportCode.COULDNT_RESOLVE_HOST, e)
        except OSError as e:
            raise _TransferFailed(TransportCode.COULDNT_CONNECT, e)

        if context is None:
            return sock

        try:
            return context.wrap_socket(sock, server_hostname=host)
        except ssl.SSLCertVerificationError as e:
            sock.close()
            raise _TransferFailed(TransportCode.PEER_FAILED_VERIFICATION, e)
        except socket.timeout as e:
            sock.close()
            raise _TransferFailed(TransportCode.OPERATION_TIMEDOUT, e)
        except (ssl.SSLError, OSError) as e:
            sock.close()
            raise _TransferFailed(TransportCode.SSL_CONNECT_ERROR, e)

    def _build_headers(self, origin: Origin, body: Optional[bytes]) -> List[Tuple[str, str]]:
        scheme, host, port = origin
        headers = [
            ("Host", format_host_header(host, port, scheme)),
            ("User-Agent", self._user_agent),
            ("Accept", "*/*"),
        ]

        encoding = self._options.get(Option.ACCEPT_ENCODING)
        if encoding is not None:
            headers.append(("Accept-Encoding", encoding or ", ".join(SUPPORTED_ENCODINGS)))

        if body is not None:
            headers.append(("Content-Type", "application/x-www-form-urlencoded"))
            headers.append(("Content-Length", str(len(body))))

        # Caller headers replace defaults of the same name
        custom = header_list_to_pairs(self._options.get(Option.HTTPHEADER, []))
        overridden = {key.strip().lower() for key, _ in custom}
        headers = [(k, v) for k, v in headers if k.lower() not in overridden]
        headers.extend((key.strip(), value.strip()) for key, value in custom)
        return headers

    def _transfer(self, origin: Origin, target: str) -> int:
        """Send the request and stream the response body to the write callback."""
        body: Optional[bytes] = None
        if self._method == "POST":
            body = self._options.get(Option.COPYPOSTFIELDS, "").encode("utf-8")

        try:
            request = h11.Request(
                method=self._method,
                target=target,
                headers=self._build_headers(origin, body),
            )
        except h11.LocalProtocolError as e:
            raise _TransferFailed(TransportCode.BAD_FUNCTION_ARGUMENT, e)

        self._send_event(request)
        if body:
            self._send_event(h11.Data(data=body))
        self._send_event(h11.EndOfMessage())

        return self._receive_response()

    def _send_event(self, event: h11.Event) -> None:
        try:
            data = self._h11.send(event)
        except h11.LocalProtocolError as e:
            # e.g. a caller Content-Length header that disagrees with the body
            raise _TransferFailed(TransportCode.BAD_FUNCTION_ARGUMENT, e)
        if not data:
            return
        try:
            self._sock.sendall(data)
        except socket.timeout as e:
            raise _TransferFailed(TransportCode.OPERATION_TIMEDOUT, e)
        except OSError as e:
            raise _TransferFailed(TransportCode.SEND_ERROR, e)

    def _receive_response(self) -> int:
        status: Optional[int] = None
        decoder: Optional[Any] = None
        write = self._options.get(Option.WRITEFUNCTION)
        sink = self._options.get(Option.WRITEDATA)

        while True:
            try:
                event = self._h11.next_event()
            except h11.RemoteProtocolError as e:
                code = TransportCode.GOT_NOTHING if status is None else TransportCode.RECV_ERROR
                raise _TransferFailed(code, e)

            if event is h11.NEED_DATA:
                try:
                    data = self._sock.recv(self.READ_CHUNK_SIZE)
                except socket.timeout as e:
                    raise _TransferFailed(TransportCode.OPERATION_TIMEDOUT, e)
                except OSError as e:
                    raise _TransferFailed(TransportCode.RECV_ERROR, e)
                self._h11.receive_data(data)
                continue

            if isinstance(event, h11.InformationalResponse):
                continue

            if isinstance(event, h11.Response):
                status = event.status_code
                decoder = self._content_decoder(event.headers)
                continue

            if isinstance(event, h11.Data):
                chunk = bytes(event.data)
                if decoder is not None:
                    try:
                        chunk = decoder.decompress(chunk)
                    except zlib.error as e:
                        raise _TransferFailed(TransportCode.BAD_CONTENT_ENCODING, e)
                self._deliver(write, sink, chunk)
                continue

            if isinstance(event, h11.EndOfMessage):
                if decoder is not None:
                    try:
                        self._deliver(write, sink, decoder.flush())
                    except zlib.error as e:
                        raise _TransferFailed(TransportCode.BAD_CONTENT_ENCODING, e)
                break

            if isinstance(event, h11.ConnectionClosed):
                code = TransportCode.GOT_NOTHING if status is None else TransportCode.RECV_ERROR
                raise _TransferFailed(code)

        if self._h11.our_state is h11.DONE and self._h11.their_state is h11.DONE:
            self._h11.start_next_cycle()
        else:
            self._drop_connection()

        return status

    def _deliver(self, write: Optional[Callable], sink: Any, chunk: bytes) -> None:
        # Without a write callback the body is discarded
        if write is None or not chunk:
            return
        if write(sink, chunk) != len(chunk):
            raise _TransferFailed(TransportCode.WRITE_ERROR)

    def _content_decoder(self, headers: List[Tuple[bytes, bytes]]) -> Optional[Any]:
        if self._options.get(Option.ACCEPT_ENCODING) is None:
            return None
        for name, value in headers:
            if name.lower() != b"content-encoding":
                continue
            value = value.strip().lower()
            if value == b"gzip":
                return zlib.decompressobj(16 + zlib.MAX_WBITS)
            if value == b"deflate":
                return zlib.decompressobj()
        return None

    def _drop_connection(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError as e:
                logger.debug(f"Error closing socket: {e}")
        self._sock = None
        self._h11 = None
        self._origin = None
