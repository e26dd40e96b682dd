"""
Tests for the transport handle interface, the mock handle,
the process-wide runtime and the network utilities.
"""

import pytest
import ssl

from tdma_http_core.exceptions import ConnectionException
from tdma_http_core.network import (
    EasyHandle,
    Info,
    MockTransportHandle,
    TransportCode,
    TransportHandle,
    format_host_header,
    get_handle_factory,
    global_cleanup,
    global_init,
    is_initialized,
    parse_url,
    transport_runtime,
    create_ssl_context,
)
from tdma_http_core.options import Option


class TestMockTransportHandle:
    """Test cases for MockTransportHandle."""

    def test_is_transport_handle(self):
        """Test the mock implements the interface."""
        assert isinstance(MockTransportHandle(), TransportHandle)

    def test_records_options(self):
        """Test options are recorded."""
        handle = MockTransportHandle()
        assert handle.setopt(Option.URL, "https://x") == TransportCode.OK
        assert handle.options == {Option.URL: "https://x"}

    def test_rejects_marked_option(self):
        """Test rejected options are not recorded."""
        handle = MockTransportHandle()
        handle.reject_option(Option.URL)
        assert handle.setopt(Option.URL, "https://x") == TransportCode.BAD_FUNCTION_ARGUMENT
        assert handle.options == {}

    def test_default_response(self):
        """Test perform answers with the default response."""
        received = []
        handle = MockTransportHandle(status_code=204, body=b"data")
        handle.setopt(Option.WRITEFUNCTION, lambda sink, chunk: sink.append(chunk) or len(chunk))
        handle.setopt(Option.WRITEDATA, received)
        assert handle.perform() == TransportCode.OK
        assert handle.getinfo(Info.RESPONSE_CODE) == 204
        assert received == [b"data"]

    def test_short_write(self):
        """Test a callback consuming fewer bytes fails the transfer."""
        handle = MockTransportHandle(body=b"data")
        handle.setopt(Option.WRITEFUNCTION, lambda sink, chunk: 0)
        assert handle.perform() == TransportCode.WRITE_ERROR

    def test_queued_failure(self):
        """Test queued failure codes are returned."""
        handle = MockTransportHandle()
        handle.queue_response(code=TransportCode.OPERATION_TIMEDOUT)
        assert handle.perform() == TransportCode.OPERATION_TIMEDOUT
        assert handle.getinfo(Info.RESPONSE_CODE) is None

    def test_reset_and_close(self):
        """Test reset forgets options and close marks the handle."""
        handle = MockTransportHandle()
        handle.setopt(Option.URL, "https://x")
        handle.reset()
        assert handle.options == {}
        assert handle.reset_count == 1
        assert not handle.is_closed
        handle.close()
        assert handle.is_closed


class TestRuntime:
    """Test the process-wide transport runtime."""

    def test_not_initialized(self):
        """Test the factory is unavailable before init."""
        assert not is_initialized()
        with pytest.raises(ConnectionException):
            get_handle_factory()

    def test_default_factory(self):
        """Test EasyHandle is the default factory."""
        global_init()
        assert get_handle_factory() is EasyHandle
        global_cleanup()
        assert not is_initialized()

    def test_nested_init(self):
        """Test the factory survives until the last cleanup."""
        global_init(MockTransportHandle)
        global_init(EasyHandle)
        assert get_handle_factory() is MockTransportHandle
        global_cleanup()
        assert is_initialized()
        global_cleanup()
        assert not is_initialized()

    def test_cleanup_without_init(self):
        """Test an unmatched cleanup is harmless."""
        global_cleanup()
        assert not is_initialized()

    def test_context_manager(self):
        """Test transport_runtime() initializes for the block only."""
        with transport_runtime(MockTransportHandle):
            assert get_handle_factory() is MockTransportHandle
        assert not is_initialized()


class TestParseUrl:
    """Test URL parsing."""

    def test_https_default_port(self):
        """Test https URLs default to port 443."""
        assert parse_url("https://api.example.com/v1/userprincipals?fields=a,b") == (
            "https", "api.example.com", 443, "/v1/userprincipals?fields=a,b"
        )

    def test_http_explicit_port(self):
        """Test explicit ports and default path."""
        assert parse_url("http://localhost:8080") == ("http", "localhost", 8080, "/")

    def test_fragment_dropped(self):
        """Test fragments are never sent."""
        assert parse_url("https://x.example.com/a#frag")[3] == "/a"

    def test_unsupported_scheme(self):
        """Test non-HTTP schemes are rejected."""
        with pytest.raises(ValueError):
            parse_url("ftp://example.com/file")

    def test_missing_host(self):
        """Test URLs without a host are rejected."""
        with pytest.raises(ValueError):
            parse_url("https:///path")


class TestFormatHostHeader:
    """Test Host header formatting."""

    def test_default_ports_omitted(self):
        assert format_host_header("example.com", 443, "https") == "example.com"
        assert format_host_header("example.com", 80, "http") == "example.com"

    def test_custom_port(self):
        assert format_host_header("example.com", 8443, "https") == "example.com:8443"

    def test_ipv6(self):
        assert format_host_header("::1", 8080, "http") == "[::1]:8080"


class TestCreateSslContext:
    """Test SSL context construction."""

    def test_verifying(self):
        """Test peer and host verification."""
        context = create_ssl_context()
        assert context.verify_mode == ssl.CERT_REQUIRED
        assert context.check_hostname

    def test_peer_only(self):
        """Test host verification can be disabled separately."""
        context = create_ssl_context(verify_host=False)
        assert context.verify_mode == ssl.CERT_REQUIRED
        assert not context.check_hostname

    def test_no_verification(self):
        """Test verification can be disabled."""
        context = create_ssl_context(verify_peer=False)
        assert context.verify_mode == ssl.CERT_NONE

    def test_missing_ca_bundle(self, tmp_path):
        """Test a missing CA bundle fails."""
        with pytest.raises((OSError, ssl.SSLError)):
            create_ssl_context(cafile=str(tmp_path / "missing.pem"))
