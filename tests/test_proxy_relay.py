"""Unit tests for ProxyRelay."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, patch, MagicMock
import httpx
from models.relay import BodyKind, RelayMessages
from services.proxy_relay import ProxyRelay


MESSAGES = RelayMessages(
    missing="No URL provided.",
    upstream_error="Failed to fetch book content.",
    transport_error="An error occurred while fetching the book text."
)


def recording_transport(handler):
    """MockTransport that records every outbound request."""
    calls = []

    def _handle(request):
        calls.append(request)
        return handler(request)

    return httpx.MockTransport(_handle), calls


def make_relay(handler, body_kind=BodyKind.RAW_TEXT, allowed_hosts=None):
    transport, calls = recording_transport(handler)
    relay = ProxyRelay(
        name="test",
        body_kind=body_kind,
        messages=MESSAGES,
        allowed_hosts=allowed_hosts or [],
        transport=transport
    )
    return relay, calls


class TestProxyRelay:
    """Test suite for ProxyRelay."""

    def test_missing_url_returns_400_without_outbound_call(self):
        """Test a missing URL is a client error and nothing is fetched."""
        relay, calls = make_relay(lambda request: httpx.Response(200, text="unused"))

        result = relay.relay(None)

        assert result.status == 400
        assert result.body == "No URL provided."
        assert calls == []

    @pytest.mark.parametrize("blank", ["", "   "])
    def test_blank_url_treated_as_missing(self, blank):
        """Test empty and whitespace-only URLs are rejected like a missing one."""
        relay, calls = make_relay(lambda request: httpx.Response(200, text="unused"))

        result = relay.relay(blank)

        assert result.status == 400
        assert calls == []

    def test_raw_text_success_passes_body_through(self):
        """Test raw-text bodies are relayed byte-for-byte."""
        body = "CHAPTER I.\r\n\r\n  It was the best of times,\n"
        relay, calls = make_relay(lambda request: httpx.Response(200, text=body))

        result = relay.relay("https://www.gutenberg.org/files/98/98-0.txt")

        assert result.status == 200
        assert result.body_kind == BodyKind.RAW_TEXT
        assert result.body == body.encode("utf-8")
        assert result.media_type.startswith("text/plain")
        assert len(calls) == 1

    def test_json_success_returns_parsed_payload(self):
        """Test JSON upstream payloads are parsed for re-serialization."""
        payload = {"books": [{"id": "47", "title": "The Art of War"}]}
        relay, calls = make_relay(
            lambda request: httpx.Response(200, json=payload),
            body_kind=BodyKind.JSON
        )

        result = relay.relay("https://librivox.org/api/feed/audiobooks/?id=47&format=json")

        assert result.status == 200
        assert result.body == payload
        assert result.media_type == "application/json"
        assert len(calls) == 1

    def test_malformed_json_returns_500(self):
        """Test a JSON parse failure is reported as a 500, not swallowed."""
        relay, _ = make_relay(
            lambda request: httpx.Response(200, text="<html>maintenance</html>"),
            body_kind=BodyKind.JSON
        )

        result = relay.relay("https://openlibrary.org/search.json?q=dracula")

        assert result.status == 500
        assert result.body == MESSAGES.transport_error

    @pytest.mark.parametrize("body", ['{"v": NaN}', '[Infinity]', '{"v": -Infinity}'])
    def test_non_finite_json_returns_500(self, body):
        """Test JSON that cannot be re-serialized strictly is reported as a 500."""
        relay, _ = make_relay(
            lambda request: httpx.Response(200, text=body),
            body_kind=BodyKind.JSON
        )

        result = relay.relay("https://librivox.org/api/feed/audiobooks/?format=json")

        assert result.status == 500
        assert result.body == MESSAGES.transport_error

    def test_upstream_404_is_forwarded(self):
        """Test a non-2xx upstream status is forwarded with a short body."""
        relay, calls = make_relay(lambda request: httpx.Response(404, text="Not Found page body"))

        result = relay.relay("https://www.gutenberg.org/missing.txt")

        assert result.status == 404
        assert result.body == "Failed to fetch book content."
        assert len(calls) == 1

    @pytest.mark.parametrize("status", [401, 403, 429, 500, 502, 503])
    def test_upstream_error_statuses_forwarded_without_retry(self, status):
        """Test every upstream failure status is forwarded and not retried."""
        relay, calls = make_relay(lambda request: httpx.Response(status))

        result = relay.relay("https://example.org/resource")

        assert result.status == status
        assert len(calls) == 1

    def test_transport_error_returns_500(self):
        """Test connection failures become a generic 500."""
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        relay, calls = make_relay(refuse)

        result = relay.relay("https://unreachable.example/book.txt")

        assert result.status == 500
        assert result.body == MESSAGES.transport_error
        assert len(calls) == 1

    def test_timeout_returns_500(self):
        """Test timeouts are treated as transport failures."""
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        relay, calls = make_relay(slow)

        result = relay.relay("https://slow.example/book.txt")

        assert result.status == 500
        assert len(calls) == 1

    @pytest.mark.parametrize("error", [
        httpx.InvalidURL("Invalid URL"),
        httpx.UnsupportedProtocol("Request URL is missing an 'http://' or 'https://' protocol."),
    ])
    @patch('httpx.Client')
    def test_malformed_url_returns_500(self, mock_client_class, error):
        """Test a URL httpx cannot use is a transport failure, not a crash."""
        mock_client = MagicMock()
        mock_client.__enter__.return_value.get.side_effect = error
        mock_client_class.return_value = mock_client

        relay = ProxyRelay(name="test", messages=MESSAGES, allowed_hosts=[])
        result = relay.relay("not a url at all")

        assert result.status == 500
        assert result.body == MESSAGES.transport_error

    def test_url_used_exactly_as_given(self):
        """Test the relay does not decode the target URL a second time."""
        relay, calls = make_relay(lambda request: httpx.Response(200, text="ok"))

        relay.relay("https://example.org/search?q=war%20and%20peace")

        assert str(calls[0].url) == "https://example.org/search?q=war%20and%20peace"

    def test_allow_list_blocks_other_hosts(self):
        """Test hosts outside a configured allow-list get 403 with no outbound call."""
        relay, calls = make_relay(
            lambda request: httpx.Response(200, text="ok"),
            allowed_hosts=["www.gutenberg.org"]
        )

        result = relay.relay("https://evil.example/steal")

        assert result.status == 403
        assert calls == []

    def test_allow_list_permits_listed_host(self):
        """Test allow-listed hosts are matched case-insensitively."""
        relay, calls = make_relay(
            lambda request: httpx.Response(200, text="ok"),
            allowed_hosts=["WWW.Gutenberg.org"]
        )

        result = relay.relay("https://www.gutenberg.org/cache/epub/98/pg98.txt")

        assert result.status == 200
        assert len(calls) == 1

    def test_body_kind_override(self):
        """Test a per-call body kind overrides the configured one."""
        relay, _ = make_relay(lambda request: httpx.Response(200, json={"ok": True}))

        result = relay.relay("https://example.org/data.json", BodyKind.JSON)

        assert result.body == {"ok": True}

    @patch('httpx.Client')
    def test_client_uses_configured_timeout(self, mock_client_class):
        """Test the outbound client is bounded by the configured timeout."""
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.content = b"text"
        mock_response.headers = {"content-type": "text/plain"}

        mock_client = MagicMock()
        mock_client.__enter__.return_value.get.return_value = mock_response
        mock_client_class.return_value = mock_client

        relay = ProxyRelay(name="test", timeout=12.5, allowed_hosts=[])
        result = relay.relay("https://example.org/a.txt")

        assert result.status == 200
        assert mock_client_class.call_args.kwargs["timeout"] == 12.5
        mock_client.__enter__.return_value.get.assert_called_once_with("https://example.org/a.txt")

    @patch('httpx.Client')
    def test_each_call_is_independent(self, mock_client_class):
        """Test one outbound request per inbound call, with no shared client."""
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.content = b"text"
        mock_response.headers = {}

        mock_client = MagicMock()
        mock_client.__enter__.return_value.get.return_value = mock_response
        mock_client_class.return_value = mock_client

        relay = ProxyRelay(name="test", allowed_hosts=[])
        for _ in range(3):
            relay.relay("https://example.org/a.txt")

        assert mock_client_class.call_count == 3
        assert mock_client.__enter__.return_value.get.call_count == 3
