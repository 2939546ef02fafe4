"""Tests for the shared HTTP helpers."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from common import http_client
from common.errors import RemoteNotFound, TransportError


def _response(status_code, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = "Reason"
    response.text = text
    return response


@patch("common.http_client.time.sleep")
@patch("common.http_client.requests.request")
class TestHttpClient:
    """Status classification and retries."""

    def test_get_text(self, mock_request, _sleep):
        mock_request.return_value = _response(200, "hello")
        assert http_client.get_text("https://example.test/a") == "hello"
        assert mock_request.call_args[0] == ("GET", "https://example.test/a")

    def test_head_follows_redirects(self, mock_request, _sleep):
        mock_request.return_value = _response(200)
        http_client.head("https://example.test/a")
        assert mock_request.call_args[1]["allow_redirects"] is True

    def test_not_found(self, mock_request, _sleep):
        mock_request.return_value = _response(404)
        with pytest.raises(RemoteNotFound):
            http_client.head("https://example.test/missing")
        assert mock_request.call_count == 1

    def test_client_error_is_transport_error(self, mock_request, _sleep):
        mock_request.return_value = _response(403)
        with pytest.raises(TransportError) as excinfo:
            http_client.get_text("https://example.test/forbidden")
        assert excinfo.value.status_code == 403

    def test_server_error_is_retried(self, mock_request, _sleep):
        mock_request.side_effect = [_response(502), _response(200, "ok")]
        assert http_client.get_text("https://example.test/flaky") == "ok"
        assert mock_request.call_count == 2

    def test_persistent_server_error(self, mock_request, _sleep):
        mock_request.return_value = _response(500)
        with pytest.raises(TransportError):
            http_client.get_text("https://example.test/down")
        assert mock_request.call_count == 3

    def test_connection_errors_exhaust_retries(self, mock_request, _sleep):
        mock_request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransportError, match="refused"):
            http_client.head("https://example.test/a")
        assert mock_request.call_count == 3
