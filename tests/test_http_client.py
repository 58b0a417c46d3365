"""Tests for the HTTP client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from pass_indexer_checker.config import CheckerConfig
from pass_indexer_checker.exceptions import (
    ConfigurationError,
    ConnectivityError,
    NotFoundError,
    RepositoryError,
)
from pass_indexer_checker.http_client import HTTPClient


@pytest.fixture
def client(config: CheckerConfig) -> HTTPClient:
    """Create HTTP client instance."""
    return HTTPClient(config, auth=config.fedora_auth)


def mock_response(status_code: int, body: object = None, text: str = "") -> MagicMock:
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.text = text
    if body is None:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = body
    return response


def test_client_context_manager(config: CheckerConfig) -> None:
    """Test client as context manager."""
    with HTTPClient(config) as client:
        assert client._client is not None
    assert client._client is None


def test_client_start_close(client: HTTPClient) -> None:
    """Test manual start and close."""
    assert client._client is None
    client.start()
    assert client._client is not None
    client.close()
    assert client._client is None


def test_get_headers(client: HTTPClient) -> None:
    """Test header generation."""
    headers = client._get_headers()
    assert headers["Accept"] == "application/json"
    assert "pass-indexer-checker" in headers["User-Agent"]


def test_basic_auth_is_configured(client: HTTPClient) -> None:
    """Test repository credentials are sent as basic auth."""
    client.start()
    assert isinstance(client._client.auth, httpx.BasicAuth)
    client.close()


def test_successful_get_request(client: HTTPClient) -> None:
    """Test successful GET request."""
    with patch.object(httpx.Client, "request") as mock_request:
        mock_request.return_value = mock_response(200, {"test": "data"})

        response = client.get("http://es.test:9200/pass")

        assert response.json() == {"test": "data"}
        mock_request.assert_called_once()
        assert mock_request.call_args[0] == ("GET", "http://es.test:9200/pass")


def test_post_request_with_json(client: HTTPClient) -> None:
    """Test POST request with JSON body and extra headers."""
    with patch.object(httpx.Client, "request") as mock_request:
        mock_request.return_value = mock_response(201, {})

        client.post(
            "http://fcrepo.test/users",
            json={"firstName": "BeSsIe"},
            headers={"Content-Type": "application/ld+json"},
        )

        call_kwargs = mock_request.call_args[1]
        assert call_kwargs["json"] == {"firstName": "BeSsIe"}
        assert call_kwargs["headers"] == {"Content-Type": "application/ld+json"}


def test_not_found_error_404(client: HTTPClient) -> None:
    """Test 404 not found error."""
    with patch.object(httpx.Client, "request") as mock_request:
        mock_request.return_value = mock_response(404, text="Not found")

        with pytest.raises(NotFoundError) as exc_info:
            client.delete("http://fcrepo.test/users/1/fcr:tombstone")

        assert exc_info.value.status_code == 404


def test_error_response_uses_error_field(client: HTTPClient) -> None:
    """Test error bodies are surfaced in the exception."""
    with patch.object(httpx.Client, "request") as mock_request:
        mock_request.return_value = mock_response(500, {"error": "index_closed"})

        with pytest.raises(RepositoryError, match=r"\[500\].*index_closed") as exc_info:
            client.get("http://es.test:9200/pass")

        assert exc_info.value.status_code == 500
        assert exc_info.value.response_body == "index_closed"


def test_error_response_with_structured_error(client: HTTPClient) -> None:
    """Test non-string error fields are stringified."""
    body = {"error": {"type": "index_not_found_exception"}, "status": 400}
    with patch.object(httpx.Client, "request") as mock_request:
        mock_request.return_value = mock_response(400, body)

        with pytest.raises(RepositoryError, match="index_not_found_exception"):
            client.get("http://es.test:9200/pass")


def test_timeout_is_connectivity_error(client: HTTPClient) -> None:
    """Test timeouts are reported without retrying."""
    with patch.object(httpx.Client, "request") as mock_request:
        mock_request.side_effect = httpx.ReadTimeout("Timeout")

        with pytest.raises(ConnectivityError, match="timed out"):
            client.get("http://es.test:9200/pass")

        assert mock_request.call_count == 1


def test_connection_error(client: HTTPClient) -> None:
    """Test connection failures are connectivity errors."""
    with patch.object(httpx.Client, "request") as mock_request:
        mock_request.side_effect = httpx.ConnectError("Connection refused")

        with pytest.raises(ConnectivityError, match="Could not reach"):
            client.get("http://es.test:9200/pass")


def test_malformed_url_is_configuration_error(client: HTTPClient) -> None:
    """Test a URL without a scheme is a configuration error."""
    with patch.object(httpx.Client, "request") as mock_request:
        mock_request.side_effect = httpx.UnsupportedProtocol("missing protocol")

        with pytest.raises(ConfigurationError, match="Malformed URL"):
            client.get("es.test/pass")
