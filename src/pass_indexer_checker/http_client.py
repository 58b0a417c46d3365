"""HTTP client for the PASS repository and index with error handling."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pass_indexer_checker import __version__
from pass_indexer_checker.config import CheckerConfig
from pass_indexer_checker.exceptions import (
    ConfigurationError,
    ConnectivityError,
    NotFoundError,
    RepositoryError,
)

logger = logging.getLogger(__name__)


class HTTPClient:
    """Blocking HTTP client that maps transport failures onto checker errors.

    There are no automatic retries here; waiting for the index is the job of
    the poll primitive.
    """

    def __init__(
        self,
        config: CheckerConfig,
        auth: tuple[str, str] | None = None,
    ) -> None:
        """Initialize HTTP client.

        Args:
            config: Checker configuration instance
            auth: Optional basic auth credentials
        """
        self.config = config
        self._auth = auth
        self._client: httpx.Client | None = None

    def __enter__(self) -> HTTPClient:
        """Enter context manager."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()

    def start(self) -> None:
        """Start the HTTP client session."""
        if self._client is not None:
            return

        self._client = httpx.Client(
            timeout=httpx.Timeout(self.config.timeout),
            verify=self.config.verify_ssl,
            auth=self._auth,
            headers=self._get_headers(),
        )

    def close(self) -> None:
        """Close the HTTP client session."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def _get_headers(self) -> dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json",
            "User-Agent": f"pass-indexer-checker/{__version__}",
        }

    def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        content: str | bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make HTTP request with error handling.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            url: Absolute URL
            params: Query parameters
            json: JSON request body
            content: Raw request body
            headers: Additional headers

        Returns:
            HTTP response

        Raises:
            ConfigurationError: URL is malformed or uses an unsupported scheme
            NotFoundError: Resource not found
            RepositoryError: Other error responses
            ConnectivityError: Connection failed or timed out
        """
        if self._client is None:
            self.start()

        assert self._client is not None

        try:
            logger.debug(f"{method} {url}", extra={"params": params, "json": json})

            response = self._client.request(
                method,
                url,
                params=params,
                json=json,
                content=content,
                headers=headers,
            )

            if response.status_code >= 400:
                self._handle_error_response(method, url, response)

            logger.debug(f"{method} {url} -> {response.status_code}")

            return response

        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise ConfigurationError(f"Malformed URL {url!r}: {e}", url=url) from e

        except httpx.TimeoutException as e:
            raise ConnectivityError(f"Request to {url} timed out: {e}", url=url) from e

        except httpx.HTTPError as e:
            raise ConnectivityError(f"Could not reach {url}: {e}", url=url) from e

    def _handle_error_response(self, method: str, url: str, response: httpx.Response) -> None:
        """Raise the exception matching an error response.

        Raises:
            NotFoundError: 404
            RepositoryError: Other errors
        """
        status_code = response.status_code

        try:
            error_body = response.json()
            error_message = error_body.get("error", error_body.get("message", response.text))
        except (ValueError, AttributeError):
            error_message = response.text or f"HTTP {status_code} error"

        if not isinstance(error_message, str):
            error_message = str(error_message)

        message = f"{method} {url} failed: {error_message}"
        if status_code == 404:
            raise NotFoundError(message, response_body=error_message, url=url)

        raise RepositoryError(
            message,
            status_code=status_code,
            response_body=error_message,
            url=url,
        )

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make GET request."""
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make POST request."""
        return self.request("POST", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make DELETE request."""
        return self.request("DELETE", url, **kwargs)
