"""Search index introspection."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pass_indexer_checker.config import CheckerConfig
from pass_indexer_checker.exceptions import CheckFailedError, ConfigurationError
from pass_indexer_checker.http_client import HTTPClient
from pass_indexer_checker.models import IndexMapping

logger = logging.getLogger(__name__)


class IndexClient:
    """Reads the PASS index's mapping."""

    def __init__(self, config: CheckerConfig, http: HTTPClient | None = None) -> None:
        self.config = config
        self._http = http or HTTPClient(config)

    def __enter__(self) -> IndexClient:
        self._http.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._http.close()

    @property
    def mapping_url(self) -> str:
        """URL of the index introspection endpoint.

        Raises:
            ConfigurationError: The configured index URL is malformed
        """
        base = self.config.elasticsearch_url
        try:
            parsed = httpx.URL(base)
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"Malformed index URL {base!r}: {e}", url=base) from e

        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ConfigurationError(f"Malformed index URL {base!r}", url=base)

        return self.config.get_index_url()

    def get_mapping(self) -> IndexMapping:
        """Fetch and parse the index mapping.

        Returns:
            IndexMapping with the index's field definitions

        Raises:
            ConfigurationError: The configured index URL is malformed
            ConnectivityError: The index could not be reached
            CheckFailedError: The response does not contain a mapping
        """
        url = self.mapping_url
        response = self._http.get(url)
        try:
            data = response.json()
        except ValueError as e:
            raise CheckFailedError(f"index at {url} did not return JSON", step="config") from e

        mapping = IndexMapping.from_response(self.config.elasticsearch_index, data)
        logger.debug("Index %s maps %d fields", mapping.index, mapping.field_count)
        return mapping
