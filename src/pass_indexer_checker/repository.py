"""PASS repository client.

Records are written to the Fedora repository and read back through the
search index, which is what makes the index's lag observable.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Protocol

from pass_indexer_checker.config import CheckerConfig
from pass_indexer_checker.exceptions import CheckFailedError, NotFoundError, RepositoryError
from pass_indexer_checker.http_client import HTTPClient
from pass_indexer_checker.models import User

logger = logging.getLogger(__name__)

JSONLD_CONTENT_TYPE = "application/ld+json"

# Elasticsearch rejects searches with from + size beyond this
MAX_RESULT_WINDOW = 10_000


class RepositoryClient(Protocol):
    """Operations the checker needs from the repository."""

    def create_resource(self, record: User) -> str | None: ...

    def delete_resource(self, resource_id: str) -> None: ...

    def find_by_attribute(
        self, record_type: type[User], attribute: str, value: Any
    ) -> str | None: ...

    def find_all_by_attribute(
        self,
        record_type: type[User],
        attribute: str,
        value: Any,
        max_results: int | None = None,
    ) -> set[str]: ...


class PassClient:
    """Repository client backed by Fedora for writes and the index for reads."""

    def __init__(
        self,
        config: CheckerConfig,
        http: HTTPClient | None = None,
        index_http: HTTPClient | None = None,
    ) -> None:
        """Initialize PASS client.

        Args:
            config: Checker configuration instance
            http: Repository HTTP client (creates one with the repository credentials if None)
            index_http: Index HTTP client (creates an unauthenticated one if None)
        """
        self.config = config
        self._http = http or HTTPClient(config, auth=config.fedora_auth)
        # Repository credentials are never sent to the index host
        self._index_http = index_http or HTTPClient(config)

    def __enter__(self) -> PassClient:
        self._http.start()
        self._index_http.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close both HTTP sessions."""
        self._http.close()
        self._index_http.close()

    def create_resource(self, record: User) -> str | None:
        """Create a record in the repository.

        Args:
            record: Record to create

        Returns:
            The identifier assigned by the repository, or None if none was returned
        """
        url = self.config.get_repository_url(record.container)
        body = record.to_jsonld(self.config.jsonld_context)

        response = self._http.post(
            url,
            json=body,
            headers={"Content-Type": JSONLD_CONTENT_TYPE},
        )

        resource_id = response.headers.get("Location") or response.text.strip()
        logger.debug("Created %s %s", record.type_name, resource_id or "<no id>")
        return resource_id or None

    def delete_resource(self, resource_id: str) -> None:
        """Delete a record and its tombstone so the identifier can be reused.

        Args:
            resource_id: Repository identifier of the record
        """
        self._http.delete(resource_id)
        try:
            self._http.delete(f"{resource_id.rstrip('/')}/fcr:tombstone")
        except NotFoundError:
            logger.debug("No tombstone left for %s", resource_id)
        logger.debug("Deleted %s", resource_id)

    def find_by_attribute(self, record_type: type[User], attribute: str, value: Any) -> str | None:
        """Find the single record whose attribute matches value.

        Args:
            record_type: Model class of the record
            attribute: Index field name (e.g. "locatorIds")
            value: Value to match

        Returns:
            The matching record's identifier, or None if there is no match

        Raises:
            CheckFailedError: More than one record matches
        """
        ids, _ = self._search(record_type, attribute, value, size=2, offset=0)
        if len(ids) > 1:
            raise CheckFailedError(
                f"more than one {record_type.type_name} has {attribute}={value!r}: {sorted(ids)}"
            )
        return next(iter(ids), None)

    def find_all_by_attribute(
        self,
        record_type: type[User],
        attribute: str,
        value: Any,
        max_results: int | None = None,
    ) -> set[str]:
        """Find records whose attribute matches value, page by page.

        Paging stops at a short page, once ``max_results`` identifiers are
        collected, or at the index's result window, whichever comes first.

        Args:
            record_type: Model class of the record
            attribute: Index field name (e.g. "roles")
            value: Value to match
            max_results: Stop once this many identifiers have been found

        Returns:
            Set of matching record identifiers
        """
        limit = self.config.elasticsearch_limit
        found: set[str] = set()
        offset = 0
        while offset < MAX_RESULT_WINDOW:
            size = min(limit, MAX_RESULT_WINDOW - offset)
            ids, hit_count = self._search(record_type, attribute, value, size=size, offset=offset)
            found.update(ids)
            if hit_count < size:
                break
            if max_results is not None and len(found) >= max_results:
                break
            offset += size
        return found

    def _search(
        self,
        record_type: type[User],
        attribute: str,
        value: Any,
        size: int,
        offset: int,
    ) -> tuple[list[str], int]:
        """Run a term query against the index.

        Returns:
            The hits' distinct identifiers and the raw number of hits on the page

        Raises:
            RepositoryError: The index answered with something other than JSON
        """
        if isinstance(value, Enum):
            value = value.value

        query = {
            "query": {
                "bool": {
                    "filter": [
                        {"term": {"@type": record_type.type_name}},
                        {"term": {attribute: value}},
                    ]
                }
            },
            "_source": ["@id"],
            "from": offset,
            "size": size,
        }
        url = self.config.get_index_url("_search")
        response = self._index_http.post(url, json=query)
        try:
            hits = response.json().get("hits", {}).get("hits", [])
        except (ValueError, AttributeError) as e:
            raise RepositoryError(
                f"index search at {url} did not return a JSON result",
                status_code=response.status_code,
                response_body=response.text[:200],
                url=url,
            ) from e

        ids: list[str] = []
        for hit in hits:
            resource_id = hit.get("_source", {}).get("@id") or hit.get("_id")
            if resource_id and resource_id not in ids:
                ids.append(resource_id)
        return ids, len(hits)
