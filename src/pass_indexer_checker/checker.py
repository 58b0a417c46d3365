"""End-to-end check that the PASS index is provisioned and kept in sync.

A run has three steps, executed in order and aborted on the first failure:

1. config: the index mapping defines more than a handful of fields
2. population: the index already holds a minimum number of submitters
3. round trip: a sentinel user written to the repository shows up in the
   index, and disappears from it again once deleted
"""

from __future__ import annotations

import logging
import threading
import traceback
from collections.abc import Callable
from typing import Protocol, TypeVar

from pass_indexer_checker.config import CheckerConfig
from pass_indexer_checker.exceptions import (
    CheckerError,
    CheckFailedError,
    IndexNotConvergedError,
    NotificationError,
    PollCancelledError,
    RetryExhaustedError,
)
from pass_indexer_checker.index import IndexClient
from pass_indexer_checker.models import User, UserRole
from pass_indexer_checker.polling import attempt
from pass_indexer_checker.repository import RepositoryClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

SENTINEL_FIRST_NAME = "BeSsIe"
SENTINEL_LAST_NAME = "MoOcOw"
SENTINEL_LOCATOR_ID = "infinity"

LOCATOR_ATTRIBUTE = "locatorIds"
ROLE_ATTRIBUTE = "roles"

ERROR_SUBJECT = "Indexer Checker ERROR"


class Notifier(Protocol):
    """Anything that can deliver a failure message."""

    def send_email_message(self, subject: str, body: str) -> None: ...


def sentinel_user() -> User:
    """The disposable user created and deleted by every run."""
    return User(
        first_name=SENTINEL_FIRST_NAME,
        last_name=SENTINEL_LAST_NAME,
        locator_ids=[SENTINEL_LOCATOR_ID],
    )


class IndexerChecker:
    """Runs the index checks against a repository and its index."""

    def __init__(
        self,
        config: CheckerConfig,
        repository: RepositoryClient,
        index: IndexClient,
        notifier: Notifier | None = None,
        *,
        cancel: threading.Event | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        """Initialize the checker.

        Args:
            config: Checker configuration instance
            repository: Repository client used to write and look up the sentinel
            index: Index client used for the mapping check
            notifier: Optional failure notifier (email)
            cancel: Event that abandons any poll in progress when set
            sleep: Replacement sleep between polls
        """
        self.config = config
        self.repository = repository
        self.index = index
        self.notifier = notifier
        self.cancel = cancel or threading.Event()
        self._sleep = sleep

    def _poll(self, probe: Callable[[], T], description: str) -> T:
        return attempt(
            probe,
            self.config.retries,
            self.config.poll_interval,
            timeout=self.config.poll_timeout,
            cancel=self.cancel,
            sleep=self._sleep,
            description=description,
        )

    def _find_sentinel(self) -> str | None:
        return self.repository.find_by_attribute(User, LOCATOR_ATTRIBUTE, SENTINEL_LOCATOR_ID)

    def _expect_sentinel(self, resource_id: str) -> str:
        found = self._find_sentinel()
        if found != resource_id:
            raise IndexNotConvergedError(f"index returned {found!r}, expected {resource_id!r}")
        return found

    def _expect_no_sentinel(self) -> None:
        found = self._find_sentinel()
        if found is not None:
            raise IndexNotConvergedError(f"index still returns {found!r}")

    def check_config(self) -> int:
        """Check the index mapping defines enough fields.

        Returns:
            Number of fields in the mapping

        Raises:
            ConfigurationError: The index URL is malformed
            ConnectivityError: The index could not be reached
            CheckFailedError: The mapping is missing or too small
        """
        mapping = self.index.get_mapping()
        threshold = self.config.min_mapping_properties
        if mapping.field_count <= threshold:
            raise CheckFailedError(
                f"index '{mapping.index}' maps {mapping.field_count} fields, "
                f"expected more than {threshold}",
                step="config",
            )

        logger.info("Index '%s' maps %d fields", mapping.index, mapping.field_count)
        return mapping.field_count

    def check_population(self) -> int:
        """Check the index holds enough submitters to not be a fresh index.

        Returns:
            Number of submitters found

        Raises:
            CheckFailedError: Too few submitters
        """
        minimum = self.config.min_submitters
        submitters = self.repository.find_all_by_attribute(
            User, ROLE_ATTRIBUTE, UserRole.SUBMITTER, max_results=minimum
        )
        if len(submitters) < minimum:
            raise CheckFailedError(
                f"found {len(submitters)} submitters, expected at least {minimum}",
                step="population",
            )

        logger.info("Found %d submitters", len(submitters))
        return len(submitters)

    def check_stale_sentinel(self) -> None:
        """Make sure no sentinel from an earlier run is visible in the index.

        A leftover sentinel is deleted and its removal awaited, but the run still
        fails: the previous run did not finish and needs looking into.

        Raises:
            CheckFailedError: A sentinel was found
        """
        stale = self._find_sentinel()
        if stale is None:
            logger.debug("No sentinel left over from a previous run")
            return

        logger.warning("Found sentinel %s left over from a previous run, deleting it", stale)
        self.repository.delete_resource(stale)
        try:
            self._poll(self._expect_no_sentinel, "removal of stale sentinel")
        except RetryExhaustedError as e:
            raise CheckFailedError(
                f"stale sentinel {stale} is still in the index after deletion",
                step="round-trip",
            ) from e

        raise CheckFailedError(
            f"sentinel {stale} was left over from a previous run; it has been removed",
            step="round-trip",
        )

    def check_round_trip(self) -> str:
        """Create the sentinel, wait for it in the index, delete it, wait for it to go.

        Returns:
            The identifier the repository assigned to the sentinel

        Raises:
            CheckFailedError: A step did not observe the expected state
            PollCancelledError: The run was cancelled while polling
        """
        self.check_stale_sentinel()

        resource_id = self.repository.create_resource(sentinel_user())
        if resource_id is None:
            raise CheckFailedError("repository returned no identifier", step="round-trip")
        logger.info("Created sentinel %s", resource_id)

        self._poll(lambda: self._expect_sentinel(resource_id), "sentinel in index")
        logger.info("Sentinel %s is visible in the index", resource_id)

        self.repository.delete_resource(resource_id)
        logger.info("Deleted sentinel %s", resource_id)

        self._poll(self._expect_no_sentinel, "sentinel removal from index")
        logger.info("Sentinel %s is gone from the index", resource_id)
        return resource_id

    def run(self) -> None:
        """Run every check in order.

        Raises:
            CheckerError: The first check that failed
        """
        logger.info("Starting indexer end-to-end check.")
        steps: list[tuple[str, Callable[[], object]]] = [
            ("config", self.check_config),
            ("population", self.check_population),
            ("round-trip", self.check_round_trip),
        ]

        try:
            for name, step in steps:
                logger.info("Running %s check", name)
                step()
        except PollCancelledError:
            logger.warning("Indexer check cancelled")
            raise
        except CheckerError as e:
            logger.error("Indexer check failed: %s", e, exc_info=True)
            self._notify(e)
            raise

        logger.info("Indexer end-to-end check passed.")

    def _notify(self, error: CheckerError) -> None:
        if self.notifier is None:
            return

        body = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        try:
            self.notifier.send_email_message(ERROR_SUBJECT, f"{error}\n\n{body}")
        except NotificationError as e:
            logger.error("Could not send failure notification: %s", e)
