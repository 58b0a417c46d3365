"""
pass-indexer-checker: smoke test for the PASS search index.

Verifies that the index is provisioned and is kept in sync with the PASS
repository by writing a sentinel record and watching it appear in, and then
disappear from, the index.
"""

__version__ = "0.1.0"

from pass_indexer_checker.checker import IndexerChecker  # noqa: E402
from pass_indexer_checker.config import CheckerConfig, MailConfig  # noqa: E402
from pass_indexer_checker.exceptions import (  # noqa: E402
    CheckerError,
    CheckFailedError,
    ConfigurationError,
    ConnectivityError,
    IndexNotConvergedError,
    NotificationError,
    NotFoundError,
    PollCancelledError,
    RepositoryError,
    RetryExhaustedError,
)
from pass_indexer_checker.index import IndexClient  # noqa: E402
from pass_indexer_checker.models import IndexMapping, User, UserRole  # noqa: E402
from pass_indexer_checker.notify import EmailService  # noqa: E402
from pass_indexer_checker.polling import attempt  # noqa: E402
from pass_indexer_checker.repository import PassClient  # noqa: E402

__all__ = [
    # Orchestration
    "IndexerChecker",
    "attempt",
    # Collaborators
    "PassClient",
    "IndexClient",
    "EmailService",
    # Configuration
    "CheckerConfig",
    "MailConfig",
    # Exceptions
    "CheckerError",
    "CheckFailedError",
    "ConfigurationError",
    "ConnectivityError",
    "IndexNotConvergedError",
    "NotificationError",
    "NotFoundError",
    "PollCancelledError",
    "RepositoryError",
    "RetryExhaustedError",
    # Models
    "IndexMapping",
    "User",
    "UserRole",
]
