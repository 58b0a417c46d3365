"""Exception classes for the indexer checker."""

from __future__ import annotations

from typing import Any


class CheckerError(Exception):
    """Base exception for all indexer checker errors."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        """Initialize exception with message and optional context."""
        super().__init__(message)
        self.message = message
        self.context = kwargs


class ConfigurationError(CheckerError):
    """Exception raised for missing/unreadable configuration or malformed URLs."""


class ConnectivityError(CheckerError):
    """Exception raised when the repository or index cannot be reached."""


class RepositoryError(CheckerError):
    """Exception raised for error responses from the repository or index."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize repository error with status code and response details."""
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        """Format error message with status code."""
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message


class NotFoundError(RepositoryError):
    """Exception raised when a resource is not found (404)."""

    def __init__(self, message: str = "Resource not found", **kwargs: Any) -> None:
        kwargs.setdefault("status_code", 404)
        super().__init__(message, **kwargs)


class CheckFailedError(CheckerError):
    """Exception raised when an expected state is not observed."""

    def __init__(self, message: str, step: str | None = None, **kwargs: Any) -> None:
        """Initialize check failure with the name of the failing step."""
        super().__init__(message, **kwargs)
        self.step = step

    def __str__(self) -> str:
        """Format error message with the step name."""
        if self.step:
            return f"{self.step} check failed: {self.message}"
        return self.message


class IndexNotConvergedError(CheckerError):
    """A single poll observed an index state that does not hold yet.

    This is the only exception the poll primitive retries.
    """


class RetryExhaustedError(CheckFailedError):
    """Exception raised when a poll used its whole retry budget."""

    def __init__(self, message: str, attempts: int, **kwargs: Any) -> None:
        """Initialize with the number of attempts made."""
        super().__init__(message, **kwargs)
        self.attempts = attempts


class PollCancelledError(CheckerError):
    """Exception raised when a poll is cancelled before it completes."""


class NotificationError(CheckerError):
    """Exception raised when the failure notification cannot be delivered."""
