"""Poll the index until an observation holds.

The index is populated asynchronously from the repository, so anything read
back through it right after a write has to be polled for. A probe reports a
miss by raising :class:`IndexNotConvergedError`; nothing else is retried.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_before_delay,
    stop_when_event_set,
    wait_fixed,
)

from pass_indexer_checker.exceptions import (
    IndexNotConvergedError,
    PollCancelledError,
    RetryExhaustedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 50
DEFAULT_INTERVAL = 3.0


def _interruptible_sleep(cancel: threading.Event) -> Callable[[float], None]:
    """Sleep that wakes up and aborts as soon as ``cancel`` is set."""

    def sleep(seconds: float) -> None:
        if cancel.wait(seconds):
            raise PollCancelledError("poll cancelled while waiting for the index")

    return sleep


def _log_wait(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    reason = outcome.exception() if outcome is not None else None
    logger.info(
        "... waiting for index to update (attempt %d): %s",
        retry_state.attempt_number,
        reason,
    )


def attempt(
    probe: Callable[[], T],
    retries: int = DEFAULT_RETRIES,
    interval: float = DEFAULT_INTERVAL,
    *,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] | None = None,
    description: str = "index update",
) -> T:
    """Call ``probe`` until it returns, sleeping ``interval`` between attempts.

    Args:
        probe: Zero-argument callable; raises IndexNotConvergedError on a miss
        retries: Maximum number of attempts (at least 1)
        interval: Seconds to wait between attempts
        timeout: Optional overall deadline in seconds
        cancel: Event that abandons the poll when set
        sleep: Replacement sleep function (defaults to waiting on ``cancel``)
        description: What is being waited for, used in messages

    Returns:
        The probe's result on its first success

    Raises:
        RetryExhaustedError: Every attempt missed; chained from the last miss
        PollCancelledError: ``cancel`` was set before the probe succeeded
    """
    if retries < 1:
        raise ValueError("retries must be at least 1")

    cancel = cancel or threading.Event()

    stop = stop_after_attempt(retries) | stop_when_event_set(cancel)
    if timeout is not None:
        stop = stop | stop_before_delay(timeout)

    retrying = Retrying(
        stop=stop,
        wait=wait_fixed(interval),
        retry=retry_if_exception_type(IndexNotConvergedError),
        sleep=sleep or _interruptible_sleep(cancel),
        before_sleep=_log_wait,
    )

    try:
        return retrying(probe)
    except RetryError as e:
        last = e.last_attempt.exception()
        if cancel.is_set():
            raise PollCancelledError(f"{description} cancelled") from last
        attempts = e.last_attempt.attempt_number
        raise RetryExhaustedError(
            f"{description} not observed after {attempts} attempts: {last}",
            attempts=attempts,
        ) from last
