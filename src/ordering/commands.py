"""Synchronous command processing with optimistic-concurrency retries.

Aggregates are saved with Protean's version check: a unit of work that
loaded an aggregate which someone else saved in the meantime fails with
``ExpectedVersionError`` and rolls back. The command is then simply run
again, against fresh state. If it keeps losing, the caller gets a
retryable ``CONCURRENCY_CONFLICT``.
"""

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from ordering.errors import ErrorKind, OrderingError

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


def process_command(command, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
    """Run ``command`` synchronously and return its handler's result."""
    command_name = type(command).__name__
    for attempt in range(1, max_attempts + 1):
        try:
            return current_domain.process(command, asynchronous=False)
        except ExpectedVersionError as exc:
            last_conflict = exc
            logger.info("Version conflict, re-running command", command=command_name, attempt=attempt, error=str(exc))

    raise OrderingError(
        ErrorKind.CONCURRENCY_CONFLICT,
        f"{command_name} kept conflicting with concurrent updates; gave up after {max_attempts} attempts",
        command=command_name,
    ) from last_conflict
