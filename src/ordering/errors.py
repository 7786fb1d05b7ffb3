"""Error taxonomy for checkout and payment reconciliation.

Every failure raised by the ordering services is an ``OrderingError`` carrying
an ``ErrorKind``. Callers branch on ``kind`` instead of on exception classes;
the underlying cause, if any, is chained with ``raise ... from`` and exposed
as ``error.cause``.

Aggregate-level rule violations (state machine, invariants) keep using
Protean's ``ValidationError``, which is how the aggregates report them.
"""

from enum import Enum


class ErrorKind(Enum):
    RESOURCE_NOT_FOUND = "resource_not_found"
    PRODUCT_UNAVAILABLE = "product_unavailable"
    INSUFFICIENT_STOCK = "insufficient_stock"
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_STATE = "invalid_state"
    CONCURRENCY_CONFLICT = "concurrency_conflict"
    GATEWAY_ERROR = "gateway_error"


# Kinds the caller can fix by changing the request
_CLIENT_CORRECTABLE = frozenset(
    {
        ErrorKind.RESOURCE_NOT_FOUND,
        ErrorKind.PRODUCT_UNAVAILABLE,
        ErrorKind.INSUFFICIENT_STOCK,
        ErrorKind.INVALID_ARGUMENT,
        ErrorKind.INVALID_STATE,
    }
)

# Kinds where repeating the same request later may succeed
_RETRYABLE = frozenset({ErrorKind.CONCURRENCY_CONFLICT, ErrorKind.GATEWAY_ERROR})

GENERIC_FAILURE_MESSAGE = "The request could not be completed right now. Please try again later."


class OrderingError(Exception):
    """Failure of an ordering operation, tagged with its kind."""

    def __init__(self, kind: ErrorKind, message: str, **details) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details

    def __repr__(self) -> str:
        return f"OrderingError({self.kind.name}, {self.message!r})"

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    @property
    def client_correctable(self) -> bool:
        return self.kind in _CLIENT_CORRECTABLE

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE

    @property
    def public_message(self) -> str:
        """Message safe to show to an end user.

        Gateway and concurrency failures are reported generically so that
        provider responses and internal identifiers never leak.
        """
        if self.client_correctable:
            return self.message
        return GENERIC_FAILURE_MESSAGE


def not_found(resource: str, identifier) -> OrderingError:
    return OrderingError(
        ErrorKind.RESOURCE_NOT_FOUND,
        f"{resource} with id {identifier} does not exist",
        resource=resource,
        identifier=str(identifier),
    )


def gateway_error(message: str) -> OrderingError:
    return OrderingError(ErrorKind.GATEWAY_ERROR, f"Payment gateway error: {message}")
