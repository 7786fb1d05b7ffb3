import structlog

from ordering.errors import ErrorKind, OrderingError
from ordering.gateway import get_gateway
from ordering.reconciliation.transitions import IntentStatus

logger = structlog.get_logger(__name__)


def verify_intent(payment_intent_id: str) -> bool:
    """Whether the gateway reports the intent as succeeded. Gateway errors propagate."""
    if not payment_intent_id or not payment_intent_id.strip():
        raise OrderingError(ErrorKind.INVALID_ARGUMENT, "Payment intent id is required")

    status = get_gateway().get_intent_status(payment_intent_id)
    logger.debug("Payment intent verified", payment_intent_id=payment_intent_id, gateway_status=status)
    return status == IntentStatus.SUCCEEDED.value
