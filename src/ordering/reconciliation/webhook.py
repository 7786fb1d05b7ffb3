"""Webhook intake: reconcile an order as soon as the gateway reports on its intent.

The webhook only tells us *which* intent changed; its status is always
re-read from the gateway so that late or reordered deliveries cannot move an
order to a stale state.
"""

import json

import structlog
from protean.utils.globals import current_domain

from ordering.errors import ErrorKind, OrderingError
from ordering.gateway import get_gateway
from ordering.order.order import Order
from ordering.reconciliation.transitions import Outcome, reconcile_order

logger = structlog.get_logger(__name__)


def process_webhook(payment_intent_id: str) -> Outcome | None:
    """Reconcile the order that owns ``payment_intent_id``.

    Returns None (after logging a warning) when no order references the
    intent. Gateway errors propagate to the caller.
    """
    if not payment_intent_id or not payment_intent_id.strip():
        raise OrderingError(ErrorKind.INVALID_ARGUMENT, "Payment intent id is required")

    order = current_domain.repository_for(Order).find_by_payment_intent(payment_intent_id)
    if order is None:
        logger.warning("No order found for payment intent", payment_intent_id=payment_intent_id)
        return None

    outcome = reconcile_order(order.id, payment_intent_id)
    logger.info(
        "Payment webhook processed",
        order_id=str(order.id),
        payment_intent_id=payment_intent_id,
        outcome=outcome.value,
    )
    return outcome


def payment_intent_from_event(payload: str) -> str | None:
    """Extract the payment intent id a gateway event refers to, if any."""
    try:
        event = json.loads(payload)
    except ValueError as exc:
        raise OrderingError(ErrorKind.INVALID_ARGUMENT, "Webhook payload is not valid JSON") from exc

    obj = (event.get("data") or {}).get("object") or {}
    if obj.get("object") == "payment_intent":
        return obj.get("id")
    # Checkout session events reference the intent they created
    return obj.get("payment_intent")


def process_signed_webhook(payload: str, signature: str) -> Outcome | None:
    """Verify a raw webhook delivery and reconcile the order it concerns."""
    if not get_gateway().verify_webhook_signature(payload, signature):
        raise OrderingError(ErrorKind.INVALID_ARGUMENT, "Invalid webhook signature")

    payment_intent_id = payment_intent_from_event(payload)
    if not payment_intent_id:
        logger.info("Ignoring webhook event without a payment intent")
        return None
    return process_webhook(payment_intent_id)
