"""Domain events for the Order aggregate.

All events are versioned, immutable facts describing how an order moved
from placement through payment reconciliation.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A cart was converted into an order and its stock reserved."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    total_amount = Float(required=True)
    currency = String(default="usd")
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentInitiated:
    """A payment intent was opened with the gateway for this order."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String(required=True)
    amount = Float(required=True)
    currency = String(default="usd")


@ordering.event(part_of="Order")
class PaymentProcessing:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String()


@ordering.event(part_of="Order")
class OrderConfirmed:
    """The gateway reported the payment as succeeded."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String()
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaymentFailed:
    """The gateway needs a new payment method or customer action; the attempt is over."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String()
    gateway_status = String(required=True)


@ordering.event(part_of="Order")
class OrderPaymentCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String()


@ordering.event(part_of="Order")
class InventoryRestored:
    """Stock reserved for a failed or cancelled attempt was returned to the catalogue."""

    __version__ = 1

    order_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity}


@ordering.event(part_of="Order")
class PaymentRetryInitiated:
    """A new payment attempt was opened for a failed order."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String(required=True)
    previous_payment_intent_id = String()
