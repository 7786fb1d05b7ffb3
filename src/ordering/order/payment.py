"""Opening the first payment attempt for a placed order.

The gateway intent is created first; its reference is then recorded on the
order by the ``AttachPaymentIntent`` command. The intent reference is what
webhooks and the reconciliation sweep join on.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.commands import process_command
from ordering.domain import ordering
from ordering.errors import ErrorKind, OrderingError
from ordering.gateway import get_gateway
from ordering.gateway.port import PaymentIntent
from ordering.money import to_minor_units
from ordering.order.order import Order, OrderStatus
from ordering.order.queries import get_order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class AttachPaymentIntent:
    order_id = Identifier(required=True)
    payment_intent_id = String(required=True, max_length=255)


@ordering.command_handler(part_of=Order)
class AttachPaymentIntentHandler:
    @handle(AttachPaymentIntent)
    def attach_payment_intent(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.attach_payment_intent(command.payment_intent_id)
        repo.add(order)


def initiate_payment(order_id) -> PaymentIntent:
    """Create a gateway payment intent for a Pending order and attach it to the order."""
    order = get_order(order_id)
    if order.order_status != OrderStatus.PENDING.value:
        raise OrderingError(
            ErrorKind.INVALID_STATE,
            f"Order {order_id} is {order.order_status}; payment can only be initiated for pending orders",
        )
    if order.payment_intent_id:
        raise OrderingError(ErrorKind.INVALID_STATE, f"Payment has already been initiated for order {order_id}")

    intent = get_gateway().create_intent(
        amount=to_minor_units(order.total_amount),
        currency=order.currency,
        metadata={"order_id": str(order.id), "customer_id": str(order.customer_id)},
    )

    process_command(AttachPaymentIntent(order_id=str(order.id), payment_intent_id=intent.intent_id))

    logger.info(
        "Payment initiated",
        order_id=str(order.id),
        payment_intent_id=intent.intent_id,
        amount=intent.amount,
    )
    return intent
