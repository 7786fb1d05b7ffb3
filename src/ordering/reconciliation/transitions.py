"""Order state transitions driven by gateway payment statuses, shared by every reconciliation path.

Sweep, webhook and any future driver all end up in ``apply_intent_status``,
so an order reacts identically to a status no matter how the status arrived
or how many times it arrives.

Repeated deliveries are harmless because the table does nothing for an
order that is no longer awaiting payment, and stock is handed back only
while the order's ``inventory_released`` flag is still clear. Racing
deliveries (a sweep and a webhook that both loaded the Pending order) are
settled by the order's version check: the second save fails, its unit of
work rolls back together with the stock it restored, and the re-run sees
the settled order.
"""

from enum import Enum

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.commands import process_command
from ordering.domain import ordering
from ordering.gateway import get_gateway
from ordering.inventory.ledger import InventoryLedger
from ordering.order.order import Order, PaymentStatus

logger = structlog.get_logger(__name__)


class IntentStatus(Enum):
    SUCCEEDED = "succeeded"
    PROCESSING = "processing"
    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_ACTION = "requires_action"
    CANCELED = "canceled"


class Outcome(Enum):
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    NO_CHANGE = "no_change"
    FAILED = "failed"
    CANCELLED = "cancelled"
    ALREADY_SETTLED = "already_settled"
    SUPERSEDED = "superseded"
    UNRECOGNIZED = "unrecognized"

    @property
    def changed_state(self) -> bool:
        return self in {Outcome.CONFIRMED, Outcome.PROCESSING, Outcome.FAILED, Outcome.CANCELLED}


_FAILURE_STATUSES = {IntentStatus.REQUIRES_PAYMENT_METHOD, IntentStatus.REQUIRES_ACTION}


def restore_inventory(order: Order, ledger: InventoryLedger) -> bool:
    """Hand the order's reserved stock back, once per payment attempt.

    Returns False when the order records that it was already restored.
    """
    if order.inventory_released:
        logger.info("Inventory already restored for order", order_id=str(order.id))
        return False

    for item in order.items:
        ledger.restore(item.product_id, item.quantity)
    order.record_inventory_restored()
    return True


def apply_intent_status(order: Order, gateway_status: str, ledger: InventoryLedger) -> Outcome:
    """Move ``order`` according to the gateway's ``gateway_status`` for its intent."""
    if not order.awaiting_payment:
        logger.debug(
            "Order already settled, ignoring gateway status",
            order_id=str(order.id),
            order_status=order.order_status,
            gateway_status=gateway_status,
        )
        return Outcome.ALREADY_SETTLED

    try:
        status = IntentStatus(gateway_status)
    except ValueError:
        logger.warning("Unrecognized payment intent status", order_id=str(order.id), gateway_status=gateway_status)
        return Outcome.UNRECOGNIZED

    if status == IntentStatus.SUCCEEDED:
        order.confirm_payment()
        return Outcome.CONFIRMED

    if status == IntentStatus.PROCESSING:
        if order.payment_status == PaymentStatus.PROCESSING.value:
            return Outcome.NO_CHANGE
        order.mark_payment_processing()
        return Outcome.PROCESSING

    if status in _FAILURE_STATUSES:
        order.fail_payment(status.value)
        restore_inventory(order, ledger)
        return Outcome.FAILED

    order.cancel_payment()
    restore_inventory(order, ledger)
    return Outcome.CANCELLED


@ordering.command(part_of="Order")
class ApplyGatewayStatus:
    """Apply a status the gateway reported for one of the order's payment intents."""

    order_id = Identifier(required=True)
    payment_intent_id = String(required=True, max_length=255)
    gateway_status = String(required=True, max_length=50)


@ordering.command_handler(part_of=Order)
class ApplyGatewayStatusHandler:
    @handle(ApplyGatewayStatus)
    def apply_gateway_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        # A retry may have replaced the intent since the status was fetched
        if order.payment_intent_id != command.payment_intent_id:
            logger.info(
                "Ignoring status for superseded payment intent",
                order_id=str(order.id),
                payment_intent_id=command.payment_intent_id,
                current_payment_intent_id=order.payment_intent_id,
            )
            return Outcome.SUPERSEDED.value

        outcome = apply_intent_status(order, command.gateway_status, InventoryLedger())
        if outcome.changed_state:
            repo.add(order)
            logger.info(
                "Order reconciled",
                order_id=str(order.id),
                payment_intent_id=command.payment_intent_id,
                gateway_status=command.gateway_status,
                outcome=outcome.value,
            )
        return outcome.value


def reconcile_order(order_id, payment_intent_id) -> Outcome:
    """Fetch the gateway's status for ``payment_intent_id`` and apply it to the order.

    The gateway call happens outside any unit of work; gateway errors propagate.
    """
    gateway_status = get_gateway().get_intent_status(payment_intent_id)
    result = process_command(
        ApplyGatewayStatus(
            order_id=str(order_id),
            payment_intent_id=payment_intent_id,
            gateway_status=gateway_status,
        )
    )
    return Outcome(result)
