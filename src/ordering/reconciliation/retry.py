"""Retrying failed payments.

A retry is a new payment attempt for an order whose last attempt failed.
Because a failed attempt handed its stock back, the retry first reserves the
order's items again; if any item has sold out in the meantime the order is
left Failed and no new intent is created. The reservation, the new intent
and the order update happen in one command, so a gateway failure rolls the
reservation back.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.commands import process_command
from ordering.domain import ordering
from ordering.errors import ErrorKind, OrderingError
from ordering.gateway import get_gateway
from ordering.inventory.ledger import InventoryLedger
from ordering.money import to_minor_units
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class RetryOrderPayment:
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class RetryOrderPaymentHandler:
    @handle(RetryOrderPayment)
    def retry_order_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        if not order.can_retry_payment:
            raise OrderingError(
                ErrorKind.INVALID_STATE,
                f"Order {order.id} is {order.order_status}/{order.payment_status}; only failed payments can be retried",
            )

        # Stock is still held if it was never handed back
        if order.inventory_released:
            ledger = InventoryLedger()
            for item in order.items:
                try:
                    ledger.reserve(item.product_id, item.quantity)
                except OrderingError as exc:
                    if exc.kind != ErrorKind.INSUFFICIENT_STOCK:
                        raise
                    raise OrderingError(
                        ErrorKind.PRODUCT_UNAVAILABLE,
                        f"Product {item.product_name or item.product_id} is no longer available for order {order.id}",
                        product_id=str(item.product_id),
                    ) from exc

        intent = get_gateway().create_intent(
            amount=to_minor_units(order.total_amount),
            currency=order.currency,
            metadata={
                "order_id": str(order.id),
                "customer_id": str(order.customer_id),
                "retry": "true",
            },
        )

        order.record_retry(intent.intent_id)
        repo.add(order)
        return intent.intent_id


@dataclass
class RetryReport:
    retried: int = 0
    unavailable: int = 0
    failed: int = 0


def retry_failed_payments() -> RetryReport:
    """Open a new payment attempt for every order whose payment failed."""
    report = RetryReport()
    orders = current_domain.repository_for(Order).find_failed_payments()

    logger.info("Retrying failed payments", candidates=len(orders))

    for order in orders:
        try:
            payment_intent_id = process_command(RetryOrderPayment(order_id=str(order.id)))
        except OrderingError as exc:
            if exc.kind == ErrorKind.PRODUCT_UNAVAILABLE:
                report.unavailable += 1
                logger.warning("Stock unavailable, payment not retried", order_id=str(order.id), error=exc.message)
            else:
                report.failed += 1
                logger.error(
                    "Failed to retry payment",
                    order_id=str(order.id),
                    error_kind=exc.kind.value,
                    error=exc.message,
                )
        except Exception as exc:
            report.failed += 1
            logger.exception("Unexpected error retrying payment", order_id=str(order.id), error=str(exc))
        else:
            report.retried += 1
            logger.info("Payment retry initiated", order_id=str(order.id), payment_intent_id=payment_intent_id)

    logger.info(
        "Failed payment retry complete",
        retried=report.retried,
        unavailable=report.unavailable,
        failed=report.failed,
    )
    return report
