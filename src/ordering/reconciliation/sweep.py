"""Periodic reconciliation sweep.

Polls the gateway for every order whose payment outcome is still open and
applies the reported status. Each order is reconciled in its own unit of
work, so one order's failure (a gateway timeout, an unexpected error) is
logged and counted without affecting the rest of the pass.
"""

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog
from protean.utils.globals import current_domain

from ordering.errors import OrderingError
from ordering.order.order import Order
from ordering.reconciliation.transitions import reconcile_order

logger = structlog.get_logger(__name__)


@dataclass
class ReconciliationReport:
    candidates: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    interrupted: bool = False
    outcomes: Counter = field(default_factory=Counter)

    def as_dict(self) -> dict:
        return {
            "candidates": self.candidates,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "interrupted": self.interrupted,
            "outcomes": {outcome.value: count for outcome, count in self.outcomes.items()},
        }


def reconcile_all(should_stop: Callable[[], bool] | None = None) -> ReconciliationReport:
    """Reconcile every order awaiting payment against the gateway.

    ``should_stop`` is checked before each order; once it returns True the
    pass ends and the report is marked ``interrupted``.
    """
    report = ReconciliationReport()
    orders = current_domain.repository_for(Order).find_awaiting_payment()
    report.candidates = len(orders)

    logger.info("Starting payment reconciliation", candidates=report.candidates)

    for position, order in enumerate(orders):
        if should_stop is not None and should_stop():
            report.interrupted = True
            logger.info("Payment reconciliation interrupted", remaining=report.candidates - position)
            break

        if not order.payment_intent_id:
            report.skipped += 1
            logger.warning("Order has no payment intent, skipping", order_id=str(order.id))
            continue

        try:
            outcome = reconcile_order(order.id, order.payment_intent_id)
        except OrderingError as exc:
            report.failed += 1
            logger.error(
                "Failed to reconcile order",
                order_id=str(order.id),
                payment_intent_id=order.payment_intent_id,
                error_kind=exc.kind.value,
                error=exc.message,
            )
        except Exception as exc:
            report.failed += 1
            logger.exception(
                "Unexpected error reconciling order",
                order_id=str(order.id),
                payment_intent_id=order.payment_intent_id,
                error=str(exc),
            )
        else:
            report.succeeded += 1
            report.outcomes[outcome] += 1

    logger.info(
        "Payment reconciliation complete",
        succeeded=report.succeeded,
        failed=report.failed,
        skipped=report.skipped,
        interrupted=report.interrupted,
    )
    return report
