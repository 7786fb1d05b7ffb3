"""Repository for the Order aggregate.

Adds the scans the reconciliation engine runs over.
"""

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus, PaymentStatus

PAGE_SIZE = 100


@ordering.repository(part_of=Order)
class OrderRepository:
    def _fetch_all(self, **filters) -> list[Order]:
        """Run a filter page by page, oldest orders first."""
        results = []
        offset = 0
        while True:
            page = self._dao.query.filter(**filters).order_by("created_at").offset(offset).limit(PAGE_SIZE).all().items
            results.extend(page)
            if len(page) < PAGE_SIZE:
                return results
            offset += PAGE_SIZE

    def find_by_payment_intent(self, payment_intent_id) -> Order | None:
        orders = self._dao.query.filter(payment_intent_id=payment_intent_id).all().items
        if not orders:
            return None
        return self.get(orders[0].id)

    def find_awaiting_payment(self) -> list[Order]:
        """Orders whose payment outcome is still open: Pending, or a payment still processing."""
        pending = self._fetch_all(order_status=OrderStatus.PENDING.value)
        processing = self._fetch_all(payment_status=PaymentStatus.PROCESSING.value)

        seen = set()
        orders = []
        for order in pending + processing:
            if order.id not in seen:
                seen.add(order.id)
                orders.append(order)
        return sorted(orders, key=lambda o: o.created_at)

    def find_failed_payments(self) -> list[Order]:
        return self._fetch_all(order_status=OrderStatus.FAILED.value, payment_status=PaymentStatus.FAILED.value)

    def find_for_customer(self, customer_id) -> list[Order]:
        """A customer's orders, newest first."""
        return list(reversed(self._fetch_all(customer_id=str(customer_id))))
