"""Read operations over orders."""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.customer.customer import Customer
from ordering.errors import not_found
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


def get_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError as exc:
        raise not_found("Order", order_id) from exc


def list_orders_for_user(customer_id) -> list[Order]:
    """All orders of a customer, newest first."""
    try:
        current_domain.repository_for(Customer).get(customer_id)
    except ObjectNotFoundError as exc:
        raise not_found("Customer", customer_id) from exc

    orders = current_domain.repository_for(Order).find_for_customer(customer_id)
    if not orders:
        logger.warning("No orders found for customer", customer_id=str(customer_id))
    return orders
