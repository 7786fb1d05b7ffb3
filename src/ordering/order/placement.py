"""Order placement. Converts a customer's cart into a committed order.

The handler runs in a single unit of work: every stock reservation, the new
order and the emptied cart commit together, or none of them do. A checkout
that loses a race for a product to another checkout is re-run and then sees
the product's current quantity.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.catalogue.product import Product
from ordering.commands import process_command
from ordering.customer.customer import Customer
from ordering.domain import ordering
from ordering.errors import ErrorKind, OrderingError, not_found
from ordering.inventory.ledger import InventoryLedger
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        customer_id = command.customer_id

        try:
            current_domain.repository_for(Customer).get(customer_id)
        except ObjectNotFoundError as exc:
            raise not_found("Customer", customer_id) from exc

        cart_repo = current_domain.repository_for(ShoppingCart)
        cart = cart_repo.find_for_customer(customer_id)
        if cart is None or cart.is_empty:
            raise OrderingError(ErrorKind.INVALID_STATE, f"Cart for customer {customer_id} is empty")

        products = current_domain.repository_for(Product)
        ledger = InventoryLedger()

        lines = []
        for item in cart.items:
            try:
                product = products.get(item.product_id)
            except ObjectNotFoundError as exc:
                raise not_found("Product", item.product_id) from exc

            try:
                ledger.reserve(item.product_id, item.quantity)
            except OrderingError as exc:
                if exc.kind != ErrorKind.INSUFFICIENT_STOCK:
                    raise
                raise OrderingError(
                    ErrorKind.PRODUCT_UNAVAILABLE,
                    f"Product {product.name} is not available in the requested quantity",
                    product_id=str(item.product_id),
                    requested=item.quantity,
                ) from exc

            lines.append(
                {
                    "product_id": str(item.product_id),
                    "product_name": product.name,
                    "quantity": item.quantity,
                    "unit_price": product.price,
                }
            )

        order = Order.place(customer_id=customer_id, lines=lines)
        current_domain.repository_for(Order).add(order)

        cart.clear()
        cart_repo.add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            customer_id=str(customer_id),
            item_count=len(lines),
            total_amount=order.total_amount,
        )
        return str(order.id)


def place_order(customer_id) -> Order:
    """Place an order from the customer's cart and return it."""
    order_id = process_command(PlaceOrder(customer_id=customer_id))
    return current_domain.repository_for(Order).get(order_id)
