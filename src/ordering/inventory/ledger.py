"""Inventory ledger, the only way product quantities change.

Every change loads the Product aggregate, checks and adjusts its quantity,
and saves it back in the caller's unit of work. Saves carry Protean's
version check, so two checkouts that both read the last unit cannot both
take it: the second save fails with ``ExpectedVersionError``, its unit of
work rolls back, and the command is re-run against the fresh quantity
(see ``ordering.commands.process_command``).
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.catalogue.product import Product
from ordering.errors import ErrorKind, OrderingError, not_found

logger = structlog.get_logger(__name__)


class InventoryLedger:
    @property
    def products(self):
        return current_domain.repository_for(Product)

    def _validate(self, product_id, quantity):
        if quantity is None or quantity <= 0:
            raise OrderingError(
                ErrorKind.INVALID_ARGUMENT,
                f"Quantity for product {product_id} must be greater than zero",
            )

    def _load(self, product_id) -> Product:
        try:
            return self.products.get(product_id)
        except ObjectNotFoundError as exc:
            raise not_found("Product", product_id) from exc

    def reserve(self, product_id, quantity: int) -> int:
        """Take ``quantity`` units of a product. Returns the remaining quantity."""
        self._validate(product_id, quantity)

        product = self._load(product_id)
        if not product.can_supply(quantity):
            raise OrderingError(
                ErrorKind.INSUFFICIENT_STOCK,
                f"Insufficient quantity for product {product_id}. Available: {product.quantity}, Requested: {quantity}",
                product_id=str(product_id),
                available=product.quantity,
                requested=quantity,
            )

        product.quantity -= quantity
        self.products.add(product)

        logger.info("Stock reserved", product_id=str(product_id), quantity=quantity, remaining=product.quantity)
        return product.quantity

    def restore(self, product_id, quantity: int) -> int:
        """Hand ``quantity`` units back to a product. Returns the new quantity."""
        self._validate(product_id, quantity)

        product = self._load(product_id)
        product.quantity += quantity
        self.products.add(product)

        logger.info("Stock restored", product_id=str(product_id), quantity=quantity, on_hand=product.quantity)
        return product.quantity
