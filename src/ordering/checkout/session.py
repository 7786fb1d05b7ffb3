"""Hosted checkout sessions for an ad-hoc list of products.

Prices every requested line from the catalogue, checks that each product can
currently supply the requested quantity, and asks the payment gateway for a
hosted checkout session. Nothing is reserved here: the availability check is
advisory, and stock is only taken when an order is placed.
"""

import os
from collections.abc import Iterable
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.catalogue.product import Product
from ordering.errors import ErrorKind, OrderingError, not_found
from ordering.gateway import get_gateway
from ordering.gateway.port import CheckoutLineItem, CheckoutSession
from ordering.money import DEFAULT_CURRENCY, line_amount, to_minor_units, total_of

logger = structlog.get_logger(__name__)

DEFAULT_SUCCESS_URL = "http://localhost:3000/checkout/success?session_id={CHECKOUT_SESSION_ID}"
DEFAULT_CANCEL_URL = "http://localhost:3000/checkout/cancel"


def checkout_urls() -> tuple[str, str]:
    return (
        os.environ.get("CHECKOUT_SUCCESS_URL", DEFAULT_SUCCESS_URL),
        os.environ.get("CHECKOUT_CANCEL_URL", DEFAULT_CANCEL_URL),
    )


def payment_currency() -> str:
    return os.environ.get("PAYMENT_CURRENCY", DEFAULT_CURRENCY).lower()


def create_checkout_session(items: Iterable[tuple[str, int]]) -> CheckoutSession:
    """Open a gateway checkout session for ``(product_id, quantity)`` pairs."""
    items = list(items)
    if not items:
        raise OrderingError(ErrorKind.INVALID_ARGUMENT, "At least one item is required to create a checkout session")

    currency = payment_currency()
    products = current_domain.repository_for(Product)

    line_items = []
    amounts = []
    for product_id, quantity in items:
        if quantity is None or quantity <= 0:
            raise OrderingError(ErrorKind.INVALID_ARGUMENT, f"Quantity for product {product_id} must be greater than zero")

        try:
            product = products.get(product_id)
        except ObjectNotFoundError as exc:
            raise not_found("Product", product_id) from exc

        if not product.can_supply(quantity):
            raise OrderingError(
                ErrorKind.PRODUCT_UNAVAILABLE,
                f"Insufficient quantity for product {product.name}. Available: {product.quantity}, Requested: {quantity}",
                product_id=str(product_id),
                available=product.quantity,
                requested=quantity,
            )

        line_items.append(
            CheckoutLineItem(
                name=product.name,
                description=product.description,
                unit_amount=to_minor_units(product.price),
                quantity=quantity,
                currency=currency,
            )
        )
        amounts.append(line_amount(quantity, product.price))

    total_amount = total_of(amounts)
    success_url, cancel_url = checkout_urls()
    metadata = {
        "order_date": datetime.now(UTC).isoformat(),
        "total_amount": f"{total_amount:.2f}",
    }

    session = get_gateway().create_checkout_session(line_items, success_url, cancel_url, metadata)

    logger.info(
        "Checkout session created",
        session_id=session.session_id,
        line_count=len(line_items),
        total_amount=total_amount,
    )
    return session
