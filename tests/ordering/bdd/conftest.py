"""Shared BDD fixtures and step definitions for checkout and payment reconciliation."""

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.catalogue.product import Product
from ordering.customer.customer import Customer
from ordering.order.payment import AttachPaymentIntent
from ordering.order.placement import place_order
from ordering.order.queries import get_order
from ordering.reconciliation.webhook import process_webhook
from protean import current_domain
from pytest_bdd import given, parsers, then, when


# ---------------------------------------------------------------------------
# Scenario state
# ---------------------------------------------------------------------------
@pytest.fixture()
def products():
    """Products created by the scenario, by name."""
    return {}


@pytest.fixture()
def orders():
    """Orders placed by the scenario, by the payment intent they pay with."""
    return {}


@pytest.fixture()
def error():
    """Container for a captured ``OrderingError``."""
    return {"exc": None}


@pytest.fixture()
def customer():
    shopper = Customer(name="Jane Doe", email="jane@example.com")
    current_domain.repository_for(Customer).add(shopper)
    return shopper


def _stock(product):
    return current_domain.repository_for(Product).get(product.id).quantity


def _add_to_cart(customer_id, product, quantity):
    repo = current_domain.repository_for(ShoppingCart)
    cart = repo.find_for_customer(customer_id) or ShoppingCart.create(customer_id=customer_id)
    cart.add_item(product.id, quantity, product.price)
    repo.add(cart)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('product "{name}" priced {price:f} with {quantity:d} in stock'))
def _(products, name, price, quantity):
    product = Product(name=name, price=price, quantity=quantity)
    current_domain.repository_for(Product).add(product)
    products[name] = product


@given(parsers.cfparse('an order for {quantity:d} "{name}" paying with intent "{intent_id}"'))
def _(products, orders, name, quantity, intent_id):
    shopper = Customer(name=f"Shopper {intent_id}", email=f"{intent_id}@example.com")
    current_domain.repository_for(Customer).add(shopper)
    _add_to_cart(shopper.id, products[name], quantity)

    order = place_order(shopper.id)
    current_domain.process(
        AttachPaymentIntent(order_id=str(order.id), payment_intent_id=intent_id),
        asynchronous=False,
    )
    orders[intent_id] = order


@given(parsers.cfparse('the gateway reports "{status}" for "{intent_id}"'))
@when(parsers.cfparse('the gateway reports "{status}" for "{intent_id}"'))
def _(gateway, status, intent_id):
    gateway.set_intent_status(intent_id, status)


@given(parsers.cfparse('the gateway times out for "{intent_id}"'))
def _(gateway, intent_id):
    gateway.fail_intent(intent_id, "Request timed out")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the webhook for "{intent_id}" arrives'))
def _(intent_id):
    process_webhook(intent_id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{name}" has {quantity:d} in stock'))
def _(products, name, quantity):
    assert _stock(products[name]) == quantity


@then(parsers.cfparse('the order paying with "{intent_id}" is "{order_status}" with payment "{payment_status}"'))
def _(orders, intent_id, order_status, payment_status):
    order = get_order(orders[intent_id].id)
    assert order.order_status == order_status
    assert order.payment_status == payment_status


@then(parsers.cfparse('the request is rejected as "{kind}"'))
def _(error, kind):
    assert error["exc"] is not None
    assert error["exc"].kind.value == kind


@then(parsers.cfparse('the order paying with "{intent_id}" is still "{order_status}"'))
def _(orders, intent_id, order_status):
    assert get_order(orders[intent_id].id).order_status == order_status
