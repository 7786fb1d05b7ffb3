import os

import pytest
from ordering.gateway import reset_gateway, set_gateway
from ordering.gateway.fake_adapter import FakeGateway


@pytest.fixture(scope="session")
def _ordering_domain(request):
    """Initialize the ordering domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from ordering.domain import ordering

    ordering.init()
    return ordering


@pytest.fixture(scope="session", autouse=True)
def setup_db(_ordering_domain):
    from ordering.utils.db import drop_db, setup_db

    setup_db(_ordering_domain)

    yield

    drop_db(_ordering_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_ordering_domain):
    """Push domain context before each test, cleanup after."""
    ctx = _ordering_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()


@pytest.fixture(autouse=True)
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    yield fake
    reset_gateway()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
@pytest.fixture
def make_customer():
    from ordering.customer.customer import Customer
    from protean import current_domain

    def _make(name="Jane Doe", **overrides):
        customer = Customer(name=name, email=overrides.pop("email", "jane@example.com"), **overrides)
        current_domain.repository_for(Customer).add(customer)
        return customer

    return _make


@pytest.fixture
def make_product():
    from ordering.catalogue.product import Product
    from protean import current_domain

    def _make(name="Widget", price=10.0, quantity=10, **overrides):
        product = Product(name=name, price=price, quantity=quantity, **overrides)
        current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture
def fill_cart():
    """Create (or top up) a customer's cart with ``(product, quantity)`` pairs."""
    from ordering.cart.cart import ShoppingCart
    from protean import current_domain

    def _fill(customer_id, lines):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.find_for_customer(customer_id) or ShoppingCart.create(customer_id=customer_id)
        for product, quantity in lines:
            cart.add_item(product.id, quantity, product.price)
        repo.add(cart)
        return repo.get(cart.id)

    return _fill


@pytest.fixture
def stock_of():
    from ordering.catalogue.product import Product
    from protean import current_domain

    def _stock(product):
        return current_domain.repository_for(Product).get(product.id).quantity

    return _stock


@pytest.fixture
def make_order(make_customer, fill_cart):
    """Place an order for ``(product, quantity)`` lines, optionally attaching a payment intent."""
    from ordering.order.payment import AttachPaymentIntent
    from ordering.order.placement import place_order
    from ordering.order.queries import get_order
    from protean import current_domain

    def _make(lines, payment_intent_id=None, customer=None):
        customer = customer or make_customer()
        fill_cart(customer.id, lines)
        order = place_order(customer.id)
        if payment_intent_id:
            current_domain.process(
                AttachPaymentIntent(order_id=str(order.id), payment_intent_id=payment_intent_id),
                asynchronous=False,
            )
            order = get_order(order.id)
        return order

    return _make
