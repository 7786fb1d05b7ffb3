"""Application tests for hosted checkout sessions built from an item list."""

import pytest
from ordering.checkout.session import create_checkout_session
from ordering.errors import GENERIC_FAILURE_MESSAGE, ErrorKind, OrderingError


class TestCreateCheckoutSession:
    def test_returns_session_descriptor(self, gateway, make_product):
        mug = make_product(name="Mug", price=10.0, quantity=10)

        session = create_checkout_session([(mug.id, 2)])

        assert session.session_id.startswith("cs_test_")
        assert session.publishable_key == "pk_test_fake"
        assert session.client_secret
        assert session.url

    def test_line_items_in_minor_units(self, gateway, make_product):
        mug = make_product(name="Mug", price=10.0, quantity=10, category="Kitchen")
        pen = make_product(name="Pen", price=1.99, quantity=10)

        create_checkout_session([(mug.id, 2), (pen.id, 3)])

        call = gateway.calls_to("create_checkout_session")[0]
        mug_line, pen_line = call["line_items"]
        assert (mug_line.name, mug_line.unit_amount, mug_line.quantity) == ("Mug", 1000, 2)
        assert mug_line.currency == "usd"
        assert mug_line.description == "Kitchen"
        assert (pen_line.unit_amount, pen_line.quantity) == (199, 3)
        assert pen_line.description == "Pen"
        assert call["metadata"]["total_amount"] == "25.97"
        assert "order_date" in call["metadata"]

    def test_urls_and_currency_from_environment(self, gateway, make_product, monkeypatch):
        monkeypatch.setenv("CHECKOUT_SUCCESS_URL", "https://shop.test/ok")
        monkeypatch.setenv("CHECKOUT_CANCEL_URL", "https://shop.test/cancel")
        monkeypatch.setenv("PAYMENT_CURRENCY", "EUR")
        product = make_product()

        create_checkout_session([(product.id, 1)])

        call = gateway.calls_to("create_checkout_session")[0]
        assert call["success_url"] == "https://shop.test/ok"
        assert call["cancel_url"] == "https://shop.test/cancel"
        assert call["line_items"][0].currency == "eur"

    def test_does_not_reserve_stock(self, make_product, stock_of):
        product = make_product(quantity=3)
        create_checkout_session([(product.id, 3)])
        assert stock_of(product) == 3


class TestCheckoutSessionFailures:
    def test_empty_item_list(self, gateway):
        with pytest.raises(OrderingError) as exc:
            create_checkout_session([])
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENT
        assert gateway.calls == []

    def test_non_positive_quantity(self, make_product):
        product = make_product()
        with pytest.raises(OrderingError) as exc:
            create_checkout_session([(product.id, 0)])
        assert exc.value.kind == ErrorKind.INVALID_ARGUMENT

    def test_unknown_product(self):
        with pytest.raises(OrderingError) as exc:
            create_checkout_session([("no-such-product", 1)])
        assert exc.value.kind == ErrorKind.RESOURCE_NOT_FOUND

    def test_insufficient_quantity(self, gateway, make_product):
        product = make_product(name="Mug", quantity=1)

        with pytest.raises(OrderingError) as exc:
            create_checkout_session([(product.id, 2)])

        assert exc.value.kind == ErrorKind.PRODUCT_UNAVAILABLE
        assert exc.value.message == "Insufficient quantity for product Mug. Available: 1, Requested: 2"
        assert gateway.calls == []

    def test_gateway_failure_is_wrapped(self, gateway, make_product):
        product = make_product()
        gateway.configure(should_succeed=False, failure_reason="card_declined: upstream said no")

        with pytest.raises(OrderingError) as exc:
            create_checkout_session([(product.id, 1)])

        assert exc.value.kind == ErrorKind.GATEWAY_ERROR
        assert "upstream said no" in exc.value.message
        assert exc.value.public_message == GENERIC_FAILURE_MESSAGE
