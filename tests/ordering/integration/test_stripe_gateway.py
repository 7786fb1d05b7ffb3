"""Stripe adapter tests against a mocked ``StripeClient`` (no network)."""

from unittest.mock import MagicMock, patch

import pytest
import stripe
from ordering.errors import ErrorKind, OrderingError
from ordering.gateway.port import CheckoutLineItem
from ordering.gateway.stripe_adapter import StripeGateway


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def stripe_gateway(client):
    return StripeGateway(
        api_key="sk_test_123",
        publishable_key="pk_test_123",
        webhook_secret="whsec_123",
        client=client,
    )


class TestCheckoutSession:
    def test_sends_hosted_checkout_params(self, stripe_gateway, client):
        client.checkout.sessions.create.return_value = {
            "id": "cs_test_1",
            "client_secret": "cs_test_1_secret",
            "url": "https://checkout.stripe.com/c/pay/cs_test_1",
        }
        items = [
            CheckoutLineItem(name="Mug", unit_amount=1000, quantity=2, currency="usd", description="Kitchen"),
            CheckoutLineItem(name="Pen", unit_amount=199, quantity=1, currency="usd"),
        ]

        session = stripe_gateway.create_checkout_session(
            items, "https://shop.test/ok", "https://shop.test/cancel", {"total_amount": "21.99"}
        )

        params = client.checkout.sessions.create.call_args.kwargs["params"]
        assert params["mode"] == "payment"
        assert params["payment_method_types"] == ["card"]
        assert params["success_url"] == "https://shop.test/ok"
        assert params["cancel_url"] == "https://shop.test/cancel"
        assert params["metadata"] == {"total_amount": "21.99"}
        assert params["line_items"][0] == {
            "price_data": {
                "currency": "usd",
                "unit_amount": 1000,
                "product_data": {"name": "Mug", "description": "Kitchen"},
            },
            "quantity": 2,
        }
        assert params["line_items"][1]["price_data"]["product_data"] == {"name": "Pen"}

        assert session.session_id == "cs_test_1"
        assert session.publishable_key == "pk_test_123"
        assert session.client_secret == "cs_test_1_secret"
        assert session.url.endswith("cs_test_1")

    def test_stripe_error_becomes_gateway_error(self, stripe_gateway, client):
        client.checkout.sessions.create.side_effect = stripe.APIConnectionError("Request timed out")

        with pytest.raises(OrderingError) as exc:
            stripe_gateway.create_checkout_session([], "https://ok", "https://cancel", {})

        assert exc.value.kind == ErrorKind.GATEWAY_ERROR
        assert "Request timed out" in exc.value.message
        assert isinstance(exc.value.cause, stripe.APIConnectionError)


class TestPaymentIntents:
    def test_status_lookup(self, stripe_gateway, client):
        client.payment_intents.retrieve.return_value = {"id": "pi_1", "status": "processing"}

        assert stripe_gateway.get_intent_status("pi_1") == "processing"
        client.payment_intents.retrieve.assert_called_once_with("pi_1")

    def test_status_lookup_failure(self, stripe_gateway, client):
        client.payment_intents.retrieve.side_effect = stripe.InvalidRequestError("No such payment_intent", "id")

        with pytest.raises(OrderingError) as exc:
            stripe_gateway.get_intent_status("pi_missing")

        assert exc.value.kind == ErrorKind.GATEWAY_ERROR

    def test_create_intent(self, stripe_gateway, client):
        client.payment_intents.create.return_value = {
            "id": "pi_new",
            "status": "requires_payment_method",
            "amount": 2500,
            "currency": "usd",
            "client_secret": "pi_new_secret",
        }

        intent = stripe_gateway.create_intent(2500, "usd", {"order_id": "o-1"})

        params = client.payment_intents.create.call_args.kwargs["params"]
        assert params["amount"] == 2500
        assert params["currency"] == "usd"
        assert params["metadata"] == {"order_id": "o-1"}
        assert intent.intent_id == "pi_new"
        assert intent.client_secret == "pi_new_secret"
        assert intent.metadata == {"order_id": "o-1"}

    def test_create_intent_failure(self, stripe_gateway, client):
        client.payment_intents.create.side_effect = stripe.APIConnectionError("Connection reset")

        with pytest.raises(OrderingError) as exc:
            stripe_gateway.create_intent(100, "usd", {})

        assert exc.value.kind == ErrorKind.GATEWAY_ERROR


class TestWebhookSignature:
    def test_valid_signature(self, stripe_gateway):
        with patch.object(stripe.Webhook, "construct_event") as construct:
            assert stripe_gateway.verify_webhook_signature("{}", "t=1,v1=abc") is True
        construct.assert_called_once_with("{}", "t=1,v1=abc", "whsec_123")

    def test_invalid_signature(self, stripe_gateway):
        error = stripe.SignatureVerificationError("No signatures found", "t=1,v1=bad")
        with patch.object(stripe.Webhook, "construct_event", side_effect=error):
            assert stripe_gateway.verify_webhook_signature("{}", "t=1,v1=bad") is False

    def test_no_secret_configured(self, client):
        gateway = StripeGateway(api_key="sk_test_123", publishable_key="pk", client=client)
        assert gateway.verify_webhook_signature("{}", "anything") is False


class TestFromEnvironment:
    def test_requires_secret_key(self, monkeypatch):
        monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
        with pytest.raises(ValueError, match="STRIPE_SECRET_KEY"):
            StripeGateway.from_environment()

    def test_reads_keys(self, monkeypatch):
        monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_env")
        monkeypatch.setenv("STRIPE_PUBLISHABLE_KEY", "pk_test_env")
        monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "whsec_env")

        gateway = StripeGateway.from_environment()

        assert gateway.publishable_key == "pk_test_env"
        assert gateway.webhook_secret == "whsec_env"
        assert isinstance(gateway.client, stripe.StripeClient)
