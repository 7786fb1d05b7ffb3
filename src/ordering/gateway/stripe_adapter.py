"""Stripe payment gateway adapter.

Talks to Stripe through a ``stripe.StripeClient`` whose HTTP client carries
the request timeout and the bounded network retry count. Every
``stripe.StripeError`` (API errors, connection errors and timeouts alike) is
reported as an ``OrderingError`` of kind ``GATEWAY_ERROR`` with the original
exception chained as its cause.
"""

import os

import stripe
import structlog

from ordering.errors import gateway_error
from ordering.gateway.port import CheckoutLineItem, CheckoutSession, PaymentGateway, PaymentIntent

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_MAX_NETWORK_RETRIES = 2


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(
        self,
        api_key: str,
        publishable_key: str,
        webhook_secret: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_network_retries: int = DEFAULT_MAX_NETWORK_RETRIES,
        client: stripe.StripeClient | None = None,
    ) -> None:
        self.publishable_key = publishable_key
        self.webhook_secret = webhook_secret
        self.client = client or stripe.StripeClient(
            api_key,
            http_client=stripe.RequestsClient(timeout=timeout),
            max_network_retries=max_network_retries,
        )

    @classmethod
    def from_environment(cls) -> "StripeGateway":
        api_key = os.environ.get("STRIPE_SECRET_KEY")
        if not api_key:
            raise ValueError("STRIPE_SECRET_KEY must be set to use the Stripe gateway")

        return cls(
            api_key=api_key,
            publishable_key=os.environ.get("STRIPE_PUBLISHABLE_KEY", ""),
            webhook_secret=os.environ.get("STRIPE_WEBHOOK_SECRET"),
            timeout=float(os.environ.get("GATEWAY_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)),
            max_network_retries=int(os.environ.get("GATEWAY_MAX_NETWORK_RETRIES", DEFAULT_MAX_NETWORK_RETRIES)),
        )

    @staticmethod
    def _line_item_params(item: CheckoutLineItem) -> dict:
        product_data = {"name": item.name}
        if item.description:
            product_data["description"] = item.description

        return {
            "price_data": {
                "currency": item.currency,
                "unit_amount": item.unit_amount,
                "product_data": product_data,
            },
            "quantity": item.quantity,
        }

    def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        params = {
            "payment_method_types": ["card"],
            "mode": "payment",
            "line_items": [self._line_item_params(item) for item in line_items],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }

        try:
            session = self.client.checkout.sessions.create(params=params)
        except stripe.StripeError as exc:
            logger.error("Stripe checkout session creation failed", error=str(exc), error_type=type(exc).__name__)
            raise gateway_error(str(exc)) from exc

        return CheckoutSession(
            session_id=session["id"],
            publishable_key=self.publishable_key,
            client_secret=session.get("client_secret"),
            url=session.get("url"),
        )

    def get_intent_status(self, intent_id: str) -> str:
        try:
            intent = self.client.payment_intents.retrieve(intent_id)
        except stripe.StripeError as exc:
            logger.warning("Stripe payment intent lookup failed", intent_id=intent_id, error=str(exc))
            raise gateway_error(str(exc)) from exc
        return intent["status"]

    def create_intent(self, amount: int, currency: str, metadata: dict[str, str]) -> PaymentIntent:
        params = {
            "amount": amount,
            "currency": currency,
            "metadata": metadata,
            "automatic_payment_methods": {"enabled": True},
        }

        try:
            intent = self.client.payment_intents.create(params=params)
        except stripe.StripeError as exc:
            logger.error("Stripe payment intent creation failed", error=str(exc), error_type=type(exc).__name__)
            raise gateway_error(str(exc)) from exc

        return PaymentIntent(
            intent_id=intent["id"],
            status=intent["status"],
            amount=intent.get("amount", amount),
            currency=intent.get("currency", currency),
            client_secret=intent.get("client_secret"),
            metadata=dict(metadata),
        )

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        if not self.webhook_secret:
            logger.warning("Webhook signature check requested without STRIPE_WEBHOOK_SECRET")
            return False

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (stripe.SignatureVerificationError, ValueError) as exc:
            logger.warning("Webhook signature invalid", error=str(exc))
            return False
        return True
