"""Configurable fake payment gateway for development and testing.

Simulates the gateway without any external calls. Intent statuses can be set
per intent, individual intents can be made to fail (e.g. to simulate a
timeout), and every call is recorded in ``calls`` for assertions.
"""

from uuid import uuid4

from ordering.errors import gateway_error
from ordering.gateway.port import CheckoutLineItem, CheckoutSession, PaymentGateway, PaymentIntent


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    publishable_key = "pk_test_fake"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.intent_statuses: dict[str, str] = {}
        self.intent_failures: dict[str, str] = {}
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure whether session and intent creation succeed."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def set_intent_status(self, intent_id: str, status: str) -> None:
        self.intent_statuses[intent_id] = status
        self.intent_failures.pop(intent_id, None)

    def fail_intent(self, intent_id: str, reason: str = "Request timed out") -> None:
        """Make status lookups for ``intent_id`` fail with ``reason``."""
        self.intent_failures[intent_id] = reason

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        self.calls.append(
            {
                "method": "create_checkout_session",
                "line_items": list(line_items),
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": dict(metadata),
            }
        )

        if not self.should_succeed:
            raise gateway_error(self.failure_reason)

        session_id = f"cs_test_{uuid4().hex[:16]}"
        return CheckoutSession(
            session_id=session_id,
            publishable_key=self.publishable_key,
            client_secret=f"{session_id}_secret_{uuid4().hex[:8]}",
            url=f"https://checkout.fake.test/pay/{session_id}",
        )

    def get_intent_status(self, intent_id: str) -> str:
        self.calls.append({"method": "get_intent_status", "intent_id": intent_id})

        if intent_id in self.intent_failures:
            raise gateway_error(self.intent_failures[intent_id])
        if intent_id not in self.intent_statuses:
            raise gateway_error(f"No such payment_intent: '{intent_id}'")
        return self.intent_statuses[intent_id]

    def create_intent(self, amount: int, currency: str, metadata: dict[str, str]) -> PaymentIntent:
        self.calls.append(
            {
                "method": "create_intent",
                "amount": amount,
                "currency": currency,
                "metadata": dict(metadata),
            }
        )

        if not self.should_succeed:
            raise gateway_error(self.failure_reason)

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        status = "requires_payment_method"
        self.intent_statuses[intent_id] = status
        return PaymentIntent(
            intent_id=intent_id,
            status=status,
            amount=amount,
            currency=currency,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
            metadata=dict(metadata),
        )

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"
