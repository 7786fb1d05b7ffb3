"""Payment gateway port (abstract interface).

Defines the contract every payment gateway adapter implements, so the
checkout and reconciliation code never depends on a particular provider.
Adapters report every provider failure, timeouts included, as an
``OrderingError`` of kind ``GATEWAY_ERROR``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class CheckoutLineItem:
    """One priced line of a hosted checkout session, in minor currency units."""

    name: str
    unit_amount: int
    quantity: int
    currency: str
    description: str | None = None


@dataclass(frozen=True)
class CheckoutSession:
    """What a client needs to hand the customer over to the gateway's checkout."""

    session_id: str
    publishable_key: str
    client_secret: str | None
    url: str | None


@dataclass(frozen=True)
class PaymentIntent:
    intent_id: str
    status: str
    amount: int
    currency: str
    client_secret: str | None = None
    metadata: dict = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    publishable_key: str = ""

    @abstractmethod
    def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        """Open a hosted checkout session for the given line items."""
        ...

    @abstractmethod
    def get_intent_status(self, intent_id: str) -> str:
        """Return the gateway's current status string for a payment intent."""
        ...

    @abstractmethod
    def create_intent(self, amount: int, currency: str, metadata: dict[str, str]) -> PaymentIntent:
        """Create a payment intent for ``amount`` minor units."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        """Verify that a webhook payload is authentically from the gateway."""
        ...
