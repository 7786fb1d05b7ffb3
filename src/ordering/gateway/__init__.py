"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (default)
- StripeGateway when PAYMENT_GATEWAY=stripe
"""

import os

from ordering.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _build_default_gateway() -> PaymentGateway:
    adapter = os.environ.get("PAYMENT_GATEWAY", "fake")
    if adapter == "fake":
        from ordering.gateway.fake_adapter import FakeGateway

        return FakeGateway()
    if adapter == "stripe":
        from ordering.gateway.stripe_adapter import StripeGateway

        return StripeGateway.from_environment()
    raise ValueError(f"Unknown payment gateway adapter: {adapter}")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building the configured one on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_default_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to the configured default gateway."""
    global _current_gateway
    _current_gateway = None
