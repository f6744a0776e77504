"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakePaymentGateway for development and testing (PAYMENT_ADAPTER=fake)
- StripeGateway for production (PAYMENT_ADAPTER=stripe, needs both Stripe secrets)

get_gateway() returns None when Stripe is selected but not configured, which
checkout reports as "Payment provider not configured".
"""

from marketplace.config import get_settings
from marketplace.payments.fake_adapter import FakePaymentGateway
from marketplace.payments.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway | None:
    """Return the current payment gateway, building it from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if settings.payment_adapter == "fake":
            _current_gateway = FakePaymentGateway()
        elif settings.payment_adapter == "stripe":
            if not settings.stripe_enabled:
                return None
            from marketplace.payments.stripe_adapter import StripeGateway

            _current_gateway = StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret)
        else:
            raise ValueError(f"Unknown payment adapter: {settings.payment_adapter}")
    return _current_gateway


def set_gateway(gateway: PaymentGateway | None) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
