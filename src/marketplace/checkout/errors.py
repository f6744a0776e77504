"""Checkout failure taxonomy.

Every error names the provider it concerns so the storefront can tell the
customer which part of the cart is blocking.
"""


class CheckoutError(Exception):
    """Base class for checkout failures."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider


class ProviderNotConfigured(CheckoutError):
    """A cart bucket needs a provider that has no registered gateway."""


class ProviderCallFailed(CheckoutError):
    """A provider (fulfillment or payment) rejected or failed a call."""


class ShippingRateMissing(CheckoutError):
    """The caller did not choose a shipping rate for a provider with items."""


class InvalidWebhookSignature(CheckoutError):
    """A webhook body did not verify against the provider's signing secret."""
