"""Payment gateway port (abstract interface).

A single hosted checkout session collects payment for the whole order.
Amounts crossing this port are in minor units (cents).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class PaymentGatewayError(Exception):
    """The payment provider rejected a request or could not be reached."""


@dataclass(frozen=True)
class PaymentLineItem:
    name: str
    unit_amount: int
    quantity: int
    description: str | None = None
    image: str | None = None


@dataclass(frozen=True)
class CheckoutSessionRequest:
    order_id: str
    amount: int
    currency: str
    items: tuple[PaymentLineItem, ...]
    success_url: str
    cancel_url: str
    metadata: dict[str, str] = field(default_factory=dict)
    customer_email: str | None = None

    @property
    def line_items_total(self) -> int:
        return sum(item.unit_amount * item.quantity for item in self.items)


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


@dataclass(frozen=True)
class PaymentWebhookEvent:
    event_type: str
    session_id: str | None = None
    order_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name: str = ""

    @abstractmethod
    async def create_checkout(self, request: CheckoutSessionRequest) -> CheckoutSession:
        """Create a hosted checkout session and return its redirect URL."""
        ...

    @abstractmethod
    def verify_webhook(self, body: str, signature: str) -> PaymentWebhookEvent:
        """Verify and decode a webhook. Raises InvalidWebhookSignature."""
        ...
