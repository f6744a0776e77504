"""Configurable fake payment gateway for development and testing.

Produces deterministic session ids and URLs without any external calls.
Webhooks signed with ``test-signature`` are accepted and decoded from a
Stripe-shaped JSON body.
"""

import json

from marketplace.checkout.errors import InvalidWebhookSignature
from marketplace.payments.port import (
    CheckoutSession,
    CheckoutSessionRequest,
    PaymentGateway,
    PaymentGatewayError,
    PaymentWebhookEvent,
)


class FakePaymentGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    name = "stripe"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment provider unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Payment provider unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    async def create_checkout(self, request: CheckoutSessionRequest) -> CheckoutSession:
        self.calls.append(
            {
                "method": "create_checkout",
                "order_id": request.order_id,
                "amount": request.amount,
                "currency": request.currency,
                "items": [
                    {"name": i.name, "unit_amount": i.unit_amount, "quantity": i.quantity} for i in request.items
                ],
                "metadata": dict(request.metadata),
            }
        )

        if not self.should_succeed:
            raise PaymentGatewayError(self.failure_reason)

        session_id = f"cs_test_{request.order_id.replace('-', '')[:24]}"
        return CheckoutSession(session_id=session_id, url=f"https://checkout.fake.test/pay/{session_id}")

    def verify_webhook(self, body: str, signature: str) -> PaymentWebhookEvent:
        if signature != "test-signature":
            raise InvalidWebhookSignature("Invalid webhook signature", provider=self.name)

        payload = json.loads(body)
        session = (payload.get("data") or {}).get("object") or {}
        metadata = session.get("metadata") or {}
        return PaymentWebhookEvent(
            event_type=payload.get("type", ""),
            session_id=session.get("id"),
            order_id=session.get("client_reference_id") or metadata.get("orderId"),
            metadata=metadata,
        )
