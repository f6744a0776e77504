"""Stripe payment gateway adapter (hosted Checkout Sessions).

The stripe SDK is synchronous; calls run in a worker thread so the
checkout coroutine is not blocked.
"""

import asyncio
import json

import stripe
import structlog

from marketplace.checkout.errors import InvalidWebhookSignature
from marketplace.payments.port import (
    CheckoutSession,
    CheckoutSessionRequest,
    PaymentGateway,
    PaymentGatewayError,
    PaymentWebhookEvent,
)

logger = structlog.get_logger(__name__)


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    name = "stripe"

    def __init__(self, api_key: str, webhook_secret: str) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def _session_params(self, request: CheckoutSessionRequest) -> dict:
        line_items = []
        for item in request.items:
            product_data = {"name": item.name}
            if item.description:
                product_data["description"] = item.description
            if item.image:
                product_data["images"] = [item.image]
            line_items.append(
                {
                    "price_data": {
                        "currency": request.currency.lower(),
                        "product_data": product_data,
                        "unit_amount": item.unit_amount,
                    },
                    "quantity": item.quantity,
                }
            )

        params = {
            "mode": "payment",
            "line_items": line_items,
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
            "client_reference_id": request.order_id,
            "metadata": {"orderId": request.order_id, **request.metadata},
            "payment_intent_data": {"metadata": {"orderId": request.order_id}},
        }
        if request.customer_email:
            params["customer_email"] = request.customer_email
        return params

    async def create_checkout(self, request: CheckoutSessionRequest) -> CheckoutSession:
        # Stripe charges the sum of the line items, not request.amount
        if request.line_items_total != request.amount:
            logger.warning(
                "Line items do not add up to the order amount",
                order_id=request.order_id,
                amount=request.amount,
                line_items_total=request.line_items_total,
            )
            raise PaymentGatewayError(
                f"Line items total {request.line_items_total} does not match amount {request.amount}"
            )

        params = self._session_params(request)
        try:
            session = await asyncio.to_thread(stripe.checkout.Session.create, api_key=self.api_key, **params)
        except stripe.StripeError as exc:
            logger.warning("Stripe session creation failed", order_id=request.order_id, error=str(exc))
            raise PaymentGatewayError(exc.user_message or str(exc)) from exc

        if not session.url:
            raise PaymentGatewayError("Stripe returned a session without a checkout URL")
        return CheckoutSession(session_id=session.id, url=session.url)

    def verify_webhook(self, body: str, signature: str) -> PaymentWebhookEvent:
        try:
            stripe.WebhookSignature.verify_header(body, signature, self.webhook_secret)
            event = json.loads(body)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise InvalidWebhookSignature(f"Invalid webhook signature: {exc}", provider=self.name) from exc

        session = (event.get("data") or {}).get("object") or {}
        metadata = dict(session.get("metadata") or {})
        return PaymentWebhookEvent(
            event_type=event.get("type", ""),
            session_id=session.get("id"),
            order_id=session.get("client_reference_id") or metadata.get("orderId"),
            metadata=metadata,
        )
