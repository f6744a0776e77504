"""Configurable fake fulfillment provider for development and testing.

Simulates a print-on-demand provider without any external calls. Rates are
configurable and each operation can be switched to fail, which is how the
partial-failure paths of checkout and the sweeper are exercised.
"""

import json
from uuid import uuid4

from marketplace.fulfillment.port import (
    FulfillmentOrderRequest,
    FulfillmentOrderResult,
    FulfillmentProvider,
    FulfillmentProviderError,
    FulfillmentWebhookEvent,
    ProviderProduct,
    ShippingQuote,
    ShippingQuoteRequest,
    ShippingRate,
)

DEFAULT_RATES = (
    ShippingRate(id="STANDARD", name="Standard", rate=4.99, currency="USD", min_delivery_days=5, max_delivery_days=8),
    ShippingRate(id="EXPRESS", name="Express", rate=12.99, currency="USD", min_delivery_days=2, max_delivery_days=3),
)


class FakeFulfillmentProvider(FulfillmentProvider):
    """Fake provider that accepts every request by default."""

    def __init__(self, name: str = "fake", rates: list[ShippingRate] | None = None) -> None:
        self.name = name
        self.rates: list[ShippingRate] = list(DEFAULT_RATES if rates is None else rates)
        self.failing_operations: set[str] = set()
        self.failure_reason: str = "Provider unavailable"
        self.catalogue: list[ProviderProduct] = []
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Provider unavailable",
        operations: tuple[str, ...] = ("quote", "create", "cancel", "confirm", "list"),
        rates: list[ShippingRate] | None = None,
        catalogue: list[ProviderProduct] | None = None,
    ) -> None:
        """Configure which operations fail, and optionally the rates and store catalogue offered."""
        self.failing_operations = set() if should_succeed else set(operations)
        self.failure_reason = failure_reason
        if rates is not None:
            self.rates = list(rates)
        if catalogue is not None:
            self.catalogue = list(catalogue)

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failing_operations:
            raise FulfillmentProviderError(self.name, self.failure_reason)

    async def quote_order(self, request: ShippingQuoteRequest) -> ShippingQuote:
        self.calls.append({"method": "quote_order", "items": len(request.items), "currency": request.currency})
        self._maybe_fail("quote")
        return ShippingQuote(rates=tuple(self.rates), currency=request.currency)

    async def create_order(self, request: FulfillmentOrderRequest) -> FulfillmentOrderResult:
        self.calls.append(
            {
                "method": "create_order",
                "external_id": request.external_id,
                "items": len(request.items),
                "shipping_method": request.shipping_method,
            }
        )
        self._maybe_fail("create")
        return FulfillmentOrderResult(id=f"{self.name}-draft-{uuid4().hex[:8]}", status="draft")

    async def cancel_order(self, order_id: str) -> FulfillmentOrderResult:
        self.calls.append({"method": "cancel_order", "order_id": order_id})
        self._maybe_fail("cancel")
        return FulfillmentOrderResult(id=order_id, status="cancelled")

    async def confirm_order(self, order_id: str) -> FulfillmentOrderResult:
        self.calls.append({"method": "confirm_order", "order_id": order_id})
        self._maybe_fail("confirm")
        return FulfillmentOrderResult(id=order_id, status="pending")

    async def list_products(self) -> list[ProviderProduct]:
        self.calls.append({"method": "list_products"})
        self._maybe_fail("list")
        return list(self.catalogue)

    def calls_to(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]

    def verify_webhook_signature(self, body: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"

    def parse_webhook(self, body: str) -> FulfillmentWebhookEvent:
        payload = json.loads(body)
        return FulfillmentWebhookEvent(
            event_type=payload.get("type", ""),
            external_id=payload.get("externalId"),
            provider_order_id=payload.get("orderId"),
            status=payload.get("status"),
            shipments=payload.get("shipments", []),
            min_delivery_days=payload.get("minDeliveryDays"),
            max_delivery_days=payload.get("maxDeliveryDays"),
        )
