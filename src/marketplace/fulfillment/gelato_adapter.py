"""Gelato adapter (Order API v4).

Gelato has no separate draft endpoint: orders are created with
``orderType=draft`` and promoted to ``order`` on confirmation.
"""

import hashlib
import hmac
import json
import time

import httpx

from marketplace.fulfillment.http_adapter import HttpFulfillmentProvider
from marketplace.fulfillment.port import (
    FulfillmentItem,
    FulfillmentOrderRequest,
    FulfillmentOrderResult,
    FulfillmentProviderError,
    FulfillmentWebhookEvent,
    Recipient,
    ShippingQuote,
    ShippingQuoteRequest,
    ShippingRate,
)

STATUS_MAP = {
    "created": "pending",
    "passed": "processing",
    "completed": "processing",
    "printing": "printing",
    "shipped": "shipped",
    "delivered": "delivered",
    "cancelled": "cancelled",
    "canceled": "cancelled",
    "draft": "draft",
    "failed": "failed",
    "pending": "pending",
}

DEFAULT_RETURN_ADDRESS = {
    "firstName": "Returns",
    "lastName": "Department",
    "companyName": "Returns Dept",
    "addressLine1": "123 Return St",
    "city": "Los Angeles",
    "state": "CA",
    "postCode": "90001",
    "country": "US",
    "email": "returns@example.com",
}


def map_status(status: str | None) -> str:
    return STATUS_MAP.get((status or "").lower(), "pending")


def _address_payload(recipient: Recipient) -> dict:
    payload = {
        "firstName": recipient.first_name,
        "lastName": recipient.last_name,
        "companyName": recipient.company,
        "addressLine1": recipient.address1,
        "addressLine2": recipient.address2,
        "city": recipient.city,
        "state": recipient.state_code,
        "postCode": recipient.zip,
        "country": recipient.country_code,
        "email": recipient.email,
        "phone": recipient.phone,
    }
    return {k: v for k, v in payload.items() if v is not None}


def _product_payload(item: FulfillmentItem, reference: str) -> dict:
    return {
        "itemReferenceId": reference,
        "productUid": item.catalog_product_id or item.external_variant_id or "",
        "files": [{"type": f.type or "default", "url": f.url} for f in item.files],
        "quantity": item.quantity,
    }


class GelatoProvider(HttpFulfillmentProvider):
    name = "gelato"

    def __init__(
        self,
        api_key: str,
        webhook_secret: str | None = None,
        base_url: str = "https://order.gelatoapis.com/v4",
        return_address: dict | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.return_address = return_address or DEFAULT_RETURN_ADDRESS

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "X-API-KEY": self.api_key}

    async def quote_order(self, request: ShippingQuoteRequest) -> ShippingQuote:
        if not request.items:
            return ShippingQuote(rates=(), currency=request.currency)

        reference = f"quote_{int(time.time() * 1000)}"
        data = await self._request(
            "POST",
            "/orders:quote",
            "Gelato shipping quote",
            json={
                "orderReferenceId": reference,
                "customerReferenceId": reference,
                "currency": request.currency,
                "allowMultipleQuotes": True,
                "recipient": _address_payload(request.recipient),
                "products": [_product_payload(item, f"item_{i}") for i, item in enumerate(request.items)],
            },
        )

        rates = tuple(
            ShippingRate(
                id=method["shipmentMethodUid"],
                name=method.get("name", method["shipmentMethodUid"]),
                rate=float(method["price"]),
                currency=method.get("currency", request.currency),
                min_delivery_days=method.get("minDeliveryDays"),
                max_delivery_days=method.get("maxDeliveryDays"),
            )
            for quote in data.get("quotes", [])
            for method in quote.get("shipmentMethods", [])
        )
        return ShippingQuote(rates=rates, currency=request.currency)

    async def create_order(self, request: FulfillmentOrderRequest) -> FulfillmentOrderResult:
        data = await self._request(
            "POST",
            "/orders",
            "Gelato order creation",
            json={
                "orderType": "draft",
                "orderReferenceId": request.external_id,
                "customerReferenceId": request.external_id,
                "currency": request.currency,
                "items": [
                    _product_payload(item, f"item_{request.external_id}_{i}") for i, item in enumerate(request.items)
                ],
                "shipmentMethodUid": request.shipping_method or "standard",
                "shippingAddress": _address_payload(request.recipient),
                "returnAddress": self.return_address,
            },
        )
        return FulfillmentOrderResult(id=str(data["id"]), status=map_status(data.get("fulfillmentStatus") or "draft"))

    async def cancel_order(self, order_id: str) -> FulfillmentOrderResult:
        try:
            await self._request("POST", f"/orders/{order_id}:cancel", "Gelato order cancellation")
        except FulfillmentProviderError as exc:
            if exc.status_code == 409:
                raise FulfillmentProviderError(
                    self.name,
                    "Order cannot be canceled - already in printed or shipped status",
                    status_code=409,
                ) from exc
            if exc.status_code == 404:
                raise FulfillmentProviderError(self.name, f"Order not found: {order_id}", status_code=404) from exc
            raise
        return FulfillmentOrderResult(id=order_id, status="cancelled")

    async def confirm_order(self, order_id: str) -> FulfillmentOrderResult:
        data = await self._request(
            "PATCH",
            f"/orders/{order_id}",
            "Gelato order confirmation",
            json={"orderType": "order"},
        )
        return FulfillmentOrderResult(id=order_id, status=map_status(data.get("fulfillmentStatus")))

    def verify_webhook_signature(self, body: str, signature: str) -> bool:
        if not self.webhook_secret or not signature:
            return False
        expected = hmac.new(self.webhook_secret.encode(), body.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(signature, expected)

    def parse_webhook(self, body: str) -> FulfillmentWebhookEvent:
        payload = json.loads(body)
        event = payload.get("event", "")

        shipments = [
            {
                "carrier": f.get("shipmentMethodName"),
                "trackingNumber": f.get("trackingCode"),
                "trackingUrl": f.get("trackingUrl"),
            }
            for item in payload.get("items", [])
            for f in item.get("fulfillments", [])
            if f.get("trackingCode")
        ]

        if event == "order_delivery_estimate_updated":
            event_type = "delivery_estimate"
        else:
            event_type = map_status(payload.get("fulfillmentStatus"))

        return FulfillmentWebhookEvent(
            event_type=event_type,
            external_id=payload.get("orderReferenceId"),
            provider_order_id=payload.get("orderId"),
            status=payload.get("fulfillmentStatus"),
            shipments=shipments,
            min_delivery_days=payload.get("minDeliveryDays"),
            max_delivery_days=payload.get("maxDeliveryDays"),
        )
