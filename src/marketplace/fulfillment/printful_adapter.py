"""Printful adapter (REST API v1).

Draft orders are created with ``confirm=false`` and released for
production through the ``/orders/{id}/confirm`` endpoint once paid.
"""

import asyncio
import hmac
import json

import httpx

from marketplace.fulfillment.http_adapter import HttpFulfillmentProvider
from marketplace.fulfillment.port import (
    DesignFile,
    FulfillmentItem,
    FulfillmentOrderRequest,
    FulfillmentOrderResult,
    FulfillmentWebhookEvent,
    ProviderProduct,
    ProviderVariant,
    Recipient,
    ShippingQuote,
    ShippingQuoteRequest,
    ShippingRate,
)

_WEBHOOK_EVENT_TYPES = {
    "package_shipped": "shipped",
    "order_created": "created",
    "order_updated": "updated",
    "order_failed": "failed",
    "order_canceled": "cancelled",
    "order_put_hold": "onhold",
    "order_remove_hold": "processing",
}


def _recipient_payload(recipient: Recipient) -> dict:
    payload = {
        "name": recipient.name,
        "company": recipient.company,
        "address1": recipient.address1,
        "address2": recipient.address2,
        "city": recipient.city,
        "state_code": recipient.state_code,
        "country_code": recipient.country_code,
        "zip": recipient.zip,
        "phone": recipient.phone,
        "email": recipient.email,
    }
    return {k: v for k, v in payload.items() if v is not None}


def _item_payload(item: FulfillmentItem) -> dict:
    payload: dict = {"quantity": item.quantity}
    if item.catalog_variant_id:
        payload["variant_id"] = int(item.catalog_variant_id)
    elif item.external_variant_id:
        payload["external_variant_id"] = item.external_variant_id
    if item.files:
        payload["files"] = [
            {"url": f.url, "type": f.placement or f.type} for f in item.files
        ]
    return payload


def _provider_variant(variant: dict) -> ProviderVariant:
    catalog = variant.get("product") or {}
    return ProviderVariant(
        id=str(variant["id"]),
        name=variant.get("name") or "One Size",
        retail_price=float(variant.get("retail_price") or 0),
        currency=variant.get("currency") or "USD",
        sku=variant.get("sku"),
        size=variant.get("size"),
        color=variant.get("color"),
        catalog_product_id=str(catalog["product_id"]) if catalog.get("product_id") is not None else None,
        catalog_variant_id=str(catalog["variant_id"]) if catalog.get("variant_id") is not None else None,
        files=tuple(
            DesignFile(url=f["url"], type=f.get("type") or "default", placement=f.get("type"))
            for f in variant.get("files", [])
            if f.get("url")
        ),
    )


def _provider_product(result: dict) -> ProviderProduct:
    """Map a ``/store/products/{id}`` result (sync product plus its sync variants)."""
    product = result.get("sync_product") or {}
    return ProviderProduct(
        source_id=str(product["id"]),
        name=product.get("name", ""),
        thumbnail_url=product.get("thumbnail_url"),
        variants=tuple(_provider_variant(v) for v in result.get("sync_variants", [])),
    )


class PrintfulProvider(HttpFulfillmentProvider):
    name = "printful"

    def __init__(
        self,
        api_key: str,
        store_id: str,
        webhook_secret: str | None = None,
        base_url: str = "https://api.printful.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.api_key = api_key
        self.store_id = store_id
        self.webhook_secret = webhook_secret

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "X-PF-Store-Id": self.store_id,
        }

    async def quote_order(self, request: ShippingQuoteRequest) -> ShippingQuote:
        if not request.items:
            return ShippingQuote(rates=(), currency=request.currency)

        data = await self._request(
            "POST",
            "/shipping/rates",
            "Printful shipping quote",
            json={
                "recipient": _recipient_payload(request.recipient),
                "items": [_item_payload(i) for i in request.items],
                "currency": request.currency,
            },
        )
        rates = tuple(
            ShippingRate(
                id=str(r["id"]),
                name=r.get("name", str(r["id"])),
                rate=float(r["rate"]),
                currency=r.get("currency", request.currency),
                min_delivery_days=r.get("minDeliveryDays"),
                max_delivery_days=r.get("maxDeliveryDays"),
            )
            for r in data.get("result", [])
        )
        return ShippingQuote(rates=rates, currency=request.currency)

    async def create_order(self, request: FulfillmentOrderRequest) -> FulfillmentOrderResult:
        body = {
            "external_id": request.external_id,
            "recipient": _recipient_payload(request.recipient),
            "items": [_item_payload(i) for i in request.items],
            "retail_costs": {"currency": request.currency},
        }
        if request.shipping_method:
            body["shipping"] = request.shipping_method
        if request.shipping_cost is not None:
            body["retail_costs"]["shipping"] = f"{request.shipping_cost:.2f}"

        data = await self._request(
            "POST",
            "/orders",
            "Printful order creation",
            json=body,
            params={"confirm": "false"},
        )
        result = data.get("result", {})
        return FulfillmentOrderResult(id=str(result["id"]), status=result.get("status", "draft"))

    async def cancel_order(self, order_id: str) -> FulfillmentOrderResult:
        data = await self._request("DELETE", f"/orders/{order_id}", "Printful order cancellation")
        result = data.get("result", {})
        return FulfillmentOrderResult(id=order_id, status=result.get("status", "canceled"))

    async def confirm_order(self, order_id: str) -> FulfillmentOrderResult:
        data = await self._request("POST", f"/orders/{order_id}/confirm", "Printful order confirmation")
        result = data.get("result", {})
        return FulfillmentOrderResult(id=order_id, status=result.get("status", "pending"))

    async def list_products(self) -> list[ProviderProduct]:
        data = await self._request("GET", "/store/products", "Printful product listing", params={"limit": 100})
        summaries = data.get("result", [])
        details = await asyncio.gather(
            *(self._request("GET", f"/store/products/{s['id']}", "Printful product lookup") for s in summaries)
        )
        return [_provider_product(d.get("result", {})) for d in details]

    def verify_webhook_signature(self, body: str, signature: str) -> bool:  # noqa: ARG002
        if not self.webhook_secret or not signature:
            return False
        return hmac.compare_digest(signature, self.webhook_secret)

    def parse_webhook(self, body: str) -> FulfillmentWebhookEvent:
        payload = json.loads(body)
        data = payload.get("data") or {}
        order = data.get("order") or {}
        shipment = data.get("shipment")

        shipments = []
        if shipment:
            shipments.append(
                {
                    "carrier": shipment.get("carrier"),
                    "trackingNumber": shipment.get("tracking_number"),
                    "trackingUrl": shipment.get("tracking_url"),
                }
            )

        event_type = _WEBHOOK_EVENT_TYPES.get(payload.get("type", ""), payload.get("type", ""))
        return FulfillmentWebhookEvent(
            event_type=event_type,
            external_id=order.get("external_id"),
            provider_order_id=str(order["id"]) if order.get("id") is not None else None,
            status=order.get("status"),
            shipments=shipments,
        )
