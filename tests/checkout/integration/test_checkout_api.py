"""Integration tests for the storefront checkout, order, maintenance and webhook endpoints."""

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from marketplace.api import (
    checkout_router,
    cron_router,
    order_router,
    register_checkout_exception_handlers,
    webhook_router,
)
from marketplace.ordering.order import Order, OrderStatus
from protean import current_domain
from protean.integrations.fastapi import register_exception_handlers

ADDRESS = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "addressLine1": "12 Analytical Row",
    "city": "Los Angeles",
    "state": "CA",
    "postCode": "90001",
    "country": "US",
    "email": "ada@example.com",
}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(checkout_router)
    app.include_router(order_router)
    app.include_router(cron_router)
    app.include_router(webhook_router)
    register_exception_handlers(app)
    register_checkout_exception_handlers(app)
    return TestClient(app)


def _checkout_body(product_id, selected_rates=None, shipping_cost=0.0):
    return {
        "items": [{"productId": product_id, "quantity": 1}],
        "shippingAddress": ADDRESS,
        "selectedRates": selected_rates or {},
        "shippingCost": shipping_cost,
        "successUrl": "https://shop.example.com/success",
        "cancelUrl": "https://shop.example.com/cart",
    }


def _checkout(client, product_id, user_id="user-001", **kwargs):
    response = client.post("/checkout", json=_checkout_body(product_id, **kwargs), headers={"X-User-Id": user_id})
    assert response.status_code == 200, response.text
    return response.json()


class TestPing:
    def test_ping(self, client):
        assert client.get("/ping").json() == {"message": "pong"}


class TestQuoteEndpoint:
    def test_manual_quote(self, client, manual_product):
        response = client.post(
            "/quote",
            json={"items": [{"productId": manual_product, "quantity": 2}], "shippingAddress": ADDRESS},
        )

        assert response.status_code == 200
        data = response.json()
        assert (data["subtotal"], data["shippingCost"], data["total"]) == (20.0, 0.0, 20.0)
        assert data["providerBreakdown"][0]["selectedShipping"]["rateId"] == "manual-standard"
        assert data["estimatedDelivery"] == {"minDays": 5, "maxDays": 10}

    def test_provider_quote(self, client, providers, printful_product):
        response = client.post("/quote", json={"items": [{"productId": printful_product}], "shippingAddress": ADDRESS})

        assert response.status_code == 200
        breakdown = response.json()["providerBreakdown"][0]
        assert breakdown["provider"] == "printful"
        assert breakdown["selectedShipping"]["rateId"] == "STANDARD"
        assert len(breakdown["availableRates"]) == 2

    def test_empty_cart(self, client):
        response = client.post("/quote", json={"items": [], "shippingAddress": ADDRESS})
        assert response.status_code == 422

    def test_unknown_product(self, client):
        response = client.post("/quote", json={"items": [{"productId": "missing"}], "shippingAddress": ADDRESS})
        assert response.status_code == 404

    def test_unconfigured_provider(self, client, printful_product):
        response = client.post("/quote", json={"items": [{"productId": printful_product}], "shippingAddress": ADDRESS})

        assert response.status_code == 503
        assert response.json()["provider"] == "printful"

    def test_provider_failure(self, client, providers, printful, printful_product):
        printful.configure(should_succeed=False, operations=("quote",))
        response = client.post("/quote", json={"items": [{"productId": printful_product}], "shippingAddress": ADDRESS})

        assert response.status_code == 502
        assert response.json()["provider"] == "printful"


class TestCheckoutEndpoint:
    def test_checkout(self, client, providers, gateway, printful_product):
        data = _checkout(client, printful_product, selected_rates={"printful": "STANDARD"}, shipping_cost=4.99)

        assert data["checkoutSessionId"].startswith("cs_test_")
        assert data["checkoutUrl"].endswith(data["checkoutSessionId"])

        order = current_domain.repository_for(Order).get(data["orderId"])
        assert order.user_id == "user-001"
        assert order.status == OrderStatus.DRAFT_CREATED.value
        assert order.total_amount == 29.99

    def test_guest_checkout(self, client, gateway, manual_product):
        response = client.post("/checkout", json=_checkout_body(manual_product))
        order = current_domain.repository_for(Order).get(response.json()["orderId"])
        assert order.user_id == "guest"

    def test_missing_rate(self, client, providers, gateway, printful_product):
        response = client.post("/checkout", json=_checkout_body(printful_product))

        assert response.status_code == 400
        assert response.json()["provider"] == "printful"

    def test_payment_failure(self, client, providers, gateway, printful_product):
        gateway.configure(should_succeed=False)
        response = client.post("/checkout", json=_checkout_body(printful_product, selected_rates={"printful": "STANDARD"}))

        assert response.status_code == 502
        assert response.json()["provider"] == "stripe"

    def test_negative_shipping_cost(self, client, manual_product):
        response = client.post("/checkout", json=_checkout_body(manual_product, shipping_cost=-1))
        assert response.status_code == 422


class TestOrderEndpoints:
    def test_get_order(self, client, gateway, manual_product):
        order_id = _checkout(client, manual_product)["orderId"]

        response = client.get(f"/orders/{order_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "draft_created"
        assert data["items"][0]["productName"] == "Hand-bound Notebook"
        assert data["shippingAddress"]["city"] == "Los Angeles"

    def test_get_unknown_order(self, client):
        assert client.get("/orders/no-such-order").status_code == 404

    def test_get_by_session(self, client, gateway, manual_product):
        checkout = _checkout(client, manual_product)

        response = client.get(f"/orders/by-session/{checkout['checkoutSessionId']}")

        assert response.status_code == 200
        assert response.json()["id"] == checkout["orderId"]

    def test_get_by_unknown_session(self, client):
        assert client.get("/orders/by-session/cs_test_nothing").status_code == 404

    def test_list_orders_for_user(self, client, gateway, manual_product):
        _checkout(client, manual_product, user_id="user-a")
        _checkout(client, manual_product, user_id="user-a")
        _checkout(client, manual_product, user_id="user-b")

        response = client.get("/orders", headers={"X-User-Id": "user-a"}, params={"limit": 1})

        data = response.json()
        assert data["total"] == 2
        assert len(data["orders"]) == 1
        assert data["orders"][0]["userId"] == "user-a"


class TestCleanupEndpoint:
    def test_nothing_to_clean(self, client, providers):
        response = client.post("/cron/cleanup-drafts")

        assert response.status_code == 200
        assert response.json() == {
            "totalProcessed": 0,
            "cancelled": 0,
            "partiallyCancelled": 0,
            "failed": 0,
            "errors": [],
        }

    def test_zero_age_sweeps_everything(self, client, providers, gateway, printful_product):
        checkout = _checkout(client, printful_product, selected_rates={"printful": "STANDARD"})

        response = client.post("/cron/cleanup-drafts", json={"maxAgeHours": 0})

        assert response.json()["cancelled"] == 1
        order = current_domain.repository_for(Order).get(checkout["orderId"])
        assert order.status == OrderStatus.CANCELLED.value


class TestWebhookEndpoints:
    def _payment_event(self, checkout, event_type="checkout.session.completed"):
        return json.dumps(
            {
                "type": event_type,
                "data": {"object": {"id": checkout["checkoutSessionId"], "client_reference_id": checkout["orderId"]}},
            }
        )

    def test_payment_completed(self, client, providers, gateway, printful_product):
        checkout = _checkout(client, printful_product, selected_rates={"printful": "STANDARD"})

        response = client.post(
            "/webhooks/stripe",
            content=self._payment_event(checkout),
            headers={"Stripe-Signature": "test-signature"},
        )

        assert response.status_code == 200
        assert response.json() == {"received": True}
        order = current_domain.repository_for(Order).get(checkout["orderId"])
        assert order.status == OrderStatus.PROCESSING.value

    def test_payment_bad_signature(self, client, gateway, manual_product):
        checkout = _checkout(client, manual_product)
        response = client.post(
            "/webhooks/stripe",
            content=self._payment_event(checkout),
            headers={"Stripe-Signature": "forged"},
        )
        assert response.status_code == 401

    def test_fulfillment_shipped(self, client, providers, gateway, printful_product):
        checkout = _checkout(client, printful_product, selected_rates={"printful": "STANDARD"})
        client.post("/webhooks/stripe", content=self._payment_event(checkout), headers={"Stripe-Signature": "test-signature"})

        body = json.dumps(
            {
                "type": "shipped",
                "externalId": checkout["orderId"],
                "shipments": [{"carrier": "USPS", "trackingNumber": "9400"}],
            }
        )
        response = client.post("/webhooks/printful", content=body, headers={"X-Webhook-Signature": "test-signature"})

        assert response.status_code == 200
        order = client.get(f"/orders/{checkout['orderId']}").json()
        assert order["status"] == "shipped"
        assert order["trackingInfo"] == [{"carrier": "USPS", "trackingNumber": "9400"}]

    def test_fulfillment_bad_signature(self, client, providers):
        response = client.post("/webhooks/gelato", content="{}", headers={"X-Webhook-Signature": "forged"})
        assert response.status_code == 401

    def test_unknown_fulfillment_provider(self, client, providers):
        response = client.post("/webhooks/printify", content="{}", headers={"X-Webhook-Signature": "test-signature"})
        assert response.status_code == 503
