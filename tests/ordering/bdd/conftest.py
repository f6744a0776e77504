"""Shared BDD fixtures and step definitions for the Ordering domain."""

import json

import pytest
from marketplace.ordering.checkout_progress import AttachCheckoutSession, MarkDraftCreated, RecordDraftOrder
from marketplace.ordering.lifecycle import MarkOrderDelivered, MarkOrderPaid, MarkOrderProcessing, RecordShipment
from marketplace.ordering.order import Order
from marketplace.ordering.placement import PlaceOrder
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, then

ADDRESS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address_line1": "12 Analytical Row",
    "city": "Los Angeles",
    "state": "CA",
    "post_code": "90001",
    "country": "US",
    "email": "ada@example.com",
}


def process(command):
    return current_domain.process(command, asynchronous=False)


@pytest.fixture()
def error():
    """Container for the validation error a When step captured."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a pending order for "{user_id}" with a "{provider}" item'),
    target_fixture="order_id",
)
def _(user_id, provider):
    items = [
        {
            "product_id": "prod-001",
            "product_name": "Sunrise Tee",
            "quantity": 1,
            "unit_price": 20.0,
            "fulfillment_provider": provider,
        }
    ]
    return process(
        PlaceOrder(
            user_id=user_id,
            items=json.dumps(items),
            total_amount=24.99,
            shipping_address=json.dumps(ADDRESS),
            shipping_methods=json.dumps({provider: "STANDARD"}),
        )
    )


@given("the order has reached draft created")
def _(order_id):
    process(RecordDraftOrder(order_id=order_id, provider="printful", draft_order_id="pf-1"))
    process(AttachCheckoutSession(order_id=order_id, checkout_session_id="cs_test_1", checkout_provider="stripe"))
    process(MarkDraftCreated(order_id=order_id))


@given("the order has been delivered")
def _(order_id):
    process(RecordDraftOrder(order_id=order_id, provider="printful", draft_order_id="pf-1"))
    process(AttachCheckoutSession(order_id=order_id, checkout_session_id="cs_test_1", checkout_provider="stripe"))
    process(MarkDraftCreated(order_id=order_id))
    process(MarkOrderPaid(order_id=order_id))
    process(MarkOrderProcessing(order_id=order_id, fulfillment_order_id="pf-1"))
    process(RecordShipment(order_id=order_id, tracking=json.dumps([])))
    process(MarkOrderDelivered(order_id=order_id))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then("the status change is rejected")
def _(error):
    assert error["exc"] is not None
    assert "status" in error["exc"].messages
