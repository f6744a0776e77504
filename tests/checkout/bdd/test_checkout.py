"""BDD tests for quoting and checkout across providers."""

import asyncio

import pytest
from marketplace.checkout.errors import CheckoutError
from marketplace.checkout.models import CartItem
from marketplace.checkout.orchestrator import CheckoutOrchestrator
from marketplace.fulfillment.port import ShippingRate
from marketplace.ordering.order import Order
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/checkout.feature")


def _rate(rate_id, cost):
    return ShippingRate(id=rate_id, name=rate_id, rate=cost, currency="USD")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a manual product priced at {price:f}"))
def _(context, new_product, price):
    context["products"]["manual"] = new_product(name="Hand-bound Notebook", price=price)


@given(parsers.cfparse('"{provider}" offers rates "{first}" at {first_cost:f} and "{second}" at {second_cost:f}'))
def _(providers, provider, first, first_cost, second, second_cost):
    providers[provider].configure(rates=[_rate(first, first_cost), _rate(second, second_cost)])


@given(parsers.cfparse('"{provider}" rejects new orders'))
def _(providers, provider):
    providers[provider].configure(should_succeed=False, failure_reason="Out of stock", operations=("create",))


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("the shopper requests a quote for {quantity:d} of the manual product"), target_fixture="quote")
def _(context, address, quantity):
    items = [CartItem(product_id=context["products"]["manual"], quantity=quantity)]
    return asyncio.run(CheckoutOrchestrator({}, None).get_quote(items, address))


@when(
    parsers.cfparse('the shopper requests a quote for {quantity:d} of the "{provider}" product'),
    target_fixture="quote",
)
def _(context, providers, address, quantity, provider):
    items = [CartItem(product_id=context["products"][provider], quantity=quantity)]
    return asyncio.run(CheckoutOrchestrator(providers, None).get_quote(items, address))


@when("the shopper checks out both products")
def _(context, providers, gateway, checkout_for):
    request = checkout_for(
        [CartItem(product_id=product_id) for product_id in context["products"].values()],
        selected_rates={name: "STANDARD" for name in context["products"]},
    )
    with pytest.raises(CheckoutError) as exc:
        asyncio.run(CheckoutOrchestrator(providers, gateway).create_checkout(request))

    context["error"] = exc.value
    orders, _ = current_domain.repository_for(Order).find_by_user("user-001")
    context["order_id"] = str(orders[0].id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the quote subtotal is {amount:f}"))
def _(quote, amount):
    assert quote.subtotal == amount


@then(parsers.cfparse("the quote shipping cost is {amount:f}"))
def _(quote, amount):
    assert quote.shipping_cost == amount


@then(parsers.cfparse("the quote total is {amount:f}"))
def _(quote, amount):
    assert quote.total == amount


@then(parsers.cfparse('the "{provider}" breakdown selects rate "{rate_id}"'))
def _(quote, provider, rate_id):
    [breakdown] = [b for b in quote.provider_breakdown if b.provider == provider]
    assert breakdown.selected_shipping.rate_id == rate_id


@then(parsers.cfparse('checkout fails naming provider "{provider}"'))
def _(context, provider):
    assert context["error"].provider == provider
    assert provider in context["error"].message


@then(parsers.cfparse('the order only has a draft at "{provider}"'))
def _(context, provider):
    order = current_domain.repository_for(Order).get(context["order_id"])
    assert list(order.draft_orders) == [provider]
