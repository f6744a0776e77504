"""Shared BDD fixtures and step definitions for checkout and cleanup."""

import pytest
from marketplace.ordering.order import Order
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def context():
    """Scratch space the steps of one scenario share."""
    return {"products": {}, "order_id": None, "error": None}


@given(parsers.cfparse('a "{provider}" product priced at {price:f}'))
def _(context, providers, new_product, new_variant, provider, price):
    product_id = new_product(name=f"{provider.title()} Print", price=price, provider=provider)
    new_variant(product_id, name="Default")
    context["products"][provider] = product_id


@then(parsers.cfparse('the order status is "{status}"'))
def _(context, status):
    assert current_domain.repository_for(Order).get(context["order_id"]).status == status
