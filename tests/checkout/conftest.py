"""Shared fixtures for checkout, sweeper and reconciliation tests."""

import json

import pytest
from marketplace.catalogue.management import AddProductImage, AddVariant, CreateProduct
from marketplace.checkout.models import CheckoutRequest, ShippingAddress
from marketplace.fulfillment import set_providers
from marketplace.fulfillment.fake_adapter import FakeFulfillmentProvider
from marketplace.payments import set_gateway
from marketplace.payments.fake_adapter import FakePaymentGateway
from protean.utils.globals import current_domain


def create_product(name="Sunrise Tee", price=20.0, provider=None, **overrides):
    command = CreateProduct(name=name, price=price, fulfillment_provider=provider, **overrides)
    return current_domain.process(command, asynchronous=False)


def add_variant(product_id, name="Default", price=None, **overrides):
    defaults = {
        "product_id": product_id,
        "name": name,
        "price": price,
        "external_variant_id": f"ext-{name}",
        "provider_data": json.dumps({"catalogProductId": "71", "catalogVariantId": "4017"}),
        "design_files": json.dumps([{"url": "https://cdn.example.com/art.png", "placement": "front"}]),
    }
    defaults.update(overrides)
    return current_domain.process(AddVariant(**defaults), asynchronous=False)


def add_image(product_id, url="https://cdn.example.com/front.png"):
    return current_domain.process(AddProductImage(product_id=product_id, url=url), asynchronous=False)


def checkout_request(items, selected_rates=None, shipping_cost=0.0, user_id="user-001", address=None):
    return CheckoutRequest(
        user_id=user_id,
        items=items,
        address=address or make_address(),
        selected_rates=selected_rates or {},
        shipping_cost=shipping_cost,
        success_url="https://shop.example.com/success",
        cancel_url="https://shop.example.com/cart",
    )


def make_address(**overrides):
    defaults = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "address_line1": "12 Analytical Row",
        "city": "Los Angeles",
        "state": "CA",
        "post_code": "90001",
        "country": "US",
        "email": "ada@example.com",
    }
    defaults.update(overrides)
    return ShippingAddress(**defaults)


@pytest.fixture()
def address():
    return make_address()


@pytest.fixture()
def printful():
    return FakeFulfillmentProvider("printful")


@pytest.fixture()
def gelato():
    return FakeFulfillmentProvider("gelato")


@pytest.fixture()
def providers(printful, gelato):
    registry = {"printful": printful, "gelato": gelato}
    set_providers(registry)
    return registry


@pytest.fixture()
def gateway():
    fake = FakePaymentGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def manual_product():
    return create_product(name="Hand-bound Notebook", price=10.0)


@pytest.fixture()
def printful_product():
    product_id = create_product(name="Sunrise Tee", price=20.0, provider="printful")
    add_variant(product_id, name="Black / M", price=25.0)
    add_image(product_id)
    return product_id


@pytest.fixture()
def gelato_product():
    product_id = create_product(name="Mountain Poster", price=15.0, provider="gelato")
    add_variant(product_id, name="A3")
    return product_id


@pytest.fixture()
def new_product():
    """Factory for catalogue products: ``new_product(name, price, provider)``."""
    return create_product


@pytest.fixture()
def new_variant():
    return add_variant


@pytest.fixture()
def checkout_for():
    """Factory for CheckoutRequests with a default address and urls."""
    return checkout_request
