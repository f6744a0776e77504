"""Tests for the Product aggregate: creation, variants, images and provider bindings."""

import json

import pytest
from marketplace.catalogue.events import ProductCreated, ProductImageAdded, VariantAdded
from marketplace.catalogue.product import MANUAL_PROVIDER, FulfillmentConfig, Product
from protean.exceptions import ValidationError


def _make_product(**overrides):
    defaults = {"name": "Sunrise Tee", "price": 20.0}
    defaults.update(overrides)
    return Product.create(**defaults)


class TestProductCreation:
    def test_defaults_to_manual_fulfillment(self):
        product = _make_product()
        assert product.fulfillment_provider == MANUAL_PROVIDER
        assert product.currency == "USD"
        assert product.created_at is not None

    def test_records_provider_binding(self):
        product = _make_product(fulfillment_provider="printful", external_product_id="pf-71")
        assert product.fulfillment_provider == "printful"
        assert product.external_product_id == "pf-71"

    def test_currency_is_uppercased(self):
        product = _make_product(currency="eur")
        assert product.currency == "EUR"

    def test_rejects_malformed_currency(self):
        with pytest.raises(ValidationError):
            _make_product(currency="EURO")

    def test_rejects_negative_price(self):
        with pytest.raises(ValidationError):
            _make_product(price=-1.0)

    def test_raises_product_created(self):
        product = _make_product()
        assert len(product._events) == 1
        event = product._events[0]
        assert isinstance(event, ProductCreated)
        assert event.name == "Sunrise Tee"
        assert event.fulfillment_provider == MANUAL_PROVIDER


class TestVariants:
    def test_add_variant_returns_variant(self):
        product = _make_product()
        variant = product.add_variant(name="Black / M", price=22.0, sku="SUN-BLK-M")

        assert len(product.variants) == 1
        assert variant.name == "Black / M"
        assert variant.price == 22.0
        assert variant.currency == "USD"
        assert variant.in_stock is True

    def test_variant_attributes_stored_as_json(self):
        product = _make_product()
        variant = product.add_variant(name="Black / M", attributes={"color": "black", "size": "M"})
        assert json.loads(variant.attributes) == {"color": "black", "size": "M"}

    def test_variant_carries_fulfillment_config(self):
        product = _make_product(fulfillment_provider="gelato")
        config = FulfillmentConfig(
            external_variant_id="ext-1",
            provider_data=json.dumps({"catalogProductId": "apparel_tee"}),
            design_files=json.dumps([{"url": "https://cdn.example.com/a.png", "placement": "front"}]),
        )
        variant = product.add_variant(name="White / S", fulfillment_config=config)

        assert variant.fulfillment_config.external_variant_id == "ext-1"
        assert variant.fulfillment_config.provider_data_dict() == {"catalogProductId": "apparel_tee"}
        assert variant.fulfillment_config.design_file_list()[0]["placement"] == "front"

    def test_fulfillment_config_rejects_invalid_json(self):
        with pytest.raises(ValidationError):
            FulfillmentConfig(external_variant_id="ext-1", provider_data="{not json")

    def test_raises_variant_added(self):
        product = _make_product()
        product._events.clear()
        variant = product.add_variant(name="Black / M", price=22.0)

        assert len(product._events) == 1
        event = product._events[0]
        assert isinstance(event, VariantAdded)
        assert event.variant_id == variant.id


class TestFindVariant:
    def test_returns_first_variant_when_none_requested(self):
        product = _make_product()
        first = product.add_variant(name="First")
        product.add_variant(name="Second")
        assert product.find_variant().id == first.id

    def test_returns_requested_variant(self):
        product = _make_product()
        product.add_variant(name="First")
        second = product.add_variant(name="Second")
        assert product.find_variant(second.id).name == "Second"

    def test_unknown_variant_is_none(self):
        product = _make_product()
        product.add_variant(name="First")
        assert product.find_variant("missing") is None

    def test_product_without_variants(self):
        assert _make_product().find_variant() is None


class TestImages:
    def test_primary_image_is_lowest_display_order(self):
        product = _make_product()
        product.add_image("https://cdn.example.com/back.png", display_order=2)
        product.add_image("https://cdn.example.com/front.png", display_order=0)
        assert product.primary_image_url == "https://cdn.example.com/front.png"

    def test_display_order_defaults_to_position(self):
        product = _make_product()
        product.add_image("https://cdn.example.com/1.png")
        second = product.add_image("https://cdn.example.com/2.png")
        assert second.display_order == 1

    def test_no_images(self):
        assert _make_product().primary_image_url is None

    def test_raises_image_added(self):
        product = _make_product()
        product._events.clear()
        product.add_image("https://cdn.example.com/1.png")
        assert isinstance(product._events[0], ProductImageAdded)
