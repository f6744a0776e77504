"""Application tests for catalogue commands and product queries."""

import json

import pytest
from marketplace.catalogue.management import AddProductImage, AddVariant, CreateProduct
from marketplace.catalogue.product import Product
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain


def _create_product(**overrides):
    defaults = {"name": "Sunrise Tee", "price": 20.0}
    defaults.update(overrides)
    return current_domain.process(CreateProduct(**defaults), asynchronous=False)


def _add_variant(product_id, **overrides):
    defaults = {"product_id": product_id, "name": "Black / M", "price": 22.0}
    defaults.update(overrides)
    return current_domain.process(AddVariant(**defaults), asynchronous=False)


def _repo():
    return current_domain.repository_for(Product)


class TestCreateProduct:
    def test_create_returns_id(self):
        product_id = _create_product(fulfillment_provider="printful", category="apparel")
        product = _repo().get(product_id)
        assert product.name == "Sunrise Tee"
        assert product.fulfillment_provider == "printful"
        assert product.category == "apparel"

    def test_defaults_to_manual(self):
        product = _repo().get(_create_product())
        assert product.fulfillment_provider == "manual"

    def test_missing_name(self):
        with pytest.raises(ValidationError):
            CreateProduct(price=10.0)


class TestAddVariant:
    def test_add_plain_variant(self):
        product_id = _create_product()
        variant_id = _add_variant(product_id, sku="SUN-BLK-M")

        product = _repo().get(product_id)
        assert len(product.variants) == 1
        assert product.variants[0].id == variant_id
        assert product.variants[0].fulfillment_config is None

    def test_add_variant_with_binding(self):
        product_id = _create_product(fulfillment_provider="printful")
        _add_variant(
            product_id,
            external_variant_id="4017",
            provider_data=json.dumps({"catalogProductId": 71, "catalogVariantId": 4017}),
            design_files=json.dumps([{"url": "https://cdn.example.com/sunrise.png", "placement": "front"}]),
            attributes=json.dumps({"size": "M"}),
        )

        variant = _repo().get(product_id).variants[0]
        assert variant.fulfillment_config.external_variant_id == "4017"
        assert variant.fulfillment_config.provider_data_dict()["catalogVariantId"] == 4017
        assert json.loads(variant.attributes) == {"size": "M"}

    def test_add_variant_to_unknown_product(self):
        with pytest.raises(ObjectNotFoundError):
            _add_variant("missing-product")


class TestAddProductImage:
    def test_add_image(self):
        product_id = _create_product()
        current_domain.process(
            AddProductImage(product_id=product_id, url="https://cdn.example.com/front.png", alt_text="Front"),
            asynchronous=False,
        )
        product = _repo().get(product_id)
        assert product.primary_image_url == "https://cdn.example.com/front.png"
        assert product.images[0].alt_text == "Front"


class TestProductQueries:
    def test_find_product(self):
        product_id = _create_product()
        assert _repo().find_product(product_id).name == "Sunrise Tee"
        assert _repo().find_product("missing") is None

    def test_list_products_by_category(self):
        _create_product(name="Tee", category="apparel")
        _create_product(name="Hoodie", category="apparel")
        _create_product(name="Poster", category="wall-art")

        products, total = _repo().list_products(category="apparel")
        assert total == 2
        assert {p.name for p in products} == {"Tee", "Hoodie"}

    def test_list_products_paging(self):
        for i in range(5):
            _create_product(name=f"Product {i}")
        page, total = _repo().list_products(limit=2, offset=4)
        assert total == 5
        assert len(page) == 1

    def test_search_matches_name_description_and_brand(self):
        _create_product(name="Sunrise Tee")
        _create_product(name="Canvas", description="A sunrise over the mountains")
        _create_product(name="Mug", brand="Sunrise Studio")
        _create_product(name="Poster")

        names = [p.name for p in _repo().search("SUNRISE")]
        assert names == ["Canvas", "Mug", "Sunrise Tee"]

    def test_search_respects_limit(self):
        for i in range(3):
            _create_product(name=f"Tee {i}")
        assert len(_repo().search("tee", limit=2)) == 2

    def test_blank_search(self):
        _create_product()
        assert _repo().search("   ") == []

    def test_queries_see_the_whole_catalogue(self):
        for i in range(120):
            _create_product(name=f"Tee {i:03d}")

        products, total = _repo().list_products(limit=200)
        assert total == 120
        assert len(products) == 120
        assert len(_repo().search("tee", limit=150)) == 120


class TestFeaturedProducts:
    def test_newest_first_up_to_limit(self):
        for i in range(10):
            _create_product(name=f"Product {i}")

        featured = _repo().find_featured()
        assert len(featured) == 8
        created = [p.created_at for p in featured]
        assert created == sorted(created, reverse=True)

    def test_custom_limit(self):
        for i in range(3):
            _create_product(name=f"Product {i}")
        assert len(_repo().find_featured(limit=2)) == 2


class TestCollections:
    def test_collection_lists_its_category(self):
        _create_product(name="Oversized Tee", category="Men")
        _create_product(name="Crop Top", category="Women")

        collection, products = _repo().find_by_collection("men")

        assert collection.name == "Men"
        assert [p.name for p in products] == ["Oversized Tee"]

    def test_empty_collection(self):
        collection, products = _repo().find_by_collection("accessories")
        assert collection.badge == "Limited"
        assert products == []

    def test_unknown_slug(self):
        with pytest.raises(ObjectNotFoundError):
            _repo().find_by_collection("kids")
