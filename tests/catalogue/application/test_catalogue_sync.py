"""Tests for importing provider store products into the catalogue."""

import asyncio
import json

import pytest
from marketplace.catalogue.collections import SYNCED_CATEGORY
from marketplace.catalogue.product import Product
from marketplace.catalogue.sync import ProductSync, SyncState, get_sync_status, imported_product_id
from marketplace.checkout.errors import ProviderCallFailed
from marketplace.fulfillment.fake_adapter import FakeFulfillmentProvider
from marketplace.fulfillment.port import DesignFile, ProviderProduct, ProviderVariant
from protean.utils.globals import current_domain


def _listed_product(source_id="501", name="Sunset Tee", prices=(24.0, 26.0)):
    return ProviderProduct(
        source_id=source_id,
        name=name,
        thumbnail_url="https://cdn.example.com/sunset.png",
        variants=tuple(
            ProviderVariant(
                id=f"{source_id}-{i}",
                name=f"Black / {size}",
                retail_price=price,
                size=size,
                color="Black",
                catalog_product_id="71",
                catalog_variant_id=f"40{i}",
                files=(DesignFile(url="https://cdn.example.com/art.png", placement="front"),),
            )
            for i, (size, price) in enumerate(zip(("M", "L"), prices, strict=False))
        ),
    )


def _sync(providers):
    return asyncio.run(ProductSync(providers).run())


def _product(provider, source_id):
    return current_domain.repository_for(Product).get(imported_product_id(provider, source_id))


@pytest.fixture()
def printful():
    provider = FakeFulfillmentProvider("printful")
    provider.configure(catalogue=[_listed_product(), _listed_product(source_id="502", name="Dawn Hoodie")])
    return provider


@pytest.fixture()
def gelato():
    return FakeFulfillmentProvider("gelato")


class TestProductSync:
    def test_imports_every_listed_product(self, printful, gelato):
        result = _sync({"printful": printful, "gelato": gelato})

        assert (result.status, result.count) == ("completed", 2)
        assert len(printful.calls_to("list_products")) == 1
        assert len(gelato.calls_to("list_products")) == 1

    def test_imported_product_is_fulfilled_by_its_provider(self, printful):
        _sync({"printful": printful})

        product = _product("printful", "501")
        assert product.fulfillment_provider == "printful"
        assert product.external_product_id == "501"
        assert product.category == SYNCED_CATEGORY
        assert product.price == 24.0
        assert product.primary_image_url == "https://cdn.example.com/sunset.png"

    def test_variants_carry_provider_binding(self, printful):
        _sync({"printful": printful})

        variant = _product("printful", "501").find_variant_by_external_id("501-0")
        assert variant.price == 24.0
        assert json.loads(variant.attributes) == {"size": "M", "color": "Black"}
        assert variant.fulfillment_config.provider_data_dict() == {
            "syncVariantId": "501-0",
            "catalogProductId": "71",
            "catalogVariantId": "400",
        }
        assert variant.fulfillment_config.design_file_list() == [
            {"url": "https://cdn.example.com/art.png", "placement": "front"}
        ]

    def test_resync_updates_instead_of_duplicating(self, printful):
        _sync({"printful": printful})
        printful.configure(catalogue=[_listed_product(name="Sunset Tee v2", prices=(22.0, 30.0))])

        _sync({"printful": printful})

        product = _product("printful", "501")
        assert product.name == "Sunset Tee v2"
        assert product.price == 22.0
        assert len(product.variants) == 2
        assert len(product.images) == 1
        assert product.find_variant_by_external_id("501-1").price == 30.0

    def test_no_providers(self):
        assert _sync({}).count == 0
        assert get_sync_status().status == SyncState.IDLE.value

    def test_failing_provider_fails_the_run(self, printful, gelato):
        gelato.configure(should_succeed=False, failure_reason="Gelato is down", operations=("list",))

        with pytest.raises(ProviderCallFailed) as exc:
            _sync({"printful": printful, "gelato": gelato})

        assert exc.value.provider == "gelato"
        products, total = current_domain.repository_for(Product).list_products()
        assert total == 0

    def test_providers_are_listed_concurrently(self):
        printful_started, gelato_started = asyncio.Event(), asyncio.Event()

        class Rendezvous(FakeFulfillmentProvider):
            def __init__(self, name, started, partner_started):
                super().__init__(name)
                self.started = started
                self.partner_started = partner_started

            async def list_products(self):
                self.started.set()
                await asyncio.wait_for(self.partner_started.wait(), timeout=2)
                return await super().list_products()

        providers = {
            "printful": Rendezvous("printful", printful_started, gelato_started),
            "gelato": Rendezvous("gelato", gelato_started, printful_started),
        }
        assert _sync(providers).status == "completed"


class TestSyncStatus:
    def test_idle_before_any_run(self):
        status = get_sync_status()
        assert status.status == SyncState.IDLE.value
        assert status.last_success_at is None

    def test_success_is_recorded(self, printful):
        _sync({"printful": printful})

        status = get_sync_status()
        assert status.status == SyncState.IDLE.value
        assert status.last_success_at is not None
        assert status.error_message is None

    def test_failure_is_recorded(self, printful):
        printful.configure(should_succeed=False, failure_reason="Printful is down", operations=("list",))

        with pytest.raises(ProviderCallFailed):
            _sync({"printful": printful})

        status = get_sync_status()
        assert status.status == SyncState.ERROR.value
        assert status.last_error_at is not None
        assert "Printful is down" in status.error_message
