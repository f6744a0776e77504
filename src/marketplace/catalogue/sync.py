"""Catalogue sync from fulfillment providers.

Every registered provider is asked for its store products concurrently; the
run fails as a whole if any provider cannot be listed. Each listed product
is then upserted under a stable id (``{provider}-product-{source_id}``) so
repeated runs refresh the same catalogue entries instead of duplicating
them. The outcome of the last run is kept in a single ``CatalogueSync``
record.
"""

import asyncio
import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from marketplace.catalogue.collections import SYNCED_CATEGORY
from marketplace.catalogue.product import FulfillmentConfig, Product
from marketplace.checkout.errors import ProviderCallFailed
from marketplace.domain import marketplace
from marketplace.fulfillment.port import FulfillmentProvider, FulfillmentProviderError, ProviderProduct, ProviderVariant

logger = structlog.get_logger(__name__)

SYNC_ID = "products"


class SyncState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    ERROR = "error"


@marketplace.aggregate
class CatalogueSync:
    status: String(choices=SyncState, default=SyncState.IDLE.value)
    last_success_at: DateTime()
    last_error_at: DateTime()
    error_message: Text()

    def start(self):
        self.status = SyncState.RUNNING.value

    def succeed(self):
        self.status = SyncState.IDLE.value
        self.last_success_at = datetime.now(UTC)
        self.error_message = None

    def fail(self, message):
        self.status = SyncState.ERROR.value
        self.last_error_at = datetime.now(UTC)
        self.error_message = message


@marketplace.command(part_of="Product")
class ImportProviderProduct:
    provider: String(required=True, max_length=50)
    source_id: String(required=True, max_length=100)
    name: String(required=True, max_length=255)
    description: Text()
    thumbnail_url: String(max_length=500)
    variants: Text(required=True)  # JSON list of variant listings


def imported_product_id(provider: str, source_id: str) -> str:
    return f"{provider}-product-{source_id}"


@marketplace.command_handler(part_of=Product)
class ImportProviderProductHandler:
    @handle(ImportProviderProduct)
    def import_product(self, command):
        listings = json.loads(command.variants)
        price = min((v["price"] for v in listings), default=0.0)
        currency = listings[0]["currency"] if listings else "USD"
        product_id = imported_product_id(command.provider, command.source_id)

        repo = current_domain.repository_for(Product)
        product = repo.find_product(product_id)
        if product is None:
            product = Product.create(
                name=command.name,
                price=price,
                currency=currency,
                description=command.description,
                category=SYNCED_CATEGORY,
                fulfillment_provider=command.provider,
                external_product_id=command.source_id,
                product_id=product_id,
            )
        else:
            product.update_listing(command.name, price, currency=currency, description=command.description)

        for listing in listings:
            config = FulfillmentConfig(
                external_variant_id=listing["id"],
                external_product_id=command.source_id,
                provider_data=json.dumps(listing["provider_data"]),
                design_files=json.dumps(listing["design_files"]),
            )
            fields = {
                "name": listing["name"],
                "price": listing["price"],
                "currency": listing["currency"],
                "sku": listing.get("sku"),
                "attributes": listing["attributes"],
                "fulfillment_config": config,
            }
            existing = product.find_variant_by_external_id(listing["id"])
            if existing is None:
                product.add_variant(**fields)
            else:
                product.update_variant(existing, **fields)

        if command.thumbnail_url and not product.images:
            product.add_image(url=command.thumbnail_url, alt_text=command.name)

        repo.add(product)
        return str(product.id)


def _variant_listing(variant: ProviderVariant) -> dict:
    provider_data = {"syncVariantId": variant.id}
    if variant.catalog_product_id is not None:
        provider_data["catalogProductId"] = variant.catalog_product_id
    if variant.catalog_variant_id is not None:
        provider_data["catalogVariantId"] = variant.catalog_variant_id

    attributes = {"size": variant.size or "One Size"}
    if variant.color:
        attributes["color"] = variant.color

    return {
        "id": variant.id,
        "name": variant.name,
        "sku": variant.sku,
        "price": variant.retail_price,
        "currency": variant.currency,
        "attributes": attributes,
        "provider_data": provider_data,
        "design_files": [{"url": f.url, "placement": f.placement} for f in variant.files],
    }


@dataclass(frozen=True)
class SyncResult:
    status: str
    count: int


def get_sync_status() -> CatalogueSync:
    """The last recorded sync outcome; idle when no sync has run yet."""
    try:
        return current_domain.repository_for(CatalogueSync).get(SYNC_ID)
    except ObjectNotFoundError:
        return CatalogueSync(id=SYNC_ID)


class ProductSync:
    def __init__(self, providers: Mapping[str, FulfillmentProvider]) -> None:
        self.providers = providers

    async def run(self) -> SyncResult:
        if not self.providers:
            logger.info("No providers configured, skipping sync")
            return SyncResult(status="completed", count=0)

        repo = current_domain.repository_for(CatalogueSync)
        record = get_sync_status()
        record.start()
        repo.add(record)

        names = list(self.providers)
        logger.info("Catalogue sync started", providers=names)
        try:
            catalogues = await asyncio.gather(*(self.providers[name].list_products() for name in names))
        except FulfillmentProviderError as exc:
            record.fail(str(exc))
            repo.add(record)
            logger.warning("Catalogue sync failed", provider=exc.provider, error=str(exc))
            raise ProviderCallFailed(f"Sync failed: {exc}", provider=exc.provider) from exc

        count = 0
        for name, products in zip(names, catalogues, strict=True):
            count += self._import(name, products)

        record.succeed()
        repo.add(record)
        logger.info("Catalogue sync complete", count=count)
        return SyncResult(status="completed", count=count)

    def _import(self, provider: str, products: list[ProviderProduct]) -> int:
        imported = 0
        for product in products:
            command = ImportProviderProduct(
                provider=provider,
                source_id=product.source_id,
                name=product.name,
                description=product.description,
                thumbnail_url=product.thumbnail_url,
                variants=json.dumps([_variant_listing(v) for v in product.variants]),
            )
            try:
                current_domain.process(command, asynchronous=False)
            except ValidationError as exc:
                logger.warning("Skipping product", provider=provider, source_id=product.source_id, error=str(exc))
                continue
            imported += 1

        logger.info("Provider products imported", provider=provider, count=imported)
        return imported
