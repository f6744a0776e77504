"""FastAPI endpoints for the product catalogue, its collections and provider sync."""

import json

from fastapi import APIRouter, Query
from protean.utils.globals import current_domain

from marketplace.api.schemas import (
    AddProductImageRequest,
    AddVariantRequest,
    CollectionListResponse,
    CollectionOut,
    CollectionResponse,
    CreateProductRequest,
    FeaturedProductsResponse,
    ImageIdResponse,
    ProductIdResponse,
    ProductImageOut,
    ProductListResponse,
    ProductOut,
    SyncResponse,
    SyncStatusResponse,
    VariantIdResponse,
    VariantOut,
)
from marketplace.catalogue.collections import COLLECTIONS, Collection
from marketplace.catalogue.management import AddProductImage, AddVariant, CreateProduct
from marketplace.catalogue.product import Product
from marketplace.catalogue.sync import ProductSync, get_sync_status
from marketplace.fulfillment import get_providers

product_router = APIRouter(prefix="/products", tags=["products"])
collection_router = APIRouter(prefix="/collections", tags=["collections"])
sync_router = APIRouter(tags=["sync"])


def _product_out(product: Product) -> ProductOut:
    variants = []
    for variant in product.variants:
        config = variant.fulfillment_config
        variants.append(
            VariantOut(
                id=str(variant.id),
                name=variant.name,
                sku=variant.sku,
                price=variant.price,
                currency=variant.currency,
                attributes=variant.attributes,
                in_stock=variant.in_stock,
                fulfillment_config=(
                    {
                        "externalVariantId": config.external_variant_id,
                        "externalProductId": config.external_product_id,
                        "providerData": config.provider_data_dict(),
                        "designFiles": config.design_file_list(),
                    }
                    if config
                    else None
                ),
            )
        )

    return ProductOut(
        id=str(product.id),
        name=product.name,
        description=product.description,
        price=product.price,
        currency=product.currency,
        category=product.category,
        brand=product.brand,
        fulfillment_provider=product.fulfillment_provider,
        external_product_id=product.external_product_id,
        variants=variants,
        images=[
            ProductImageOut(id=str(i.id), url=i.url, alt_text=i.alt_text, display_order=i.display_order or 0)
            for i in sorted(product.images, key=lambda i: i.display_order or 0)
        ],
    )


@product_router.get("", response_model=ProductListResponse)
async def list_products(
    category: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> ProductListResponse:
    products, total = current_domain.repository_for(Product).list_products(
        category=category, limit=limit, offset=offset
    )
    return ProductListResponse(
        products=[_product_out(p) for p in products],
        total=total,
        limit=limit,
        offset=offset,
    )


@product_router.get("/featured", response_model=FeaturedProductsResponse)
async def featured_products(limit: int = Query(8, ge=1, le=20)) -> FeaturedProductsResponse:
    products = current_domain.repository_for(Product).find_featured(limit=limit)
    return FeaturedProductsResponse(products=[_product_out(p) for p in products])


@product_router.get("/search", response_model=list[ProductOut])
async def search_products(q: str = Query(..., min_length=1), limit: int = Query(20, ge=1, le=100)) -> list[ProductOut]:
    return [_product_out(p) for p in current_domain.repository_for(Product).search(q, limit=limit)]


@product_router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: str) -> ProductOut:
    return _product_out(current_domain.repository_for(Product).get(product_id))


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def create_product(body: CreateProductRequest) -> ProductIdResponse:
    command = CreateProduct(
        name=body.name,
        description=body.description,
        price=body.price,
        currency=body.currency,
        category=body.category,
        brand=body.brand,
        fulfillment_provider=body.fulfillment_provider,
        external_product_id=body.external_product_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.post("/{product_id}/variants", status_code=201, response_model=VariantIdResponse)
async def add_variant(product_id: str, body: AddVariantRequest) -> VariantIdResponse:
    config = body.fulfillment_config
    command = AddVariant(
        product_id=product_id,
        name=body.name,
        sku=body.sku,
        price=body.price,
        currency=body.currency,
        attributes=json.dumps(body.attributes) if body.attributes else None,
        in_stock=body.in_stock,
        external_variant_id=config.external_variant_id if config else None,
        external_product_id=config.external_product_id if config else None,
        provider_data=json.dumps(config.provider_data) if config and config.provider_data else None,
        design_files=(
            json.dumps([f.model_dump() for f in config.design_files]) if config and config.design_files else None
        ),
    )
    result = current_domain.process(command, asynchronous=False)
    return VariantIdResponse(variant_id=result)


@product_router.post("/{product_id}/images", status_code=201, response_model=ImageIdResponse)
async def add_image(product_id: str, body: AddProductImageRequest) -> ImageIdResponse:
    command = AddProductImage(
        product_id=product_id,
        url=body.url,
        alt_text=body.alt_text,
        display_order=body.display_order,
    )
    result = current_domain.process(command, asynchronous=False)
    return ImageIdResponse(image_id=result)


def _collection_out(collection: Collection) -> CollectionOut:
    return CollectionOut(
        slug=collection.slug,
        name=collection.name,
        description=collection.description,
        image=collection.image,
        badge=collection.badge,
        features=list(collection.features),
    )


@collection_router.get("", response_model=CollectionListResponse)
async def list_collections() -> CollectionListResponse:
    return CollectionListResponse(collections=[_collection_out(c) for c in COLLECTIONS])


@collection_router.get("/{slug}", response_model=CollectionResponse)
async def get_collection(slug: str) -> CollectionResponse:
    collection, products = current_domain.repository_for(Product).find_by_collection(slug)
    return CollectionResponse(collection=_collection_out(collection), products=[_product_out(p) for p in products])


@sync_router.post("/sync", response_model=SyncResponse)
async def sync_products() -> SyncResponse:
    """Import every registered provider's store products into the catalogue."""
    result = await ProductSync(get_providers()).run()
    return SyncResponse(status=result.status, count=result.count)


@sync_router.get("/sync-status", response_model=SyncStatusResponse)
async def sync_status() -> SyncStatusResponse:
    record = get_sync_status()
    return SyncStatusResponse(
        status=record.status,
        last_success_at=record.last_success_at,
        last_error_at=record.last_error_at,
        error_message=record.error_message,
    )
