"""Catalogue management — product, variant and image commands with their handler."""

import json

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.catalogue.product import FulfillmentConfig, Product
from marketplace.domain import marketplace


@marketplace.command(part_of="Product")
class CreateProduct:
    name: String(required=True, max_length=255)
    price: Float(required=True)
    currency: String(max_length=3, default="USD")
    description: Text()
    category: String(max_length=100)
    brand: String(max_length=100)
    fulfillment_provider: String(max_length=50)
    external_product_id: String(max_length=100)


@marketplace.command(part_of="Product")
class AddVariant:
    product_id: Identifier(required=True)
    name: String(required=True, max_length=255)
    sku: String(max_length=100)
    price: Float()
    currency: String(max_length=3)
    attributes: Text()
    in_stock: Boolean(default=True)
    external_variant_id: String(max_length=100)
    external_product_id: String(max_length=100)
    provider_data: Text()  # JSON object
    design_files: Text()  # JSON list of {url, placement}


@marketplace.command(part_of="Product")
class AddProductImage:
    product_id: Identifier(required=True)
    url: String(required=True, max_length=500)
    alt_text: String(max_length=255)
    display_order: Integer()


@marketplace.command_handler(part_of=Product)
class ManageProductsHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        product = Product.create(
            name=command.name,
            price=command.price,
            currency=command.currency,
            description=command.description,
            category=command.category,
            brand=command.brand,
            fulfillment_provider=command.fulfillment_provider,
            external_product_id=command.external_product_id,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(AddVariant)
    def add_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)

        config = None
        if command.external_variant_id or command.provider_data or command.design_files:
            config = FulfillmentConfig(
                external_variant_id=command.external_variant_id,
                external_product_id=command.external_product_id,
                provider_data=command.provider_data,
                design_files=command.design_files,
            )

        attrs = json.loads(command.attributes) if command.attributes else None

        variant = product.add_variant(
            name=command.name,
            price=command.price,
            currency=command.currency,
            sku=command.sku,
            attributes=attrs,
            fulfillment_config=config,
            in_stock=command.in_stock,
        )
        repo.add(product)
        return str(variant.id)

    @handle(AddProductImage)
    def add_image(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        image = product.add_image(url=command.url, alt_text=command.alt_text, display_order=command.display_order)
        repo.add(product)
        return str(image.id)
