"""Product aggregate root with Variant and ProductImage entities.

A product is fulfilled either by an external print-on-demand provider
(``fulfillment_provider`` names it) or locally (``"manual"``). Each variant
carries the provider binding needed to place an order for it; that binding
is only meaningful for the parent product's provider.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.domain import marketplace

MANUAL_PROVIDER = "manual"


@marketplace.value_object(part_of="Product")
class FulfillmentConfig:
    """Provider-side identifiers and artwork for one variant.

    ``provider_data`` and ``design_files`` are JSON documents; their shape is
    owned by the provider adapter that consumes them.
    """

    external_variant_id: String(max_length=100)
    external_product_id: String(max_length=100)
    provider_data: Text()
    design_files: Text()

    @invariant.post
    def json_fields_must_be_valid(self):
        for field_name in ("provider_data", "design_files"):
            raw = getattr(self, field_name)
            if not raw:
                continue
            try:
                json.loads(raw)
            except (json.JSONDecodeError, TypeError):
                raise ValidationError({field_name: [f"{field_name} must be valid JSON"]}) from None

    def provider_data_dict(self) -> dict:
        return json.loads(self.provider_data) if self.provider_data else {}

    def design_file_list(self) -> list[dict]:
        return json.loads(self.design_files) if self.design_files else []


@marketplace.entity(part_of="Product")
class Variant:
    """A purchasable option of a product (size, colour, ...)."""

    name: String(required=True, max_length=255)
    sku: String(max_length=100)
    price: Float(min_value=0.0)
    currency: String(max_length=3)
    attributes: Text()
    fulfillment_config: ValueObject(FulfillmentConfig)
    in_stock: Boolean(default=True)


@marketplace.entity(part_of="Product")
class ProductImage:
    url: String(required=True, max_length=500)
    alt_text: String(max_length=255)
    display_order: Integer(default=0)


@marketplace.aggregate
class Product:
    """Product aggregate root."""

    name: String(required=True, max_length=255)
    description: Text()
    price: Float(required=True, min_value=0.0)
    currency: String(max_length=3, default="USD")
    category: String(max_length=100)
    brand: String(max_length=100)
    fulfillment_provider: String(max_length=50, default=MANUAL_PROVIDER)
    external_product_id: String(max_length=100)
    variants: HasMany(Variant)
    images: HasMany(ProductImage)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def currency_must_be_iso_code(self):
        if self.currency and len(self.currency) != 3:
            raise ValidationError({"currency": [f"Currency must be a 3-letter code, got '{self.currency}'"]})

    @classmethod
    def create(
        cls,
        name,
        price,
        currency="USD",
        description=None,
        category=None,
        brand=None,
        fulfillment_provider=None,
        external_product_id=None,
        product_id=None,
    ):
        from marketplace.catalogue.events import ProductCreated

        now = datetime.now(UTC)
        identity = {"id": product_id} if product_id else {}
        product = cls(
            **identity,
            name=name,
            price=price,
            currency=(currency or "USD").upper(),
            description=description,
            category=category,
            brand=brand,
            fulfillment_provider=fulfillment_provider or MANUAL_PROVIDER,
            external_product_id=external_product_id,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductCreated(
                product_id=product.id,
                name=name,
                price=product.price,
                currency=product.currency,
                fulfillment_provider=product.fulfillment_provider,
                created_at=now,
            )
        )
        return product

    def add_variant(
        self,
        name,
        price=None,
        currency=None,
        sku=None,
        attributes=None,
        fulfillment_config=None,
        in_stock=True,
    ):
        from marketplace.catalogue.events import VariantAdded

        attrs_json = json.dumps(attributes) if isinstance(attributes, dict) else attributes

        variant = Variant(
            name=name,
            sku=sku,
            price=price,
            currency=(currency or self.currency).upper(),
            attributes=attrs_json,
            fulfillment_config=fulfillment_config,
            in_stock=in_stock,
        )
        self.add_variants(variant)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            VariantAdded(
                product_id=self.id,
                variant_id=variant.id,
                name=name,
                price=price,
                currency=variant.currency,
            )
        )
        return variant

    def update_listing(self, name, price, currency=None, description=None):
        """Refresh the provider-owned listing fields of an imported product."""
        self.name = name
        self.price = price
        self.currency = (currency or self.currency).upper()
        self.description = description
        self.updated_at = datetime.now(UTC)

    def update_variant(self, variant, name, price, currency=None, sku=None, attributes=None, fulfillment_config=None):
        variant.name = name
        variant.price = price
        variant.currency = (currency or self.currency).upper()
        variant.sku = sku
        variant.attributes = json.dumps(attributes) if isinstance(attributes, dict) else attributes
        variant.fulfillment_config = fulfillment_config
        self.add_variants(variant)
        self.updated_at = datetime.now(UTC)
        return variant

    def find_variant_by_external_id(self, external_variant_id):
        return next(
            (
                v
                for v in self.variants
                if v.fulfillment_config and v.fulfillment_config.external_variant_id == external_variant_id
            ),
            None,
        )

    def add_image(self, url, alt_text=None, display_order=None):
        from marketplace.catalogue.events import ProductImageAdded

        if display_order is None:
            display_order = len(self.images)

        image = ProductImage(url=url, alt_text=alt_text, display_order=display_order)
        self.add_images(image)
        self.updated_at = datetime.now(UTC)

        self.raise_(ProductImageAdded(product_id=self.id, image_id=image.id, url=url))
        return image

    def find_variant(self, variant_id=None):
        """Return the requested variant, or the first one when none is requested.

        Returns ``None`` when the product has no variants or the id is unknown.
        """
        if not self.variants:
            return None
        if variant_id is None:
            return self.variants[0]
        return next((v for v in self.variants if str(v.id) == str(variant_id)), None)

    @property
    def primary_image_url(self):
        if not self.images:
            return None
        return min(self.images, key=lambda i: i.display_order or 0).url
