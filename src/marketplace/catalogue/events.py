"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Product")
class ProductCreated:
    """A new product was added to the catalogue."""

    __version__ = 1

    product_id: Identifier(required=True)
    name: String(required=True)
    price: Float(required=True)
    currency: String(required=True)
    fulfillment_provider: String(required=True)
    created_at: DateTime(required=True)


@marketplace.event(part_of="Product")
class VariantAdded:
    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    name: String(required=True)
    price: Float()
    currency: String(required=True)


@marketplace.event(part_of="Product")
class ProductImageAdded:
    __version__ = 1

    product_id: Identifier(required=True)
    image_id: Identifier(required=True)
    url: String(required=True)
