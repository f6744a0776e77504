"""Grouping cart items into per-provider buckets.

Shared by quoting and checkout: both re-read the catalogue and route every
line to the provider that fulfils its product ("manual" when none).
"""

import json
from collections.abc import Callable
from dataclasses import dataclass, field

from protean.exceptions import ObjectNotFoundError

from marketplace.catalogue.product import MANUAL_PROVIDER, Product, Variant
from marketplace.checkout.models import CartItem, ShippingAddress
from marketplace.fulfillment.port import DesignFile, FulfillmentItem, Recipient
from marketplace.utils.money import round_money


@dataclass
class ResolvedItem:
    cart_item: CartItem
    product: Product
    variant: Variant | None
    unit_price: float
    currency: str

    @property
    def line_total(self) -> float:
        return self.unit_price * self.cart_item.quantity

    def snapshot(self, provider: str) -> dict:
        """Line item data frozen onto the order at creation time."""
        config = self.variant.fulfillment_config if self.variant else None
        return {
            "product_id": str(self.product.id),
            "variant_id": str(self.variant.id) if self.variant else None,
            "product_name": self.product.name,
            "variant_name": self.variant.name if self.variant else None,
            "description": self.product.description,
            "image_url": self.product.primary_image_url,
            "quantity": self.cart_item.quantity,
            "unit_price": self.unit_price,
            "currency": self.currency,
            "attributes": self.variant.attributes if self.variant else None,
            "fulfillment_provider": provider,
            "fulfillment_config": json.dumps(config.to_dict()) if config else None,
        }


@dataclass
class ProviderBucket:
    provider: str
    items: list[ResolvedItem] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def subtotal(self) -> float:
        return round_money(sum(i.line_total for i in self.items))


def resolve_buckets(
    items: list[CartItem],
    find_product: Callable[[str], Product | None],
) -> tuple[dict[str, ProviderBucket], float]:
    """Resolve every cart line against the catalogue and group by provider.

    Buckets keep the order in which providers first appear in the cart.
    Unit price is the variant's price when it has one, else the product's.
    """
    buckets: dict[str, ProviderBucket] = {}
    subtotal = 0.0

    for item in items:
        product = find_product(item.product_id)
        if product is None:
            raise ObjectNotFoundError(f"Product not found: {item.product_id}")

        variant = product.find_variant(item.variant_id)
        if item.variant_id is not None and variant is None:
            raise ObjectNotFoundError(f"Variant not found: {item.variant_id}")

        unit_price = variant.price if variant is not None and variant.price is not None else product.price
        currency = (variant.currency if variant is not None and variant.currency else product.currency) or "USD"

        resolved = ResolvedItem(
            cart_item=item,
            product=product,
            variant=variant,
            unit_price=unit_price,
            currency=currency,
        )
        subtotal += resolved.line_total

        provider = product.fulfillment_provider or MANUAL_PROVIDER
        buckets.setdefault(provider, ProviderBucket(provider=provider)).items.append(resolved)

    return buckets, round_money(subtotal)


def build_recipient(address: ShippingAddress) -> Recipient:
    return Recipient(
        name=f"{address.first_name} {address.last_name}".strip(),
        company=address.company_name,
        address1=address.address_line1,
        address2=address.address_line2,
        city=address.city,
        state_code=address.state,
        country_code=address.country.upper(),
        zip=address.post_code,
        phone=address.phone,
        email=address.email,
    )


def to_fulfillment_items(bucket: ProviderBucket) -> tuple[FulfillmentItem, ...]:
    """Express a bucket's lines in the provider's own identifiers."""
    fulfillment_items = []
    for resolved in bucket.items:
        config = resolved.variant.fulfillment_config if resolved.variant else None
        provider_data = config.provider_data_dict() if config else {}
        catalog_product_id = provider_data.get("catalogProductId")
        catalog_variant_id = provider_data.get("catalogVariantId")

        fulfillment_items.append(
            FulfillmentItem(
                quantity=resolved.cart_item.quantity,
                external_variant_id=(config.external_variant_id if config else None) or None,
                catalog_product_id=str(catalog_product_id) if catalog_product_id is not None else None,
                catalog_variant_id=str(catalog_variant_id) if catalog_variant_id is not None else None,
                files=tuple(
                    DesignFile(url=f["url"], type="default", placement=f.get("placement"))
                    for f in (config.design_file_list() if config else [])
                ),
            )
        )
    return tuple(fulfillment_items)
