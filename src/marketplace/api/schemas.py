"""Pydantic request/response schemas for the Marketplace API.

The storefront speaks camelCase JSON; field names here stay snake_case and
are aliased on the wire.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


_ADDRESS_EXAMPLE = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "addressLine1": "12 Analytical Row",
    "city": "Los Angeles",
    "state": "CA",
    "postCode": "90001",
    "country": "US",
    "email": "ada@example.com",
}


# --- Checkout Request Schemas ---


class CartItemIn(CamelModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(1, ge=1)


class ShippingAddressIn(CamelModel):
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    company_name: str | None = Field(None, max_length=200)
    address_line1: str = Field(..., min_length=1, max_length=255)
    address_line2: str | None = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    post_code: str = Field("", max_length=20)
    country: str = Field(..., min_length=2, max_length=2)
    email: str = Field(..., min_length=3, max_length=255)
    phone: str | None = Field(None, max_length=50)


class QuoteRequest(CamelModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"productId": "prod-001", "variantId": "var-001", "quantity": 2}],
                    "shippingAddress": _ADDRESS_EXAMPLE,
                }
            ]
        }
    }

    items: list[CartItemIn] = Field(..., min_length=1)
    shipping_address: ShippingAddressIn


class CheckoutRequestIn(CamelModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"productId": "prod-001", "quantity": 1}],
                    "shippingAddress": _ADDRESS_EXAMPLE,
                    "selectedRates": {"printful": "STANDARD"},
                    "shippingCost": 4.99,
                    "successUrl": "https://shop.example.com/checkout/success",
                    "cancelUrl": "https://shop.example.com/cart",
                }
            ]
        }
    }

    items: list[CartItemIn] = Field(..., min_length=1)
    shipping_address: ShippingAddressIn
    selected_rates: dict[str, str] = Field(default_factory=dict)
    shipping_cost: float = Field(0.0, ge=0)
    success_url: str
    cancel_url: str


class CleanupRequest(CamelModel):
    model_config = {"json_schema_extra": {"examples": [{"maxAgeHours": 24}]}}

    max_age_hours: int = Field(24, ge=0)


# --- Checkout Response Schemas ---


class ShippingOptionOut(CamelModel):
    provider: str
    rate_id: str
    rate_name: str
    shipping_cost: float
    currency: str
    min_delivery_days: int | None = None
    max_delivery_days: int | None = None


class ProviderBreakdownOut(CamelModel):
    provider: str
    item_count: int
    subtotal: float
    selected_shipping: ShippingOptionOut
    available_rates: list[ShippingOptionOut]


class DeliveryWindowOut(CamelModel):
    min_days: int
    max_days: int


class QuoteResponse(CamelModel):
    subtotal: float
    shipping_cost: float
    total: float
    currency: str
    provider_breakdown: list[ProviderBreakdownOut]
    estimated_delivery: DeliveryWindowOut | None = None


class CheckoutResponse(CamelModel):
    checkout_session_id: str
    checkout_url: str
    order_id: str


class CleanupErrorOut(CamelModel):
    order_id: str
    provider: str
    error: str


class CleanupResponse(CamelModel):
    total_processed: int
    cancelled: int
    partially_cancelled: int
    failed: int
    errors: list[CleanupErrorOut]


# --- Order Response Schemas ---


class OrderItemOut(CamelModel):
    id: str
    product_id: str
    variant_id: str | None = None
    product_name: str
    variant_name: str | None = None
    image_url: str | None = None
    quantity: int
    unit_price: float
    currency: str = "USD"
    attributes: str | None = None
    fulfillment_provider: str | None = None


class DeliveryEstimateOut(CamelModel):
    min_days: int | None = None
    max_days: int | None = None
    estimated_date: datetime | None = None


class OrderOut(CamelModel):
    id: str
    user_id: str
    status: str
    total_amount: float
    currency: str
    checkout_session_id: str | None = None
    checkout_provider: str | None = None
    draft_order_ids: dict[str, str]
    shipping_methods: dict[str, str]
    fulfillment_order_id: str | None = None
    fulfillment_reference_id: str | None = None
    tracking_info: list[dict]
    delivery_estimate: DeliveryEstimateOut | None = None
    shipping_address: dict | None = None
    items: list[OrderItemOut]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderListResponse(CamelModel):
    orders: list[OrderOut]
    total: int
    limit: int
    offset: int


# --- Product Request Schemas ---


class CreateProductRequest(CamelModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Mountain Sunrise Tee",
                    "description": "Soft cotton tee with a printed sunrise.",
                    "price": 24.0,
                    "currency": "USD",
                    "category": "apparel",
                    "brand": "Trailhead Prints",
                    "fulfillmentProvider": "printful",
                    "externalProductId": "pf-71",
                }
            ]
        }
    }

    name: str = Field(..., max_length=255)
    description: str | None = None
    price: float = Field(..., ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    category: str | None = Field(None, max_length=100)
    brand: str | None = Field(None, max_length=100)
    fulfillment_provider: str | None = Field(None, max_length=50)
    external_product_id: str | None = Field(None, max_length=100)


class DesignFileIn(CamelModel):
    url: str
    placement: str | None = None


class FulfillmentConfigIn(CamelModel):
    external_variant_id: str | None = Field(None, max_length=100)
    external_product_id: str | None = Field(None, max_length=100)
    provider_data: dict = Field(default_factory=dict)
    design_files: list[DesignFileIn] = Field(default_factory=list)


class AddVariantRequest(CamelModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Black / M",
                    "sku": "SUNRISE-BLK-M",
                    "price": 26.0,
                    "attributes": {"color": "black", "size": "M"},
                    "fulfillmentConfig": {
                        "externalVariantId": "4017",
                        "providerData": {"catalogProductId": 71, "catalogVariantId": 4017},
                        "designFiles": [{"url": "https://cdn.example.com/sunrise.png", "placement": "front"}],
                    },
                }
            ]
        }
    }

    name: str = Field(..., max_length=255)
    sku: str | None = Field(None, max_length=100)
    price: float | None = Field(None, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    attributes: dict | None = None
    in_stock: bool = True
    fulfillment_config: FulfillmentConfigIn | None = None


class AddProductImageRequest(CamelModel):
    url: str = Field(..., max_length=500)
    alt_text: str | None = Field(None, max_length=255)
    display_order: int | None = None


# --- Product Response Schemas ---


class ProductIdResponse(CamelModel):
    product_id: str


class VariantIdResponse(CamelModel):
    variant_id: str


class ImageIdResponse(CamelModel):
    image_id: str


class VariantOut(CamelModel):
    id: str
    name: str
    sku: str | None = None
    price: float | None = None
    currency: str | None = None
    attributes: str | None = None
    in_stock: bool = True
    fulfillment_config: dict | None = None


class ProductImageOut(CamelModel):
    id: str
    url: str
    alt_text: str | None = None
    display_order: int = 0


class ProductOut(CamelModel):
    id: str
    name: str
    description: str | None = None
    price: float
    currency: str
    category: str | None = None
    brand: str | None = None
    fulfillment_provider: str
    external_product_id: str | None = None
    variants: list[VariantOut]
    images: list[ProductImageOut]


class ProductListResponse(CamelModel):
    products: list[ProductOut]
    total: int
    limit: int
    offset: int


class FeaturedProductsResponse(CamelModel):
    products: list[ProductOut]


# --- Collection Schemas ---


class CollectionOut(CamelModel):
    slug: str
    name: str
    description: str | None = None
    image: str | None = None
    badge: str | None = None
    features: list[str] = []


class CollectionListResponse(CamelModel):
    collections: list[CollectionOut]


class CollectionResponse(CamelModel):
    collection: CollectionOut
    products: list[ProductOut]


# --- Sync Schemas ---


class SyncResponse(CamelModel):
    status: str
    count: int | None = None


class SyncStatusResponse(CamelModel):
    status: str
    last_success_at: datetime | None = None
    last_error_at: datetime | None = None
    error_message: str | None = None


# --- Shared ---


class WebhookResponse(CamelModel):
    received: bool = True
