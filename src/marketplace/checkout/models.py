"""Checkout inputs and outputs.

Quotes are ephemeral and never persisted. Amounts are in major currency
units.
"""

from dataclasses import dataclass, field

from protean.exceptions import ValidationError


@dataclass(frozen=True)
class CartItem:
    product_id: str
    quantity: int = 1
    variant_id: str | None = None

    def __post_init__(self):
        if self.quantity < 1:
            raise ValidationError({"quantity": [f"Quantity must be at least 1 for product {self.product_id}"]})


@dataclass(frozen=True)
class ShippingAddress:
    first_name: str
    last_name: str
    address_line1: str
    city: str
    state: str
    post_code: str
    country: str
    email: str
    address_line2: str | None = None
    company_name: str | None = None
    phone: str | None = None

    def __post_init__(self):
        errors = {}
        if not self.country or len(self.country) != 2:
            errors["country"] = ["Country must be a 2-letter code"]
        if not self.state:
            errors["state"] = ["State is required"]
        if not self.email:
            errors["email"] = ["Email is required"]
        if errors:
            raise ValidationError(errors)

    def as_dict(self) -> dict:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "company_name": self.company_name,
            "address_line1": self.address_line1,
            "address_line2": self.address_line2,
            "city": self.city,
            "state": self.state,
            "post_code": self.post_code,
            "country": self.country.upper(),
            "email": self.email,
            "phone": self.phone,
        }


@dataclass(frozen=True)
class ShippingOption:
    provider: str
    rate_id: str
    rate_name: str
    shipping_cost: float
    currency: str
    min_delivery_days: int | None = None
    max_delivery_days: int | None = None


@dataclass(frozen=True)
class ProviderBreakdown:
    provider: str
    item_count: int
    subtotal: float
    selected_shipping: ShippingOption
    available_rates: list[ShippingOption]


@dataclass(frozen=True)
class DeliveryWindow:
    min_days: int
    max_days: int


@dataclass(frozen=True)
class Quote:
    subtotal: float
    shipping_cost: float
    total: float
    currency: str
    provider_breakdown: list[ProviderBreakdown]
    estimated_delivery: DeliveryWindow | None = None


@dataclass(frozen=True)
class CheckoutRequest:
    user_id: str
    items: list[CartItem]
    address: ShippingAddress
    selected_rates: dict[str, str]
    shipping_cost: float
    success_url: str
    cancel_url: str


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    checkout_session_id: str
    checkout_url: str
    draft_order_ids: dict[str, str] = field(default_factory=dict)
