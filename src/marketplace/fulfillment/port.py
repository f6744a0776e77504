"""Fulfillment provider port (abstract interface).

Every print-on-demand provider is adapted to this surface so the checkout
orchestrator and the sweeper can treat them uniformly. All remote calls are
coroutines; webhook helpers are synchronous.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class FulfillmentProviderError(Exception):
    """A provider rejected a request or could not be reached."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


@dataclass(frozen=True)
class Recipient:
    name: str
    address1: str
    city: str
    state_code: str
    country_code: str
    zip: str
    email: str
    company: str | None = None
    address2: str | None = None
    phone: str | None = None

    @property
    def first_name(self) -> str:
        return self.name.split(" ")[0] if self.name else ""

    @property
    def last_name(self) -> str:
        rest = " ".join(self.name.split(" ")[1:]) if self.name else ""
        return rest or self.first_name


@dataclass(frozen=True)
class DesignFile:
    url: str
    type: str = "default"
    placement: str | None = None


@dataclass(frozen=True)
class FulfillmentItem:
    """One line of a provider order, expressed in the provider's own ids."""

    quantity: int
    external_variant_id: str | None = None
    catalog_product_id: str | None = None
    catalog_variant_id: str | None = None
    files: tuple[DesignFile, ...] = ()


@dataclass(frozen=True)
class ShippingQuoteRequest:
    recipient: Recipient
    items: tuple[FulfillmentItem, ...]
    currency: str = "USD"


@dataclass(frozen=True)
class ShippingRate:
    id: str
    name: str
    rate: float
    currency: str
    min_delivery_days: int | None = None
    max_delivery_days: int | None = None


@dataclass(frozen=True)
class ShippingQuote:
    rates: tuple[ShippingRate, ...]
    currency: str


@dataclass(frozen=True)
class FulfillmentOrderRequest:
    """A draft order to be created at the provider.

    ``external_id`` is the local correlation id the provider echoes back in
    its webhooks.
    """

    external_id: str
    recipient: Recipient
    items: tuple[FulfillmentItem, ...]
    currency: str = "USD"
    shipping_method: str | None = None
    shipping_cost: float | None = None


@dataclass(frozen=True)
class FulfillmentOrderResult:
    id: str
    status: str


@dataclass(frozen=True)
class ProviderVariant:
    """A sellable variant as listed in the provider's store catalogue."""

    id: str
    name: str
    retail_price: float
    currency: str = "USD"
    sku: str | None = None
    size: str | None = None
    color: str | None = None
    catalog_product_id: str | None = None
    catalog_variant_id: str | None = None
    files: tuple[DesignFile, ...] = ()


@dataclass(frozen=True)
class ProviderProduct:
    source_id: str
    name: str
    variants: tuple[ProviderVariant, ...] = ()
    description: str | None = None
    thumbnail_url: str | None = None


@dataclass(frozen=True)
class FulfillmentWebhookEvent:
    """A provider notification normalised to the fields reconciliation needs."""

    event_type: str
    external_id: str | None = None
    provider_order_id: str | None = None
    status: str | None = None
    shipments: list[dict] = field(default_factory=list)
    min_delivery_days: int | None = None
    max_delivery_days: int | None = None


class FulfillmentProvider(ABC):
    """Abstract fulfillment provider interface."""

    name: str = ""

    @abstractmethod
    async def quote_order(self, request: ShippingQuoteRequest) -> ShippingQuote:
        """Return every shipping rate the provider offers for these items."""
        ...

    @abstractmethod
    async def create_order(self, request: FulfillmentOrderRequest) -> FulfillmentOrderResult:
        """Create a draft order. It is not produced until confirmed."""
        ...

    @abstractmethod
    async def cancel_order(self, order_id: str) -> FulfillmentOrderResult:
        """Cancel a draft. Fails once the provider has started production."""
        ...

    @abstractmethod
    async def confirm_order(self, order_id: str) -> FulfillmentOrderResult:
        """Release a draft for production after payment."""
        ...

    async def list_products(self) -> list[ProviderProduct]:
        """Products published in the provider's store, for catalogue sync.

        Providers without a store catalogue API have nothing to offer.
        """
        return []

    @abstractmethod
    def verify_webhook_signature(self, body: str, signature: str) -> bool:
        ...

    @abstractmethod
    def parse_webhook(self, body: str) -> FulfillmentWebhookEvent:
        ...
