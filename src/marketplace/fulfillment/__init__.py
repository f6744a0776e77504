"""Fulfillment provider registry.

Maps provider names to adapter instances, populated once from settings:
a provider is registered only when its credentials are present. With
FULFILLMENT_ADAPTER=fake both names are bound to in-process fakes.
"""

import structlog

from marketplace.config import Settings, get_settings
from marketplace.fulfillment.fake_adapter import FakeFulfillmentProvider
from marketplace.fulfillment.port import FulfillmentProvider

logger = structlog.get_logger(__name__)

_providers: dict[str, FulfillmentProvider] | None = None


def build_providers(settings: Settings) -> dict[str, FulfillmentProvider]:
    if settings.fulfillment_adapter == "fake":
        return {
            "printful": FakeFulfillmentProvider("printful"),
            "gelato": FakeFulfillmentProvider("gelato"),
        }
    if settings.fulfillment_adapter != "live":
        raise ValueError(f"Unknown fulfillment adapter: {settings.fulfillment_adapter}")

    providers: dict[str, FulfillmentProvider] = {}

    if settings.printful_enabled:
        from marketplace.fulfillment.printful_adapter import PrintfulProvider

        providers["printful"] = PrintfulProvider(
            api_key=settings.printful_api_key,
            store_id=settings.printful_store_id,
            webhook_secret=settings.printful_webhook_secret or None,
            base_url=settings.printful_base_url,
            timeout=settings.provider_timeout_seconds,
        )

    if settings.gelato_enabled:
        from marketplace.fulfillment.gelato_adapter import GelatoProvider

        providers["gelato"] = GelatoProvider(
            api_key=settings.gelato_api_key,
            webhook_secret=settings.gelato_webhook_secret,
            base_url=settings.gelato_base_url,
            timeout=settings.provider_timeout_seconds,
        )

    logger.info("Fulfillment providers registered", providers=sorted(providers))
    return providers


def get_providers() -> dict[str, FulfillmentProvider]:
    """Return the provider-name → adapter mapping (built on first use)."""
    global _providers
    if _providers is None:
        _providers = build_providers(get_settings())
    return _providers


def set_providers(providers: dict[str, FulfillmentProvider]) -> None:
    global _providers
    _providers = dict(providers)


def reset_providers() -> None:
    """Forget the registry; the next call rebuilds it from settings."""
    global _providers
    _providers = None
