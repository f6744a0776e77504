"""Runtime settings for provider credentials and adapter selection.

Values are read from the environment (and a local ``.env`` file when present).
Providers without credentials are simply not registered.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Printful
    printful_api_key: str = ""
    printful_store_id: str = ""
    printful_webhook_secret: str = ""
    printful_base_url: str = "https://api.printful.com"

    # Gelato
    gelato_api_key: str = ""
    gelato_webhook_secret: str = ""
    gelato_base_url: str = "https://order.gelatoapis.com/v4"

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""

    # Adapter selection: "fake" binds in-process adapters for development
    payment_adapter: str = "fake"
    fulfillment_adapter: str = "live"

    provider_timeout_seconds: float = 30.0
    default_currency: str = "USD"
    draft_max_age_hours: int = 24

    @property
    def printful_enabled(self) -> bool:
        return bool(self.printful_api_key and self.printful_store_id)

    @property
    def gelato_enabled(self) -> bool:
        return bool(self.gelato_api_key and self.gelato_webhook_secret)

    @property
    def stripe_enabled(self) -> bool:
        return bool(self.stripe_secret_key and self.stripe_webhook_secret)


@lru_cache
def get_settings() -> Settings:
    return Settings()
