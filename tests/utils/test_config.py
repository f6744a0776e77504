"""Tests for runtime settings."""

from marketplace.config import Settings, get_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.payment_adapter == "fake"
        assert settings.fulfillment_adapter == "live"
        assert settings.draft_max_age_hours == 24
        assert settings.default_currency == "USD"

    def test_providers_need_full_credentials(self):
        settings = Settings(printful_api_key="pf-key", gelato_api_key="gl-key", stripe_secret_key="sk", _env_file=None)

        assert not settings.printful_enabled
        assert not settings.gelato_enabled
        assert not settings.stripe_enabled

    def test_enabled_with_credentials(self):
        settings = Settings(
            printful_api_key="pf-key",
            printful_store_id="store-1",
            stripe_secret_key="sk",
            stripe_webhook_secret="whsec",
            _env_file=None,
        )

        assert settings.printful_enabled
        assert settings.stripe_enabled

    def test_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("DRAFT_MAX_AGE_HOURS", "48")
        get_settings.cache_clear()
        try:
            assert get_settings().draft_max_age_hours == 48
        finally:
            get_settings.cache_clear()
