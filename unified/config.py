"""Unified sync configuration via pydantic-settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class UnifiedSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///unified.db"
    echo_sql: bool = False
    app_title: str = "Unified Sync"

    # Scheduled sweeps, every 20 minutes by default
    sync_enabled: bool = True
    sync_run_on_startup: bool = True
    sync_interval_seconds: float = 1200.0
    sync_max_concurrency: int = 8
    sync_object_kinds: str = "user,company,note"

    # Outbound provider calls
    provider_timeout_seconds: float = 30.0
    hubspot_base_url: str = "https://api.hubapi.com"
    pipedrive_base_url: str = "https://api.pipedrive.com/v1"
    zoho_base_url: str = "https://www.zohoapis.com"
    freshsales_base_url: str = "https://domain.myfreshworks.com/crm/sales"
    zendesk_base_url: str = "https://subdomain.zendesk.com"
    front_base_url: str = "https://api2.frontapp.com"

    # Outbound webhooks
    webhook_enabled: bool = False
    webhook_urls: str = ""
    webhook_signing_secret: str = ""
    webhook_timeout_seconds: float = 10.0

    model_config = {"env_prefix": "UNIFIED_", "env_file": ".env", "extra": "ignore"}

    @property
    def sync_object_kinds_list(self) -> list[str]:
        return _split_csv(self.sync_object_kinds)

    @property
    def webhook_urls_list(self) -> list[str]:
        return _split_csv(self.webhook_urls)

    @property
    def provider_base_urls(self) -> dict[str, str]:
        return {
            "hubspot": self.hubspot_base_url,
            "pipedrive": self.pipedrive_base_url,
            "zoho": self.zoho_base_url,
            "freshsales": self.freshsales_base_url,
            "zendesk": self.zendesk_base_url,
            "front": self.front_base_url,
        }

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = UnifiedSettings()
