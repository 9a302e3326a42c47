"""purgehook configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from purgehook.invalidation.models import DispatchConfig

DEFAULT_BODY_TEMPLATE = '{"urls": ${urls}, "timestamp": "${timestamp}", "purgeAll": ${purgeAll}}'


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PURGEHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Webhook
    webhook_url: str = Field(
        ...,
        description="Endpoint notified when the cache should be purged",
    )
    webhook_method: str = "POST"
    webhook_secret: SecretStr | None = Field(
        default=None,
        description="Substituted for ${secret} in header templates",
    )
    webhook_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Header templates (JSON object in the environment). "
        "Overrides the default Content-Type when the same name is given.",
    )
    webhook_body_template: str = Field(
        default=DEFAULT_BODY_TEMPLATE,
        description="Body template using ${urls}, ${purgeAll}, ${timestamp} and ${pattern}",
    )
    webhook_retry_count: int = Field(default=3, ge=1)
    webhook_retry_delay_ms: int = Field(default=1000, ge=0)
    request_timeout: float = Field(
        default=30.0,
        description="Transport timeout (seconds) of the shared HTTP client",
    )

    # Origin
    public_url: str = Field(
        default="http://localhost:2368",
        description="Public base URL of the CMS, prefixed to every purged path",
    )

    # Dispatch
    debug: bool = Field(
        default=False,
        description="Log rendered requests and an equivalent curl command",
    )
    debounce_seconds: float = Field(default=10.0, ge=0)

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    log_level: str = "INFO"

    def dispatch_config(self) -> DispatchConfig:
        """Build the immutable configuration consumed by the dispatcher."""
        return DispatchConfig(
            webhook_url=self.webhook_url,
            method=self.webhook_method,
            secret=self.webhook_secret.get_secret_value() if self.webhook_secret else None,
            headers=self.webhook_headers,
            body_template=self.webhook_body_template,
            retry_count=self.webhook_retry_count,
            retry_delay_ms=self.webhook_retry_delay_ms,
            debug=self.debug,
            public_url=self.public_url,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are cached after first load. Use clear_settings_cache()
    to reload settings (e.g., in tests or after environment changes).
    """
    # webhook_url is loaded from environment by pydantic-settings
    return Settings()  # type: ignore[call-arg]


def clear_settings_cache() -> None:
    """Clear the settings cache."""
    get_settings.cache_clear()
