"""Pytest configuration and fixtures for purgehook tests."""

import os
from collections.abc import Generator

import pytest

# Set required environment variables before any imports
os.environ.setdefault("PURGEHOOK_WEBHOOK_URL", "https://hooks.example.com/purge")
os.environ.setdefault("PURGEHOOK_PUBLIC_URL", "https://blog.example.com")

from purgehook.config import Settings, clear_settings_cache
from purgehook.invalidation import DispatchConfig

WEBHOOK_URL = "https://hooks.example.com/purge"
PUBLIC_URL = "https://blog.example.com"
BODY_TEMPLATE = (
    '{"urls": ${urls}, "timestamp": "${timestamp}", '
    '"purgeAll": ${purgeAll}, "pattern": ${pattern}}'
)


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    """Ensure every test sees settings loaded from its own environment."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def dispatch_config() -> DispatchConfig:
    """Dispatch configuration with a secret and fast retries."""
    return DispatchConfig(
        webhook_url=WEBHOOK_URL,
        method="POST",
        secret="abc",
        headers={"Authorization": "Bearer ${secret}"},
        body_template=BODY_TEMPLATE,
        retry_count=3,
        retry_delay_ms=500,
        public_url=PUBLIC_URL,
    )


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        webhook_url=WEBHOOK_URL,
        webhook_secret="abc",
        webhook_headers={"Authorization": "Bearer ${secret}"},
        webhook_body_template=BODY_TEMPLATE,
        webhook_retry_count=2,
        webhook_retry_delay_ms=0,
        public_url=PUBLIC_URL,
        debounce_seconds=10.0,
    )
