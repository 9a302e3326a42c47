"""Cache invalidation dispatch pipeline."""

from purgehook.invalidation.delivery import (
    DebugObserver,
    DeliveryError,
    DeliveryObserver,
    WebhookDelivery,
    build_curl_command,
    close_http_client,
    get_http_client,
)
from purgehook.invalidation.dispatcher import DEBOUNCE_SECONDS, InvalidationDispatcher
from purgehook.invalidation.models import DispatchConfig, RenderedRequest
from purgehook.invalidation.pattern import (
    PURGE_ALL_PATTERNS,
    InvalidationIntent,
    interpret_pattern,
)
from purgehook.invalidation.templating import Placeholder, render_body, render_headers

__all__ = [
    "DEBOUNCE_SECONDS",
    "PURGE_ALL_PATTERNS",
    "DebugObserver",
    "DeliveryError",
    "DeliveryObserver",
    "DispatchConfig",
    "InvalidationDispatcher",
    "InvalidationIntent",
    "Placeholder",
    "RenderedRequest",
    "WebhookDelivery",
    "build_curl_command",
    "close_http_client",
    "get_http_client",
    "interpret_pattern",
    "render_body",
    "render_headers",
]
