"""Prometheus metrics definitions for purgehook."""

from prometheus_client import Counter, Histogram

# Invalidation signal metrics
INVALIDATION_SIGNALS_TOTAL = Counter(
    "purgehook_invalidation_signals_total",
    "Total invalidation signals received",
)

INVALIDATION_COALESCED_TOTAL = Counter(
    "purgehook_invalidation_coalesced_total",
    "Invalidation signals superseded by a later signal within the debounce window",
)

# Webhook delivery metrics
WEBHOOK_ATTEMPTS_TOTAL = Counter(
    "purgehook_webhook_attempts_total",
    "Total webhook HTTP attempts",
    ["result"],  # success, failure
)

WEBHOOK_DELIVERIES_TOTAL = Counter(
    "purgehook_webhook_deliveries_total",
    "Total webhook deliveries",
    ["status"],  # delivered, exhausted
)

WEBHOOK_DISPATCH_DURATION = Histogram(
    "purgehook_webhook_dispatch_duration_seconds",
    "Duration of a dispatch cycle after the debounce window, retries included",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)
