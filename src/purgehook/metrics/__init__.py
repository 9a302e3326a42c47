"""purgehook Prometheus metrics."""

from purgehook.metrics.definitions import (
    INVALIDATION_COALESCED_TOTAL,
    INVALIDATION_SIGNALS_TOTAL,
    WEBHOOK_ATTEMPTS_TOTAL,
    WEBHOOK_DELIVERIES_TOTAL,
    WEBHOOK_DISPATCH_DURATION,
)

__all__ = [
    "INVALIDATION_SIGNALS_TOTAL",
    "INVALIDATION_COALESCED_TOTAL",
    "WEBHOOK_ATTEMPTS_TOTAL",
    "WEBHOOK_DELIVERIES_TOTAL",
    "WEBHOOK_DISPATCH_DURATION",
]
