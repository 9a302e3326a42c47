"""Debounced invalidation dispatcher."""

import asyncio
import logging
import time

import httpx

from purgehook.invalidation.delivery import DebugObserver, WebhookDelivery
from purgehook.invalidation.models import DispatchConfig
from purgehook.invalidation.pattern import interpret_pattern
from purgehook.invalidation.templating import render_body, render_headers
from purgehook.metrics.definitions import (
    INVALIDATION_COALESCED_TOTAL,
    INVALIDATION_SIGNALS_TOTAL,
    WEBHOOK_DISPATCH_DURATION,
)

logger = logging.getLogger(__name__)

# Quiet period after the last signal before the webhook is called
DEBOUNCE_SECONDS = 10.0


class InvalidationDispatcher:
    """Collapses bursts of invalidation signals into single webhook calls.

    Each call to schedule() replaces any pending dispatch, so only the last
    pattern of a burst is sent once the debounce window has passed without
    a new signal. A dispatch that has already started is never cancelled.
    """

    def __init__(
        self,
        config: DispatchConfig,
        client: httpx.AsyncClient | None = None,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        request_timeout: float = 30.0,
    ):
        self.config = config
        self.debounce_seconds = debounce_seconds
        self.delivery = WebhookDelivery(
            config,
            client=client,
            observer=DebugObserver() if config.debug else None,
            request_timeout=request_timeout,
        )
        self._timer: asyncio.TimerHandle | None = None
        self._pending_pattern: str | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """Whether a dispatch is scheduled but has not fired yet."""
        return self._timer is not None

    def schedule(self, pattern: str) -> None:
        """Schedule a dispatch for pattern, superseding any pending one.

        Must be called from within a running event loop. Returns immediately;
        delivery failures are logged and never reach the caller.
        """
        INVALIDATION_SIGNALS_TOTAL.inc()
        if self.cancel_pending():
            INVALIDATION_COALESCED_TOTAL.inc()
            logger.debug(f"Superseded pending dispatch with pattern {pattern!r}")

        loop = asyncio.get_running_loop()
        self._pending_pattern = pattern
        self._timer = loop.call_later(self.debounce_seconds, self._fire)
        logger.debug(f"Dispatch for {pattern!r} scheduled in {self.debounce_seconds}s")

    def cancel_pending(self) -> bool:
        """Cancel the pending dispatch, if any.

        Returns:
            True if a pending dispatch was cancelled
        """
        if self._timer is None:
            return False
        self._timer.cancel()
        self._timer = None
        self._pending_pattern = None
        return True

    def _fire(self) -> None:
        pattern = self._pending_pattern
        self._timer = None
        self._pending_pattern = None
        if pattern is None:
            return

        task = asyncio.create_task(self._run(pattern))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, pattern: str) -> None:
        try:
            await self.dispatch(pattern)
        except Exception:
            logger.exception("Failed to trigger webhook")

    async def dispatch(self, pattern: str) -> None:
        """Interpret, render and deliver a pattern immediately.

        Raises:
            DeliveryError: If every delivery attempt failed
        """
        start_time = time.perf_counter()
        config = self.config

        try:
            intent = interpret_pattern(pattern, config.public_url)
            body = render_body(config.body_template, intent)
            headers = render_headers(config.headers, config.secret)
            await self.delivery.deliver(intent, body, headers)
        except Exception as e:
            logger.error(f"Webhook trigger failed: {e}")
            raise
        finally:
            WEBHOOK_DISPATCH_DURATION.observe(time.perf_counter() - start_time)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"Webhook triggered successfully in {elapsed_ms:.0f}ms")

    async def flush(self) -> None:
        """Run the pending dispatch now instead of waiting for the window."""
        pattern = self._pending_pattern
        if not self.cancel_pending() or pattern is None:
            return
        await self._run(pattern)

    async def drain(self) -> None:
        """Wait for dispatches that have already fired to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def aclose(self) -> None:
        """Flush the pending dispatch and wait for in-flight ones."""
        await self.flush()
        await self.drain()

