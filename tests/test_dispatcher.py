"""Tests for the debounced invalidation dispatcher."""

import asyncio
import json
import logging
from unittest.mock import AsyncMock

import httpx
import pytest

from purgehook.invalidation.delivery import DebugObserver, DeliveryError
from purgehook.invalidation.dispatcher import DEBOUNCE_SECONDS, InvalidationDispatcher
from purgehook.invalidation.models import DispatchConfig

WEBHOOK_URL = "https://hooks.example.com/purge"
WINDOW = 0.2


def make_dispatcher(config: DispatchConfig, **kwargs) -> InvalidationDispatcher:
    dispatcher = InvalidationDispatcher(config, debounce_seconds=WINDOW, **kwargs)
    dispatcher.dispatch = AsyncMock()  # type: ignore[method-assign]
    return dispatcher


class TestDebounce:
    """Tests for the debounce gate."""

    def test_default_window(self, dispatch_config):
        assert DEBOUNCE_SECONDS == 10.0
        assert InvalidationDispatcher(dispatch_config).debounce_seconds == 10.0

    @pytest.mark.asyncio
    async def test_burst_dispatches_once_with_last_pattern(self, dispatch_config):
        """Signals inside one window collapse into a single dispatch."""
        dispatcher = make_dispatcher(dispatch_config)

        dispatcher.schedule("/a")
        dispatcher.schedule("/b")
        dispatcher.schedule("/c")
        assert dispatcher.pending is True

        await asyncio.sleep(WINDOW * 2)
        await dispatcher.drain()

        dispatcher.dispatch.assert_awaited_once_with("/c")
        assert dispatcher.pending is False

    @pytest.mark.asyncio
    async def test_new_signal_restarts_window(self, dispatch_config):
        dispatcher = make_dispatcher(dispatch_config)

        dispatcher.schedule("/a")
        await asyncio.sleep(WINDOW / 2)
        dispatcher.schedule("/b")
        await asyncio.sleep(WINDOW / 2)

        # The first window has elapsed but was superseded
        dispatcher.dispatch.assert_not_awaited()
        assert dispatcher.pending is True

        await asyncio.sleep(WINDOW)
        await dispatcher.drain()
        dispatcher.dispatch.assert_awaited_once_with("/b")

    @pytest.mark.asyncio
    async def test_separate_bursts_dispatch_separately(self, dispatch_config):
        dispatcher = make_dispatcher(dispatch_config)

        dispatcher.schedule("/a")
        await asyncio.sleep(WINDOW * 2)
        dispatcher.schedule("/b")
        await asyncio.sleep(WINDOW * 2)
        await dispatcher.drain()

        assert [c.args for c in dispatcher.dispatch.await_args_list] == [("/a",), ("/b",)]

    @pytest.mark.asyncio
    async def test_cancel_pending(self, dispatch_config):
        dispatcher = make_dispatcher(dispatch_config)

        assert dispatcher.cancel_pending() is False
        dispatcher.schedule("/a")
        assert dispatcher.cancel_pending() is True
        assert dispatcher.pending is False

        await asyncio.sleep(WINDOW * 2)
        dispatcher.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_flush_dispatches_immediately(self, dispatch_config):
        dispatcher = InvalidationDispatcher(dispatch_config)
        dispatcher.dispatch = AsyncMock()  # type: ignore[method-assign]

        dispatcher.schedule("/a")
        await dispatcher.flush()

        dispatcher.dispatch.assert_awaited_once_with("/a")
        assert dispatcher.pending is False

    @pytest.mark.asyncio
    async def test_flush_without_pending_is_noop(self, dispatch_config):
        dispatcher = make_dispatcher(dispatch_config)
        await dispatcher.aclose()
        dispatcher.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_in_flight_dispatch_not_cancelled(self, dispatch_config):
        """A signal arriving during delivery does not stop that delivery."""
        dispatcher = make_dispatcher(dispatch_config)
        release = asyncio.Event()
        finished = []

        async def slow_dispatch(pattern):
            await release.wait()
            finished.append(pattern)

        dispatcher.dispatch.side_effect = slow_dispatch

        dispatcher.schedule("/a")
        await asyncio.sleep(WINDOW * 1.5)
        dispatcher.schedule("/b")
        release.set()
        await dispatcher.drain()
        assert finished == ["/a"]

        await asyncio.sleep(WINDOW * 1.5)
        await dispatcher.drain()
        assert finished == ["/a", "/b"]

    @pytest.mark.asyncio
    async def test_failure_logged_not_raised(self, dispatch_config, caplog):
        dispatcher = make_dispatcher(dispatch_config)
        dispatcher.dispatch.side_effect = DeliveryError("HTTP error 500: boom", status_code=500)

        with caplog.at_level(logging.ERROR, logger="purgehook.invalidation.dispatcher"):
            dispatcher.schedule("/a")
            await asyncio.sleep(WINDOW * 2)
            await dispatcher.drain()

        assert "Failed to trigger webhook" in caplog.text

    def test_schedule_requires_running_loop(self, dispatch_config):
        dispatcher = InvalidationDispatcher(dispatch_config)
        with pytest.raises(RuntimeError):
            dispatcher.schedule("/a")


class TestDispatch:
    """Tests for the full interpret, render and deliver pipeline."""

    @pytest.mark.asyncio
    async def test_dispatch_sends_rendered_request(self, dispatch_config, respx_mock):
        route = respx_mock.post(WEBHOOK_URL).mock(return_value=httpx.Response(200))

        async with httpx.AsyncClient() as client:
            dispatcher = InvalidationDispatcher(dispatch_config, client=client)
            await dispatcher.dispatch("/, /rss")

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer abc"
        assert request.headers["Content-Type"] == "application/json"
        payload = json.loads(request.content)
        assert payload["urls"] == ["https://blog.example.com/", "https://blog.example.com/rss"]
        assert payload["purgeAll"] is False
        assert payload["pattern"] == "/, /rss"
        assert payload["timestamp"].endswith("Z")

    @pytest.mark.asyncio
    async def test_dispatch_purge_all(self, dispatch_config, respx_mock):
        route = respx_mock.post(WEBHOOK_URL).mock(return_value=httpx.Response(200))

        async with httpx.AsyncClient() as client:
            dispatcher = InvalidationDispatcher(dispatch_config, client=client)
            await dispatcher.dispatch("/$/")

        payload = json.loads(route.calls.last.request.content)
        assert payload["urls"] == ["https://blog.example.com/*"]
        assert payload["purgeAll"] is True

    @pytest.mark.asyncio
    async def test_dispatch_logs_elapsed(self, dispatch_config, respx_mock, caplog):
        respx_mock.post(WEBHOOK_URL).mock(return_value=httpx.Response(200))

        with caplog.at_level(logging.INFO, logger="purgehook.invalidation.dispatcher"):
            async with httpx.AsyncClient() as client:
                await InvalidationDispatcher(dispatch_config, client=client).dispatch("/a")

        assert "Webhook triggered successfully in" in caplog.text

    @pytest.mark.asyncio
    async def test_dispatch_raises_after_retries(self, dispatch_config, respx_mock):
        config = dispatch_config.model_copy(update={"retry_count": 2, "retry_delay_ms": 0})
        route = respx_mock.post(WEBHOOK_URL).mock(return_value=httpx.Response(500, text="no"))

        async with httpx.AsyncClient() as client:
            dispatcher = InvalidationDispatcher(config, client=client)
            with pytest.raises(DeliveryError):
                await dispatcher.dispatch("/a")

        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_debounced_end_to_end(self, dispatch_config, respx_mock):
        route = respx_mock.post(WEBHOOK_URL).mock(return_value=httpx.Response(200))

        async with httpx.AsyncClient() as client:
            dispatcher = InvalidationDispatcher(
                dispatch_config, client=client, debounce_seconds=WINDOW
            )
            dispatcher.schedule("/a")
            dispatcher.schedule("/b")
            await asyncio.sleep(WINDOW * 2)
            await dispatcher.drain()

        assert route.call_count == 1
        assert json.loads(route.calls.last.request.content)["pattern"] == "/b"

    def test_debug_flag_installs_observer(self, dispatch_config):
        assert InvalidationDispatcher(dispatch_config).delivery.observer is None

        config = dispatch_config.model_copy(update={"debug": True})
        observer = InvalidationDispatcher(config).delivery.observer
        assert isinstance(observer, DebugObserver)
