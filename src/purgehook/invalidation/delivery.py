"""Webhook delivery with fixed-delay retry."""

import asyncio
import json
import logging
from typing import Protocol

import httpx

from purgehook.invalidation.models import DispatchConfig, RenderedRequest
from purgehook.invalidation.pattern import InvalidationIntent
from purgehook.metrics.definitions import WEBHOOK_ATTEMPTS_TOTAL, WEBHOOK_DELIVERIES_TOTAL

logger = logging.getLogger(__name__)

# Methods for which curl is not given a --data argument
BODYLESS_METHODS = frozenset({"GET", "HEAD"})

# Module-level HTTP client for connection reuse
_http_client: httpx.AsyncClient | None = None
_http_client_lock = asyncio.Lock()


async def get_http_client(request_timeout: float = 30.0) -> httpx.AsyncClient:
    """Get or create the shared HTTP client."""
    global _http_client
    if _http_client is None:
        async with _http_client_lock:
            # Double-check after acquiring lock
            if _http_client is None:
                _http_client = httpx.AsyncClient(timeout=request_timeout)
    return _http_client


async def close_http_client() -> None:
    """Close the shared HTTP client."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


class DeliveryError(Exception):
    """Webhook delivery failed on its final attempt."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
        attempts: int = 1,
    ):
        self.status_code = status_code
        self.response_text = response_text
        self.attempts = attempts
        super().__init__(message)


class DeliveryObserver(Protocol):
    """Hooks invoked at fixed points of a delivery."""

    def before_send(self, request: RenderedRequest) -> None: ...

    def on_error_response(self, response: httpx.Response, attempt: int) -> None: ...


def build_curl_command(request: RenderedRequest) -> str:
    """Reconstruct a request as an equivalent shell curl invocation."""
    command = f"curl --request {request.method} \\\n     --url '{request.url}'"
    for name, value in request.headers.items():
        command += f" \\\n     --header '{name}: {value}'"
    if request.body and request.method not in BODYLESS_METHODS:
        escaped = request.body.replace("'", "'\\''")
        command += f" \\\n     --data '{escaped}'"
    return command


class DebugObserver:
    """Logs rendered requests and error responses for manual reproduction."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def before_send(self, request: RenderedRequest) -> None:
        headers = json.dumps(request.headers, indent=2)
        self.log.info(
            "[webhook debug] Sending request:\n"
            f"   URL: {request.url}\n   Method: {request.method}\n"
            f"   Headers: {headers}\n   Body: {request.body}"
        )
        self.log.info(f"[webhook debug] Equivalent curl command:\n{build_curl_command(request)}")

    def on_error_response(self, response: httpx.Response, attempt: int) -> None:
        headers = json.dumps(dict(response.headers), indent=2)
        self.log.info(
            f"[webhook debug] Received error response (attempt {attempt}):\n"
            f"   Status: {response.status_code} {response.reason_phrase}\n"
            f"   Headers: {headers}\n   Body: {response.text}"
        )


class WebhookDelivery:
    """Sends rendered webhook requests, retrying failed attempts.

    Attempts are made up to ``config.retry_count`` times with a fixed
    ``config.retry_delay_ms`` pause between them. A 2xx response ends the
    delivery; a non-2xx response or transport error on the final attempt
    raises DeliveryError.
    """

    def __init__(
        self,
        config: DispatchConfig,
        client: httpx.AsyncClient | None = None,
        observer: DeliveryObserver | None = None,
        request_timeout: float = 30.0,
    ):
        self.config = config
        self.observer = observer
        self._client = client
        self._request_timeout = request_timeout

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_http_client(self._request_timeout)

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        request: RenderedRequest,
        attempt: int,
    ) -> None:
        """Make a single attempt, raising DeliveryError on failure."""
        try:
            response = await client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
                timeout=self._request_timeout,
            )
        except httpx.HTTPError as e:
            raise DeliveryError(
                f"{type(e).__name__}: {e}",
                attempts=attempt,
            ) from e

        if not response.is_success:
            if self.observer is not None:
                self.observer.on_error_response(response, attempt)
            raise DeliveryError(
                f"HTTP error {response.status_code}: {response.text}",
                status_code=response.status_code,
                response_text=response.text,
                attempts=attempt,
            )

    async def send(self, request: RenderedRequest) -> int:
        """Deliver a rendered request.

        Returns:
            Number of attempts made

        Raises:
            DeliveryError: If the final attempt failed
        """
        if self.observer is not None:
            self.observer.before_send(request)

        client = await self._get_client()
        retry_count = self.config.retry_count

        attempt = 1
        while True:
            try:
                await self._attempt(client, request, attempt)
                break
            except DeliveryError as e:
                WEBHOOK_ATTEMPTS_TOTAL.labels(result="failure").inc()
                if attempt >= retry_count:
                    WEBHOOK_DELIVERIES_TOTAL.labels(status="exhausted").inc()
                    raise
                logger.warning(
                    f"Webhook attempt {attempt} failed ({e}), "
                    f"retrying in {self.config.retry_delay_ms}ms..."
                )
                await asyncio.sleep(self.config.retry_delay_seconds)
                attempt += 1

        WEBHOOK_ATTEMPTS_TOTAL.labels(result="success").inc()
        WEBHOOK_DELIVERIES_TOTAL.labels(status="delivered").inc()
        return attempt

    async def deliver(
        self,
        intent: InvalidationIntent,
        body: str,
        headers: dict[str, str],
    ) -> int:
        """Deliver a rendered body and header set to the configured webhook."""
        logger.debug(
            f"Delivering invalidation of {len(intent.urls)} url(s) "
            f"(purge_all={intent.purge_all}) to {self.config.webhook_url}"
        )
        request = RenderedRequest(
            method=self.config.method,
            url=self.config.webhook_url,
            headers=headers,
            body=body,
        )
        return await self.send(request)
