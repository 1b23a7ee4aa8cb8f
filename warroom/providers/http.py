"""Shared JSON-over-HTTP client for platform adapters.

Handles raw HTTP requests. No data transformation - just fetch and return
JSON, or raise NetworkError.

Failures are not retried unless retry_count > 1: retry policy belongs to
the caller. HTTP 429 responses are honored with Retry-After backoff.
"""

import logging
import random
import threading
import time

import httpx

from warroom.core.errors import NetworkError

logger = logging.getLogger(__name__)

# Retry backoff (only used when retry_count > 1)
RETRY_BASE_DELAY = 0.5
RETRY_MAX_DELAY = 10.0
RETRY_JITTER = 0.3  # ±30%

# Rate limit (429) handling
RATE_LIMIT_BASE_DELAY = 5.0
RATE_LIMIT_MAX_DELAY = 60.0


class JSONClient:
    """Low-level HTTP client returning decoded JSON.

    The underlying httpx.Client is created lazily and shared across threads.
    Subclasses set LOG_TAG and build URLs.
    """

    LOG_TAG = "HTTP"

    def __init__(
        self,
        timeout: float = 10.0,
        retry_count: int = 1,
        rate_limit_retries: int = 3,
        max_connections: int = 20,
        transport: httpx.BaseTransport | None = None,
    ):
        self._timeout = timeout
        self._retry_count = max(1, retry_count)
        self._rate_limit_retries = rate_limit_retries
        self._max_connections = max_connections
        self._transport = transport
        self._client: httpx.Client | None = None
        self._lock = threading.Lock()

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            with self._lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self._timeout,
                        limits=httpx.Limits(
                            max_connections=self._max_connections,
                            max_keepalive_connections=self._max_connections,
                        ),
                        transport=self._transport,
                    )
        return self._client

    def _calculate_delay(self, attempt: int) -> float:
        """Exponential backoff with jitter: 0.5, 1, 2, 4... capped at 10s."""
        base_delay = RETRY_BASE_DELAY * (2**attempt)
        capped = min(base_delay, RETRY_MAX_DELAY)
        jitter = capped * RETRY_JITTER * (2 * random.random() - 1)
        return max(0.1, capped + jitter)

    def _rate_limit_delay(self, response: httpx.Response, retries: int) -> float:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return min(float(retry_after), RATE_LIMIT_MAX_DELAY)
            except ValueError:
                pass
        return min(RATE_LIMIT_BASE_DELAY * (2 ** (retries - 1)), RATE_LIMIT_MAX_DELAY)

    def _request(
        self,
        url: str,
        params: dict | list | None = None,
        headers: dict | None = None,
    ) -> dict | list:
        """GET url and decode JSON.

        Raises:
            NetworkError: timeout, HTTP status, transport or decode failure
        """
        rate_limit_retries = 0
        attempt = 0

        while True:
            try:
                response = self._get_client().get(url, params=params, headers=headers)

                if response.status_code == 429:
                    rate_limit_retries += 1
                    if rate_limit_retries > self._rate_limit_retries:
                        logger.error(
                            "[%s] Rate limit (429) persisted after %d retries for %s",
                            self.LOG_TAG,
                            self._rate_limit_retries,
                            url,
                        )
                        raise NetworkError(url, "rate_limited", status_code=429)
                    delay = self._rate_limit_delay(response, rate_limit_retries)
                    logger.warning(
                        "[%s] Rate limited (429). Retry %d/%d in %.1fs for %s",
                        self.LOG_TAG,
                        rate_limit_retries,
                        self._rate_limit_retries,
                        delay,
                        url,
                    )
                    time.sleep(delay)
                    continue

                response.raise_for_status()
                logger.debug("[FETCH] %s", url)
                try:
                    return response.json()
                except ValueError as e:
                    raise NetworkError(url, "decode", detail=str(e)) from e

            except httpx.HTTPStatusError as e:
                logger.warning("[%s] HTTP %d for %s", self.LOG_TAG, e.response.status_code, url)
                error = NetworkError(url, "http", status_code=e.response.status_code)
            except httpx.TimeoutException as e:
                logger.warning("[%s] Timeout for %s", self.LOG_TAG, url)
                error = NetworkError(url, "timeout", detail=str(e))
            except (httpx.RequestError, RuntimeError, OSError) as e:
                # RuntimeError: "Cannot send a request, as the client has been closed"
                # OSError: "Bad file descriptor" from stale connections
                logger.warning("[%s] Request failed for %s: %s", self.LOG_TAG, url, e)
                error = NetworkError(url, "transport", detail=str(e))

            attempt += 1
            if attempt >= self._retry_count:
                raise error
            time.sleep(self._calculate_delay(attempt - 1))

    def close(self) -> None:
        """Drop the pooled httpx client; the next request opens a new one."""
        with self._lock:
            if self._client:
                self._client.close()
                self._client = None
