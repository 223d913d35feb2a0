"""
HTTP transport and retry policy for the Aura API

Only resource calls go through RetryPolicy; the token exchange is sent once.
Neo4j recommends retrying 5xx responses with exponential backoff, except 501.
"""

from __future__ import annotations

import http.client
import random
import threading
import time
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from .errors import CancelledError, RetryExhaustedError, TransportError
from .types import HTTPResponse
from .utils import get_duration_from_env, get_int_from_env

if TYPE_CHECKING:
    from .logger import LogSink

# Configuration from environment
HTTP_MAX_RETRIES = get_int_from_env("AURA_HTTP_MAX_RETRIES", 0)
HTTP_RETRY_BASE_DELAY = get_duration_from_env("AURA_HTTP_RETRY_BASE_DELAY", 100)
HTTP_RETRY_MAX_DELAY = get_duration_from_env("AURA_HTTP_RETRY_MAX_DELAY", 5000)
HTTP_CLIENT_TIMEOUT = get_duration_from_env("AURA_HTTP_CLIENT_TIMEOUT", 10000)

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({500, 502, 503, 504})


class Transport(ABC):
    """Sends a single HTTP request

    Implementations return every HTTP status as an HTTPResponse and raise
    TransportError only when no response was obtained.
    """

    @abstractmethod
    def fetch(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> HTTPResponse:
        """Make HTTP request and return the fully read response"""
        pass


class StripAuthorizationRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Follows redirects but drops credentials when leaving the original origin"""

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        new_request = super().redirect_request(req, fp, code, msg, headers, newurl)
        if new_request is not None and _origin(newurl) != _origin(req.full_url):
            new_request.remove_header("Authorization")
        return new_request


def _origin(url: str) -> tuple[str, str]:
    parts = urllib.parse.urlsplit(url)
    return parts.scheme.lower(), parts.netloc.lower()


class UrllibTransport(Transport):
    """Transport backed by urllib.request"""

    def __init__(self, timeout_ms: int | None = None) -> None:
        self._timeout_ms = timeout_ms if timeout_ms is not None else HTTP_CLIENT_TIMEOUT
        self._opener = urllib.request.build_opener(StripAuthorizationRedirectHandler)

    def fetch(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> HTTPResponse:
        request = urllib.request.Request(url, data=body, headers=headers, method=method)
        timeout_seconds = timeout if timeout is not None else self._timeout_ms / 1000.0

        try:
            with self._opener.open(request, timeout=timeout_seconds) as response:
                return HTTPResponse(
                    status=response.status,
                    reason=response.reason or "",
                    headers=dict(response.headers.items()),
                    body=response.read(),
                    url=url,
                )
        except urllib.error.HTTPError as e:
            # urllib raises for 4xx/5xx; the error doubles as the response
            try:
                error_body = e.read() if e.fp else b""
            finally:
                e.close()
            return HTTPResponse(
                status=e.code,
                reason=str(e.reason or ""),
                headers=dict(e.headers.items()) if e.headers else {},
                body=error_body,
                url=url,
            )
        except urllib.error.URLError as e:
            raise TransportError(f"error making HTTP request to {url}: {e.reason}") from e
        except (TimeoutError, OSError, http.client.HTTPException) as e:
            raise TransportError(f"error making HTTP request to {url}: {e}") from e


def is_retryable_error(err: Exception | None, status_code: int) -> bool:
    """
    Determines if an error or status code should trigger a retry.
    Network errors are always retryable, as are 500, 502, 503 and 504.
    501 and every 4xx are terminal.
    """
    if err:
        return True
    return status_code in RETRYABLE_STATUS_CODES


def exponential_backoff(attempt: int, base_delay_ms: int, max_delay_ms: int | None = None) -> int:
    """Calculates the delay for the given attempt with jitter, capped at max_delay_ms"""
    delay = (2**attempt) * base_delay_ms
    # Add jitter: random value between 0 and 25% of delay
    jitter = random.random() * 0.25 * delay
    total = int(delay + jitter)
    if max_delay_ms is not None:
        return min(total, max_delay_ms)
    return total


def remaining_time(deadline: float | None, cancel_event: threading.Event | None = None) -> float | None:
    """Seconds left until deadline, raising CancelledError once it passed or on cancel"""
    if cancel_event is not None and cancel_event.is_set():
        raise CancelledError("request cancelled")
    if deadline is None:
        return None
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise CancelledError("deadline exceeded")
    return remaining


class RetryPolicy:
    """Retries a send callable on transport errors and retryable 5xx statuses"""

    def __init__(
        self,
        max_retries: int | None = None,
        base_delay: int | None = None,
        max_delay: int | None = None,
        logger: LogSink | None = None,
    ) -> None:
        self._max_retries = max_retries if max_retries is not None else HTTP_MAX_RETRIES
        if self._max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self._base_delay = base_delay if base_delay is not None else HTTP_RETRY_BASE_DELAY
        self._max_delay = max_delay if max_delay is not None else HTTP_RETRY_MAX_DELAY
        self._logger = logger

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def execute(
        self,
        send: Callable[[float | None], HTTPResponse],
        url: str = "",
        deadline: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> HTTPResponse:
        """Call send(timeout) until it yields a non-retryable response or attempts run out

        send receives the seconds left before the deadline (None without one)
        and is called afresh on each attempt so it can re-sign the request.
        """
        attempts = self._max_retries + 1
        last_err: TransportError | None = None
        last_response: HTTPResponse | None = None

        for attempt in range(attempts):
            if attempt > 0:
                delay = exponential_backoff(attempt - 1, self._base_delay, self._max_delay)
                if self._logger:
                    self._logger.debugf(
                        "Retrying request to %s (attempt %d/%d) after %dms",
                        url,
                        attempt + 1,
                        attempts,
                        delay,
                    )
                self._wait(delay / 1000.0, deadline, cancel_event)

            timeout = remaining_time(deadline, cancel_event)
            try:
                response = send(timeout)
            except TransportError as e:
                if deadline is not None and deadline - time.monotonic() <= 0:
                    raise CancelledError(f"deadline exceeded: {e.message}") from e
                last_err, last_response = e, None
                continue

            if not is_retryable_error(None, response.status):
                return response
            last_err, last_response = None, response

        # Retries disabled: hand the failure back unchanged
        if self._max_retries == 0:
            if last_err:
                raise last_err
            assert last_response is not None
            return last_response

        if last_response is not None:
            raise RetryExhaustedError(
                f"{last_response.status_text}\nGave up after {attempts} attempts",
                attempts=attempts,
                request_id=last_response.header("X-Request-Id"),
                body=last_response.text,
                status=last_response.status,
            )
        assert last_err is not None
        raise RetryExhaustedError(
            f"{last_err.message}\nGave up after {attempts} attempts",
            attempts=attempts,
        ) from last_err

    def _wait(
        self,
        seconds: float,
        deadline: float | None,
        cancel_event: threading.Event | None,
    ) -> None:
        remaining = remaining_time(deadline, cancel_event)
        if remaining is not None:
            seconds = min(seconds, remaining)
        if cancel_event is not None:
            if cancel_event.wait(seconds):
                raise CancelledError("request cancelled")
        elif seconds > 0:
            time.sleep(seconds)
