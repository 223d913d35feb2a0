"""
OAuth 2 client-credentials authentication with a per-client token cache
"""

import base64
import json
import time
import urllib.parse
from abc import ABC, abstractmethod
from threading import Event, Lock
from typing import TYPE_CHECKING, Optional

from .errors import AuthError, CancelledError, TransportError
from .types import AccessToken, Credentials, TokenResponse

if TYPE_CHECKING:
    from .httpclient import Transport
    from .logger import LogSink

# Seconds between cancel_event checks while another caller holds the cache lock
LOCK_POLL_INTERVAL = 0.05


class TokenCache:
    """Holds at most one bearer token for a single client instance

    The lock is exposed so the Authenticator can make the
    check-expiry-then-replace sequence one critical section.
    """

    def __init__(self, token: str | None = None, expires_at: float | None = None) -> None:
        self._entry: AccessToken | None = None
        self.lock = Lock()
        if token and expires_at is not None:
            self._entry = AccessToken(token=token, expires_at=expires_at)

    def get_token(self) -> str | None:
        """Get token if held and not expired"""
        entry = self._entry
        if entry and entry.token and time.time() < entry.expires_at:
            return entry.token
        return None

    def set_token(self, token: str, expires_at: float) -> None:
        self._entry = AccessToken(token=token, expires_at=expires_at)

    def clear_token(self) -> None:
        self._entry = None

    @property
    def expires_at(self) -> float | None:
        entry = self._entry
        return entry.expires_at if entry else None


class OAuth2TokenFetcher(ABC):
    """Abstract base class for OAuth2 token fetchers"""

    @abstractmethod
    def fetch_token(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        timeout: float | None = None,
    ) -> TokenResponse:
        """Exchange client credentials for a token"""
        pass


def basic_auth_header(client_id: str, client_secret: str) -> str:
    """HTTP Basic Authorization value as described in RFC 6749 section 2.3.1"""
    credentials = (
        f"{urllib.parse.quote_plus(client_id)}:{urllib.parse.quote_plus(client_secret)}"
    )
    auth_bytes = base64.b64encode(credentials.encode("utf-8")).decode("utf-8")
    return f"Basic {auth_bytes}"


def parse_token_response(body: bytes) -> TokenResponse:
    """Validate the token endpoint's JSON payload"""
    try:
        token_response = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise AuthError(
            f"failed to parse token response: {e}",
            body=body.decode("utf-8", "replace"),
        ) from e

    if not isinstance(token_response, dict):
        raise AuthError("token response is not a JSON object")

    access_token = token_response.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise AuthError("missing access_token in token response")

    expires_in = token_response.get("expires_in")
    # bool is an int subclass, reject it explicitly
    if not isinstance(expires_in, int) or isinstance(expires_in, bool):
        raise AuthError("missing expires_in in token response or value not integer")

    token_type = token_response.get("token_type")
    return TokenResponse(
        access_token=access_token,
        expires_in=expires_in,
        token_type=token_type if isinstance(token_type, str) and token_type else "Bearer",
    )


class DefaultOAuth2TokenFetcher(OAuth2TokenFetcher):
    """Posts a form-encoded client_credentials grant through the given transport"""

    def __init__(self, transport: "Transport", logger: Optional["LogSink"] = None):
        self._transport = transport
        self._logger = logger

    def fetch_token(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        timeout: float | None = None,
    ) -> TokenResponse:
        payload = urllib.parse.urlencode({"grant_type": "client_credentials"}).encode("utf-8")
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
            "Authorization": basic_auth_header(client_id, client_secret),
        }

        if self._logger:
            self._logger.debugf("Requesting access token from %s", token_url)

        # The token exchange is never retried; failures are terminal for the call
        try:
            response = self._transport.fetch(
                method="POST",
                url=token_url,
                headers=headers,
                body=payload,
                timeout=timeout,
            )
        except TransportError as e:
            raise AuthError(f"token request failed: {e.message}") from e

        if not response.ok:
            raise AuthError(
                f"token request returned non-2xx status: {response.status_text}",
                request_id=response.header("X-Request-Id"),
                body=response.text,
                status=response.status,
            )

        return parse_token_response(response.body)


class Authenticator:
    """Keeps a valid bearer token in the TokenCache, fetching one when needed"""

    def __init__(
        self,
        credentials: Credentials,
        token_url: str,
        fetcher: OAuth2TokenFetcher,
        cache: TokenCache | None = None,
        logger: Optional["LogSink"] = None,
    ) -> None:
        self._credentials = credentials
        self._token_url = token_url
        self._fetcher = fetcher
        self._cache = cache or TokenCache()
        self._logger = logger

    @property
    def cache(self) -> TokenCache:
        return self._cache

    def ensure_valid(self, timeout: float | None = None, cancel_event: Event | None = None) -> str:
        """Return the cached token, or fetch and cache a new one when missing or expired

        timeout (seconds) bounds both the wait for another caller's exchange
        and this caller's own exchange.
        """
        deadline = time.monotonic() + timeout if timeout is not None else None
        self._acquire(deadline, cancel_event)
        try:
            cached_token = self._cache.get_token()
            if cached_token:
                return cached_token

            fetch_timeout = None
            if deadline is not None:
                fetch_timeout = deadline - time.monotonic()
                if fetch_timeout <= 0:
                    raise CancelledError("deadline exceeded waiting for access token")

            token_response = self._fetcher.fetch_token(
                self._token_url,
                self._credentials.client_id,
                self._credentials.client_secret,
                timeout=fetch_timeout,
            )
            # Only a successful exchange touches the cache
            expires_at = time.time() + token_response.expires_in
            self._cache.set_token(token_response.access_token, expires_at)

            if self._logger:
                self._logger.debugf("Obtained access token valid for %ds", token_response.expires_in)
            return token_response.access_token
        finally:
            self._cache.lock.release()

    def _acquire(self, deadline: float | None, cancel_event: Event | None) -> None:
        """Take the cache lock, giving up once the deadline passes or cancel_event is set"""
        if deadline is None and cancel_event is None:
            self._cache.lock.acquire()
            return

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise CancelledError("request cancelled")
            wait = LOCK_POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise CancelledError("deadline exceeded waiting for access token")
                wait = remaining if cancel_event is None else min(wait, remaining)
            if self._cache.lock.acquire(timeout=wait):
                return

    def invalidate(self) -> None:
        """Forget the cached token, e.g. after the API answered 403"""
        with self._cache.lock:
            self._cache.clear_token()
