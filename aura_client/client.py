"""
Neo4j Aura API client

AuraClient creates, inspects, pauses and destroys Aura instances. Requests
are signed with an OAuth 2 bearer token, retried on transient 5xx responses
when configured to, and re-authenticated once when the API answers 403.
"""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from .auth import Authenticator, DefaultOAuth2TokenFetcher, OAuth2TokenFetcher, TokenCache
from .config import ClientConfig, load_credentials
from .errors import AuthError, CancelledError, TransportError
from .httpclient import RetryPolicy, Transport, UrllibTransport, remaining_time
from .logger import LogSink, new_logger
from .responses import api_error, check_deprecation, decode
from .types import CreateResponse, Credentials, GetResponse, HTTPResponse, Request
from .utils import validate_path_segment
from .version import user_agent


def build_request(method: str, url: str, body: Mapping[str, Any] | None = None) -> Request:
    """Build an unsigned JSON request for the Aura API"""
    headers = {
        "Accept": "application/json",
        "User-Agent": user_agent(),
    }
    payload: bytes | None = None
    if body is not None:
        try:
            payload = json.dumps(body).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise TypeError(f"request body for {method} {url} is not JSON serializable: {e}") from e
        headers["Content-Type"] = "application/json"
    return Request(method=method, url=url, headers=headers, body=payload)


def sign(request: Request, token: str) -> Request:
    """Return a copy of request carrying the bearer token"""
    return replace(request, headers={**request.headers, "Authorization": f"Bearer {token}"})


class AuraClient:
    """Client for the Neo4j Aura instances API"""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        tenant_id: str,
        config: ClientConfig | None = None,
        token_fetcher: OAuth2TokenFetcher | None = None,
    ) -> None:
        if not client_id:
            raise ValueError("client_id must be provided")
        if not client_secret:
            raise ValueError("client_secret must be provided")
        if not tenant_id:
            raise ValueError("tenant_id must be provided")

        self._config = config or ClientConfig()
        self._credentials = Credentials(
            client_id=client_id,
            client_secret=client_secret,
            tenant_id=tenant_id,
        )
        self._logger: LogSink = self._config.logger or new_logger()
        self._transport: Transport = self._config.transport or UrllibTransport(self._config.timeout)
        self._retry_policy = RetryPolicy(
            max_retries=self._config.retries,
            base_delay=self._config.retry_base_delay,
            max_delay=self._config.retry_max_delay,
            logger=self._logger,
        )
        self._authenticator = Authenticator(
            credentials=self._credentials,
            token_url=self._config.token_url,
            fetcher=token_fetcher or DefaultOAuth2TokenFetcher(self._transport, self._logger),
            cache=TokenCache(self._config.token, self._config.token_expires_at),
            logger=self._logger,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def tenant_id(self) -> str:
        return self._credentials.tenant_id

    def create_instance(
        self,
        name: str,
        cloud_provider: str,
        memory: str,
        version: str,
        region: str,
        instance_type: str,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CreateResponse:
        """
        Create a new Aura instance and return its connection details and
        initial admin credentials.

        Possible values for the parameters are listed in the Aura API documentation.
        """
        request = build_request(
            "POST",
            f"{self._config.api_url}/instances",
            {
                "name": name,
                "tenant_id": self._credentials.tenant_id,
                "cloud_provider": cloud_provider,
                "type": instance_type,
                "memory": memory,
                "version": version,
                "region": region,
            },
        )
        response = self._do(request, timeout, cancel_event)
        return decode(response, CreateResponse)

    def get_instance(
        self,
        instance_id: str,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> GetResponse:
        """Get information about an instance identified by its Aura ID"""
        request = build_request("GET", self._instance_url(instance_id))
        response = self._do(request, timeout, cancel_event)
        return decode(response, GetResponse)

    def pause_instance(
        self,
        instance_id: str,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """
        Put an instance on pause, making it unavailable for use.
        Aura resumes paused instances automatically after a while.
        """
        request = build_request("POST", self._instance_url(instance_id) + "/pause")
        response = self._do(request, timeout, cancel_event)
        if not response.ok:
            raise api_error(response)

    def destroy_instance(
        self,
        instance_id: str,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """
        Tear down an instance identified by its Aura ID.
        A 404 counts as success since the instance no longer exists.
        """
        request = build_request("DELETE", self._instance_url(instance_id))
        response = self._do(request, timeout, cancel_event)
        if response.status == 404:
            self._logger.debugf("Instance %s already gone, treating delete as successful", instance_id)
            return
        if not response.ok:
            raise api_error(response)

    def _instance_url(self, instance_id: str) -> str:
        validate_path_segment(instance_id, "instance_id")
        return f"{self._config.api_url}/instances/{instance_id}"

    def _do(
        self,
        request: Request,
        timeout: float | None,
        cancel_event: threading.Event | None,
    ) -> HTTPResponse:
        """Send request through the retry policy, re-authenticating once on 403"""
        deadline = time.monotonic() + timeout if timeout is not None else None

        response = self._send_with_retries(request, deadline, cancel_event)
        if response.status == 403:
            self._logger.debugf("Received 403 from %s, refreshing access token", request.url)
            self._authenticator.invalidate()
            response = self._send_with_retries(request, deadline, cancel_event)
            if response.status == 403:
                raise api_error(response, f"{response.status_text} after re-authentication")
        return response

    def _send_with_retries(
        self,
        request: Request,
        deadline: float | None,
        cancel_event: threading.Event | None,
    ) -> HTTPResponse:
        def send(remaining: float | None) -> HTTPResponse:
            try:
                token = self._authenticator.ensure_valid(
                    timeout=self._attempt_timeout(remaining),
                    cancel_event=cancel_event,
                )
            except AuthError as e:
                if isinstance(e.__cause__, TransportError) and deadline is not None:
                    if deadline - time.monotonic() <= 0:
                        raise CancelledError(f"deadline exceeded: {e.message}") from e
                raise
            # The token exchange may have used up part of the budget
            attempt_timeout = self._attempt_timeout(remaining_time(deadline, cancel_event))
            signed = sign(request, token)
            self._logger.debugf("Sending %s request to %s", signed.method, signed.url)
            response = self._transport.fetch(
                method=signed.method,
                url=signed.url,
                headers=signed.headers,
                body=signed.body,
                timeout=attempt_timeout,
            )
            if not response.url:
                response.url = signed.url
            check_deprecation(response, self._config.version, self._logger)
            return response

        return self._retry_policy.execute(
            send,
            url=request.url,
            deadline=deadline,
            cancel_event=cancel_event,
        )

    def _attempt_timeout(self, remaining: float | None) -> float:
        configured = self._config.timeout / 1000.0
        if remaining is None:
            return configured
        return min(configured, remaining)


def new_client(
    client_id: str,
    client_secret: str,
    tenant_id: str,
    **options: Any,
) -> AuraClient:
    """Create a client, passing options through to ClientConfig"""
    return AuraClient(client_id, client_secret, tenant_id, ClientConfig(**options))


def new_client_from_env(transport: Transport | None = None, logger: LogSink | None = None) -> AuraClient:
    """Create a client from AURA_* environment variables and, optionally, Secrets Manager"""
    logger = logger or new_logger()
    credentials = load_credentials(logger)
    config = ClientConfig.from_env(transport=transport, logger=logger)
    return AuraClient(
        credentials.client_id,
        credentials.client_secret,
        credentials.tenant_id,
        config,
    )
