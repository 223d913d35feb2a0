"""
Client configuration and credential resolution
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .secretsmanager import get_credentials_from_secrets_manager
from .types import Credentials
from .utils import get_duration_from_env, get_from_env, get_int_from_env, validate_domain

if TYPE_CHECKING:
    from .httpclient import Transport
    from .logger import LogSink

DEFAULT_ENDPOINT = "https://api.neo4j.io"
DEFAULT_VERSION = "v1"


@dataclass(frozen=True)
class ClientConfig:
    """Settings fixed for the lifetime of an AuraClient

    Durations are in milliseconds. token/token_expires_at pre-seed the
    token cache so the first call skips the OAuth round trip; the expiry
    is a Unix timestamp.

    Defaults do not read the environment; use from_env() for AURA_* overrides.
    """

    endpoint: str = DEFAULT_ENDPOINT
    version: str = DEFAULT_VERSION
    retries: int = 0
    transport: Transport | None = None
    logger: LogSink | None = None
    token: str | None = None
    token_expires_at: float | None = None
    retry_base_delay: int = 100
    retry_max_delay: int = 5000
    timeout: int = 10000

    def __post_init__(self) -> None:
        validate_domain(self.endpoint)
        if not self.version:
            raise ValueError("version cannot be empty")
        if self.retries < 0:
            raise ValueError("retries cannot be negative")
        if (self.token is None) != (self.token_expires_at is None):
            raise ValueError("token and token_expires_at must be provided together")

    @property
    def base_url(self) -> str:
        return self.endpoint.rstrip("/")

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/{self.version}"

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/oauth/token"

    @classmethod
    def from_env(
        cls,
        transport: Transport | None = None,
        logger: LogSink | None = None,
    ) -> ClientConfig:
        return cls(
            endpoint=get_from_env("AURA_API_ENDPOINT", DEFAULT_ENDPOINT),
            version=get_from_env("AURA_API_VERSION", DEFAULT_VERSION),
            retries=get_int_from_env("AURA_HTTP_MAX_RETRIES", 0),
            transport=transport,
            logger=logger,
            retry_base_delay=get_duration_from_env("AURA_HTTP_RETRY_BASE_DELAY", 100),
            retry_max_delay=get_duration_from_env("AURA_HTTP_RETRY_MAX_DELAY", 5000),
            timeout=get_duration_from_env("AURA_HTTP_CLIENT_TIMEOUT", 10000),
        )


def load_credentials(logger: LogSink) -> Credentials:
    """
    Resolve credentials from the environment.
    Priority: Secrets Manager (AURA_SECRET_ARN) > AURA_CLIENT_ID/AURA_CLIENT_SECRET/AURA_TENANT_ID
    """
    secret_arn = os.environ.get("AURA_SECRET_ARN", "")
    if secret_arn:
        logger.infof("Fetching Aura credentials from Secrets Manager: %s", secret_arn)
        return get_credentials_from_secrets_manager(logger, secret_arn)

    client_id = os.environ.get("AURA_CLIENT_ID", "")
    client_secret = os.environ.get("AURA_CLIENT_SECRET", "")
    tenant_id = os.environ.get("AURA_TENANT_ID", "")
    if not client_id or not client_secret or not tenant_id:
        raise ValueError(
            "either AURA_SECRET_ARN or AURA_CLIENT_ID, AURA_CLIENT_SECRET and "
            "AURA_TENANT_ID must be provided"
        )
    return Credentials(client_id=client_id, client_secret=client_secret, tenant_id=tenant_id)
