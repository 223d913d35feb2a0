"""
Shared fixtures: an in-memory transport standing in for the Aura API
"""

import json
from collections import Counter
from typing import Any
from urllib.parse import urlparse

import pytest

from aura_client.config import ClientConfig
from aura_client.httpclient import Transport
from aura_client.types import HTTPResponse

ENDPOINT = "https://api.example.com"
RESPONSE_ID = "track-me-123"

REASONS = {
    200: "OK",
    202: "Accepted",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    410: "Gone",
    500: "Internal Server Error",
    501: "Not Implemented",
    503: "Service Unavailable",
}


def json_response(status: int, payload: Any, headers: dict[str, str] | None = None) -> HTTPResponse:
    return HTTPResponse(
        status=status,
        reason=REASONS.get(status, ""),
        headers={"Content-Type": "application/json", "X-Request-Id": RESPONSE_ID, **(headers or {})},
        body=json.dumps(payload).encode("utf-8"),
    )


def text_response(status: int, text: str, headers: dict[str, str] | None = None) -> HTTPResponse:
    return HTTPResponse(
        status=status,
        reason=REASONS.get(status, ""),
        headers={"X-Request-Id": RESPONSE_ID, **(headers or {})},
        body=text.encode("utf-8"),
    )


def auth_success(token: str = "bar", expires_in: int = 3600) -> HTTPResponse:
    return json_response(
        200,
        {"access_token": token, "expires_in": expires_in, "token_type": "Bearer"},
        headers={"Cache-Control": "no-store"},
    )


def get_payload(instance_id: str) -> dict[str, Any]:
    return {
        "id": instance_id,
        "name": "Production",
        "status": "running",
        "tenant_id": "YOUR_TENANT_ID",
        "cloud_provider": "gcp",
        "connection_url": "YOUR_CONNECTION_URL",
        "region": "europe-west1",
        "type": "enterprise-db",
        "memory": "8GB",
        "storage": "16GB",
    }


def create_payload(name: str = "foo") -> dict[str, Any]:
    return {
        "id": "db1d1234",
        "connection_url": "YOUR_CONNECTION_URL",
        "username": "neo4j",
        "password": "letMeIn123!",
        "tenant_id": "YOUR_TENANT_ID",
        "cloud_provider": "gcp",
        "region": "europe-west1",
        "type": "enterprise-db",
        "name": name,
    }


class FakeTransport(Transport):
    """Routes requests by method and path to scripted responses

    Each route holds a queue; the last entry keeps being served once the
    others are used up. Exceptions in the queue are raised instead.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[HTTPResponse | Exception]] = {}
        self.calls: list[dict[str, Any]] = []
        self.counter: Counter = Counter()
        self.on("POST", "/oauth/token", auth_success())

    def on(self, method: str, path: str, *responses: HTTPResponse | Exception) -> None:
        self.routes[(method, path)] = list(responses)

    def count(self, method: str, path: str) -> int:
        return self.counter[(method, path)]

    def fetch(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> HTTPResponse:
        path = urlparse(url).path
        self.calls.append(
            {"method": method, "url": url, "headers": dict(headers), "body": body, "timeout": timeout}
        )
        self.counter[(method, path)] += 1

        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"unexpected request for testing: {method} {path}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def config(transport):
    """Client config against the fake transport with no backoff delay"""
    return ClientConfig(endpoint=ENDPOINT, transport=transport, retries=0, retry_base_delay=0)
