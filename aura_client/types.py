"""
Data models shared by the Aura API client
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Credentials:
    """OAuth client credentials plus the Aura tenant instances are created in"""

    client_id: str
    client_secret: str
    tenant_id: str


@dataclass
class AccessToken:
    """Bearer token and the Unix timestamp it expires at"""

    token: str
    expires_at: float


@dataclass
class TokenResponse:
    """OAuth token response"""

    access_token: str
    expires_in: int
    token_type: str = "Bearer"


@dataclass
class Request:
    """Outbound request before the Authorization header is added"""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None = None


@dataclass
class HTTPResponse:
    """A fully read HTTP response; the connection is already released"""

    status: int
    reason: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    def header(self, name: str) -> str:
        """Case-insensitive header lookup, empty string when missing"""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return ""

    @property
    def status_text(self) -> str:
        """Status line in the form "404 Not Found" """
        return f"{self.status} {self.reason}".strip()

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass
class CreateResponse:
    """Returned when an Aura instance has been created

    Fields follow https://neo4j.com/docs/aura/platform/api/specification/#/instances/post-instances
    """

    id: str  # Internal ID of the instance
    connection_url: str  # URL the instance is hosted at
    username: str  # Name of the initial admin user
    password: str  # Password of the initial admin user
    name: str  # The name we chose for the instance
    tenant_id: str  # Tenant for managing Aura console users
    cloud_provider: str  # gcp, aws, ...
    region: str  # us-east1, eu-central2, ...
    instance_type: str  # enterprise-db, professional-db, ...

    def to_dict(self) -> dict[str, Any]:
        """Encode back into the API's field names"""
        return {
            "id": self.id,
            "connection_url": self.connection_url,
            "username": self.username,
            "password": self.password,
            "name": self.name,
            "tenant_id": self.tenant_id,
            "cloud_provider": self.cloud_provider,
            "region": self.region,
            "type": self.instance_type,
        }


@dataclass
class GetResponse:
    """Information about an existing Aura instance

    Fields follow https://neo4j.com/docs/aura/platform/api/specification/#/instances/get-instance-id
    """

    id: str
    name: str
    status: str  # Whether the instance is running, being set up, paused, ...
    tenant_id: str
    cloud_provider: str
    connection_url: str
    region: str
    instance_type: str
    memory: str  # e.g. "8GB"
    storage: str  # e.g. "16GB"

    def to_dict(self) -> dict[str, Any]:
        """Encode back into the API's field names"""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "tenant_id": self.tenant_id,
            "cloud_provider": self.cloud_provider,
            "connection_url": self.connection_url,
            "region": self.region,
            "type": self.instance_type,
            "memory": self.memory,
            "storage": self.storage,
        }
