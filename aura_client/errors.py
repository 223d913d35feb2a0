"""
Exception types raised by the Aura API client

Every failure surfaced by a client operation is an AuraError, so callers can
catch the base class and still get the request ID Neo4j support asks for.
"""

from __future__ import annotations


class AuraError(Exception):
    """Base error carrying the Aura request ID and the raw response body"""

    def __init__(
        self,
        message: str,
        *,
        request_id: str = "",
        body: str = "",
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.request_id = request_id
        self.body = body
        self.status = status

    def __str__(self) -> str:
        return (
            f"Aura API error: {self.message}\n"
            f"Aura request ID: {self.request_id}\n"
            f"Response body: {self.body}"
        )


class AuthError(AuraError):
    """Raised when the token endpoint rejects the client credentials or returns garbage"""


class TransportError(AuraError):
    """Raised when no response could be obtained (connection refused, timeout, ...)"""


class APIError(AuraError):
    """Raised when a resource endpoint answers with a non-2xx status"""


class RetryExhaustedError(APIError):
    """Raised when a retryable failure persisted through every allowed attempt"""

    def __init__(self, message: str, *, attempts: int, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.attempts = attempts


class DecodeError(AuraError):
    """Raised when a 2xx response does not match the expected envelope or shape"""

    def __init__(self, message: str, *, key: str | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.key = key


class CancelledError(AuraError):
    """Raised when a call is cancelled or runs past its deadline"""
