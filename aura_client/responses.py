"""
Decoding of Aura API responses

The Aura API wraps every successful payload in a single "data" key:

    {
        "data": response body goes here
    }
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, TypeVar

from .errors import APIError, DecodeError
from .types import CreateResponse, GetResponse, HTTPResponse

if TYPE_CHECKING:
    from .logger import LogSink

REQUEST_ID_HEADER = "X-Request-Id"
DEPRECATION_HEADER = "X-Tyk-Api-Expires"

T = TypeVar("T", CreateResponse, GetResponse)

# (API key, dataclass attribute) pairs; every value must be a string
CREATE_RESPONSE_FIELDS: tuple[tuple[str, str], ...] = (
    ("id", "id"),
    ("connection_url", "connection_url"),
    ("username", "username"),
    ("password", "password"),
    ("name", "name"),
    ("tenant_id", "tenant_id"),
    ("cloud_provider", "cloud_provider"),
    ("region", "region"),
    ("type", "instance_type"),
)

GET_RESPONSE_FIELDS: tuple[tuple[str, str], ...] = (
    ("id", "id"),
    ("connection_url", "connection_url"),
    ("name", "name"),
    ("tenant_id", "tenant_id"),
    ("cloud_provider", "cloud_provider"),
    ("region", "region"),
    ("type", "instance_type"),
    ("status", "status"),
    ("memory", "memory"),
    ("storage", "storage"),
)

_SHAPES: dict[type, tuple[tuple[str, str], ...]] = {
    CreateResponse: CREATE_RESPONSE_FIELDS,
    GetResponse: GET_RESPONSE_FIELDS,
}


def request_id(response: HTTPResponse) -> str:
    """The ID Neo4j support uses to find a request, empty when absent"""
    return response.header(REQUEST_ID_HEADER)


def api_error(response: HTTPResponse, message: str | None = None) -> APIError:
    return APIError(
        message or response.status_text,
        request_id=request_id(response),
        body=response.text,
        status=response.status,
    )


def unwrap_envelope(response: HTTPResponse) -> Any:
    """Return the content of the "data" key of a 2xx response"""
    try:
        body = json.loads(response.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(
            f"failed to parse JSON response: {e}",
            request_id=request_id(response),
            body=response.text,
            status=response.status,
        ) from e

    if not isinstance(body, dict):
        raise DecodeError(
            "expected response to be a map with string keys",
            request_id=request_id(response),
            body=response.text,
            status=response.status,
        )
    if "data" not in body:
        raise DecodeError(
            'missing data envelope: expected response to contain key "data"',
            key="data",
            request_id=request_id(response),
            body=response.text,
            status=response.status,
        )
    return body["data"]


def project(data: Any, shape: type[T], response: HTTPResponse) -> T:
    """Build shape from data, requiring every field to be present and a string"""
    if not isinstance(data, dict):
        raise DecodeError(
            "expected data to be a map with string keys",
            key="data",
            request_id=request_id(response),
            body=response.text,
            status=response.status,
        )

    values: dict[str, str] = {}
    for key, attribute in _SHAPES[shape]:
        value = data.get(key)
        if not isinstance(value, str):
            raise DecodeError(
                f'response missing key "{key}" or value not string',
                key=key,
                request_id=request_id(response),
                body=response.text,
                status=response.status,
            )
        values[attribute] = value
    return shape(**values)


def decode(response: HTTPResponse, shape: type[T] | None = None) -> Any:
    """
    Turn a response into a typed result.

    Non-2xx responses become an APIError without looking at the body's shape.
    With shape None the raw "data" value is returned.
    """
    if not response.ok:
        raise api_error(response)

    data = unwrap_envelope(response)
    if shape is None:
        return data
    return project(data, shape, response)


def check_deprecation(response: HTTPResponse, version: str, logger: LogSink) -> None:
    """Warn when the API marks the endpoint for deprecation; never raises"""
    expires = response.header(DEPRECATION_HEADER)
    if expires:
        logger.warnf(
            "%s of the Neo4J Aura API expires on %s.\nEncountered at %s",
            version,
            expires,
            response.url,
        )
