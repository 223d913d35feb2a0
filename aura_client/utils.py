"""
Environment and input validation helpers
"""

import os
import re
from urllib.parse import urlparse

DURATION_REGEX = re.compile(r"^(\d+)(ms|s|m|h)$")


def get_from_env(key: str, default_value: str) -> str:
    """Retrieves a non-empty environment variable or returns default"""
    value = os.environ.get(key, "")
    if value:
        return value
    return default_value


def get_int_from_env(key: str, default_value: int) -> int:
    """Retrieves a non-negative integer from environment variable or returns default"""
    value = os.environ.get(key, "")
    if value:
        try:
            parsed = int(value)
        except ValueError:
            return default_value
        if parsed >= 0:
            return parsed
    return default_value


def get_duration_from_env(key: str, default_value_ms: int) -> int:
    """
    Retrieves a duration from environment variable or returns default.
    Accepts duration strings like "100ms", "2s", "1m", etc.
    Returns value in milliseconds.
    """
    value = os.environ.get(key, "")
    if value:
        match = DURATION_REGEX.match(value)
        if match:
            num = int(match.group(1))
            multipliers = {
                "ms": 1,
                "s": 1000,
                "m": 60 * 1000,
                "h": 60 * 60 * 1000,
            }
            return num * multipliers[match.group(2)]
    return default_value_ms


def validate_domain(domain: str) -> None:
    """Validates that an endpoint is a safe base URL for API requests"""
    if not domain:
        raise ValueError("endpoint cannot be empty")

    try:
        parsed_url = urlparse(domain)
    except Exception as e:
        raise ValueError(f"invalid endpoint URL: {e}") from e

    # HTTPS is required except against a local mock server
    hostname = parsed_url.hostname or ""
    is_localhost = hostname == "localhost" or hostname.startswith("127.")

    if parsed_url.scheme != "https" and not (parsed_url.scheme == "http" and is_localhost):
        raise ValueError(f"endpoint must use HTTPS scheme, got: {parsed_url.scheme}")

    if parsed_url.path and parsed_url.path != "/":
        raise ValueError(f"endpoint cannot contain path components: {parsed_url.path}")
    if parsed_url.query:
        raise ValueError(f"endpoint cannot contain query parameters: {parsed_url.query}")
    if parsed_url.fragment:
        raise ValueError(f"endpoint cannot contain fragment: {parsed_url.fragment}")

    if not parsed_url.netloc:
        raise ValueError("endpoint must have a host")
    if ".." in parsed_url.netloc:
        raise ValueError("endpoint host contains invalid characters")


def validate_path_segment(segment: str, name: str) -> None:
    """Validates that a value is safe to interpolate into a URL path"""
    if not segment:
        raise ValueError(f"{name} cannot be empty")

    if ".." in segment or "/" in segment:
        raise ValueError(f"{name} contains invalid characters (path traversal detected): {segment}")

    # URL-encoded traversal, case-insensitive
    lowered = segment.lower()
    if "%2e%2e" in lowered or "%2f" in lowered:
        raise ValueError(f"{name} contains URL-encoded path traversal: {segment}")

    if "\x00" in segment:
        raise ValueError(f"{name} contains null byte")

    if "?" in segment or "#" in segment:
        raise ValueError(f"{name} contains URL query or fragment characters: {segment}")
