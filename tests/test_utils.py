"""
Tests for environment and validation helpers
"""

import pytest

from aura_client.utils import (
    get_duration_from_env,
    get_from_env,
    get_int_from_env,
    validate_domain,
    validate_path_segment,
)


class TestGetFromEnv:
    """Tests for get_from_env"""

    def test_returns_env_value(self, monkeypatch):
        monkeypatch.setenv("AURA_TEST_KEY", "env-value")
        assert get_from_env("AURA_TEST_KEY", "default") == "env-value"

    def test_empty_value_falls_back_to_default(self, monkeypatch):
        """Should ignore empty environment variables"""
        monkeypatch.setenv("AURA_TEST_KEY", "")
        assert get_from_env("AURA_TEST_KEY", "default") == "default"


class TestGetIntFromEnv:
    """Tests for get_int_from_env"""

    def test_returns_env_value(self, monkeypatch):
        """Should return integer from environment"""
        monkeypatch.setenv("TEST_INT", "42")
        assert get_int_from_env("TEST_INT", 0) == 42

    def test_returns_default_on_missing(self, monkeypatch):
        """Should return default when env var missing"""
        monkeypatch.delenv("TEST_INT", raising=False)
        assert get_int_from_env("TEST_INT", 99) == 99

    def test_returns_default_on_invalid(self, monkeypatch):
        """Should return default on invalid integer"""
        monkeypatch.setenv("TEST_INT", "not-a-number")
        assert get_int_from_env("TEST_INT", 99) == 99

    def test_returns_default_on_negative(self, monkeypatch):
        """Should not accept a negative retry count"""
        monkeypatch.setenv("TEST_INT", "-3")
        assert get_int_from_env("TEST_INT", 0) == 0


class TestGetDurationFromEnv:
    """Tests for get_duration_from_env"""

    @pytest.mark.parametrize(
        "value,expected",
        [("100ms", 100), ("2s", 2000), ("1m", 60000), ("1h", 3600000)],
    )
    def test_parses_units(self, monkeypatch, value, expected):
        """Should convert each unit to milliseconds"""
        monkeypatch.setenv("TEST_DURATION", value)
        assert get_duration_from_env("TEST_DURATION", 0) == expected

    def test_returns_default_on_missing(self, monkeypatch):
        """Should return default when env var missing"""
        monkeypatch.delenv("TEST_DURATION", raising=False)
        assert get_duration_from_env("TEST_DURATION", 500) == 500

    def test_returns_default_on_unitless(self, monkeypatch):
        """Should require a unit"""
        monkeypatch.setenv("TEST_DURATION", "100")
        assert get_duration_from_env("TEST_DURATION", 500) == 500


class TestValidateDomain:
    """Tests for validate_domain"""

    def test_accepts_valid_https_endpoint(self):
        validate_domain("https://api.neo4j.io")
        validate_domain("https://api.neo4j.io/")

    def test_accepts_localhost_http(self):
        """Should accept HTTP localhost for testing"""
        validate_domain("http://localhost:8080")
        validate_domain("http://127.0.0.1:9000")

    def test_rejects_empty_endpoint(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            validate_domain("")

    def test_rejects_http_non_localhost(self):
        """Should reject HTTP for non-localhost"""
        with pytest.raises(ValueError, match="must use HTTPS"):
            validate_domain("http://api.neo4j.io")

    def test_rejects_endpoint_with_path(self):
        """Should reject endpoint with path components"""
        with pytest.raises(ValueError, match="cannot contain path"):
            validate_domain("https://api.neo4j.io/v1")

    def test_rejects_query(self):
        with pytest.raises(ValueError, match="query"):
            validate_domain("https://api.neo4j.io?x=1")


class TestValidatePathSegment:
    """Tests for validate_path_segment"""

    def test_accepts_aura_ids(self):
        """Should accept the short hex IDs Aura assigns"""
        validate_path_segment("db1d1234", "instance_id")

    def test_rejects_empty_segment(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            validate_path_segment("", "instance_id")

    @pytest.mark.parametrize("segment", ["../parent", "a/b", "%2e%2e", "a%2Fb"])
    def test_rejects_path_traversal(self, segment):
        """Should reject plain and URL-encoded traversal"""
        with pytest.raises(ValueError, match="path traversal"):
            validate_path_segment(segment, "instance_id")

    def test_rejects_null_byte(self):
        with pytest.raises(ValueError, match="null byte"):
            validate_path_segment("test\x00", "instance_id")

    def test_rejects_query_characters(self):
        """Should keep IDs from smuggling a query string"""
        with pytest.raises(ValueError, match="query or fragment"):
            validate_path_segment("abc?x=1", "instance_id")
