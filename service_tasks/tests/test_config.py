"""
Tests for service configuration.
"""

import pytest
from pydantic import ValidationError

from shared.config import MIN_CACHE_TTL_SECONDS, get_config


class TestServiceConfig:
    """Test cases for ServiceConfig."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TASKS_CACHE_TTL_SECONDS", raising=False)

        config = get_config("tasks", 8000)

        assert config.cache_enabled is True
        assert config.cache_ttl_seconds == 60
        assert config.cache_namespace == "tasks:cache"
        assert config.store_backend == "memory"

    def test_ttl_from_environment(self, monkeypatch):
        monkeypatch.setenv("TASKS_CACHE_TTL_SECONDS", "300")

        assert get_config("tasks", 8000).cache_ttl_seconds == 300

    @pytest.mark.parametrize("ttl", [0, 1, 59])
    def test_ttl_floored(self, ttl):
        config = get_config("tasks", 8000, cache_ttl_seconds=ttl)

        assert config.cache_ttl_seconds == MIN_CACHE_TTL_SECONDS

    def test_unknown_store_backend_rejected(self):
        with pytest.raises(ValidationError):
            get_config("tasks", 8000, store_backend="sqlite")
