"""
Test module for smart_cache.config.settings
"""

import pytest

from smart_cache.config.settings import CacheSettings, create_settings_from_env
from smart_cache.core.errors import CacheConfigError, CacheErrorType


class TestCacheSettings:
    """Test cases for CacheSettings validation."""

    def test_defaults(self):
        settings = CacheSettings()
        assert settings.max_cache_size == 2000
        assert settings.default_ttl == 300
        assert settings.hot_data_ttl == 1800
        assert settings.cold_data_ttl == 60
        assert settings.access_threshold == 3
        assert settings.auto_optimize is True
        assert settings.optimize_interval == 300

    @pytest.mark.parametrize("overrides", [
        {"max_cache_size": 0},
        {"default_ttl": -1},
        {"hot_data_ttl": 0},
        {"cold_data_ttl": -60},
        {"access_threshold": 0},
        {"optimize_interval": 0},
        {"default_ttl": float("nan")},
        {"hot_data_ttl": float("inf")},
        {"cold_data_ttl": float("nan")},
        {"optimize_interval": float("inf")},
    ])
    def test_invalid_values_fail_fast(self, overrides):
        with pytest.raises(CacheConfigError) as exc_info:
            CacheSettings(**overrides)
        assert exc_info.value.error_type is CacheErrorType.INVALID_CONFIG
        assert next(iter(overrides)) in str(exc_info.value)


class TestSettingsFromEnv:
    """Test cases for create_settings_from_env."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SMART_CACHE_MAX_SIZE", "50")
        monkeypatch.setenv("SMART_CACHE_HOT_TTL", "900.5")
        monkeypatch.setenv("SMART_CACHE_AUTO_OPTIMIZE", "false")

        settings = create_settings_from_env()

        assert settings.max_cache_size == 50
        assert settings.hot_data_ttl == 900.5
        assert settings.auto_optimize is False
        assert settings.default_ttl == 300

    def test_env_garbage_rejected(self, monkeypatch):
        monkeypatch.setenv("SMART_CACHE_DEFAULT_TTL", "five minutes")
        with pytest.raises(CacheConfigError):
            create_settings_from_env()

    def test_env_invalid_value_rejected(self, monkeypatch):
        monkeypatch.setenv("SMART_CACHE_OPTIMIZE_INTERVAL", "-5")
        with pytest.raises(CacheConfigError):
            create_settings_from_env()

    @pytest.mark.parametrize("raw", ["nan", "inf", "-inf"])
    def test_env_non_finite_ttl_rejected(self, monkeypatch, raw):
        monkeypatch.setenv("SMART_CACHE_DEFAULT_TTL", raw)
        with pytest.raises(CacheConfigError) as exc_info:
            create_settings_from_env()
        assert "default_ttl" in str(exc_info.value)
