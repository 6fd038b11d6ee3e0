"""
Unit tests for BundlerConfig.
"""

import pytest

from bundler import BundlerConfig, ConfigurationError


class TestFromEnv:
    """Tests for environment loading."""

    def test_defaults(self, monkeypatch):
        for name in ("BUNDLER_SOURCE_ROOT", "BUNDLER_CACHE_MAX_AGE", "BUNDLER_EXPOSE_ERRORS"):
            monkeypatch.delenv(name, raising=False)

        config = BundlerConfig.from_env()

        assert config.source_root == "."
        assert config.cache_max_age == 0
        assert config.expose_errors is False

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("BUNDLER_SOURCE_ROOT", "static")
        monkeypatch.setenv("BUNDLER_CACHE_MAX_AGE", "600")
        monkeypatch.setenv("BUNDLER_EXPOSE_ERRORS", "true")
        monkeypatch.setenv("BUNDLER_DEFAULT_LOCALE", "fr")

        config = BundlerConfig.from_env()

        assert config.source_root == "static"
        assert config.cache_max_age == 600
        assert config.expose_errors is True
        assert config.default_locale == "fr"

    def test_supported_locales(self, monkeypatch):
        monkeypatch.setenv("BUNDLER_LOCALES", "fr, de ,,nl")

        config = BundlerConfig.from_env()

        assert config.supported_locales == ("fr", "de", "nl")

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("BUNDLER_READ_WORKERS", "many")

        with pytest.raises(ConfigurationError):
            BundlerConfig.from_env()


class TestValidate:
    """Tests for validation."""

    def test_defaults_are_valid(self):
        BundlerConfig().validate()

    @pytest.mark.parametrize("overrides", [
        {"read_workers": 0},
        {"cache_max_age": -1},
        {"default_locale": " "},
        {"locale_query_param": "v"},
        {"supported_locales": ("fr", " ")},
        {"log_format": "xml"},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ConfigurationError):
            BundlerConfig(**overrides).validate()
