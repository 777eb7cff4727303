"""
Unit tests for ServeOptions and ServerConfig.
"""

from dataclasses import FrozenInstanceError

import pytest

from assetserver.config import ServeOptions, ServerConfig
from assetserver.errors import ConfigurationError


class TestServeOptionsDefaults:

    def test_defaults(self):
        options = ServeOptions()

        assert options.index == "index.html"
        assert options.max_age == 0
        assert options.prefix is None
        assert options.fallthrough is True
        assert options.etag is True
        assert options.extensions == ()
        assert options.accept_ranges is True
        assert options.cache_control is True
        assert options.last_modified is True
        assert options.immutable is False
        assert options.dotfiles is False
        assert options.gzip is False
        assert options.brotli is False
        assert options.redirect is True
        assert options.set_headers is None
        assert options.error_file is None

    def test_defaults_are_valid(self):
        ServeOptions().validate()

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            ServeOptions().max_age = 10

    def test_extensions_normalized(self):
        assert ServeOptions(extensions=[".html", "htm"]).extensions == ("html", "htm")

    def test_cache_control_value(self):
        assert ServeOptions(max_age=60).cache_control_value == "public, max-age=60"
        assert ServeOptions(max_age=60, immutable=True).cache_control_value == "public, max-age=60, immutable"


class TestServeOptionsValidate:
    """validate() rejects bad options before any request is served."""

    @pytest.mark.parametrize("options", [
        ServeOptions(set_headers="not callable"),
        ServeOptions(max_age=-1),
        ServeOptions(max_age="60"),
        ServeOptions(index=""),
        ServeOptions(index="/"),
        ServeOptions(extensions=("html", 3)),
        ServeOptions(extensions=("",)),
        ServeOptions(extensions="html"),
        ServeOptions(start=-1),
        ServeOptions(end=True),
        ServeOptions(start=10, end=5),
        ServeOptions(prefix=42),
        ServeOptions(error_file=404),
    ])
    def test_invalid(self, options):
        with pytest.raises(ConfigurationError):
            options.validate()

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            ServeOptions(max_age=-5).validate()

    def test_callable_set_headers(self):
        ServeOptions(set_headers=lambda headers, path, metadata: None).validate()


class TestServeOptionsFromEnv:

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ASSET_MAX_AGE", "3600")
        monkeypatch.setenv("ASSET_PREFIX", "/static")
        monkeypatch.setenv("ASSET_EXTENSIONS", "html, htm")
        monkeypatch.setenv("ASSET_GZIP", "true")
        monkeypatch.setenv("ASSET_FALLTHROUGH", "0")
        monkeypatch.setenv("ASSET_ERROR_FILE", "404.html")

        options = ServeOptions.from_env()

        assert options.max_age == 3600
        assert options.prefix == "/static"
        assert options.extensions == ("html", "htm")
        assert options.gzip is True
        assert options.fallthrough is False
        assert options.error_file == "404.html"
        assert options.etag is True

    def test_bad_integer(self, monkeypatch):
        monkeypatch.setenv("ASSET_MAX_AGE", "soon")
        with pytest.raises(ConfigurationError):
            ServeOptions.from_env()


class TestServerConfig:

    def test_defaults_are_valid(self):
        ServerConfig().validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("config", [
        ServerConfig(port=70000),
        ServerConfig(keep_alive_timeout=0),
        ServerConfig(max_head_size=10),
        ServerConfig(log_format="xml"),
    ])
    def test_invalid(self, config):
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_HOST", "0.0.0.0")
        monkeypatch.setenv("HTTP_PORT", "9000")
        monkeypatch.setenv("HTTP_LOG_FORMAT", "json")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.log_format == "json"

    def test_from_env_port_zero(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "0")
        assert ServerConfig.from_env().port == 0

    @pytest.mark.parametrize("name,value", [
        ("HTTP_PORT", "eighty"),
        ("HTTP_KEEP_ALIVE_TIMEOUT", "soon"),
    ])
    def test_from_env_bad_number(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError):
            ServerConfig.from_env()
