"""
Unit tests for command line parsing.
"""

import pytest

from assetserver.__main__ import load_settings, main


class TestLoadSettings:

    def test_defaults(self, monkeypatch):
        for name in ("ASSET_MAX_AGE", "ASSET_GZIP", "HTTP_PORT"):
            monkeypatch.delenv(name, raising=False)

        root, options, config = load_settings(["public"])

        assert root == "public"
        assert options.max_age == 0
        assert options.fallthrough is True
        assert config.port == 8080

    def test_flags(self):
        root, options, config = load_settings([
            "dist",
            "--port", "3000",
            "--prefix", "/static",
            "--max-age", "600",
            "--immutable",
            "--gzip",
            "--ext", "html",
            "--ext", ".htm",
            "--no-etag",
            "--no-fallthrough",
            "--error-file", "404.html",
            "--log-format", "json",
        ])

        assert root == "dist"
        assert config.port == 3000
        assert config.log_format == "json"
        assert options.prefix == "/static"
        assert options.max_age == 600
        assert options.immutable is True
        assert options.gzip is True
        assert options.brotli is False
        assert options.extensions == ("html", "htm")
        assert options.etag is False
        assert options.fallthrough is False
        assert options.error_file == "404.html"

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("ASSET_MAX_AGE", "10")
        _, options, _ = load_settings(["public", "--max-age", "20"])
        assert options.max_age == 20

    def test_environment_fills_gaps(self, monkeypatch):
        monkeypatch.setenv("ASSET_BROTLI", "yes")
        _, options, _ = load_settings(["public"])
        assert options.brotli is True


class TestMain:

    def test_missing_root_exits_with_error(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing")]) == 2
        assert "does not exist" in capsys.readouterr().err

    def test_negative_max_age(self, tmp_path, capsys):
        assert main([str(tmp_path), "--max-age", "-1"]) == 2

    def test_bad_port_in_environment(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("HTTP_PORT", "eighty")

        assert main([str(tmp_path)]) == 2
        assert "HTTP_PORT" in capsys.readouterr().err
