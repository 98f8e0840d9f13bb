"""
Tests for settings and .env loading.
"""

from pathlib import Path

import pytest

from gityap.config import DEFAULT_API_URL, Settings, load_settings
from gityap.env import load_env
from gityap.errors import ConfigError


class TestLoadSettings:
    """Environment to Settings."""

    def test_defaults(self):
        settings = load_settings({})

        assert settings == Settings()
        assert settings.api_url == DEFAULT_API_URL
        assert settings.database_path == Path("data/gityap.db")
        assert settings.timeout == 60.0

    def test_reads_environment(self):
        settings = load_settings(
            {
                "GITHUB_TOKEN": " ghp_abc ",
                "GITHUB_API_URL": "https://ghe.example.com/api/v3/",
                "GITYAP_DATABASE": "/tmp/x.db",
                "GITYAP_STORE": "Memory",
                "GITYAP_CHANNELS": "/tmp/channels.json",
                "GITYAP_TIMEOUT": "2.5",
                "GITYAP_HTTP_TIMEOUT": "3",
                "LOG_LEVEL": "debug",
                "GITYAP_LOG_DIR": "/tmp/logs",
            }
        )

        assert settings.github_token == "ghp_abc"
        assert settings.api_url == "https://ghe.example.com/api/v3"
        assert settings.database_path == Path("/tmp/x.db")
        assert settings.store == "memory"
        assert settings.channels_path == Path("/tmp/channels.json")
        assert settings.timeout == 2.5
        assert settings.http_timeout == 3.0
        assert settings.log_level == "DEBUG"
        assert settings.log_dir == Path("/tmp/logs")

    def test_blank_token_is_none(self):
        assert load_settings({"GITHUB_TOKEN": "   "}).github_token is None

    def test_unknown_store(self):
        with pytest.raises(ConfigError, match="GITYAP_STORE"):
            load_settings({"GITYAP_STORE": "redis"})

    @pytest.mark.parametrize("raw", ["soon", "0", "-5"])
    def test_bad_timeout(self, raw):
        with pytest.raises(ConfigError, match="GITYAP_TIMEOUT"):
            load_settings({"GITYAP_TIMEOUT": raw})

    def test_override_skips_none(self):
        settings = Settings(store="sql", timeout=60.0)

        changed = settings.override(store="memory", timeout=None)

        assert changed.store == "memory"
        assert changed.timeout == 60.0
        assert settings.store == "sql"


class TestLoadEnv:
    """``.env`` in the working directory."""

    def test_loads_without_overriding(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("GITYAP_STORE=memory\nGITHUB_TOKEN=from-file\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GITHUB_TOKEN", "from-shell")
        # set then delete so teardown removes whatever load_env adds
        monkeypatch.setenv("GITYAP_STORE", "sql")
        monkeypatch.delenv("GITYAP_STORE")

        load_env()

        settings = load_settings()
        assert settings.store == "memory"
        assert settings.github_token == "from-shell"

    def test_missing_file_is_fine(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        load_env()
