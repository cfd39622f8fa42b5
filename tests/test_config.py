"""Tests for environment-driven configuration."""
from pathlib import Path

import pytest
from pydantic import ValidationError

from dgarden.config import GardenConfig
from dgarden.exceptions import ConfigurationError


class TestGardenConfig:

    def test_defaults(self, monkeypatch):
        for name in (
            "DGARDEN_VAULT_DIR",
            "DGARDEN_IGNORE_DIRS",
            "DGARDEN_LOG_DIR",
            "DGARDEN_LOG_LEVEL",
            "DGARDEN_STRICT",
            "DGARDEN_CHECK_UNPUBLISHED_LINKS",
            "DGARDEN_REQUIRE_PERMALINK",
        ):
            monkeypatch.delenv(name, raising=False)
        cfg = GardenConfig()
        assert cfg.vault_dir == Path(".")
        assert cfg.ignore_dirs == [".obsidian", ".trash", ".git"]
        assert cfg.log_dir is None
        assert cfg.log_level == "WARNING"
        assert cfg.strict is False
        assert cfg.check_unpublished_links is True
        assert cfg.require_permalink is True

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DGARDEN_VAULT_DIR", str(tmp_path))
        monkeypatch.setenv("DGARDEN_IGNORE_DIRS", "templates, .obsidian ,")
        monkeypatch.setenv("DGARDEN_LOG_DIR", str(tmp_path / "logs"))
        monkeypatch.setenv("DGARDEN_LOG_LEVEL", "debug")
        monkeypatch.setenv("DGARDEN_STRICT", "yes")
        monkeypatch.setenv("DGARDEN_CHECK_UNPUBLISHED_LINKS", "0")
        cfg = GardenConfig()
        assert cfg.get_vault_path() == tmp_path.resolve()
        assert cfg.ignore_dirs == ["templates", ".obsidian"]
        assert cfg.get_log_dir() == tmp_path / "logs"
        assert cfg.log_level == "DEBUG"
        assert cfg.strict is True
        assert cfg.check_unpublished_links is False

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("DGARDEN_LOG_LEVEL", "chatty")
        with pytest.raises(ValidationError):
            GardenConfig()

    def test_check_reports_configuration_error(self, monkeypatch):
        monkeypatch.setenv("DGARDEN_LOG_LEVEL", "chatty")
        cfg = GardenConfig.model_construct()
        assert cfg.log_level == "CHATTY"
        with pytest.raises(ConfigurationError) as exc_info:
            cfg.check()
        assert exc_info.value.config_key == "log_level"
        assert "must be one of" in exc_info.value.message

    def test_check_sees_assigned_values(self):
        cfg = GardenConfig()
        cfg.check()
        cfg.log_level = "LOUD"
        with pytest.raises(ConfigurationError):
            cfg.check()
