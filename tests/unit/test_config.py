"""
Unit tests for configuration loading and config-file bootstrap.
"""
import json

import pytest

from bootstrap import ensure_config_files
from config import Config


@pytest.mark.unit
class TestConfig:
    """Tests for Config defaults and overrides."""

    def test_env_overrides(self, monkeypatch, temp_dir):
        monkeypatch.setenv("CONFIG_DIR", str(temp_dir))
        monkeypatch.setenv("PAGE_SIZE", "25")
        config = Config()
        assert config.page_size == 25
        assert config.users_file == temp_dir / "users.json"
        assert config.templates_dir == temp_dir / "templates"

    def test_settings_file_wins(self, monkeypatch, temp_dir):
        (temp_dir / "console_settings.json").write_text(
            json.dumps({"page_size": "50", "currency_symbol": "$", "_comment": "x", "unknown": 1}),
            encoding="utf-8",
        )
        monkeypatch.setenv("PAGE_SIZE", "25")
        config = Config(config_dir=temp_dir)
        assert config.page_size == 50
        assert config.currency_symbol == "$"

    def test_broken_settings_file_ignored(self, temp_dir):
        (temp_dir / "console_settings.json").write_text("{not json", encoding="utf-8")
        config = Config(config_dir=temp_dir)
        assert config.supplier_fuzzy_threshold == 75


@pytest.mark.unit
class TestBootstrap:
    """Tests for ensure_config_files."""

    def test_restores_defaults(self, temp_dir):
        restored = ensure_config_files(temp_dir)
        assert "users.json" in restored
        assert "receipt.html.j2" in restored
        users = json.loads((temp_dir / "users.json").read_text(encoding="utf-8"))["users"]
        assert {u["role"] for u in users} == {"admin", "manager", "staff"}
        assert (temp_dir / "templates" / "receipt.html.j2").exists()

    def test_leaves_existing_files(self, temp_dir):
        ensure_config_files(temp_dir)
        assert ensure_config_files(temp_dir) == []

    def test_repairs_corrupt_users_file(self, temp_dir):
        (temp_dir / "users.json").write_text("", encoding="utf-8")
        assert "users.json" in ensure_config_files(temp_dir)
        json.loads((temp_dir / "users.json").read_text(encoding="utf-8"))

    def test_missing_defaults_dir(self, temp_dir):
        assert ensure_config_files(temp_dir / "cfg", defaults_dir=temp_dir / "none") == []
