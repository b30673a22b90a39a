"""Tests for configuration loading."""

import json

import pytest

from pyagscrm.config import Config, FormatConfig, load_config, save_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove configuration variables from the environment."""
    for key in (
        "PYAGSCRM_DISPLAY_NAMES_OFFSET",
        "PYAGSCRM_SAFETY_MARGIN",
        "PYAGSCRM_SCRIPT_SEARCH_WINDOW",
        "PYAGSCRM_CREATE_BACKUP",
        "PYAGSCRM_VALIDATE_AFTER_WRITE",
        "PYAGSCRM_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)


class TestConfig:
    """Test configuration defaults and sources."""

    def test_defaults(self, tmp_path):
        """Test values without a file or environment."""
        config = load_config(tmp_path / "missing.json")
        assert config.format == FormatConfig()
        assert config.format.display_names_offset == 0x101
        assert config.format.safety_margin == 100
        assert config.format.script_search_window == 500
        assert config.writer.create_backup
        assert config.writer.validate_after_write
        assert config.logging.level == "WARNING"

    def test_save_and_load(self, tmp_path):
        """Test the JSON file round trip."""
        path = tmp_path / "config.json"
        config = Config()
        config.format.safety_margin = 64
        config.writer.create_backup = False
        save_config(config, path)

        loaded = load_config(path)
        assert loaded.format.safety_margin == 64
        assert not loaded.writer.create_backup

    def test_partial_file(self, tmp_path):
        """Test that missing sections keep their defaults."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"writer": {"create_backup": False}}))
        config = load_config(path)
        assert not config.writer.create_backup
        assert config.format.display_names_offset == 0x101

    def test_invalid_file(self, tmp_path):
        """Test that a broken file falls back to defaults."""
        path = tmp_path / "config.json"
        path.write_text("{broken")
        assert load_config(path).format.safety_margin == 100

    def test_environment_overrides(self, tmp_path, monkeypatch):
        """Test environment variables win over the file."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"format": {"safety_margin": 64}}))
        monkeypatch.setenv("PYAGSCRM_SAFETY_MARGIN", "200")
        monkeypatch.setenv("PYAGSCRM_DISPLAY_NAMES_OFFSET", "0x120")
        monkeypatch.setenv("PYAGSCRM_CREATE_BACKUP", "false")
        monkeypatch.setenv("PYAGSCRM_LOG_LEVEL", "debug")

        config = load_config(path)
        assert config.format.safety_margin == 200
        assert config.format.display_names_offset == 0x120
        assert not config.writer.create_backup
        assert config.logging.level == "DEBUG"

    def test_bad_integer_keeps_value(self, tmp_path, monkeypatch):
        """Test an unparseable number is ignored."""
        monkeypatch.setenv("PYAGSCRM_SCRIPT_SEARCH_WINDOW", "lots")
        assert load_config(tmp_path / "missing.json").format.script_search_window == 500

    def test_to_dict(self):
        """Test serialization sections."""
        data = Config().to_dict()
        assert set(data) == {"format", "writer", "logging"}
        assert Config.from_dict(data) == Config()
