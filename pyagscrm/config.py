"""Configuration management for pyagscrm.

Configuration is loaded from (in order of precedence):
1. Environment variables (PYAGSCRM_*)
2. User config file (~/.pyagscrm/config.json)
3. Default values

The display-name offset and safety margin are empirically derived for the
room revisions seen so far. A sample that needs other values is probably a
separate format variant and should be reported rather than special-cased.

Environment variables:
    PYAGSCRM_DISPLAY_NAMES_OFFSET - Offset of the hotspot name table (decimal or 0x hex)
    PYAGSCRM_SAFETY_MARGIN - Bytes kept free before the end of file when rewriting tables
    PYAGSCRM_SCRIPT_SEARCH_WINDOW - Bytes searched for the script name table
    PYAGSCRM_CREATE_BACKUP - Back up room files before overwriting (true/false)
    PYAGSCRM_VALIDATE_AFTER_WRITE - Sanity check written files (true/false)
    PYAGSCRM_LOG_LEVEL - Logging level name (DEBUG, INFO, WARNING, ...)
"""

import json
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path


# Default config directory
CONFIG_DIR = Path.home() / ".pyagscrm"
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_DISPLAY_NAMES_OFFSET = 0x101
DEFAULT_SAFETY_MARGIN = 100
DEFAULT_SCRIPT_SEARCH_WINDOW = 500


@dataclass
class FormatConfig:
    """Offsets and windows used by the hotspot table heuristics."""

    display_names_offset: int = DEFAULT_DISPLAY_NAMES_OFFSET
    safety_margin: int = DEFAULT_SAFETY_MARGIN
    script_search_window: int = DEFAULT_SCRIPT_SEARCH_WINDOW


@dataclass
class WriterConfig:
    """Defaults for hotspot writes."""

    create_backup: bool = True
    validate_after_write: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class Config:
    """Main configuration container."""

    format: FormatConfig = field(default_factory=FormatConfig)
    writer: WriterConfig = field(default_factory=WriterConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict:
        """Convert to dictionary for saving."""
        return {
            "format": asdict(self.format),
            "writer": asdict(self.writer),
            "logging": asdict(self.logging),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create from dictionary."""
        config = cls()
        if "format" in data:
            config.format = FormatConfig(**data["format"])
        if "writer" in data:
            config.writer = WriterConfig(**data["writer"])
        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])
        return config


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.environ.get(key, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get integer from environment variable (decimal or 0x hex)."""
    value = os.environ.get(key, "")
    try:
        return int(value, 0)
    except ValueError:
        return default


def load_config(path: Path | None = None) -> Config:
    """Load configuration from environment and/or file.

    Environment variables take precedence over file config.
    """
    config = Config()
    config_file = path or CONFIG_FILE

    # Try to load from file first
    if config_file.exists():
        try:
            with open(config_file) as f:
                data = json.load(f)
                config = Config.from_dict(data)
        except (json.JSONDecodeError, OSError, TypeError):
            pass  # Use defaults

    fmt = config.format
    if "PYAGSCRM_DISPLAY_NAMES_OFFSET" in os.environ:
        fmt.display_names_offset = _get_env_int(
            "PYAGSCRM_DISPLAY_NAMES_OFFSET", fmt.display_names_offset
        )
    if "PYAGSCRM_SAFETY_MARGIN" in os.environ:
        fmt.safety_margin = _get_env_int("PYAGSCRM_SAFETY_MARGIN", fmt.safety_margin)
    if "PYAGSCRM_SCRIPT_SEARCH_WINDOW" in os.environ:
        fmt.script_search_window = _get_env_int(
            "PYAGSCRM_SCRIPT_SEARCH_WINDOW", fmt.script_search_window
        )

    if "PYAGSCRM_CREATE_BACKUP" in os.environ:
        config.writer.create_backup = _get_env_bool(
            "PYAGSCRM_CREATE_BACKUP", config.writer.create_backup
        )
    if "PYAGSCRM_VALIDATE_AFTER_WRITE" in os.environ:
        config.writer.validate_after_write = _get_env_bool(
            "PYAGSCRM_VALIDATE_AFTER_WRITE", config.writer.validate_after_write
        )

    if "PYAGSCRM_LOG_LEVEL" in os.environ:
        config.logging.level = os.environ["PYAGSCRM_LOG_LEVEL"].upper()

    return config


def save_config(config: Config, path: Path | None = None) -> None:
    """Save configuration to file."""
    config_file = path or CONFIG_FILE
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        json.dump(config.to_dict(), f, indent=2)


# Global config instance (lazy loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from sources."""
    global _config
    _config = load_config()
    return _config
