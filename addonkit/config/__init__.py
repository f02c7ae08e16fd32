"""
Addonkit Configuration - TOML-based settings.

This package provides:
- Manager settings loaded from an `addonkit.toml` file
- Per-addon configuration schemas declared in manifests
- Runtime typed access to addon configuration with auto-flush

Example `addonkit.toml`:

    [addonkit]
    addons_dir = "addons"
    store_file = "var/addons-state.toml"
    config_file = "config/addons.toml"
    log_dir = "logs"
    log_level = "INFO"
    hook_timeout = 120
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from addonkit.config.runtime import AddonConfig, ConfigAccessError
from addonkit.config.schema import ConfigField, SchemaError, ValidationError, parse_schema
from addonkit.config.toml_handler import TOMLError, read_toml

DEFAULT_SETTINGS_FILE = Path("addonkit.toml")
SETTINGS_TABLE = "addonkit"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when the settings file is invalid."""

    pass


@dataclass(frozen=True)
class Settings:
    """
    Manager settings.

    Relative paths are resolved against the directory of the settings file.
    """

    addons_dir: Path = Path("addons")
    store_file: Path = Path("var/addons-state.toml")
    config_file: Path = Path("config/addons.toml")
    log_dir: Path = Path("logs")
    log_level: str = "INFO"
    hook_timeout: int = 120


_PATH_KEYS = ("addons_dir", "store_file", "config_file", "log_dir")


def _coerce(data: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    known = set(Settings.__dataclass_fields__)
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")

    values: dict[str, Any] = {}
    for key in _PATH_KEYS:
        if key in data:
            if not isinstance(data[key], (str, Path)) or not str(data[key]):
                raise ConfigError(f"'{key}' must be a non-empty path string")
            path = Path(data[key])
            values[key] = path if path.is_absolute() else base_dir / path

    if "log_level" in data:
        level = data["log_level"]
        if not isinstance(level, str) or level.upper() not in _LOG_LEVELS:
            raise ConfigError(f"'log_level' must be one of {', '.join(_LOG_LEVELS)}")
        values["log_level"] = level.upper()

    if "hook_timeout" in data:
        timeout = data["hook_timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            raise ConfigError("'hook_timeout' must be a positive integer")
        values["hook_timeout"] = timeout

    return values


def load_settings(settings_file: Path | None = None, **overrides: Any) -> Settings:
    """
    Load manager settings.

    Args:
        settings_file: TOML file to read; a missing file yields defaults
        **overrides: Values that win over the file (None values are ignored)

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values
    """
    path = settings_file or DEFAULT_SETTINGS_FILE
    base_dir = path.parent
    settings = Settings(
        addons_dir=base_dir / Settings.addons_dir,
        store_file=base_dir / Settings.store_file,
        config_file=base_dir / Settings.config_file,
        log_dir=base_dir / Settings.log_dir,
    )

    if path.exists():
        try:
            data = read_toml(path).get(SETTINGS_TABLE, {})
        except TOMLError as e:
            raise ConfigError(str(e)) from e
        if not isinstance(data, dict):
            raise ConfigError(f"[{SETTINGS_TABLE}] must be a table")
        settings = replace(settings, **_coerce(data, base_dir))

    explicit = {key: value for key, value in overrides.items() if value is not None}
    if explicit:
        settings = replace(settings, **_coerce(explicit, Path.cwd()))
    return settings


__all__ = [
    "AddonConfig",
    "ConfigAccessError",
    "ConfigError",
    "ConfigField",
    "SchemaError",
    "Settings",
    "ValidationError",
    "load_settings",
    "parse_schema",
]
