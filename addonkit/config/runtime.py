"""
Runtime Addon Configuration Access.

AddonConfig exposes one addon's settings with attribute or get/set access.
Reads fall back to schema defaults; every write is validated and flushed to
the shared TOML file straight away.

Example:
    cfg = AddonConfig("price-rules", schema, Path("config/addons.toml"))
    cfg.threshold          # read
    cfg.threshold = 0.7    # validate + flush
    cfg.set("mode", "safe")
"""

import threading
from pathlib import Path
from typing import Any

from addonkit.config.schema import (
    ConfigField,
    ValidationError,
    default_config,
    validate_config,
)
from addonkit.config.toml_handler import TOMLError, load_document, read_toml, write_toml


class ConfigAccessError(Exception):
    """Raised when configuration cannot be loaded or flushed."""

    pass


# One lock per config file: several addons share the same file.
_file_locks: dict[Path, threading.Lock] = {}
_file_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = path.resolve()
    with _file_locks_guard:
        lock = _file_locks.get(key)
        if lock is None:
            lock = _file_locks[key] = threading.Lock()
        return lock


class AddonConfig:
    """Configuration accessor for a single addon."""

    def __init__(
        self,
        addon_id: str,
        schema: dict[str, ConfigField],
        config_file: Path,
    ):
        object.__setattr__(self, "_addon_id", addon_id)
        object.__setattr__(self, "_schema", schema)
        object.__setattr__(self, "_config_file", config_file)
        object.__setattr__(self, "_lock", _lock_for(config_file))
        object.__setattr__(self, "_values", self._load())

    def _load(self) -> dict[str, Any]:
        values = default_config(self._schema)
        if not self._config_file.exists():
            return values

        try:
            stored = read_toml(self._config_file).get(self._addon_id, {})
            validate_config(stored, self._schema)
        except TOMLError as e:
            raise ConfigAccessError(
                f"Failed to load configuration for {self._addon_id}: {e}"
            ) from e
        except ValidationError as e:
            raise ConfigAccessError(
                f"Invalid stored configuration for {self._addon_id}: {e}"
            ) from e

        values.update(stored)
        return values

    def get(self, key: str | None = None, default: Any = None) -> Any:
        """
        Read a value, or a copy of all values when `key` is None.

        Unknown keys return `default`.
        """
        if key is None:
            return dict(self._values)
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Validate and persist a single value.

        Raises:
            AttributeError: If the key is not declared in the schema
            ValidationError: If the value is rejected by the schema
            ConfigAccessError: If the file cannot be written
        """
        if key not in self._schema:
            raise AttributeError(
                f"Configuration field '{key}' not declared by addon {self._addon_id}"
            )
        self._schema[key].validate(value)

        with self._lock:
            values = {**self._values, key: value}
            self._flush(values)
            object.__setattr__(self, "_values", values)

    def reset(self) -> None:
        """Drop stored values so every field returns to its default."""
        with self._lock:
            try:
                doc = load_document(self._config_file)
                if self._addon_id in doc:
                    del doc[self._addon_id]
                    write_toml(self._config_file, doc)
            except TOMLError as e:
                raise ConfigAccessError(
                    f"Failed to reset configuration for {self._addon_id}: {e}"
                ) from e
            object.__setattr__(self, "_values", default_config(self._schema))

    def _flush(self, values: dict[str, Any]) -> None:
        # caller holds self._lock
        try:
            doc = load_document(self._config_file)
            doc[self._addon_id] = dict(values)
            write_toml(self._config_file, doc)
        except TOMLError as e:
            raise ConfigAccessError(
                f"Failed to flush configuration for {self._addon_id}: {e}"
            ) from e

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            return object.__getattribute__(self, name)
        if name not in self._schema:
            raise AttributeError(
                f"Configuration field '{name}' not declared by addon {self._addon_id}"
            )
        return self._values[name]

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return
        self.set(name, value)

    def __repr__(self) -> str:
        return f"AddonConfig({self._addon_id}, {self._values})"
