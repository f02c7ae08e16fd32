"""
Addon Entry Point Loader.

Imports an addon's Python entry point and builds its hook implementation.

A manifest selects the implementation with:
- "main":  path of the entry module relative to the package directory
- "class": name of the Addon subclass inside that module (optional)

Without "class", the module must expose a `create_addon(base_path)` factory.
"""

import importlib.util
import logging
import sys
import threading
from pathlib import Path
from types import ModuleType
from typing import Any

from addonkit.addon.errors import AddonError

logger = logging.getLogger(__name__)


class LoaderError(AddonError):
    """Raised when an entry point cannot be imported or instantiated."""

    pass


# Module cache: addon id -> module
_module_cache: dict[str, ModuleType] = {}
_cache_lock = threading.Lock()


def _module_name(addon_id: str) -> str:
    safe = "".join(c if c.isalnum() else "_" for c in addon_id)
    return f"addonkit_addon_{safe}"


def load_entry_module(addon_id: str, addon_dir: Path, main: str) -> ModuleType:
    """
    Import an addon's entry module, reusing the cached module if present.

    Raises:
        LoaderError: If the entry point is missing or fails to import
    """
    entry_point = addon_dir / main
    if entry_point.suffix != ".py":
        raise LoaderError(f"Entry point must be a .py file: {main}", addon_id=addon_id)
    if not entry_point.is_file():
        raise LoaderError(f"Entry point not found: {entry_point}", addon_id=addon_id)

    with _cache_lock:
        if addon_id in _module_cache:
            return _module_cache[addon_id]

        module_name = _module_name(addon_id)
        spec = importlib.util.spec_from_file_location(module_name, entry_point)
        if spec is None or spec.loader is None:
            raise LoaderError(
                f"Failed to create module spec for {entry_point}", addon_id=addon_id
            )

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            sys.modules.pop(module_name, None)
            raise LoaderError(
                f"Failed to import entry point of {addon_id}: {e}", addon_id=addon_id
            ) from e

        _module_cache[addon_id] = module
        logger.debug("Loaded entry module %s for %s", entry_point, addon_id)
        return module


def load_addon(addon_id: str, addon_dir: Path, manifest: dict[str, Any]) -> Any:
    """
    Instantiate the hook implementation for an addon.

    Raises:
        LoaderError: If the module, class or factory cannot be used
    """
    module = load_entry_module(addon_id, addon_dir, manifest["main"])
    class_name = manifest.get("class")

    if class_name:
        factory = getattr(module, class_name, None)
        if not isinstance(factory, type):
            raise LoaderError(
                f"Entry point of {addon_id} has no class named {class_name!r}",
                addon_id=addon_id,
            )
    else:
        factory = getattr(module, "create_addon", None)
        if not callable(factory):
            raise LoaderError(
                f"Entry point of {addon_id} defines neither a 'class' in its manifest "
                f"nor a create_addon() factory",
                addon_id=addon_id,
            )

    try:
        return factory(addon_dir)
    except Exception as e:
        raise LoaderError(f"Failed to instantiate addon {addon_id}: {e}", addon_id=addon_id) from e


def unload_entry_module(addon_id: str) -> None:
    """Drop an addon's module from the cache and sys.modules."""
    with _cache_lock:
        _module_cache.pop(addon_id, None)
        sys.modules.pop(_module_name(addon_id), None)


def is_module_cached(addon_id: str) -> bool:
    """Check if an addon's entry module is cached."""
    return addon_id in _module_cache


def clear_cache() -> None:
    """Unload every cached entry module."""
    for addon_id in list(_module_cache):
        unload_entry_module(addon_id)
