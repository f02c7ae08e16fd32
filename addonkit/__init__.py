"""
Addonkit - Addon lifecycle management for plugin-based applications.

Independently versioned addons declare dependencies on each other by id and
version constraint. Addonkit discovers them, keeps the dependency graph
acyclic and satisfied, and drives install / activate / deactivate / update /
uninstall against a durable activation record.

Example:
    from addonkit import AddonManager, MemoryActivationStore, StaticDiscoverer, discover

    registry = discover(StaticDiscoverer([
        {"id": "catalog", "version": "1.2.0"},
        {"id": "reviews", "version": "0.3.0", "dependencies": {"catalog": "^1.0"}},
    ]))
    manager = AddonManager(registry, MemoryActivationStore())
    manager.install("catalog")
    manager.activate("catalog")
"""

__version__ = "0.1.0"

from addonkit.addon import (
    ActivationRecord,
    Addon,
    AddonDescriptor,
    AddonError,
    AddonManager,
    AddonRegistry,
    AddonState,
    DirectoryDiscoverer,
    MemoryActivationStore,
    StaticDiscoverer,
    TomlActivationStore,
    discover,
    satisfies,
)
from addonkit.config import Settings, load_settings
from addonkit.core import EventBus

__all__ = [
    "__version__",
    "ActivationRecord",
    "Addon",
    "AddonDescriptor",
    "AddonError",
    "AddonManager",
    "AddonRegistry",
    "AddonState",
    "DirectoryDiscoverer",
    "EventBus",
    "MemoryActivationStore",
    "Settings",
    "StaticDiscoverer",
    "TomlActivationStore",
    "discover",
    "load_settings",
    "satisfies",
]
