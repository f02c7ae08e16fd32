"""
Addonkit Addon System - Addon lifecycle management.

This package handles:
- Version constraint parsing and matching
- Manifest parsing into immutable descriptors
- Discovery into a read-only registry (duplicates and cycles rejected)
- Dependency checks against the durable activation store
- Install / activate / deactivate / update / uninstall orchestration
"""

from addonkit.addon.discovery import DirectoryDiscoverer, Discoverer, StaticDiscoverer
from addonkit.addon.errors import (
    AddonError,
    AddonStateError,
    ConstraintError,
    CycleError,
    DependencyError,
    DependencyUnsatisfiedError,
    DuplicateAddonError,
    DuplicateError,
    HasDependentsError,
    HookExecutionError,
    ManifestError,
    NotFoundError,
    StoreError,
)
from addonkit.addon.events import (
    AddonActivated,
    AddonDeactivated,
    AddonEvent,
    AddonInstalled,
    AddonUninstalled,
    AddonUpdated,
)
from addonkit.addon.hooks import Addon, ScriptAddon
from addonkit.addon.manager import AddonManager, AddonState
from addonkit.addon.manifest import AddonDescriptor, RawManifest, parse_manifest
from addonkit.addon.registry import AddonRegistry, discover
from addonkit.addon.resolver import DependencyResolver
from addonkit.addon.store import (
    ActivationRecord,
    ActivationStore,
    MemoryActivationStore,
    TomlActivationStore,
)
from addonkit.addon.version import VersionConstraint, parse_constraint, satisfies

__all__ = [
    "ActivationRecord",
    "ActivationStore",
    "Addon",
    "AddonActivated",
    "AddonDeactivated",
    "AddonDescriptor",
    "AddonError",
    "AddonEvent",
    "AddonInstalled",
    "AddonManager",
    "AddonRegistry",
    "AddonStateError",
    "AddonState",
    "AddonUninstalled",
    "AddonUpdated",
    "ConstraintError",
    "CycleError",
    "DependencyError",
    "DependencyResolver",
    "DependencyUnsatisfiedError",
    "DirectoryDiscoverer",
    "Discoverer",
    "DuplicateAddonError",
    "DuplicateError",
    "HasDependentsError",
    "HookExecutionError",
    "ManifestError",
    "MemoryActivationStore",
    "NotFoundError",
    "RawManifest",
    "ScriptAddon",
    "StaticDiscoverer",
    "StoreError",
    "TomlActivationStore",
    "VersionConstraint",
    "discover",
    "parse_constraint",
    "parse_manifest",
    "satisfies",
]
