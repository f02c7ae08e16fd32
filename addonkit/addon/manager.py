"""
Addon Manager.

This module orchestrates the addon lifecycle.

States per addon id:
- DISCOVERED: in the registry, no activation record
- INSTALLED:  activation record with is_active = False
- ACTIVE:     activation record with is_active = True

Key features:
- install / uninstall / activate / deactivate / update with fail-fast checks
- No store mutation before every check has passed, and none when a hook fails
- Per-addon locking so concurrent operations on related ids serialize
- Lifecycle events published after the store mutation succeeds, still under
  the addon lock so each id's events arrive in commit order
- Batch register/boot of active addons at process start-up
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from enum import Enum
from pathlib import Path

from addonkit.addon.discovery import DirectoryDiscoverer
from addonkit.addon.errors import AddonError, AddonStateError, HookExecutionError, NotFoundError
from addonkit.addon.events import (
    AddonActivated,
    AddonDeactivated,
    AddonEvent,
    AddonInstalled,
    AddonUninstalled,
    AddonUpdated,
)
from addonkit.addon.graph import topological_order
from addonkit.addon.manifest import AddonDescriptor
from addonkit.addon.registry import AddonRegistry, discover
from addonkit.addon.resolver import DependencyResolver
from addonkit.addon.store import ActivationRecord, ActivationStore, TomlActivationStore, utcnow
from addonkit.addon.version import compare_versions
from addonkit.config import AddonConfig, Settings
from addonkit.core.event_bus import EventBus

logger = logging.getLogger(__name__)


class AddonState(Enum):
    """Lifecycle state of an addon."""

    DISCOVERED = "discovered"
    INSTALLED = "installed"
    ACTIVE = "active"


class AddonManager:
    """
    Addon lifecycle manager.

    The registry is read-only; all durable state lives in the activation
    store. Every lifecycle operation returns True when it changed state and
    False when it was an idempotent no-op.
    """

    def __init__(
        self,
        registry: AddonRegistry,
        store: ActivationStore,
        events: EventBus | None = None,
        config_file: Path | None = None,
    ):
        """
        Initialize AddonManager.

        Args:
            registry: Discovered addons
            store: Durable activation records
            events: Bus for lifecycle events (a private one if omitted)
            config_file: TOML file holding per-addon configuration
        """
        self.registry = registry
        self.store = store
        self.events = events or EventBus()
        self.config_file = config_file
        self.resolver = DependencyResolver(registry, store)

        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self._configs: dict[str, AddonConfig] = {}
        self._started = False

    @classmethod
    def from_settings(cls, settings: Settings, events: EventBus | None = None) -> "AddonManager":
        """Build a manager over an addons directory and a TOML activation store."""
        discoverer = DirectoryDiscoverer(settings.addons_dir, hook_timeout=settings.hook_timeout)
        return cls(
            discover(discoverer),
            TomlActivationStore(settings.store_file),
            events=events,
            config_file=settings.config_file,
        )

    # Locking

    def _lock_for(self, addon_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(addon_id)
            if lock is None:
                lock = self._locks[addon_id] = threading.RLock()
            return lock

    @contextmanager
    def _locked(self, descriptor: AddonDescriptor) -> Iterator[None]:
        # The addon plus its direct neighbours, always acquired in sorted order.
        ids = {descriptor.id, *descriptor.dependencies}
        ids.update(d.id for d in self.registry.dependents(descriptor.id))
        with ExitStack() as stack:
            for addon_id in sorted(ids):
                stack.enter_context(self._lock_for(addon_id))
            yield

    # Queries

    def get(self, addon_id: str) -> AddonDescriptor | None:
        return self.registry.get(addon_id)

    def has(self, addon_id: str) -> bool:
        return addon_id in self.registry

    def record(self, addon_id: str) -> ActivationRecord | None:
        return self.store.get(addon_id)

    def state(self, addon_id: str) -> AddonState:
        """
        Current lifecycle state of an addon.

        Raises:
            NotFoundError: If the addon is not discovered
        """
        self._require("state", addon_id)
        record = self.store.get(addon_id)
        if record is None:
            return AddonState.DISCOVERED
        return AddonState.ACTIVE if record.is_active else AddonState.INSTALLED

    def is_installed(self, addon_id: str) -> bool:
        return self.store.exists(addon_id)

    def is_active(self, addon_id: str) -> bool:
        record = self.store.get(addon_id)
        return record is not None and record.is_active

    def installed(self) -> list[AddonDescriptor]:
        """Discovered addons that have an activation record."""
        return [d for d in self.registry if self.store.exists(d.id)]

    def active(self) -> list[AddonDescriptor]:
        """Active addons, dependencies first."""
        return self._active_in_order()

    def config(self, addon_id: str) -> AddonConfig:
        """
        Configuration accessor for an addon.

        Raises:
            NotFoundError: If the addon is not discovered
            AddonError: If the manager has no configuration file
        """
        descriptor = self._require("config", addon_id)
        if self.config_file is None:
            raise AddonError(
                "No configuration file configured", operation="config", addon_id=addon_id
            )
        with self._locks_guard:
            cfg = self._configs.get(addon_id)
            if cfg is None:
                cfg = AddonConfig(addon_id, dict(descriptor.config_schema), self.config_file)
                self._configs[addon_id] = cfg
            return cfg

    # Lifecycle operations

    def install(self, addon_id: str) -> bool:
        """
        Install an addon.

        Installing an installed addon is a no-op. Dependencies only need to
        be discoverable; those already installed must satisfy the declared
        constraint.

        Raises:
            NotFoundError: If the addon is not discovered
            DependencyUnsatisfiedError: If a dependency check fails
            HookExecutionError: If the addon's install() hook fails
        """
        descriptor = self._require("install", addon_id)

        with self._locked(descriptor):
            if self.store.exists(addon_id):
                logger.debug("Addon %s already installed", addon_id)
                return False

            self.resolver.check_installable(descriptor)
            self._run_hook(descriptor, "install", "install")

            now = utcnow()
            self.store.create(
                ActivationRecord(
                    id=addon_id,
                    installed_version=descriptor.version,
                    is_active=False,
                    installed_at=now,
                    updated_at=now,
                )
            )

            logger.info("Installed addon %s %s", addon_id, descriptor.version)
            self._publish(AddonInstalled(addon_id, descriptor.version))
        return True

    def uninstall(self, addon_id: str) -> bool:
        """
        Uninstall an installed, inactive addon.

        Raises:
            NotFoundError: If the addon is not discovered or not installed
            AddonStateError: If the addon is still active
            HasDependentsError: If any discovered addon depends on it
            HookExecutionError: If the addon's uninstall() hook fails
        """
        descriptor = self._require("uninstall", addon_id)

        with self._locked(descriptor):
            record = self._require_record("uninstall", addon_id)
            if record.is_active:
                raise AddonStateError(
                    f"Addon {addon_id} is active; deactivate it before uninstalling",
                    operation="uninstall",
                    addon_id=addon_id,
                )

            self.resolver.check_uninstallable(addon_id)
            self._run_hook(descriptor, "uninstall", "uninstall")
            self.store.delete(addon_id)

            logger.info("Uninstalled addon %s", addon_id)
            self._publish(AddonUninstalled(addon_id, record.installed_version))
        return True

    def activate(self, addon_id: str) -> bool:
        """
        Activate an installed addon.

        Runs the addon's activate(), register() and boot() hooks in that
        order. Activating an active addon is a no-op.

        Raises:
            NotFoundError: If the addon is not discovered or not installed
            DependencyUnsatisfiedError: If a dependency is missing, not
                installed, inactive or out of range
            HookExecutionError: If one of the hooks fails
        """
        descriptor = self._require("activate", addon_id)

        with self._locked(descriptor):
            record = self._require_record("activate", addon_id)
            if record.is_active:
                logger.debug("Addon %s already active", addon_id)
                return False

            self.resolver.check_activatable(descriptor)
            self._run_hook(descriptor, "activate", "activate")
            self._run_hook(descriptor, "register", "activate")
            self._run_hook(descriptor, "boot", "activate")
            self.store.set_active(addon_id, True)

            logger.info("Activated addon %s", addon_id)
            self._publish(AddonActivated(addon_id, record.installed_version))
        return True

    def deactivate(self, addon_id: str) -> bool:
        """
        Deactivate an active addon.

        Deactivating an installed but inactive addon is a no-op.

        Raises:
            NotFoundError: If the addon is not discovered or not installed
            HasDependentsError: If an active addon depends on it
            HookExecutionError: If the addon's deactivate() hook fails
        """
        descriptor = self._require("deactivate", addon_id)

        with self._locked(descriptor):
            record = self._require_record("deactivate", addon_id)
            if not record.is_active:
                logger.debug("Addon %s already inactive", addon_id)
                return False

            self.resolver.check_deactivatable(addon_id)
            self._run_hook(descriptor, "deactivate", "deactivate")
            self.store.set_active(addon_id, False)

            logger.info("Deactivated addon %s", addon_id)
            self._publish(AddonDeactivated(addon_id, record.installed_version))
        return True

    def update(self, addon_id: str) -> bool:
        """
        Bring an installed addon up to the discovered version.

        A discovered version that is not strictly newer than the installed
        one is a no-op; nothing is ever downgraded.

        Raises:
            NotFoundError: If the addon is not discovered or not installed
            DependencyUnsatisfiedError: If the new version breaks the
                constraint of an active dependent
            HookExecutionError: If the addon's update() hook fails
        """
        descriptor = self._require("update", addon_id)

        with self._locked(descriptor):
            record = self._require_record("update", addon_id)
            old_version = record.installed_version
            new_version = descriptor.version

            if compare_versions(new_version, old_version) <= 0:
                logger.debug(
                    "Addon %s is up to date (installed %s, discovered %s)",
                    addon_id,
                    old_version,
                    new_version,
                )
                return False

            self.resolver.check_updatable(descriptor, new_version)
            self._run_hook(descriptor, "update", "update", old_version)
            self.store.set_version(addon_id, new_version)

            logger.info("Updated addon %s from %s to %s", addon_id, old_version, new_version)
            self._publish(AddonUpdated(addon_id, new_version, old_version=old_version))
        return True

    # Start-up

    def register_active(self) -> list[str]:
        """
        Run register() on every active addon, dependencies first.

        Returns:
            Ids of the addons registered
        """
        descriptors = self._active_in_order()
        for descriptor in descriptors:
            self._run_hook(descriptor, "register", "register_active")
        return [d.id for d in descriptors]

    def boot_active(self) -> list[str]:
        """
        Run boot() on every active addon, dependencies first.

        Returns:
            Ids of the addons booted
        """
        descriptors = self._active_in_order()
        for descriptor in descriptors:
            self._run_hook(descriptor, "boot", "boot_active")
        return [d.id for d in descriptors]

    def start(self) -> list[str]:
        """
        Register, then boot, every active addon. May succeed once per manager;
        a start that failed in a hook can be retried.

        Must complete before the process serves lifecycle operations.

        Returns:
            Ids of the active addons, in the order they were booted

        Raises:
            AddonStateError: If the manager was already started
            HookExecutionError: If a register() or boot() hook fails
        """
        if self._started:
            raise AddonStateError("Addon manager already started", operation="start")
        self.register_active()
        booted = self.boot_active()
        self._started = True
        logger.info("Started %d active addon(s): %s", len(booted), ", ".join(booted))
        return booted

    # Internals

    def _require(self, operation: str, addon_id: str) -> AddonDescriptor:
        descriptor = self.registry.get(addon_id)
        if descriptor is None:
            raise NotFoundError(
                f"Addon {addon_id} not found", operation=operation, addon_id=addon_id
            )
        return descriptor

    def _require_record(self, operation: str, addon_id: str) -> ActivationRecord:
        record = self.store.get(addon_id)
        if record is None:
            raise NotFoundError(
                f"Addon {addon_id} is not installed", operation=operation, addon_id=addon_id
            )
        return record

    def _run_hook(self, descriptor: AddonDescriptor, hook: str, operation: str, *args) -> None:
        logger.debug("Running %s() of %s", hook, descriptor.id)
        try:
            getattr(descriptor.addon, hook)(*args)
        except Exception as e:
            raise HookExecutionError(
                f"{hook}() hook of addon {descriptor.id} failed during {operation}: {e}",
                hook=hook,
                original=e,
                operation=operation,
                addon_id=descriptor.id,
            ) from e

    def _active_in_order(self) -> list[AddonDescriptor]:
        active_ids = []
        for record in self.store.all():
            if not record.is_active:
                continue
            if record.id not in self.registry:
                logger.warning("Active addon %s is no longer discovered; skipping", record.id)
                continue
            active_ids.append(record.id)

        order = topological_order(self.registry.dependency_graph(), active_ids)
        return [self.registry.get(addon_id) for addon_id in order]

    def _publish(self, event: AddonEvent) -> None:
        self.events.publish(event.event_id, event)
