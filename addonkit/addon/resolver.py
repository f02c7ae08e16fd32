"""
Dependency Resolver.

Answers the graph questions asked before every mutating lifecycle operation.
Each check reads the registry (static) and the activation store (current
state) and raises a typed DependencyError instead of returning a flag, so the
caller can fail fast with a precise reason.
"""

from addonkit.addon.errors import (
    DependencyUnsatisfiedError,
    HasDependentsError,
    NotFoundError,
)
from addonkit.addon.graph import find_cycle
from addonkit.addon.manifest import AddonDescriptor
from addonkit.addon.registry import AddonRegistry
from addonkit.addon.store import ActivationStore


class DependencyResolver:
    """Dependency checks over a registry and an activation store."""

    def __init__(self, registry: AddonRegistry, store: ActivationStore):
        self.registry = registry
        self.store = store

    def check_installable(self, descriptor: AddonDescriptor) -> None:
        """
        Every dependency must be discoverable; installed ones must match.

        A dependency that is discoverable but not yet installed is fine.

        Raises:
            DependencyUnsatisfiedError: Naming the first offending dependency
        """
        for dep_id, constraint in descriptor.constraints.items():
            if dep_id not in self.registry:
                raise DependencyUnsatisfiedError(
                    f"Addon {descriptor.id} requires {dep_id} {constraint}, "
                    f"but no such addon is available",
                    dependency_id=dep_id,
                    constraint=str(constraint),
                    reason="missing",
                    operation="install",
                    addon_id=descriptor.id,
                )

            record = self.store.get(dep_id)
            if record is not None and not constraint.matches(record.installed_version):
                raise DependencyUnsatisfiedError(
                    f"Addon {descriptor.id} requires {dep_id} {constraint}, "
                    f"but version {record.installed_version} is installed",
                    dependency_id=dep_id,
                    constraint=str(constraint),
                    reason="version",
                    operation="install",
                    addon_id=descriptor.id,
                )

    def check_activatable(self, descriptor: AddonDescriptor) -> None:
        """
        Every dependency must be installed, active and version-satisfying.

        Raises:
            DependencyUnsatisfiedError: Naming the first offending dependency
        """
        for dep_id, constraint in descriptor.constraints.items():
            record = self.store.get(dep_id)

            if dep_id not in self.registry:
                reason, detail = "missing", "but no such addon is available"
            elif record is None:
                reason, detail = "not-installed", "but it is not installed"
            elif not record.is_active:
                reason, detail = "inactive", "but it is not active"
            elif not constraint.matches(record.installed_version):
                reason = "version"
                detail = f"but version {record.installed_version} is installed"
            else:
                continue

            raise DependencyUnsatisfiedError(
                f"Addon {descriptor.id} requires {dep_id} {constraint}, {detail}",
                dependency_id=dep_id,
                constraint=str(constraint),
                reason=reason,
                operation="activate",
                addon_id=descriptor.id,
            )

    def check_updatable(self, descriptor: AddonDescriptor, new_version: str) -> None:
        """
        A new version must still satisfy every active dependent.

        Raises:
            DependencyUnsatisfiedError: Naming the dependent whose constraint
                the new version breaks
        """
        for dependent_id in self.active_dependents(descriptor.id):
            constraint = self.registry.get(dependent_id).constraints[descriptor.id]
            if not constraint.matches(new_version):
                raise DependencyUnsatisfiedError(
                    f"Cannot update {descriptor.id} to {new_version}: active addon "
                    f"{dependent_id} requires {descriptor.id} {constraint}",
                    dependency_id=descriptor.id,
                    constraint=str(constraint),
                    reason="version",
                    operation="update",
                    addon_id=descriptor.id,
                )

    def check_uninstallable(self, addon_id: str) -> None:
        """
        No discovered addon may depend on `addon_id`.

        Raises:
            HasDependentsError: Listing every dependent
        """
        blocking = self.dependents(addon_id)
        if blocking:
            raise HasDependentsError(
                f"Cannot uninstall {addon_id} because the following addons "
                f"depend on it: {', '.join(blocking)}",
                blocking=blocking,
                operation="uninstall",
                addon_id=addon_id,
            )

    def check_deactivatable(self, addon_id: str) -> None:
        """
        No active addon may depend on `addon_id`.

        Raises:
            HasDependentsError: Listing every active dependent
        """
        blocking = self.active_dependents(addon_id)
        if blocking:
            raise HasDependentsError(
                f"Cannot deactivate {addon_id} because the following active addons "
                f"depend on it: {', '.join(blocking)}",
                blocking=blocking,
                operation="deactivate",
                addon_id=addon_id,
            )

    def dependents(self, addon_id: str) -> list[str]:
        """Ids of all discovered addons that depend on `addon_id`."""
        return [d.id for d in self.registry.dependents(addon_id)]

    def active_dependents(self, addon_id: str) -> list[str]:
        """Ids of currently active addons that depend on `addon_id`."""
        active = []
        for dependent_id in self.dependents(addon_id):
            record = self.store.get(dependent_id)
            if record is not None and record.is_active:
                active.append(dependent_id)
        return active

    def detect_cycle(self, addon_id: str, visiting: set[str] | None = None) -> bool:
        """
        Check whether a dependency cycle is reachable from `addon_id`.

        `visiting` holds ids already on the current traversal path; reaching
        one of them again counts as a cycle.

        Raises:
            NotFoundError: If the addon is not in the registry
        """
        if addon_id not in self.registry:
            raise NotFoundError(f"Addon {addon_id} not found", addon_id=addon_id)
        return find_cycle(self.registry.dependency_graph(), addon_id, visiting) is not None
