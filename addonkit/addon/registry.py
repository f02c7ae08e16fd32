"""
Addon Registry.

The registry is the in-memory catalog of discovered addons. It is built once
from a discoverer and never mutated afterwards, so lookups need no locking
and dependents() answers stay stable for the life of the process.

Entries are registered in discovery order. An entry is rejected (logged and
recorded in `rejected`, never fatal to the whole pass) when:
- its manifest is malformed
- its id was already registered (the first one wins)
- it would close a dependency cycle with addons registered before it
"""

import logging
from collections.abc import Iterable, Iterator
from types import MappingProxyType

from addonkit.addon.discovery import Discoverer
from addonkit.addon.errors import AddonError, CycleError, DuplicateError
from addonkit.addon.graph import dependents_of, find_cycle
from addonkit.addon.manifest import AddonDescriptor, RawManifest, parse_manifest

logger = logging.getLogger(__name__)


class AddonRegistry:
    """Read-only catalog of addon descriptors keyed by id."""

    def __init__(
        self,
        descriptors: Iterable[AddonDescriptor] = (),
        rejected: Iterable[AddonError] = (),
    ):
        """
        Build a registry from descriptors, applying duplicate and cycle rules.

        Args:
            descriptors: Descriptors in discovery order
            rejected: Errors for entries already dropped before this point
        """
        entries: dict[str, AddonDescriptor] = {}
        rejected = list(rejected)

        for descriptor in descriptors:
            error = _admit(entries, descriptor)
            if error is None:
                entries[descriptor.id] = descriptor
            else:
                logger.warning("Rejected addon %s: %s", descriptor.id, error)
                rejected.append(error)

        self._entries = MappingProxyType(entries)
        self._rejected = tuple(rejected)

    def get(self, addon_id: str) -> AddonDescriptor | None:
        """Descriptor for `addon_id`, or None."""
        return self._entries.get(addon_id)

    def all(self) -> list[AddonDescriptor]:
        """All descriptors in discovery order."""
        return list(self._entries.values())

    def ids(self) -> list[str]:
        return list(self._entries)

    def dependents(self, addon_id: str) -> list[AddonDescriptor]:
        """Descriptors that declare a direct dependency on `addon_id`."""
        return [self._entries[i] for i in dependents_of(self.dependency_graph(), addon_id)]

    def dependency_graph(self) -> dict[str, list[str]]:
        """Addon id -> declared dependency ids."""
        return {d.id: list(d.dependencies) for d in self._entries.values()}

    @property
    def rejected(self) -> tuple[AddonError, ...]:
        """Errors for every entry left out during construction."""
        return self._rejected

    def __contains__(self, addon_id: object) -> bool:
        return addon_id in self._entries

    def __iter__(self) -> Iterator[AddonDescriptor]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"AddonRegistry({list(self._entries)})"


def _admit(entries: dict[str, AddonDescriptor], descriptor: AddonDescriptor) -> AddonError | None:
    if descriptor.id in entries:
        return DuplicateError(
            f"Duplicate addon id {descriptor.id!r}: already registered from "
            f"{entries[descriptor.id].path or 'an earlier manifest'}",
            operation="discover",
            addon_id=descriptor.id,
        )

    graph = {d.id: list(d.dependencies) for d in entries.values()}
    graph[descriptor.id] = list(descriptor.dependencies)
    cycle = find_cycle(graph, descriptor.id)
    if cycle is not None:
        return CycleError(
            f"Dependency cycle: {' -> '.join(cycle)}",
            cycle=cycle,
            addon_id=descriptor.id,
        )
    return None


def discover(source: Discoverer | Iterable[RawManifest | dict]) -> AddonRegistry:
    """
    Build a registry from a discoverer.

    Args:
        source: A Discoverer, or an iterable of raw manifests (or plain
            manifest dicts)

    Returns:
        The populated registry; malformed manifests, duplicates and cycles
        are logged and listed in `registry.rejected`
    """
    raw_manifests = source.scan() if hasattr(source, "scan") else source

    descriptors: list[AddonDescriptor] = []
    parse_errors: list[AddonError] = []
    for raw in raw_manifests:
        if not isinstance(raw, RawManifest):
            raw = RawManifest(data=raw)
        try:
            descriptors.append(parse_manifest(raw))
        except AddonError as e:
            where = raw.path or (raw.data.get("id") if isinstance(raw.data, dict) else None)
            logger.warning("Rejected addon manifest %s: %s", where, e)
            parse_errors.append(e)

    registry = AddonRegistry(descriptors, rejected=parse_errors)

    logger.info(
        "Discovered %d addon(s), rejected %d", len(registry), len(registry.rejected)
    )
    return registry


__all__ = ["AddonRegistry", "discover"]
