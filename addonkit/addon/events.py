"""
Addon Lifecycle Events.

Published on the manager's EventBus after the corresponding store mutation
has succeeded. Subscribe to one id (e.g. "addon.installed") or to all of them
with the pattern "addon.*".
"""

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class AddonEvent:
    """Base class for lifecycle events."""

    event_id: ClassVar[str] = "addon"

    addon_id: str
    version: str


@dataclass(frozen=True)
class AddonInstalled(AddonEvent):
    event_id: ClassVar[str] = "addon.installed"


@dataclass(frozen=True)
class AddonUninstalled(AddonEvent):
    event_id: ClassVar[str] = "addon.uninstalled"


@dataclass(frozen=True)
class AddonActivated(AddonEvent):
    event_id: ClassVar[str] = "addon.activated"


@dataclass(frozen=True)
class AddonDeactivated(AddonEvent):
    event_id: ClassVar[str] = "addon.deactivated"


@dataclass(frozen=True)
class AddonUpdated(AddonEvent):
    """`version` is the new version; `old_version` the one replaced."""

    event_id: ClassVar[str] = "addon.updated"

    old_version: str = ""

    @property
    def new_version(self) -> str:
        return self.version


ALL_EVENTS = (AddonInstalled, AddonUninstalled, AddonActivated, AddonDeactivated, AddonUpdated)
