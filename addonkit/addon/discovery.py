"""
Addon Discovery.

A discoverer enumerates candidate packages and hands back raw manifests; the
registry turns them into descriptors. Two implementations are provided:

- DirectoryDiscoverer: one package per subdirectory holding an addon.json
- StaticDiscoverer: a fixed, in-memory list of manifests
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

from addonkit.addon.errors import AddonError
from addonkit.addon.hooks import ScriptAddon
from addonkit.addon.loader import load_addon
from addonkit.addon.manifest import RawManifest, read_manifest_file

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = "addon.json"


class Discoverer(Protocol):
    """Anything that can enumerate raw manifests."""

    def scan(self) -> Iterable[RawManifest]: ...


class StaticDiscoverer:
    """Discoverer over manifests supplied up front."""

    def __init__(self, manifests: Iterable[RawManifest | dict[str, Any]]):
        self._manifests = [
            m if isinstance(m, RawManifest) else RawManifest(data=m) for m in manifests
        ]

    def scan(self) -> list[RawManifest]:
        return list(self._manifests)


class DirectoryDiscoverer:
    """
    Discoverer over a directory of addon packages.

    Each immediate subdirectory with a manifest file is a candidate. Packages
    whose manifest names a "main" entry point get their Python implementation
    loaded; the others fall back to script hooks under hooks/.

    Unreadable manifests and broken entry points are logged and skipped so
    that one bad package does not hide the rest.
    """

    def __init__(
        self,
        root: Path,
        manifest_name: str = DEFAULT_MANIFEST_NAME,
        hook_timeout: int = 120,
    ):
        self.root = root
        self.manifest_name = manifest_name
        self.hook_timeout = hook_timeout

    def scan(self) -> list[RawManifest]:
        if not self.root.is_dir():
            logger.info("Addons directory %s does not exist; nothing to discover", self.root)
            return []

        manifests = []
        for addon_dir in sorted(p for p in self.root.iterdir() if p.is_dir()):
            manifest_path = addon_dir / self.manifest_name
            if not manifest_path.is_file():
                continue

            try:
                manifests.append(self._read(addon_dir, manifest_path))
            except AddonError as e:
                logger.warning("Skipping addon package %s: %s", addon_dir.name, e)

        logger.debug("Scanned %s: %d manifest(s)", self.root, len(manifests))
        return manifests

    def _read(self, addon_dir: Path, manifest_path: Path) -> RawManifest:
        data = read_manifest_file(manifest_path)

        if isinstance(data.get("main"), str) and data["main"]:
            addon = load_addon(str(data.get("id", addon_dir.name)), addon_dir, data)
        else:
            addon = ScriptAddon(addon_dir, timeout=self.hook_timeout)

        return RawManifest(data=data, addon=addon, path=addon_dir)
