"""
Addon Manifests and Descriptors.

This module turns raw manifests produced by a discoverer into immutable
AddonDescriptor objects.

Key features:
- Structural validation of manifest data
- Version and dependency constraint parsing at discovery time
- Configuration schema parsing
- Capability check of the addon's hook implementation
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from addonkit.addon.errors import ConstraintError, ManifestError
from addonkit.addon.hooks import Addon, missing_hooks
from addonkit.addon.version import VersionConstraint, parse_constraint, parse_version
from addonkit.config.schema import ConfigField, SchemaError, parse_schema

_STRING_FIELDS = ("name", "description", "author", "main", "class")


@dataclass
class RawManifest:
    """
    Manifest data as produced by a discoverer.

    Attributes:
        data: String-keyed manifest data (at least id, version)
        addon: Hook implementation; None means the no-op Addon base
        path: Package directory, if the addon lives on disk
    """

    data: dict[str, Any]
    addon: Any = None
    path: Path | None = None


@dataclass(frozen=True)
class AddonDescriptor:
    """
    Immutable metadata for one discovered addon.

    Attributes:
        id: Globally unique addon id
        name: Display name
        version: Version string of the discovered package
        dependencies: Ordered, read-only mapping of dependency id -> constraint
        constraints: Parsed form of `dependencies`
        description: Free text
        author: Free text
        config_schema: Field name -> ConfigField for the addon's settings
        path: Package directory, if any
        addon: Hook implementation
    """

    id: str
    name: str
    version: str
    dependencies: Mapping[str, str] = field(default_factory=dict)
    constraints: Mapping[str, VersionConstraint] = field(default_factory=dict)
    description: str = ""
    author: str = ""
    config_schema: Mapping[str, ConfigField] = field(default_factory=dict)
    path: Path | None = field(default=None, compare=False)
    addon: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "dependencies", MappingProxyType(dict(self.dependencies)))
        object.__setattr__(self, "constraints", MappingProxyType(dict(self.constraints)))
        object.__setattr__(self, "config_schema", MappingProxyType(dict(self.config_schema)))

    def depends_on(self, addon_id: str) -> bool:
        """Check whether this addon declares a dependency on `addon_id`."""
        return addon_id in self.dependencies


def parse_manifest(raw: RawManifest) -> AddonDescriptor:
    """
    Build a descriptor from a raw manifest.

    Raises:
        ManifestError: If the manifest is malformed or the hook
            implementation is incomplete
    """
    data = raw.data
    validate_manifest_structure(data)
    addon_id = data["id"]

    try:
        parse_version(data["version"])
    except ConstraintError as e:
        raise ManifestError(f"Invalid version for addon {addon_id}: {e}", addon_id=addon_id) from e

    dependencies: dict[str, str] = dict(data.get("dependencies", {}))
    constraints: dict[str, VersionConstraint] = {}
    for dep_id, constraint_str in dependencies.items():
        try:
            constraints[dep_id] = parse_constraint(constraint_str)
        except ConstraintError as e:
            raise ManifestError(
                f"Invalid dependency constraint for '{dep_id}' in addon {addon_id}: {e}",
                addon_id=addon_id,
            ) from e

    try:
        config_schema = parse_schema(data.get("config"))
    except SchemaError as e:
        raise ManifestError(
            f"Invalid config schema in addon {addon_id}: {e}", addon_id=addon_id
        ) from e

    addon = raw.addon if raw.addon is not None else Addon(raw.path)
    missing = missing_hooks(addon)
    if missing:
        raise ManifestError(
            f"Addon {addon_id} does not implement hooks: {', '.join(missing)}",
            addon_id=addon_id,
        )

    return AddonDescriptor(
        id=addon_id,
        name=data.get("name") or addon_id,
        version=data["version"],
        dependencies=dependencies,
        constraints=constraints,
        description=data.get("description", ""),
        author=data.get("author", ""),
        config_schema=config_schema,
        path=raw.path,
        addon=addon,
    )


def validate_manifest_structure(data: Any) -> None:
    """
    Validate manifest structure and required fields.

    Raises:
        ManifestError: If the manifest structure is invalid
    """
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest must be a table, got {type(data).__name__}")

    for required in ("id", "version"):
        if required not in data:
            raise ManifestError(f"Missing required field: {required}")

    addon_id = data["id"]
    if not isinstance(addon_id, str) or not addon_id or any(c.isspace() for c in addon_id):
        raise ManifestError(
            f"Invalid addon id: {addon_id!r}. Must be a non-empty string without whitespace."
        )

    if not isinstance(data["version"], str):
        raise ManifestError(f"Invalid version for addon {addon_id}: must be a string")

    for name in _STRING_FIELDS:
        if name in data and not isinstance(data[name], str):
            raise ManifestError(f"'{name}' field must be a string", addon_id=addon_id)

    if "dependencies" in data:
        deps = data["dependencies"]
        if not isinstance(deps, dict):
            raise ManifestError("'dependencies' field must be a table", addon_id=addon_id)
        for dep_id, constraint in deps.items():
            if not isinstance(dep_id, str) or not dep_id:
                raise ManifestError(f"Dependency id must be a string: {dep_id!r}", addon_id=addon_id)
            if not isinstance(constraint, str):
                raise ManifestError(
                    f"Dependency constraint must be a string: {constraint!r}",
                    addon_id=addon_id,
                )


def read_manifest_file(manifest_path: Path) -> dict[str, Any]:
    """
    Read a JSON manifest file.

    Raises:
        ManifestError: If the file cannot be read or parsed
    """
    try:
        with open(manifest_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ManifestError(f"Manifest file not found: {manifest_path}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Failed to parse manifest JSON {manifest_path}: {e}") from e
    except OSError as e:
        raise ManifestError(f"Failed to read manifest file {manifest_path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"Manifest {manifest_path} must contain a JSON object")
    return data
