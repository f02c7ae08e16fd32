"""
apm query command (-Q, -Qi).

List discovered addons with their lifecycle state, or show one in detail.
"""

import sys
from typing import Any

from addonkit.addon.manager import AddonManager
from addonkit.config.toml_handler import render_addon_config
from apm.commands.common import build_manager


def query_command(args: Any) -> int:
    """Execute query command."""
    manager = build_manager(args)

    if args.info:
        if not args.targets:
            print("Error: No targets specified", file=sys.stderr)
            print("Usage: apm -Qi <addon>...", file=sys.stderr)
            return 1
        status = 0
        for target in args.targets:
            if not manager.has(target):
                print(f"Error: addon '{target}' not found", file=sys.stderr)
                status = 1
                continue
            print_info(manager, target)
        return status

    targets = args.targets or [d.id for d in manager.registry]
    status = 0
    for addon_id in targets:
        if not manager.has(addon_id):
            print(f"Error: addon '{addon_id}' not found", file=sys.stderr)
            status = 1
            continue
        descriptor = manager.get(addon_id)
        print(f"{addon_id} {descriptor.version} [{manager.state(addon_id).value}]")

    if args.verbose:
        for error in manager.registry.rejected:
            print(f"Rejected: {error}", file=sys.stderr)
    return status


def print_info(manager: AddonManager, addon_id: str) -> None:
    """Print the details of one addon."""
    descriptor = manager.get(addon_id)
    record = manager.record(addon_id)
    dependents = manager.resolver.dependents(addon_id)

    rows = [
        ("Id", descriptor.id),
        ("Name", descriptor.name),
        ("Version", descriptor.version),
        ("Description", descriptor.description or "None"),
        ("Author", descriptor.author or "None"),
        (
            "Depends On",
            "  ".join(f"{dep}{c}" for dep, c in descriptor.dependencies.items()) or "None",
        ),
        ("Required By", "  ".join(dependents) or "None"),
        ("State", manager.state(addon_id).value),
    ]
    if record is not None:
        rows.append(("Installed Version", record.installed_version))
        rows.append(("Installed At", str(record.installed_at)))
        rows.append(("Updated At", str(record.updated_at)))
    if descriptor.path is not None:
        rows.append(("Path", str(descriptor.path)))

    width = max(len(label) for label, _ in rows)
    for label, value in rows:
        print(f"{label:<{width}} : {value}")

    if descriptor.config_schema and manager.config_file is not None:
        values = manager.config(addon_id).get()
        print()
        print(render_addon_config(addon_id, dict(descriptor.config_schema), values).rstrip())
    print()
