"""
apm enable/disable commands (-E / -D).

Activate or deactivate installed addons.
"""

from typing import Any

from apm.commands.common import build_manager, require_targets, run_each


def enable_command(args: Any) -> int:
    """Activate each target."""
    if not require_targets(args, "apm -E <addon>..."):
        return 1

    manager = build_manager(args)
    return run_each(
        args.targets,
        manager.activate,
        done="Enabled",
        unchanged="Already enabled",
        verbose=args.verbose,
    )


def disable_command(args: Any) -> int:
    """Deactivate each target."""
    if not require_targets(args, "apm -D <addon>..."):
        return 1

    manager = build_manager(args)
    return run_each(
        args.targets,
        manager.deactivate,
        done="Disabled",
        unchanged="Already disabled",
        verbose=args.verbose,
    )
