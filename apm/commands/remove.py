"""
apm remove command (-R).

Uninstall addons. Active addons must be disabled first (apm -D).
"""

from typing import Any

from apm.commands.common import build_manager, require_targets, run_each


def remove_command(args: Any) -> int:
    """Execute remove command."""
    if not require_targets(args, "apm -R <addon>..."):
        return 1

    manager = build_manager(args)
    return run_each(
        args.targets,
        manager.uninstall,
        done="Removed",
        unchanged="Not removed",
        verbose=args.verbose,
    )
