"""
apm upgrade command (-U).

Bring installed addons up to the discovered version. Without targets every
installed addon is considered.
"""

from typing import Any

from apm.commands.common import build_manager, run_each


def upgrade_command(args: Any) -> int:
    """Execute upgrade command."""
    manager = build_manager(args)
    targets = args.targets or [d.id for d in manager.installed()]

    if not targets:
        print("Nothing to upgrade")
        return 0

    return run_each(
        targets,
        manager.update,
        done="Upgraded",
        unchanged="Up to date",
        verbose=args.verbose,
    )
