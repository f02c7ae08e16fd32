"""
apm install command (-S).

Install addons discovered in the addons directory.
"""

from typing import Any

from apm.commands.common import build_manager, require_targets, run_each


def install_command(args: Any) -> int:
    """
    Execute install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if not require_targets(args, "apm -S <addon>..."):
        return 1

    manager = build_manager(args)
    return run_each(
        args.targets,
        manager.install,
        done="Installed",
        unchanged="Already installed",
        verbose=args.verbose,
    )
