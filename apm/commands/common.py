"""
Shared plumbing for apm commands.
"""

import sys
from collections.abc import Callable
from typing import Any

from addonkit.addon.errors import AddonError
from addonkit.addon.manager import AddonManager
from addonkit.config import load_settings
from addonkit.logging_config import bind_addon_logger, setup_logging


def build_manager(args: Any) -> AddonManager:
    """Load settings (CLI flags win over the file) and build a manager."""
    settings = load_settings(args.config, addons_dir=args.root, store_file=args.store)
    setup_logging(
        settings.log_dir,
        level="DEBUG" if args.verbose else settings.log_level,
        console=True,
    )
    manager = AddonManager.from_settings(settings)
    for addon_id in manager.registry.ids():
        bind_addon_logger(settings.log_dir, addon_id)
    return manager


def require_targets(args: Any, usage: str) -> bool:
    if args.targets:
        return True
    print("Error: No targets specified", file=sys.stderr)
    print(f"Usage: {usage}", file=sys.stderr)
    return False


def run_each(
    targets: list[str],
    operation: Callable[[str], bool],
    done: str,
    unchanged: str,
    verbose: bool = False,
) -> int:
    """
    Apply a lifecycle operation to each target, continuing past failures.

    Returns:
        Exit code (0 when every target succeeded)
    """
    success_count = 0
    fail_count = 0

    for target in targets:
        try:
            changed = operation(target)
        except AddonError as e:
            print(f"Failed: {target}: {e}", file=sys.stderr)
            fail_count += 1
            continue

        print(f"{done if changed else unchanged}: {target}")
        success_count += 1

    if verbose:
        print(f"\nSucceeded: {success_count}, Failed: {fail_count}")

    return 0 if fail_count == 0 else 1
