"""
apm CLI - Addon Package Manager.

Pacman-style interface for managing addons.

Usage:
    apm -S <addon>...            Install addon(s)
    apm -R <addon>...            Remove (uninstall) addon(s)
    apm -U [addon...]            Update addon(s); all installed when omitted
    apm -E <addon>...            Enable (activate) addon(s)
    apm -D <addon>...            Disable (deactivate) addon(s)
    apm -Q                       List addons and their state
    apm -Qi <addon>              Show addon details
"""

import argparse
import sys
from pathlib import Path

from addonkit.addon.errors import AddonError
from addonkit.config import ConfigError


class PMError(Exception):
    """Base exception for apm errors."""

    pass


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with pacman-style flags."""
    parser = argparse.ArgumentParser(
        prog="apm",
        description="Addon Package Manager - Pacman-style addon manager",
        add_help=False,
    )

    ops = parser.add_mutually_exclusive_group()
    ops.add_argument("-S", "--sync", action="store_true", help="Install addon(s)")
    ops.add_argument("-R", "--remove", action="store_true", help="Uninstall addon(s)")
    ops.add_argument("-U", "--upgrade", action="store_true", help="Update addon(s)")
    ops.add_argument("-E", "--enable", action="store_true", help="Activate addon(s)")
    ops.add_argument("-D", "--disable", action="store_true", help="Deactivate addon(s)")
    ops.add_argument("-Q", "--query", action="store_true", help="Query addons")
    ops.add_argument("-h", "--help", action="store_true", help="Show help")

    parser.add_argument("-i", "--info", action="store_true", help="Show info (-Qi)")

    parser.add_argument("--config", type=Path, help="Settings file (default: addonkit.toml)")
    parser.add_argument("--root", type=Path, help="Addons directory")
    parser.add_argument("--store", type=Path, help="Activation store file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    parser.add_argument("targets", nargs="*", help="Addon ids")

    return parser


def print_help():
    """Print help message."""
    help_text = """
apm - Addon Package Manager

Usage:
    apm -S <addon>...            Install addon(s)
    apm -R <addon>...            Remove (uninstall) addon(s)
    apm -U [addon...]            Update addon(s); all installed when omitted
    apm -E <addon>...            Enable (activate) addon(s)
    apm -D <addon>...            Disable (deactivate) addon(s)
    apm -Q                       List addons and their state
    apm -Qi <addon>              Show addon details

Options:
    --config <file>              Settings file (default: addonkit.toml)
    --root <dir>                 Addons directory
    --store <file>               Activation store file
    -v, --verbose                Verbose output
    -h, --help                   Show this help
"""
    print(help_text.strip())


def main(argv: list[str] | None = None) -> int:
    """Main entry point for apm CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        if args.help or not any(
            (args.sync, args.remove, args.upgrade, args.enable, args.disable, args.query)
        ):
            print_help()
            return 0

        if args.sync:
            from apm.commands.install import install_command

            return install_command(args)

        elif args.remove:
            from apm.commands.remove import remove_command

            return remove_command(args)

        elif args.upgrade:
            from apm.commands.upgrade import upgrade_command

            return upgrade_command(args)

        elif args.enable:
            from apm.commands.toggle import enable_command

            return enable_command(args)

        elif args.disable:
            from apm.commands.toggle import disable_command

            return disable_command(args)

        elif args.query:
            from apm.commands.query import query_command

            return query_command(args)

    except (PMError, ConfigError, AddonError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
