"""
Addon Lifecycle Hooks.

Every discovered package provides the same fixed set of hooks:

- install():            publish assets, run migrations, seed data
- uninstall():          undo what install() did
- activate():           called when the addon is switched on
- deactivate():         called when the addon is switched off
- register():           bind services (runs before any boot())
- boot():               wire routes, views and cross-addon integration
- update(from_version): migrate from an older installed version

Addon is the base class with no-op defaults. ScriptAddon serves packages that
ship no Python code: each hook runs hooks/<name>.sh or hooks/<name>.py from the
package directory in a subprocess.
"""

import logging
import os
import stat
import subprocess
import sys
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class HookError(Exception):
    """Raised when a hook script fails or times out."""

    pass


class HookType(Enum):
    """Hook type enumeration."""

    INSTALL = "install"
    UNINSTALL = "uninstall"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    REGISTER = "register"
    BOOT = "boot"
    UPDATE = "update"


HOOK_NAMES: tuple[str, ...] = tuple(hook.value for hook in HookType)


def missing_hooks(addon: Any) -> list[str]:
    """
    List the lifecycle hooks an object fails to provide.

    Args:
        addon: Candidate hook implementation

    Returns:
        Names of missing or non-callable hooks (empty when complete)
    """
    return [name for name in HOOK_NAMES if not callable(getattr(addon, name, None))]


class Addon:
    """
    Base class for addon implementations.

    Subclasses override the hooks they care about; the rest are no-ops.
    """

    def __init__(self, base_path: Path | None = None):
        self.base_path = base_path

    def install(self) -> None:
        pass

    def uninstall(self) -> None:
        pass

    def activate(self) -> None:
        pass

    def deactivate(self) -> None:
        pass

    def register(self) -> None:
        pass

    def boot(self) -> None:
        pass

    def update(self, from_version: str) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.base_path})"


class ScriptAddon(Addon):
    """
    Hook implementation backed by scripts in the package's hooks/ directory.

    Scripts receive ADDONKIT_ADDON_DIR, ADDONKIT_HOOK and, for update,
    ADDONKIT_FROM_VERSION in their environment and run with the package
    directory as working directory.
    """

    def __init__(self, base_path: Path, timeout: int = 120):
        super().__init__(base_path)
        self.timeout = timeout

    def install(self) -> None:
        execute_hook(self.base_path, HookType.INSTALL, timeout=self.timeout)

    def uninstall(self) -> None:
        execute_hook(self.base_path, HookType.UNINSTALL, timeout=self.timeout)

    def activate(self) -> None:
        execute_hook(self.base_path, HookType.ACTIVATE, timeout=self.timeout)

    def deactivate(self) -> None:
        execute_hook(self.base_path, HookType.DEACTIVATE, timeout=self.timeout)

    def register(self) -> None:
        execute_hook(self.base_path, HookType.REGISTER, timeout=self.timeout)

    def boot(self) -> None:
        execute_hook(self.base_path, HookType.BOOT, timeout=self.timeout)

    def update(self, from_version: str) -> None:
        execute_hook(
            self.base_path,
            HookType.UPDATE,
            env_vars={"ADDONKIT_FROM_VERSION": from_version},
            timeout=self.timeout,
        )


def execute_hook(
    addon_dir: Path,
    hook_type: HookType,
    env_vars: dict[str, str] | None = None,
    timeout: int = 120,
) -> None:
    """
    Run a hook script for an addon, if the addon ships one.

    Args:
        addon_dir: Addon package directory
        hook_type: Hook to run
        env_vars: Additional environment variables to inject
        timeout: Timeout in seconds

    Raises:
        HookError: If the script exits non-zero, times out or cannot start
    """
    hook_path = find_hook(addon_dir, hook_type)
    if hook_path is None:
        return

    env = os.environ.copy()
    if env_vars:
        env.update(env_vars)
    env["ADDONKIT_ADDON_DIR"] = str(addon_dir)
    env["ADDONKIT_HOOK"] = hook_type.value

    cmd = [sys.executable, str(hook_path)] if hook_path.suffix == ".py" else [str(hook_path)]
    logger.debug("Running %s hook %s", hook_type.value, hook_path)

    try:
        result = subprocess.run(
            cmd,
            cwd=addon_dir,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise HookError(
            f"Hook {hook_type.value} timed out after {timeout} seconds"
        ) from e
    except OSError as e:
        raise HookError(f"Failed to execute hook {hook_type.value}: {e}") from e

    if result.returncode != 0:
        raise HookError(
            f"Hook {hook_type.value} failed with exit code {result.returncode}:\n"
            f"stdout: {result.stdout}\n"
            f"stderr: {result.stderr}"
        )


def find_hook(addon_dir: Path, hook_type: HookType) -> Path | None:
    """
    Find the script for a hook in the addon's hooks/ directory.

    Looks for hooks/<hook>.sh first, then hooks/<hook>.py.
    """
    hooks_dir = addon_dir / "hooks"
    if not hooks_dir.is_dir():
        return None

    for ext in (".sh", ".py"):
        hook_path = hooks_dir / f"{hook_type.value}{ext}"
        if hook_path.is_file():
            if ext == ".sh":
                _make_executable(hook_path)
            return hook_path
    return None


def _make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    if not mode & stat.S_IXUSR:
        try:
            path.chmod(mode | stat.S_IXUSR)
        except OSError as e:
            logger.warning("Could not mark %s executable: %s", path, e)


def has_hook(addon_dir: Path, hook_type: HookType) -> bool:
    """Check whether an addon ships a script for a hook."""
    return find_hook(addon_dir, hook_type) is not None
