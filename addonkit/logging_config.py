"""
Logging Setup.

Configures the `addonkit` logger with a rotating log file and a stderr
handler, and gives each addon a log file of its own under addons/.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER = "addonkit"

FORMAT = (
    "%(asctime)s | %(levelname)-7s | %(name)s | "
    "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
)
formatter = logging.Formatter(FORMAT)

_ADDON_FILE_HANDLERS: dict[str, RotatingFileHandler] = {}


def _file_handler(path: Path, level=logging.DEBUG) -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _attach(logger: logging.Logger, handler: logging.Handler) -> None:
    filename = getattr(handler, "baseFilename", None)
    for h in logger.handlers:
        if h is handler:
            return
        if filename and getattr(h, "baseFilename", None) == filename:
            handler.close()
            return
    logger.addHandler(handler)


def setup_logging(
    log_dir: Path | None = None, level: str | int = "INFO", console: bool = True
) -> logging.Logger:
    """
    Configure the `addonkit` logger.

    Args:
        log_dir: Directory for addonkit.log (no file logging when None)
        level: Level for the console handler and the logger itself
        console: Whether to log to stderr
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level if isinstance(level, int) else level.upper())
    logger.propagate = False

    if log_dir is not None:
        _attach(logger, _file_handler(log_dir / "addonkit.log"))

    if console and not any(getattr(h, "_addonkit_console", False) for h in logger.handlers):
        stream = logging.StreamHandler(sys.stderr)
        stream.setLevel(logger.level)
        stream.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        stream._addonkit_console = True
        logger.addHandler(stream)

    return logger


def get_addon_handler(log_dir: Path, addon_id: str) -> RotatingFileHandler:
    path = log_dir / "addons" / f"{addon_id}.log"
    h = _ADDON_FILE_HANDLERS.get(str(path))
    if h:
        return h
    h = _file_handler(path)
    _ADDON_FILE_HANDLERS[str(path)] = h
    return h


def bind_addon_logger(log_dir: Path, addon_id: str) -> logging.Logger:
    """
    Give an addon its own rotating log file.

    Addon code should log through `logging.getLogger(f"addonkit.addons.{addon_id}")`;
    records still reach the main addonkit handlers as well.
    """
    addon_logger = logging.getLogger(f"{ROOT_LOGGER}.addons.{addon_id}")
    _attach(addon_logger, get_addon_handler(log_dir, addon_id))
    return addon_logger
