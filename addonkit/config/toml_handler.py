"""
TOML File I/O.

Reads go through tomllib; writes go through tomlkit so comments and layout of
hand-edited files survive a round trip. Writes land in a temporary sibling
file first and are moved into place with os.replace, so readers never see a
half-written file.
"""

import os
import tempfile
import tomllib
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit import TOMLDocument


class TOMLError(Exception):
    """Base exception for TOML-related errors."""

    pass


def read_toml(file_path: Path) -> dict[str, Any]:
    """
    Read and parse a TOML file into plain Python values.

    Raises:
        TOMLError: If the file cannot be read or parsed
    """
    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise TOMLError(f"TOML file not found: {file_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise TOMLError(f"Failed to parse TOML file {file_path}: {e}") from e
    except OSError as e:
        raise TOMLError(f"Failed to read TOML file {file_path}: {e}") from e


def load_document(file_path: Path) -> TOMLDocument:
    """
    Load a TOML file as an editable tomlkit document.

    A missing file yields an empty document.

    Raises:
        TOMLError: If the file exists but cannot be parsed
    """
    if not file_path.exists():
        return tomlkit.document()
    try:
        return tomlkit.parse(file_path.read_text(encoding="utf-8"))
    except Exception as e:
        raise TOMLError(f"Failed to parse TOML file {file_path}: {e}") from e


def write_toml(file_path: Path, data: dict[str, Any] | TOMLDocument) -> None:
    """
    Atomically write data to a TOML file.

    Raises:
        TOMLError: If the file cannot be written
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                tomlkit.dump(data, f)
            os.replace(tmp_name, file_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise TOMLError(f"Failed to write TOML file {file_path}: {e}") from e


def ensure_table(doc: TOMLDocument, *keys: str) -> Any:
    """
    Return the (possibly nested) table at `keys`, creating it if missing.

    Raises:
        TOMLError: If a key along the path holds a non-table value
    """
    current: Any = doc
    for key in keys:
        if key not in current:
            current.add(key, tomlkit.table())
        current = current[key]
        if not isinstance(current, MutableMapping):
            raise TOMLError(f"Expected a table at '{'.'.join(keys)}'")
    return current


def render_addon_config(addon_id: str, schema: dict[str, Any], values: dict[str, Any]) -> str:
    """
    Render an addon's configuration as a commented TOML snippet.

    Args:
        addon_id: Addon id, used as the table name
        schema: Field name -> ConfigField
        values: Current values (missing ones fall back to defaults)
    """
    doc = tomlkit.document()
    doc.add(tomlkit.comment(f"Configuration for {addon_id}"))
    table = tomlkit.table()

    for name, field in schema.items():
        if field.description:
            table.add(tomlkit.comment(field.description))

        constraints = []
        if field.min is not None:
            constraints.append(f"min: {field.min}")
        if field.max is not None:
            constraints.append(f"max: {field.max}")
        if field.choices is not None:
            constraints.append(f"choices: {list(field.choices)}")
        if constraints:
            table.add(tomlkit.comment(f"Constraints: {', '.join(constraints)}"))

        table.add(name, values.get(name, field.default))

    doc.add(addon_id, table)
    return tomlkit.dumps(doc)
