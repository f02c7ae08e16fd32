"""
Activation Store.

Durable record of installed addons: installed version, active flag and
timestamps, one record per installed id. A record exists if and only if the
addon is installed.

The manager depends only on the ActivationStore protocol. Two
implementations are provided:
- MemoryActivationStore: process-local, for tests and embedding
- TomlActivationStore: one TOML file, atomic replace on every write
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import tomlkit

from addonkit.addon.errors import NotFoundError, StoreError
from addonkit.config.toml_handler import TOMLError, ensure_table, load_document, write_toml

RECORDS_TABLE = "addons"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ActivationRecord:
    """
    Durable state of one installed addon.

    Attributes:
        id: Addon id
        installed_version: Version recorded at install/update time
        is_active: Whether the addon is active
        installed_at: When the record was created
        updated_at: When the record last changed
    """

    id: str
    installed_version: str
    is_active: bool = False
    installed_at: datetime | None = None
    updated_at: datetime | None = None


class ActivationStore(Protocol):
    """Contract the manager relies on; writes must be atomic per record."""

    def exists(self, addon_id: str) -> bool: ...

    def get(self, addon_id: str) -> ActivationRecord | None: ...

    def create(self, record: ActivationRecord) -> None: ...

    def delete(self, addon_id: str) -> None: ...

    def set_active(self, addon_id: str, active: bool) -> None: ...

    def set_version(self, addon_id: str, version: str) -> None: ...

    def all(self) -> list[ActivationRecord]: ...


def _stamped(record: ActivationRecord) -> ActivationRecord:
    now = utcnow()
    return replace(
        record,
        installed_at=record.installed_at or now,
        updated_at=record.updated_at or record.installed_at or now,
    )


class MemoryActivationStore:
    """Thread-safe, dict-backed activation store."""

    def __init__(self, records: list[ActivationRecord] | None = None):
        self._records: dict[str, ActivationRecord] = {}
        self._lock = threading.Lock()
        for record in records or []:
            self.create(record)

    def exists(self, addon_id: str) -> bool:
        with self._lock:
            return addon_id in self._records

    def get(self, addon_id: str) -> ActivationRecord | None:
        with self._lock:
            return self._records.get(addon_id)

    def create(self, record: ActivationRecord) -> None:
        with self._lock:
            if record.id in self._records:
                raise StoreError(f"Activation record already exists: {record.id}", addon_id=record.id)
            self._records[record.id] = _stamped(record)

    def delete(self, addon_id: str) -> None:
        with self._lock:
            if self._records.pop(addon_id, None) is None:
                raise NotFoundError(f"No activation record for {addon_id}", addon_id=addon_id)

    def set_active(self, addon_id: str, active: bool) -> None:
        self._update(addon_id, is_active=active)

    def set_version(self, addon_id: str, version: str) -> None:
        self._update(addon_id, installed_version=version)

    def _update(self, addon_id: str, **changes) -> None:
        with self._lock:
            record = self._records.get(addon_id)
            if record is None:
                raise NotFoundError(f"No activation record for {addon_id}", addon_id=addon_id)
            self._records[addon_id] = replace(record, updated_at=utcnow(), **changes)

    def all(self) -> list[ActivationRecord]:
        with self._lock:
            return list(self._records.values())


class TomlActivationStore:
    """
    Activation store persisted in a TOML file.

    Layout:

        [addons."price-rules"]
        installed_version = "1.2.0"
        is_active = true
        installed_at = 2025-01-01T10:00:00Z
        updated_at = 2025-01-02T08:30:00Z

    Every write re-reads the file, applies the change and atomically replaces
    the file while holding the store lock.
    """

    def __init__(self, path: Path):
        self.path = path
        self._lock = threading.RLock()

    @contextmanager
    def _editing(self) -> Iterator[tomlkit.TOMLDocument]:
        with self._lock:
            try:
                doc = load_document(self.path)
                yield doc
                write_toml(self.path, doc)
            except TOMLError as e:
                raise StoreError(f"Activation store {self.path} unavailable: {e}") from e

    def _read_table(self) -> dict:
        with self._lock:
            try:
                doc = load_document(self.path)
            except TOMLError as e:
                raise StoreError(f"Activation store {self.path} unavailable: {e}") from e
            return doc.unwrap().get(RECORDS_TABLE, {})

    def exists(self, addon_id: str) -> bool:
        return addon_id in self._read_table()

    def get(self, addon_id: str) -> ActivationRecord | None:
        entry = self._read_table().get(addon_id)
        return _record_from_table(addon_id, entry) if entry is not None else None

    def create(self, record: ActivationRecord) -> None:
        record = _stamped(record)
        with self._editing() as doc:
            table = ensure_table(doc, RECORDS_TABLE)
            if record.id in table:
                raise StoreError(f"Activation record already exists: {record.id}", addon_id=record.id)
            entry = tomlkit.table()
            entry.add("installed_version", record.installed_version)
            entry.add("is_active", record.is_active)
            entry.add("installed_at", record.installed_at)
            entry.add("updated_at", record.updated_at)
            table.add(record.id, entry)

    def delete(self, addon_id: str) -> None:
        with self._editing() as doc:
            table = ensure_table(doc, RECORDS_TABLE)
            if addon_id not in table:
                raise NotFoundError(f"No activation record for {addon_id}", addon_id=addon_id)
            del table[addon_id]

    def set_active(self, addon_id: str, active: bool) -> None:
        self._update(addon_id, "is_active", active)

    def set_version(self, addon_id: str, version: str) -> None:
        self._update(addon_id, "installed_version", version)

    def _update(self, addon_id: str, key: str, value) -> None:
        with self._editing() as doc:
            table = ensure_table(doc, RECORDS_TABLE)
            if addon_id not in table:
                raise NotFoundError(f"No activation record for {addon_id}", addon_id=addon_id)
            table[addon_id][key] = value
            table[addon_id]["updated_at"] = utcnow()

    def all(self) -> list[ActivationRecord]:
        return [
            _record_from_table(addon_id, entry)
            for addon_id, entry in self._read_table().items()
        ]


def _record_from_table(addon_id: str, entry: dict) -> ActivationRecord:
    try:
        return ActivationRecord(
            id=addon_id,
            installed_version=str(entry["installed_version"]),
            is_active=bool(entry.get("is_active", False)),
            installed_at=entry.get("installed_at"),
            updated_at=entry.get("updated_at"),
        )
    except (KeyError, TypeError) as e:
        raise StoreError(f"Corrupt activation record for {addon_id}: {e}", addon_id=addon_id) from e
