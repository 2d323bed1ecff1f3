"""
Persistence adapters for the inventory collection.

Every adapter keeps the whole collection as one JSON document under a single
fixed key. `load()` never fails on bad data: a missing or malformed slot reads
as an empty inventory. `save()` raises PersistenceError when the medium itself
refuses the write.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union

import simplejson
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from bisnis_pintar.db.models import Base, KeyValueSlot
from bisnis_pintar.db.session import (
    build_engine,
    make_session_factory,
    resolve_database_url,
    session_scope,
)
from bisnis_pintar.errors import PersistenceError
from bisnis_pintar.inventory.models import BusinessItem
from bisnis_pintar.utils.config import DEFAULT_SLOT_KEY, AppConfig, resolve_path

logger = logging.getLogger(__name__)


class SnapshotStore(Protocol):
    def load(self) -> List[BusinessItem]:
        ...

    def save(self, items: Iterable[BusinessItem]) -> None:
        ...


def encode_items(items: Iterable[BusinessItem]) -> str:
    """Serialise the collection; fractional prices are written as exact number literals."""
    return simplejson.dumps([item.to_record() for item in items], ensure_ascii=False, use_decimal=True)


def decode_items(raw: Optional[str], *, source: str = "snapshot") -> List[BusinessItem]:
    """Parse a stored collection; malformed data is logged and read as empty."""
    if raw is None or not raw.strip():
        return []
    try:
        payload = simplejson.loads(raw, use_decimal=True)
    except ValueError as exc:
        logger.warning("Ignoring %s: invalid JSON (%s)", source, exc)
        return []
    if not isinstance(payload, list):
        logger.warning("Ignoring %s: expected a list, got %s", source, type(payload).__name__)
        return []
    items: List[BusinessItem] = []
    for index, record in enumerate(payload):
        if not isinstance(record, dict):
            logger.warning("Ignoring %s: record %d is not an object", source, index)
            return []
        try:
            items.append(BusinessItem.from_dict(record))
        except (KeyError, ValueError) as exc:
            logger.warning("Ignoring %s: record %d is malformed (%s)", source, index, exc)
            return []
    return items


class SqlSnapshotStore:
    """Slot stored as a row of the `kv_slots` table."""

    def __init__(self, session_factory: sessionmaker, key: str = DEFAULT_SLOT_KEY) -> None:
        self.session_factory = session_factory
        self.key = key

    @classmethod
    def from_engine(cls, engine: Engine, key: str = DEFAULT_SLOT_KEY) -> "SqlSnapshotStore":
        if engine.dialect.name == "sqlite" and engine.url.database not in (None, "", ":memory:"):
            Path(engine.url.database).parent.mkdir(parents=True, exist_ok=True)
        Base.metadata.create_all(engine)
        return cls(make_session_factory(engine), key=key)

    def load(self) -> List[BusinessItem]:
        try:
            with session_scope(self.session_factory) as session:
                row = session.get(KeyValueSlot, self.key)
                raw = row.value if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Unable to read slot {self.key!r}: {exc}") from exc
        return decode_items(raw, source=f"slot {self.key!r}")

    def save(self, items: Iterable[BusinessItem]) -> None:
        payload = encode_items(items)
        try:
            with session_scope(self.session_factory) as session:
                session.merge(KeyValueSlot(key=self.key, value=payload))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Unable to write slot {self.key!r}: {exc}") from exc


class JsonFileSnapshotStore:
    """Slot stored as `<directory>/<key>.json`."""

    def __init__(self, directory: Union[str, Path], key: str = DEFAULT_SLOT_KEY) -> None:
        self.directory = Path(directory)
        self.key = key

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def load(self) -> List[BusinessItem]:
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("Ignoring %s: not UTF-8 text (%s)", self.path, exc)
            return []
        except OSError as exc:
            raise PersistenceError(f"Unable to read {self.path}: {exc}") from exc
        return decode_items(raw, source=str(self.path))

    def save(self, items: Iterable[BusinessItem]) -> None:
        payload = encode_items(items)
        tmp_path = self.directory / f"{self.key}.json.tmp"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise PersistenceError(f"Unable to write {self.path}: {exc}") from exc


class MemorySnapshotStore:
    """Dict-backed slots; `fail_saves` simulates an unavailable medium."""

    def __init__(self, key: str = DEFAULT_SLOT_KEY, slots: Optional[Dict[str, str]] = None) -> None:
        self.key = key
        self.slots: Dict[str, str] = slots if slots is not None else {}
        self.fail_saves = False
        self.save_count = 0

    def load(self) -> List[BusinessItem]:
        return decode_items(self.slots.get(self.key), source=f"memory slot {self.key!r}")

    def save(self, items: Iterable[BusinessItem]) -> None:
        if self.fail_saves:
            raise PersistenceError(f"Memory slot {self.key!r} is refusing writes")
        self.slots[self.key] = encode_items(items)
        self.save_count += 1


def snapshot_store_from_config(config: AppConfig) -> SnapshotStore:
    """Build the adapter selected by `storage.backend`."""
    backend = config.storage.backend.strip().lower()
    if backend == "json":
        return JsonFileSnapshotStore(resolve_path(config.storage.json_dir), key=config.storage.slot_key)
    if backend == "sqlite":
        url = resolve_database_url(config.db.uri)
        logger.info("Using snapshot database %s", url.render_as_string(hide_password=True))
        return SqlSnapshotStore.from_engine(build_engine(url), key=config.storage.slot_key)
    raise ValueError(f"Unknown storage backend: {config.storage.backend!r}")


__all__ = [
    "JsonFileSnapshotStore",
    "MemorySnapshotStore",
    "SnapshotStore",
    "SqlSnapshotStore",
    "decode_items",
    "encode_items",
    "snapshot_store_from_config",
]
