#!/usr/bin/env python3
"""
Simple migration bootstrapper.

Creates all tables defined in `bisnis_pintar.db.models`, ensures the inventory
slot row exists, and prints a quick table-row summary.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict

from sqlalchemy import func, select

from bisnis_pintar.db.models import Base, KeyValueSlot
from bisnis_pintar.db.session import get_database_url, get_engine, get_session
from bisnis_pintar.utils.config import load_config


def _ensure_sqlite_directory() -> None:
    url = get_database_url()
    if url.get_backend_name() != "sqlite":
        return
    database = url.database
    if not database or database in {":memory:", ""}:
        return
    db_path = Path(database)
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _ensure_inventory_slot() -> None:
    cfg = load_config()
    with get_session() as session:
        if session.get(KeyValueSlot, cfg.storage.slot_key) is None:
            session.add(KeyValueSlot(key=cfg.storage.slot_key, value="[]"))


def _collect_counts() -> Dict[str, int]:
    counts: Dict[str, int] = {}
    with get_session() as session:
        for table in Base.metadata.sorted_tables:
            result = session.execute(select(func.count()).select_from(table))
            counts[table.name] = result.scalar_one()
    return counts


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Create or upgrade the SQLite schema")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop and recreate all tables (SQLite only). WARNING: destructive.",
    )
    args = parser.parse_args(argv)

    _ensure_sqlite_directory()
    engine = get_engine()
    if args.reset:
        if engine.dialect.name != "sqlite":
            print("--reset is only supported for SQLite databases.", file=sys.stderr)
            sys.exit(1)
        Base.metadata.drop_all(engine)
        print("Dropped existing tables (SQLite reset).")

    Base.metadata.create_all(engine)
    _ensure_inventory_slot()

    counts = _collect_counts()
    print("Migration complete. Table row counts:")
    for name, count in counts.items():
        print(f"  - {name}: {count}")


if __name__ == "__main__":
    main()
