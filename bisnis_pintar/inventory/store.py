"""
In-memory inventory with persist-after-mutate semantics.

Every mutation is applied to the collection first and only then handed to the
snapshot adapter. A failed save leaves the mutation in place, is remembered in
`last_persist_error` and re-raised as PersistenceError; `flush()` retries.
Metrics and chart rows are recomputed from the live collection on every call.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterator, List, Optional, Sequence, Tuple

from bisnis_pintar.errors import PersistenceError
from bisnis_pintar.inventory.models import BusinessItem, BusinessMetrics, ChartDatum
from bisnis_pintar.inventory.snapshots import SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_CHART_LIMIT = 10


def compute_metrics(items: Sequence[BusinessItem]) -> BusinessMetrics:
    capital = Decimal(0)
    revenue = Decimal(0)
    profit = Decimal(0)
    for item in items:
        capital += item.capital_value
        revenue += item.revenue_value
        profit += item.profit_value
    return BusinessMetrics(
        total_capital=capital,
        total_potential_revenue=revenue,
        total_potential_profit=profit,
        total_items=len(items),
    )


def rank_by_profit(items: Sequence[BusinessItem], limit: int = DEFAULT_CHART_LIMIT) -> List[ChartDatum]:
    """Chart rows ordered by profit contribution, highest first; ties keep insertion order."""
    if limit <= 0:
        return []
    rows = [
        ChartDatum(
            name=item.name,
            profit_contribution=item.profit_value,
            revenue_contribution=item.revenue_value,
        )
        for item in items
    ]
    rows.sort(key=lambda row: row.profit_contribution, reverse=True)
    return rows[:limit]


class InventoryStore:
    def __init__(self, snapshots: SnapshotStore, items: Sequence[BusinessItem] = ()) -> None:
        self._snapshots = snapshots
        self._items: List[BusinessItem] = []
        self.last_persist_error: Optional[PersistenceError] = None
        for item in items:
            self._upsert(item)

    @classmethod
    def open(cls, snapshots: SnapshotStore) -> "InventoryStore":
        """Build the store from whatever the adapter has persisted."""
        loaded = snapshots.load()
        store = cls(snapshots, loaded)
        if len(store) != len(loaded):
            logger.warning(
                "Snapshot held %d records for %d distinct ids; later records won",
                len(loaded),
                len(store),
            )
        logger.info("Inventory loaded with %d items", len(store))
        return store

    # Reads --------------------------------------------------------------------
    @property
    def items(self) -> Tuple[BusinessItem, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[BusinessItem]:
        return iter(tuple(self._items))

    def __contains__(self, item_id: object) -> bool:
        return self._index_of(item_id) is not None

    def get(self, item_id: str) -> Optional[BusinessItem]:
        index = self._index_of(item_id)
        return self._items[index] if index is not None else None

    def search(self, term: str = "") -> List[BusinessItem]:
        """Items whose name or category contains `term`, case-insensitively."""
        needle = (term or "").strip().lower()
        if not needle:
            return list(self._items)
        return [
            item
            for item in self._items
            if needle in item.name.lower() or needle in item.category.lower()
        ]

    def metrics(self) -> BusinessMetrics:
        return compute_metrics(self._items)

    def top_by_profit(self, limit: int = DEFAULT_CHART_LIMIT) -> List[ChartDatum]:
        return rank_by_profit(self._items, limit)

    # Mutations ----------------------------------------------------------------
    def add(self, item: BusinessItem) -> None:
        """Append `item`; an id that is already present updates that record instead."""
        if self._upsert(item):
            logger.info("Added item %s (%s)", item.id, item.name)
        else:
            logger.info("Item %s already present; treated add as update", item.id)
        self._persist()

    def update(self, item: BusinessItem) -> None:
        """Replace the record with the same id; unknown ids leave the collection as is."""
        index = self._index_of(item.id)
        if index is None:
            logger.info("Update skipped: no item with id %s", item.id)
        else:
            self._items[index] = item
            logger.info("Updated item %s", item.id)
        self._persist()

    def remove(self, item_id: str) -> None:
        """Drop the record with `item_id`; unknown ids leave the collection as is."""
        index = self._index_of(item_id)
        if index is None:
            logger.info("Remove skipped: no item with id %s", item_id)
        else:
            del self._items[index]
            logger.info("Removed item %s", item_id)
        self._persist()

    def flush(self) -> None:
        """Persist the current collection again, e.g. after a failed save."""
        self._persist()

    # Internals ----------------------------------------------------------------
    def _index_of(self, item_id: object) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None

    def _upsert(self, item: BusinessItem) -> bool:
        index = self._index_of(item.id)
        if index is None:
            self._items.append(item)
            return True
        self._items[index] = item
        return False

    def _persist(self) -> None:
        try:
            self._snapshots.save(tuple(self._items))
        except PersistenceError as exc:
            self.last_persist_error = exc
            logger.exception("Inventory change kept in memory but not saved")
            raise
        self.last_persist_error = None


__all__ = ["InventoryStore", "compute_metrics", "rank_by_profit", "DEFAULT_CHART_LIMIT"]
