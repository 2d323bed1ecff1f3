from __future__ import annotations

import unittest
from decimal import Decimal

import pytest

from bisnis_pintar.errors import PersistenceError
from bisnis_pintar.inventory.models import BusinessItem
from bisnis_pintar.inventory.snapshots import MemorySnapshotStore
from bisnis_pintar.inventory.store import InventoryStore, rank_by_profit


def make_item(item_id: str, name: str = "", stock: int = 1, cost="0", sell="0", category="Umum") -> BusinessItem:
    return BusinessItem(
        id=item_id,
        name=name or f"Item {item_id}",
        stock=stock,
        capital_price=Decimal(cost),
        selling_price=Decimal(sell),
        category=category,
    )


KOPI = make_item("1", "Kopi", stock=10, cost="5000", sell="8000", category="Minuman")


def new_store(*items: BusinessItem) -> InventoryStore:
    return InventoryStore(MemorySnapshotStore(), items)


def test_single_item_metrics():
    store = new_store(KOPI)
    metrics = store.metrics()
    assert metrics.total_capital == 50000
    assert metrics.total_potential_revenue == 80000
    assert metrics.total_potential_profit == 30000
    assert metrics.total_items == 1


def test_empty_store_metrics_and_chart():
    store = new_store()
    metrics = store.metrics()
    assert (metrics.total_capital, metrics.total_potential_revenue, metrics.total_potential_profit) == (0, 0, 0)
    assert metrics.total_items == 0
    assert store.top_by_profit(10) == []


def test_zero_stock_and_negative_margin():
    zero = make_item("z", stock=0, cost="1000", sell="2000")
    loss = make_item("l", stock=4, cost="3000", sell="2500")
    store = new_store(KOPI, zero, loss)
    metrics = store.metrics()
    assert metrics.total_capital == 50000 + 0 + 12000
    assert metrics.total_potential_revenue == 80000 + 0 + 10000
    assert metrics.total_potential_profit == 30000 + 0 - 2000
    assert metrics.total_items == 3


def test_total_items_counts_records_not_units():
    store = new_store(make_item("a", stock=100), make_item("b", stock=7))
    assert store.metrics().total_items == 2


def test_fractional_prices_stay_exact():
    store = new_store(make_item("f", stock=3, cost="0.10", sell="0.30"))
    assert store.metrics().total_potential_profit == Decimal("0.60")


def test_top_by_profit_truncates_and_sorts():
    items = [make_item(str(i), stock=i, cost="100", sell="150") for i in range(1, 16)]
    store = new_store(*items)
    rows = store.top_by_profit(10)
    assert len(rows) == 10
    profits = [row.profit_contribution for row in rows]
    assert profits == sorted(profits, reverse=True)
    names = {item.name for item in items}
    assert all(row.name in names for row in rows)
    assert rows[0].name == "Item 15"
    assert rows[0].revenue_contribution == 15 * 150


def test_top_by_profit_returns_all_when_fewer():
    store = new_store(make_item("a"), make_item("b"), make_item("c"))
    assert len(store.top_by_profit(10)) == 3


def test_top_by_profit_ties_keep_insertion_order():
    rows = rank_by_profit([make_item("x", "X", 1, "1", "2"), make_item("y", "Y", 1, "1", "2")])
    assert [row.name for row in rows] == ["X", "Y"]


def test_top_by_profit_non_positive_limit():
    assert new_store(KOPI).top_by_profit(0) == []


class TestMutations(unittest.TestCase):
    def setUp(self) -> None:
        self.snapshots = MemorySnapshotStore()
        self.store = InventoryStore(self.snapshots, [KOPI])

    def test_add_then_remove_restores_collection(self) -> None:
        before = self.store.items
        extra = make_item("2", "Teh", stock=5, cost="2000", sell="4000")
        self.store.add(extra)
        self.assertEqual(len(self.store), 2)
        self.store.remove("2")
        self.assertEqual(self.store.items, before)

    def test_add_with_duplicate_id_updates(self) -> None:
        renamed = make_item("1", "Kopi Susu", stock=3, cost="6000", sell="9000")
        self.store.add(renamed)
        self.assertEqual(len(self.store), 1)
        self.assertEqual(self.store.get("1"), renamed)

    def test_update_replaces_matching_item(self) -> None:
        changed = make_item("1", "Kopi", stock=20, cost="5000", sell="8000", category="Minuman")
        self.store.update(changed)
        self.assertEqual(self.store.metrics().total_capital, 100000)

    def test_update_unknown_id_is_noop(self) -> None:
        self.store.flush()
        before = self.snapshots.slots[self.snapshots.key]
        self.store.update(make_item("missing", stock=99))
        self.assertEqual(self.store.items, (KOPI,))
        self.assertEqual(self.snapshots.slots[self.snapshots.key], before)

    def test_remove_unknown_id_is_noop(self) -> None:
        self.store.remove("missing")
        self.assertEqual(self.store.items, (KOPI,))

    def test_every_mutation_persists_full_collection(self) -> None:
        self.store.add(make_item("2"))
        self.store.update(make_item("2", stock=3))
        self.store.remove("1")
        self.assertEqual(self.snapshots.save_count, 3)
        self.assertEqual(self.snapshots.load(), [make_item("2", stock=3)])

    def test_search_matches_name_or_category(self) -> None:
        self.store.add(make_item("2", "Roti Bakar", category="Makanan"))
        self.assertEqual([i.id for i in self.store.search("kopi")], ["1"])
        self.assertEqual([i.id for i in self.store.search("MAKAN")], ["2"])
        self.assertEqual(len(self.store.search("  ")), 2)


def test_failed_save_keeps_mutation_and_flush_recovers():
    snapshots = MemorySnapshotStore()
    store = InventoryStore(snapshots)
    snapshots.fail_saves = True
    with pytest.raises(PersistenceError):
        store.add(KOPI)
    assert store.items == (KOPI,)
    assert store.last_persist_error is not None
    assert store.metrics().total_items == 1

    snapshots.fail_saves = False
    store.flush()
    assert store.last_persist_error is None
    assert snapshots.load() == [KOPI]


def test_open_loads_persisted_items_and_dedupes_ids():
    snapshots = MemorySnapshotStore()
    snapshots.save([KOPI, make_item("2"), make_item("1", "Kopi Baru")])
    store = InventoryStore.open(snapshots)
    assert [item.id for item in store] == ["1", "2"]
    assert store.get("1").name == "Kopi Baru"
