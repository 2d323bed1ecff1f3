"""
Inventory core: item model, store, snapshot adapters and form coercion.
"""
from .forms import ItemForm, build_item  # noqa: F401
from .models import BusinessItem, BusinessMetrics, ChartDatum  # noqa: F401
from .snapshots import (  # noqa: F401
    JsonFileSnapshotStore,
    MemorySnapshotStore,
    SqlSnapshotStore,
    snapshot_store_from_config,
)
from .store import InventoryStore  # noqa: F401

__all__ = [
    "BusinessItem",
    "BusinessMetrics",
    "ChartDatum",
    "InventoryStore",
    "ItemForm",
    "JsonFileSnapshotStore",
    "MemorySnapshotStore",
    "SqlSnapshotStore",
    "build_item",
    "snapshot_store_from_config",
]
