#!/usr/bin/env python3
"""
CLI to export the stored inventory, its metrics and the top-profit ranking to
CSV files in the reports directory.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Dict

import pandas as pd

from bisnis_pintar.inventory.snapshots import snapshot_store_from_config
from bisnis_pintar.inventory.store import InventoryStore
from bisnis_pintar.utils.config import load_config, resolve_path

logger = logging.getLogger(__name__)

INVENTORY_COLUMNS = [
    "id", "name", "category", "stock", "capitalPrice", "sellingPrice",
    "margin", "capitalValue", "revenueValue", "profitValue",
]
CHART_COLUMNS = ["rank", "name", "profitContribution", "revenueContribution"]


def get_run_date(default: str) -> str:
    # Allow RUN_DATE override from env
    return os.environ.get("RUN_DATE", default)


def inventory_frame(store: InventoryStore) -> pd.DataFrame:
    rows = []
    for item in store.items:
        row = item.to_dict()
        row.update(
            margin=float(item.margin),
            capitalValue=float(item.capital_value),
            revenueValue=float(item.revenue_value),
            profitValue=float(item.profit_value),
        )
        rows.append(row)
    return pd.DataFrame(rows, columns=INVENTORY_COLUMNS)


def metrics_frame(store: InventoryStore) -> pd.DataFrame:
    metrics = store.metrics().to_dict()
    return pd.DataFrame({"metric": list(metrics.keys()), "value": list(metrics.values())})


def chart_frame(store: InventoryStore, limit: int) -> pd.DataFrame:
    rows = [
        {"rank": position, **datum.to_dict()}
        for position, datum in enumerate(store.top_by_profit(limit), start=1)
    ]
    return pd.DataFrame(rows, columns=CHART_COLUMNS)


def write_reports(store: InventoryStore, out_dir: Path, run_date: str, limit: int = 10) -> Dict[str, Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    frames = {
        "inventory": inventory_frame(store),
        "metrics": metrics_frame(store),
        "top_profit": chart_frame(store, limit),
    }
    written: Dict[str, Path] = {}
    for name, frame in frames.items():
        path = out_dir / f"{name}_{run_date}.csv"
        frame.to_csv(path, index=False)
        logger.info("Wrote %s (%d rows)", path, len(frame))
        written[name] = path
    return written


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Export inventory, metrics and top-profit CSV reports.")
    parser.add_argument(
        "--config",
        type=Path,
        help="Optional path to CONFIG.yaml (defaults to docs/protocol/CONFIG.yaml)",
    )
    parser.add_argument("--out", type=Path, help="Output directory (defaults to app.reports_dir)")
    parser.add_argument("--limit", type=int, help="Rows in the top-profit report (defaults to app.chart_limit)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    config = load_config(args.config) if args.config else load_config()
    out_dir = args.out or resolve_path(config.app.reports_dir)
    limit = args.limit if args.limit is not None else config.app.chart_limit

    store = InventoryStore.open(snapshot_store_from_config(config))
    run_date = get_run_date(pd.Timestamp.now(tz="UTC").strftime("%Y%m%d"))
    written = write_reports(store, out_dir, run_date, limit=limit)

    for name, path in written.items():
        print(f"{name}: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
