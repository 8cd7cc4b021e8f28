# Overview: Reconciliation checks that surface partially applied writes.

"""
Nothing here repairs data. The checks make the states left behind by the
non-atomic write sequences visible:

- an upload whose insert failed after its delete (empty month, or warehouses
  without rows),
- duplicate logical keys (databases created without the key constraint),
- transfers whose source or destination cell does not exist for their month,
- negative theoretical stock (typically a transfer out of an empty cell).
"""
from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import StockSnapshot
from ..time_utils import month_key
from .snapshot_service import read_month
from .transfer_service import list_transfers


def audit_month(month: date) -> dict:
    warehouses = current_app.config["WAREHOUSES"]
    snapshots = read_month(month)

    per_warehouse = {wh: 0 for wh in warehouses}
    unknown_warehouses: set[str] = set()
    cells: set[tuple[int, str]] = set()
    negative = []
    for s in snapshots:
        if s.warehouse in per_warehouse:
            per_warehouse[s.warehouse] += 1
        else:
            unknown_warehouses.add(s.warehouse)
        cells.add((s.product_id, s.warehouse))
        if s.theoretical < 0:
            negative.append({"product_id": s.product_id, "warehouse": s.warehouse, "theoretical": s.theoretical})

    duplicates = (
        db.session.query(StockSnapshot.product_id, StockSnapshot.warehouse, func.count(StockSnapshot.id))
        .filter(StockSnapshot.month == month)
        .group_by(StockSnapshot.product_id, StockSnapshot.warehouse)
        .having(func.count(StockSnapshot.id) > 1)
        .all()
    )

    orphaned_transfers = []
    for t in list_transfers(month):
        missing = [wh for wh in (t.from_wh, t.to_wh) if (t.product_id, wh) not in cells]
        if missing:
            orphaned_transfers.append({"transfer_id": t.id, "product_id": t.product_id, "missing_cells": missing})

    missing_warehouses = [wh for wh, count in per_warehouse.items() if count == 0]

    inconsistent = bool(
        missing_warehouses or duplicates or orphaned_transfers or negative or unknown_warehouses
    )
    return {
        "month": month_key(month),
        "status": "inconsistent" if inconsistent else "ok",
        "snapshot_count": len(snapshots),
        "per_warehouse": per_warehouse,
        "missing_warehouses": missing_warehouses,
        "unknown_warehouses": sorted(unknown_warehouses),
        "duplicate_keys": [
            {"product_id": pid, "warehouse": wh, "count": count} for pid, wh, count in duplicates
        ],
        "negative_theoretical": negative,
        "transfers_missing_cells": orphaned_transfers,
    }
