# backend/stockrecon/services/snapshot_service.py
"""
Monthly stock snapshots.

WHY: The grid, transfers and audits all read and write the same per-month
table of (product, warehouse) -> theoretical/actual values.

CONSISTENCY BOUNDARY:
- replace_month is DELETE then INSERT, two separately committed statements.
  Readers may briefly see an empty month. If the INSERT fails the month stays
  empty and PartialFailureError is raised; nothing is rolled back.
- apply_delta is read-modify-write without locking. Two sessions adjusting
  the same cell at once can lose one update.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from flask import current_app

from ..extensions import db
from ..models import Product, StockSnapshot
from ..time_utils import month_key
from ..validation import PartialFailureError
from .concurrency import run_statement
from .discrepancy import compute_discrepancy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotRow:
    product_id: int
    warehouse: str
    theoretical: float
    actual: float


@dataclass(frozen=True)
class CellState:
    snapshot_id: int | None
    theoretical: float
    actual: float

    @property
    def exists(self) -> bool:
        return self.snapshot_id is not None


def _delete_month(month: date) -> int:
    def _op():
        return (
            db.session.query(StockSnapshot)
            .filter(StockSnapshot.month == month)
            .delete(synchronize_session=False)
        )
    return run_statement(_op)


def replace_month(month: date, rows: Iterable[SnapshotRow]) -> int:
    """
    Replace every snapshot of a month with rows.

    Args:
        month: first day of the month
        rows: at most one row per (product_id, warehouse)

    Returns:
        int: number of rows inserted

    Raises:
        PartialFailureError: the delete committed but the insert failed
    """
    rows = list(rows)
    deleted = _delete_month(month)
    logger.info("Deleted %d snapshots for %s", deleted, month_key(month))

    def _insert():
        db.session.add_all(
            StockSnapshot(
                month=month,
                warehouse=r.warehouse,
                product_id=r.product_id,
                theoretical=r.theoretical,
                actual=r.actual,
            )
            for r in rows
        )
        db.session.flush()
        return len(rows)

    try:
        inserted = run_statement(_insert)
    except Exception as e:
        logger.error(
            "Snapshot insert for %s failed after its previous data was deleted: %s",
            month_key(month), e,
        )
        raise PartialFailureError(
            f"Failed to insert new stock data for {month_key(month)}: {e}. "
            f"The previous data for {month_key(month)} was already deleted; "
            f"the month has no stock data until it is uploaded again."
        ) from e

    logger.info("Inserted %d snapshots for %s", inserted, month_key(month))
    return inserted


def purge_month(month: date) -> int:
    deleted = _delete_month(month)
    logger.info("Purged %d snapshots for %s", deleted, month_key(month))
    return deleted


def read_month(month: date, page_size: int | None = None) -> list[StockSnapshot]:
    """
    Full scan of a month, one page at a time.

    Stops at the first page shorter than page_size, so stores that cap rows
    per request are read completely.
    """
    if page_size is None:
        page_size = current_app.config.get("SNAPSHOT_PAGE_SIZE", 1000)
    if page_size <= 0:
        raise ValueError("page_size must be positive")

    snapshots: list[StockSnapshot] = []
    offset = 0
    while True:
        page = (
            db.session.query(StockSnapshot)
            .filter(StockSnapshot.month == month)
            .order_by(StockSnapshot.id.asc())
            .offset(offset)
            .limit(page_size)
            .all()
        )
        snapshots.extend(page)
        if len(page) < page_size:
            break
        offset += page_size
    return snapshots


def _find_cell(month: date, warehouse: str, product_id: int) -> StockSnapshot | None:
    return (
        db.session.query(StockSnapshot)
        .filter_by(month=month, warehouse=warehouse, product_id=product_id)
        .first()
    )


def read_cell(month: date, warehouse: str, product_id: int) -> CellState:
    """Current values of one cell; a missing cell reads as 0/0."""
    snap = _find_cell(month, warehouse, product_id)
    if snap is None:
        return CellState(snapshot_id=None, theoretical=0, actual=0)
    return CellState(snapshot_id=snap.id, theoretical=snap.theoretical, actual=snap.actual)


def apply_delta(month: date, warehouse: str, product_id: int, theoretical_delta: float) -> StockSnapshot:
    """
    theoretical += delta for one cell; actual is never touched.

    A missing cell is created with theoretical = delta and actual = 0.
    """
    def _op():
        snap = _find_cell(month, warehouse, product_id)
        if snap is None:
            snap = StockSnapshot(
                month=month,
                warehouse=warehouse,
                product_id=product_id,
                theoretical=theoretical_delta,
                actual=0,
            )
            db.session.add(snap)
        else:
            snap.theoretical = snap.theoretical + theoretical_delta
        db.session.flush()
        return snap

    return run_statement(_op)


def build_grid(month: date) -> list[dict]:
    """
    Grid data: every catalog product with its per-warehouse cells for month.

    Each cell carries difference/highlight from the discrepancy rule.
    """
    warehouses = current_app.config["WAREHOUSES"]
    products = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()

    grid = {
        p.id: {"product_id": p.id, "product_name": p.name, "warehouses": {}}
        for p in products
    }

    for snap in read_month(month):
        entry = grid.get(snap.product_id)
        if entry is None:
            logger.warning("Snapshot %s references unknown product %s", snap.id, snap.product_id)
            continue
        if snap.warehouse not in warehouses:
            logger.warning("Snapshot %s has unknown warehouse %r", snap.id, snap.warehouse)
            continue
        discrepancy = compute_discrepancy(snap.theoretical, snap.actual)
        entry["warehouses"][snap.warehouse] = {
            "theoretical": snap.theoretical,
            "actual": snap.actual,
            "difference": discrepancy.difference,
            "highlight": discrepancy.highlight,
        }

    return list(grid.values())
