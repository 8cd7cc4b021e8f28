# backend/stockrecon/services/transfer_service.py
"""
Manual theoretical-stock transfers between warehouses.

WHY: Count files often book stock to the wrong warehouse. An operator moves
theoretical quantity from one warehouse to another for a month; every move is
logged and can be undone.

LIFECYCLE:
1. proposed: validated request, nothing written
2. committed: ledger row inserted, then both snapshot cells adjusted
3. reversed: ledger row deleted, then both adjustments inverted
A reversed transfer is gone for good; it cannot be re-applied.

CONSISTENCY:
Ledger insert/delete and the two cell adjustments are separate committed
statements. If an adjustment fails after the ledger write, PartialFailureError
names what needs fixing; no automatic compensation is attempted.
"""
from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime

from flask import current_app

from ..extensions import db
from ..models import Product, TransferLogEntry
from ..time_utils import month_bounds, month_key, parse_iso_datetime, to_utc_z
from ..validation import (
    NotFoundError,
    PartialFailureError,
    ValidationError,
    coerce_int,
    coerce_positive_quantity,
    require_warehouse,
)
from .concurrency import run_statement
from .snapshot_service import apply_delta

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ("id", "ts", "from_wh", "to_wh", "product_id", "qty", "user")


def _validate_route(from_wh, to_wh) -> tuple[str, str]:
    warehouses = current_app.config["WAREHOUSES"]
    from_wh = require_warehouse(from_wh, warehouses, field="from_wh")
    to_wh = require_warehouse(to_wh, warehouses, field="to_wh")
    if from_wh == to_wh:
        raise ValidationError("Source and destination warehouse cannot be the same")
    return from_wh, to_wh


def _require_product(product_id) -> int:
    if product_id is None or product_id == "":
        raise ValidationError("product_id is required")
    product_id = coerce_int(product_id, "product_id")
    if db.session.get(Product, product_id) is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product_id


def _apply_moves(entry_desc: str, month: date, moves: list[tuple[str, float]], product_id: int) -> None:
    done: list[str] = []
    for warehouse, delta in moves:
        try:
            apply_delta(month, warehouse, product_id, delta)
        except Exception as e:
            pending = [wh for wh, _ in moves if wh not in done]
            logger.error(
                "%s: snapshot update failed at %s for product %s in %s: %s",
                entry_desc, warehouse, product_id, month_key(month), e,
            )
            raise PartialFailureError(
                f"{entry_desc}, but the stock of product {product_id} for "
                f"{month_key(month)} could not be adjusted in: {', '.join(pending)} ({e}). "
                f"Already adjusted: {', '.join(done) or 'none'}. Correct these cells manually."
            ) from e
        done.append(warehouse)


def execute_transfer(
    from_wh: str,
    to_wh: str,
    product_id: int,
    qty: float,
    month: date,
    actor: str | None = None,
) -> TransferLogEntry:
    """
    Move qty of theoretical stock from from_wh to to_wh for month.

    Args:
        from_wh: Source warehouse
        to_wh: Destination warehouse
        product_id: Product to move
        qty: Quantity (> 0)
        month: First day of the month whose snapshots are adjusted
        actor: Recorded on the ledger row (defaults to DEFAULT_ACTOR)

    Returns:
        TransferLogEntry: The committed ledger row

    Raises:
        ValidationError: invalid input (nothing written)
        NotFoundError: unknown product (nothing written)
        PartialFailureError: ledger row written, snapshot update incomplete
    """
    if month is None:
        raise ValidationError("month is required")
    from_wh, to_wh = _validate_route(from_wh, to_wh)
    qty = coerce_positive_quantity(qty)
    product_id = _require_product(product_id)
    actor = actor or current_app.config["DEFAULT_ACTOR"]

    def _insert():
        entry = TransferLogEntry(
            ts=datetime(month.year, month.month, 1),
            from_wh=from_wh,
            to_wh=to_wh,
            product_id=product_id,
            qty=qty,
            user=actor,
        )
        db.session.add(entry)
        db.session.flush()
        return entry

    entry = run_statement(_insert)
    entry_id = entry.id

    _apply_moves(
        f"Transfer {entry_id} was recorded",
        month,
        [(from_wh, -qty), (to_wh, qty)],
        product_id,
    )

    logger.info(
        "Transfer %s: %g of product %s from %s to %s (%s) by %s",
        entry_id, qty, product_id, from_wh, to_wh, month_key(month), actor,
    )
    return db.session.get(TransferLogEntry, entry_id)


def undo_transfer(transfer_id: int) -> dict:
    """
    Reverse a transfer: delete its ledger row, then invert both adjustments.

    The month comes from the ledger row's ts, not from any selected month.

    Returns:
        dict: The removed ledger row as it was before deletion

    Raises:
        NotFoundError: no such transfer (nothing written)
        PartialFailureError: ledger row deleted, snapshot reversal incomplete
    """
    entry = db.session.get(TransferLogEntry, transfer_id)
    if entry is None:
        raise NotFoundError(f"Transfer {transfer_id} not found")

    snapshot = entry.to_dict()
    month = entry.effective_month
    from_wh, to_wh, product_id, qty = entry.from_wh, entry.to_wh, entry.product_id, entry.qty

    def _delete():
        return (
            db.session.query(TransferLogEntry)
            .filter(TransferLogEntry.id == transfer_id)
            .delete(synchronize_session=False)
        )

    if run_statement(_delete) == 0:
        raise NotFoundError(f"Transfer {transfer_id} not found")
    db.session.expire_all()

    _apply_moves(
        f"Transfer {transfer_id} was removed from the ledger",
        month,
        [(from_wh, qty), (to_wh, -qty)],
        product_id,
    )

    logger.info("Transfer %s undone (%s)", transfer_id, month_key(month))
    return snapshot


def list_transfers(month: date) -> list[TransferLogEntry]:
    start, end = month_bounds(month)
    return (
        db.session.query(TransferLogEntry)
        .filter(TransferLogEntry.ts >= start, TransferLogEntry.ts < end)
        .order_by(TransferLogEntry.ts.asc(), TransferLogEntry.id.asc())
        .all()
    )


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def export_transfers(month: date) -> str:
    """Ledger rows of month as CSV text (header row included)."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for t in list_transfers(month):
        writer.writerow([
            t.id,
            to_utc_z(t.ts),
            t.from_wh,
            t.to_wh,
            t.product_id,
            _format_number(t.qty),
            t.user,
        ])
    return buf.getvalue()


def _parse_import_row(line_no: int, row: dict, default_actor: str) -> dict:
    try:
        raw_ts = (row.get("ts") or "").strip()
        if not raw_ts:
            raise ValidationError("ts is required")
        try:
            ts = parse_iso_datetime(raw_ts)
        except ValueError:
            raise ValidationError(f"ts must be an ISO-8601 datetime, got {raw_ts!r}")

        from_wh, to_wh = _validate_route(row.get("from_wh"), row.get("to_wh"))
        qty = coerce_positive_quantity(row.get("qty"))
        product_id = _require_product(row.get("product_id"))
    except (ValidationError, NotFoundError) as e:
        raise ValidationError(f"Line {line_no}: {e}")

    return {
        "ts": ts,
        "from_wh": from_wh,
        "to_wh": to_wh,
        "product_id": product_id,
        "qty": qty,
        "user": (row.get("user") or "").strip() or default_actor,
    }


def import_transfers(text: str, actor: str | None = None) -> list[TransferLogEntry]:
    """
    Restore ledger rows from exported CSV.

    The id column is discarded so restored rows get fresh ids. Snapshot
    cells are NOT adjusted: this restores the log only.

    Raises:
        ValidationError: missing columns or any invalid row (nothing written)
    """
    default_actor = actor or current_app.config["DEFAULT_ACTOR"]
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValidationError("Transfer import is empty")

    fieldnames = [f.strip() for f in reader.fieldnames]
    reader.fieldnames = fieldnames
    missing = [c for c in EXPORT_COLUMNS if c not in ("id", "user") and c not in fieldnames]
    if missing:
        raise ValidationError(f"Transfer import is missing columns: {', '.join(missing)}")

    try:
        parsed = [
            _parse_import_row(line_no, row, default_actor)
            for line_no, row in enumerate(reader, start=2)
            if any(isinstance(v, str) and v.strip() for v in row.values())
        ]
    except csv.Error as e:
        raise ValidationError(f"Malformed transfer CSV: {e}")

    if not parsed:
        raise ValidationError("Transfer import contains no rows")

    def _insert():
        entries = [TransferLogEntry(**values) for values in parsed]
        db.session.add_all(entries)
        db.session.flush()
        return entries

    entries = run_statement(_insert)
    logger.info("Imported %d transfer log rows (ledger only, snapshots unchanged)", len(entries))
    return entries
