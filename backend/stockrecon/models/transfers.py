from __future__ import annotations

from ..extensions import db
from ..time_utils import month_key, month_start, to_utc_z


class TransferLogEntry(db.Model):
    """
    Append-only log of manual theoretical-stock moves between warehouses.

    ts is the effective timestamp: the first instant of the month whose
    snapshots the transfer adjusted. Undo derives the month from ts, never
    from whatever month a viewer currently has selected. created_at is the
    wall-clock insertion time.

    Rows are only ever inserted, or deleted by an explicit undo.
    """
    __tablename__ = "transfers"
    __table_args__ = (
        db.CheckConstraint("from_wh <> to_wh", name="ck_transfers_distinct_warehouses"),
        db.CheckConstraint("qty > 0", name="ck_transfers_positive_qty"),
        db.Index("ix_transfers_ts", "ts"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ts = db.Column(db.DateTime(timezone=True), nullable=False)
    from_wh = db.Column(db.String(64), nullable=False)
    to_wh = db.Column(db.String(64), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    qty = db.Column(db.Float, nullable=False)
    user = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    @property
    def effective_month(self):
        return month_start(self.ts)

    def __repr__(self) -> str:
        return (
            f"<TransferLogEntry id={self.id} {self.from_wh!r}->{self.to_wh!r} "
            f"product_id={self.product_id} qty={self.qty}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ts": to_utc_z(self.ts),
            "month": month_key(self.effective_month),
            "from_wh": self.from_wh,
            "to_wh": self.to_wh,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "qty": self.qty,
            "user": self.user,
            "created_at": to_utc_z(self.created_at),
        }
