from __future__ import annotations

from ..extensions import db
from ..services.discrepancy import compute_discrepancy
from ..time_utils import month_key, to_utc_z


class StockSnapshot(db.Model):
    """
    One product's theoretical/actual count at one warehouse for one month.

    Logical key is (product_id, warehouse, month). Full-month uploads replace
    every row of the month; transfers adjust theoretical in place.
    """
    __tablename__ = "stock_snapshots"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse", "month", name="uq_stock_snapshots_cell"),
        db.Index("ix_stock_snapshots_month_warehouse", "month", "warehouse"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Always the first day of the month
    month = db.Column(db.Date, nullable=False, index=True)
    warehouse = db.Column(db.String(64), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    theoretical = db.Column(db.Float, nullable=False, default=0)
    actual = db.Column(db.Float, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("snapshots", lazy=True))

    def __repr__(self) -> str:
        return (
            f"<StockSnapshot id={self.id} month={self.month} warehouse={self.warehouse!r} "
            f"product_id={self.product_id} theoretical={self.theoretical} actual={self.actual}>"
        )

    def to_dict(self) -> dict:
        discrepancy = compute_discrepancy(self.theoretical, self.actual)
        return {
            "id": self.id,
            "month": month_key(self.month),
            "warehouse": self.warehouse,
            "product_id": self.product_id,
            "theoretical": self.theoretical,
            "actual": self.actual,
            "difference": discrepancy.difference,
            "highlight": discrepancy.highlight,
            "updated_at": to_utc_z(self.updated_at),
        }
