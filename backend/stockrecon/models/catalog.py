from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product catalog entry, created lazily by CSV ingestion.

    NAME DEDUPLICATION:
    normalized_name (collapsed whitespace, case-folded) carries the UNIQUE
    constraint; name keeps the first-seen spelling for display. Concurrent
    uploads may race to insert the same name; the constraint decides the
    winner and the loser re-reads the catalog.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("normalized_name", name="uq_products_normalized_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    normalized_name = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }
