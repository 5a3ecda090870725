from __future__ import annotations

from ..extensions import db
from storefront.timestamps import to_iso_z, utcnow


class Order(db.Model):
    """
    Order header.

    customer_name is denormalized text, not a foreign key to customers.
    total is a stored scalar; no line items are modeled.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(64), nullable=False, default="pending")
    total = db.Column(db.Float, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "status": self.status,
            "total": self.total,
            "created_at": to_iso_z(self.created_at),
        }
