from __future__ import annotations

from ..extensions import db


class Customer(db.Model):
    """
    Customer master data.

    orders/spent are set by hand on the customer form; they are NOT aggregated
    from the orders table and nothing links the two.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_last_order", "last_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    orders = db.Column(db.Integer, nullable=False, default=0)
    spent = db.Column(db.Float, nullable=False, default=0)

    # "YYYY-MM-DD"; kept as text so it sorts and round-trips unchanged
    last_order = db.Column(db.String(10), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "orders": self.orders,
            "spent": self.spent,
            "last_order": self.last_order,
        }
