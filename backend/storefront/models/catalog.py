from __future__ import annotations

from ..extensions import db
from storefront.timestamps import to_iso_z, utcnow


class Product(db.Model):
    """
    Product inventory row.

    price/stock are plain non-negative numerics; there is no currency type.
    image_url points at the public URL of an uploaded blob (or any http(s) URL).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    price = db.Column(db.Float, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    category = db.Column(db.String(120), nullable=False)
    image_url = db.Column(db.String(2048), nullable=True)
    featured = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
            "category": self.category,
            "image_url": self.image_url,
            "featured": self.featured,
            "created_at": to_iso_z(self.created_at),
        }
