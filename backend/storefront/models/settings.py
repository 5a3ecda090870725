from __future__ import annotations

from ..extensions import db
from storefront.timestamps import to_iso_z, utcnow


DEFAULT_STORE_SETTINGS = {
    "store_name": "My Store",
    "email": "",
    "phone": "",
    "address": "",
    "currency_symbol": "$",
    "notify_new_orders": True,
    "notify_low_stock": True,
    "enable_guest_checkout": False,
    "enable_reviews": True,
}


class StoreSettings(db.Model):
    """
    One settings row per account, keyed by the owning user's id.

    Rows are created lazily on first save (upsert semantics).
    """
    __tablename__ = "store_settings"

    user_id = db.Column(db.String(64), primary_key=True)

    store_name = db.Column(db.String(255), nullable=False, default=DEFAULT_STORE_SETTINGS["store_name"])
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.String(512), nullable=True)
    currency_symbol = db.Column(db.String(3), nullable=False, default=DEFAULT_STORE_SETTINGS["currency_symbol"])

    notify_new_orders = db.Column(db.Boolean, nullable=False, default=True)
    notify_low_stock = db.Column(db.Boolean, nullable=False, default=True)
    enable_guest_checkout = db.Column(db.Boolean, nullable=False, default=False)
    enable_reviews = db.Column(db.Boolean, nullable=False, default=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "store_name": self.store_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "currency_symbol": self.currency_symbol,
            "notify_new_orders": self.notify_new_orders,
            "notify_low_stock": self.notify_low_stock,
            "enable_guest_checkout": self.enable_guest_checkout,
            "enable_reviews": self.enable_reviews,
            "updated_at": to_iso_z(self.updated_at),
        }
