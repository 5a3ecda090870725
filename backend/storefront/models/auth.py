from __future__ import annotations

import uuid

from ..extensions import db
from storefront.timestamps import to_iso_z, utcnow


def _new_account_id() -> str:
    return str(uuid.uuid4())


class Account(db.Model):
    """
    Identity records for the local auth provider.

    The hosted backend keeps its own user table; this one only exists so the
    local backend can answer sign-in/sign-up the same way.
    """
    __tablename__ = "accounts"

    id = db.Column(db.String(36), primary_key=True, default=_new_account_id)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    # Profile fields supplied at sign-up
    name = db.Column(db.String(255), nullable=False, default="")
    role = db.Column(db.String(32), nullable=False, default="customer")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_sign_in_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "created_at": to_iso_z(self.created_at),
            "last_sign_in_at": to_iso_z(self.last_sign_in_at) if self.last_sign_in_at else None,
        }
