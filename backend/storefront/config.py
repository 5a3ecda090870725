# backend/storefront/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Signs the session cookie that binds a browser to its workspace
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Which client bundle workspaces talk to: "sql" (local) or "rest" (hosted)
    REMOTE_BACKEND = os.environ.get("REMOTE_BACKEND", "sql")

    # Hosted backend endpoint + anon key (REMOTE_BACKEND=rest)
    REMOTE_URL = os.environ.get("REMOTE_URL", "")
    REMOTE_API_KEY = os.environ.get("REMOTE_API_KEY", "")
    REMOTE_TIMEOUT = float(os.environ.get("REMOTE_TIMEOUT", "10"))

    # Local backend (REMOTE_BACKEND=sql)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQL_AUTO_CREATE = os.environ.get("SQL_AUTO_CREATE", "true").lower() == "true"
    BLOB_DIR = os.environ.get("BLOB_DIR", "instance/blobs")
    BLOB_PUBLIC_URL = os.environ.get("BLOB_PUBLIC_URL", "/blobs")

    PRODUCT_IMAGE_BUCKET = os.environ.get("PRODUCT_IMAGE_BUCKET", "product-images")
    PASSWORD_RESET_REDIRECT_URL = os.environ.get("PASSWORD_RESET_REDIRECT_URL", "")

    # Sign out after this much inactivity (30 minutes)
    SESSION_IDLE_TIMEOUT_SECONDS = _env_int("SESSION_IDLE_TIMEOUT_SECONDS", 30 * 60)

    PRODUCTS_PER_PAGE = _env_int("PRODUCTS_PER_PAGE", 10)
    CUSTOMERS_PER_PAGE = _env_int("CUSTOMERS_PER_PAGE", 5)
    ORDERS_PER_PAGE = _env_int("ORDERS_PER_PAGE", 10)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
