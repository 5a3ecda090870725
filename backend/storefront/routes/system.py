# backend/storefront/routes/system.py
"""
System health endpoint.

Reports which remote backend workspaces are bound to and, for the local
backend, whether its database answers.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    backend = current_app.config["REMOTE_BACKEND"]
    checks = {}
    if backend == "sql":
        checks["database"] = check_database_health()
    else:
        checks["remote"] = {
            "status": "configured" if current_app.config.get("REMOTE_URL") else "unconfigured",
        }

    healthy = all(c["status"] in ("healthy", "configured") for c in checks.values())
    return {
        "status": "healthy" if healthy else "unhealthy",
        "backend": backend,
        "workspaces": len(current_app.extensions["workspaces"]),
        "checks": checks,
    }, 200 if healthy else 503
