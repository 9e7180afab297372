# backend/storepos/routes/system.py
"""
System health endpoint.

Reports database connectivity so deployments and load balancers can probe
the service.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Check database connectivity with a trivial query."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"
    body = {
        "success": healthy,
        "data": {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": to_utc_z(utcnow()),
            "checks": {"database": database_health},
        },
    }
    if not healthy:
        body["error"] = "Database unavailable"
        body["code"] = "SERVICE_UNAVAILABLE"
    return body, 200 if healthy else 503
