# Overview: Flask API route for dashboard statistics.

from flask import Blueprint, current_app, g

from ..decorators import require_store
from ..errors import error_response, success_response
from ..services.reporting_service import dashboard_stats

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_store
def stats():
    try:
        return success_response(dashboard_stats(store_id=g.store_id))
    except Exception:
        current_app.logger.exception("Failed to fetch dashboard stats")
        return error_response(
            code="INTERNAL_ERROR",
            message="Failed to fetch dashboard stats",
            status_code=500,
        )
