# Overview: Flask API routes for store expenses.

from flask import Blueprint, current_app, g, request

from ..decorators import require_store
from ..errors import ServiceError, error_response, service_error_response, success_response
from ..services import expense_service
from ..services.identity_service import parse_optional_actor

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_store
def list_expenses():
    return success_response(expense_service.list_expenses(g.store_id))


@expenses_bp.post("")
@require_store
def add_expense():
    """
    Body: store_id, description, amount_cents, category, expense_date (YYYY-MM-DD),
    optional recorded_by {"type": ..., "id": ...}.
    """
    data = request.get_json(silent=True) or {}
    try:
        recorded_by = parse_optional_actor(data.get("recorded_by"), field="recorded_by")
        expense = expense_service.add_expense(store_id=g.store_id, payload=data, recorded_by=recorded_by)
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add expense")
        return error_response(code="INTERNAL_ERROR", message="Internal server error", status_code=500)

    return success_response(expense, status_code=201, message="Expense added")
