# Overview: Flask API routes for sales; parses input and returns JSON responses.

"""Sales API routes: checkout, history and partial-payment customer lookup."""

from flask import Blueprint, current_app, g, request

from ..decorators import require_store
from ..errors import ServiceError, error_response, service_error_response, success_response
from ..services import sales_service
from ..services.identity_service import parse_actor

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")
customers_bp = Blueprint("customers", __name__, url_prefix="/api/partial-payment-customers")


@sales_bp.post("")
@require_store
def create_sale_route():
    """
    Check out a cart.

    Body:
    {
      "store_id": 1,
      "actor": {"type": "cashier", "id": 3},
      "items": [{"product_id": 7, "quantity": 2}],
      "payment_method": "Cash",
      "amount_paid_cents": 2000,
      "discount": {"type": "percentage", "value": 10},
      "sale_description": "...", "notes": "...",
      "partial_payment_customer": {"customer_name": ..., "customer_national_id": ..., "customer_phone": ...}
    }
    """
    data = request.get_json(silent=True) or {}
    discount = data.get("discount") or {}
    if not isinstance(discount, dict):
        return error_response(code="VALIDATION_ERROR", message="discount must be an object")

    try:
        sale = sales_service.create_sale(
            store_id=g.store_id,
            items=data.get("items"),
            payment_method=data.get("payment_method"),
            actor=data.get("actor"),
            amount_paid_cents=data.get("amount_paid_cents"),
            discount_type=discount.get("type"),
            discount_value=discount.get("value"),
            sale_description=data.get("sale_description"),
            notes=data.get("notes"),
            partial_payment_customer=data.get("partial_payment_customer"),
        )
    except ServiceError as e:
        if e.status_code >= 500:
            current_app.logger.error("Sale failed at step %s: %s", e.details.get("step"), e)
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return error_response(code="CREATE_SALE_ERROR", message="Internal server error", status_code=500)

    current_app.logger.info(
        "Sale created store_id=%s sale_number=%s total_cents=%s status=%s",
        g.store_id, sale["sale_number"], sale["total_amount_cents"], sale["payment_status"],
    )
    return success_response(sale, status_code=201, message="Sale completed successfully")


@sales_bp.get("")
@require_store
def list_sales_route():
    """
    Query params: store_id, start_date, end_date (YYYY-MM-DD, inclusive),
    actor_type + actor_id to restrict to one manager or cashier.
    """
    try:
        actor = None
        actor_type = request.args.get("actor_type")
        if actor_type:
            actor = parse_actor({"type": actor_type, "id": request.args.get("actor_id")})
        sales = sales_service.list_sales(
            store_id=g.store_id,
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            actor=actor,
        )
        return success_response(sales)
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return error_response(code="INTERNAL_ERROR", message="Internal server error", status_code=500)


@sales_bp.get("/<int:sale_id>")
@require_store
def get_sale_route(sale_id: int):
    try:
        return success_response(sales_service.get_sale(store_id=g.store_id, sale_id=sale_id))
    except ServiceError as e:
        return service_error_response(e)


@customers_bp.get("")
@require_store
def search_customers_route():
    customers = sales_service.search_partial_payment_customers(
        store_id=g.store_id,
        search=request.args.get("search"),
    )
    return success_response(customers)
