# Overview: Flask API routes for products and restocking; parses input and returns JSON responses.

"""
Product management routes.

MULTI-TENANT: every route is scoped to g.store_id (see @require_store).
Prices and stock shown on products are derived from inventory batches.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_store
from ..errors import ServiceError, error_response, service_error_response, success_response
from ..services import inventory_service, products_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _internal_error():
    return error_response(code="INTERNAL_ERROR", message="Internal server error", status_code=500)


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


@products_bp.get("")
@require_store
def list_products():
    """
    List active products.

    Query params:
    - store_id: int (required)
    - search: matches name or SKU (case-insensitive)
    - category: exact category
    - low_stock: "true" to keep products at or below their threshold
    """
    try:
        items = products_service.list_products(
            store_id=g.store_id,
            search=request.args.get("search"),
            category=request.args.get("category"),
            low_stock=_truthy(request.args.get("low_stock")),
        )
        return success_response(items)
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return _internal_error()


@products_bp.post("")
@require_store
def create_product():
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(store_id=g.store_id, payload=payload)
        current_app.logger.info("Product created store_id=%s sku=%s", g.store_id, product["sku"])
        return success_response(product, status_code=201, message="Product created")
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return _internal_error()


@products_bp.get("/categories")
@require_store
def list_categories():
    return success_response(products_service.list_categories(g.store_id))


@products_bp.get("/next-sku")
@require_store
def next_sku():
    try:
        return success_response({"sku": products_service.next_sku(g.store_id)})
    except ServiceError as e:
        return service_error_response(e)


@products_bp.get("/<int:product_id>")
@require_store
def get_product(product_id: int):
    try:
        return success_response(products_service.get_product(store_id=g.store_id, product_id=product_id))
    except ServiceError as e:
        return service_error_response(e)


@products_bp.put("/<int:product_id>")
@require_store
def update_product(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(
            store_id=g.store_id,
            product_id=product_id,
            payload=payload,
        )
        return success_response(product, message="Product updated")
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return _internal_error()


@products_bp.delete("/<int:product_id>")
@require_store
def deactivate_product(product_id: int):
    """Soft delete (is_active=False); sale history keeps the product."""
    try:
        product = products_service.deactivate_product(store_id=g.store_id, product_id=product_id)
        return success_response(product, message="Product deactivated")
    except ServiceError as e:
        return service_error_response(e)


@products_bp.post("/<int:product_id>/restock")
@require_store
def restock_product(product_id: int):
    """
    Add a batch of stock.

    Body: store_id, quantity, cost_price_cents, selling_price_cents,
    optional low_stock_threshold, batch_number, notes, restock_date.
    """
    data = request.get_json(silent=True) or {}
    try:
        batch = inventory_service.restock(
            store_id=g.store_id,
            product_id=product_id,
            quantity=data.get("quantity"),
            cost_price_cents=data.get("cost_price_cents"),
            selling_price_cents=data.get("selling_price_cents"),
            low_stock_threshold=data.get("low_stock_threshold"),
            batch_number=data.get("batch_number"),
            notes=data.get("notes"),
            restock_date=data.get("restock_date"),
        )
        current_app.logger.info(
            "Restocked product_id=%s store_id=%s quantity=%s batch=%s",
            product_id, g.store_id, batch.quantity_added, batch.batch_number,
        )
        return success_response(batch.to_dict(), status_code=201, message="Product restocked")
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return _internal_error()


@products_bp.get("/<int:product_id>/restock-history")
@require_store
def restock_history(product_id: int):
    try:
        batches = inventory_service.restock_history(store_id=g.store_id, product_id=product_id)
        return success_response([b.to_dict() for b in batches])
    except ServiceError as e:
        return service_error_response(e)
