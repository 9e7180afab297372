# Overview: Product catalogue operations; prices and stock are derived from inventory batches.

"""
Products Service

MULTI-TENANT: every operation takes store_id and only sees that store's products.

Products carry no price or quantity of their own. The API still exposes
price_cents, cost_price_cents, low_stock_threshold and stock_quantity on each
product; they are derived from the product's batches (see inventory_service):
- pricing fields come from the newest open batch, or the newest batch when
  everything is sold out
- stock_quantity is the sum of quantity_remaining
"""
from __future__ import annotations

import re

from sqlalchemy import func, or_

from ..errors import ServiceError
from ..extensions import db
from ..models import InventoryBatch, Product, Store
from ..time_utils import utcnow
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    coerce_int,
    enforce_rules_batch,
    validate_cents,
    validate_payload,
)
from . import inventory_service
from .concurrency import run_with_retry

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "name", "description", "category", "is_active"},
    required_on_create={"sku", "name"},
)

# API field -> InventoryBatch column
BATCH_FIELD_MAP = {
    "price_cents": "selling_price_cents",
    "cost_price_cents": "cost_price_cents",
    "low_stock_threshold": "low_stock_threshold",
    "stock_quantity": "quantity_remaining",
}

SKU_PREFIX_LENGTH = 3
SKU_NUMBER_PAD = 4


class ProductError(ServiceError):
    """Raised for product catalogue errors."""
    code = "VALIDATION_ERROR"
    status_code = 400


def _not_found() -> ProductError:
    return ProductError("Product not found", code="PRODUCT_NOT_FOUND", status_code=404)


def _batch_patch(payload: dict) -> dict:
    """Pull batch-level fields out of a product payload, validated."""
    patch: dict = {}
    for api_field, column in BATCH_FIELD_MAP.items():
        if api_field not in payload or payload[api_field] in (None, ""):
            continue
        try:
            if api_field in ("price_cents", "cost_price_cents"):
                patch[column] = validate_cents(payload[api_field], api_field)
            else:
                patch[column] = coerce_int(payload[api_field], api_field)
        except ValidationError as exc:
            raise ProductError(str(exc))
    try:
        enforce_rules_batch(patch)
    except ValidationError as exc:
        raise ProductError(str(exc))
    return patch


def _pricing_batch(product_id: int) -> InventoryBatch | None:
    return inventory_service.newest_open_batch(product_id) or inventory_service.newest_batch(product_id)


def serialize_product(product: Product, *, stock_quantity: int | None = None, include_batches: bool = False) -> dict:
    data = product.to_dict()
    batch = _pricing_batch(product.id)
    data["price_cents"] = batch.selling_price_cents if batch else 0
    data["cost_price_cents"] = batch.cost_price_cents if batch else 0
    data["low_stock_threshold"] = (
        batch.low_stock_threshold if batch else inventory_service.default_low_stock_threshold()
    )
    if stock_quantity is None:
        stock_quantity = inventory_service.get_stock_quantity(product.id)
    data["stock_quantity"] = stock_quantity
    if include_batches:
        data["batches"] = [
            b.to_dict()
            for b in sorted(product.batches, key=lambda b: (b.restock_date, b.id), reverse=True)
        ]
    return data


def get_product_in_store(store_id: int, product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None or product.store_id != store_id:
        raise _not_found()
    return product


def list_products(
    *,
    store_id: int,
    search: str | None = None,
    category: str | None = None,
    low_stock: bool = False,
    include_inactive: bool = False,
) -> list[dict]:
    """
    Store-scoped product listing ordered by name.

    search matches name or SKU case-insensitively; low_stock keeps products
    whose stock is at or below their threshold.
    """
    query = db.session.query(Product).filter(Product.store_id == store_id)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(func.lower(Product.name).like(pattern), func.lower(Product.sku).like(pattern))
        )
    if category:
        query = query.filter(Product.category == category)

    products = query.order_by(Product.name.asc(), Product.id.asc()).all()
    stock = inventory_service.get_stock_quantities(p.id for p in products)

    items = [serialize_product(p, stock_quantity=stock.get(p.id, 0)) for p in products]
    if low_stock:
        items = [i for i in items if i["stock_quantity"] <= i["low_stock_threshold"]]
    return items


def get_product(*, store_id: int, product_id: int) -> dict:
    return serialize_product(get_product_in_store(store_id, product_id), include_batches=True)


def _ensure_sku_available(store_id: int, sku: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.store_id == store_id, Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ProductError("SKU already exists for this store.", code="DUPLICATE_SKU", status_code=409)


def create_product(*, store_id: int, payload: dict) -> dict:
    """
    Create a product, plus its first batch when pricing or stock is supplied.

    The initial batch may carry zero stock (price-only setup).
    """
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    except ValidationError as exc:
        raise ProductError(str(exc))
    batch_patch = _batch_patch(payload)

    _ensure_sku_available(store_id, patch["sku"])

    product = Product(store_id=store_id, **patch)
    db.session.add(product)
    db.session.flush()

    if batch_patch:
        qty = batch_patch.get("quantity_remaining", 0)
        db.session.add(InventoryBatch(
            store_id=store_id,
            product_id=product.id,
            cost_price_cents=batch_patch.get("cost_price_cents", 0),
            selling_price_cents=batch_patch.get("selling_price_cents", 0),
            quantity_added=qty,
            quantity_remaining=qty,
            low_stock_threshold=batch_patch.get(
                "low_stock_threshold", inventory_service.default_low_stock_threshold()
            ),
            batch_number="INITIAL",
            restock_date=utcnow(),
        ))

    db.session.commit()
    return serialize_product(product)


def update_product(*, store_id: int, product_id: int, payload: dict) -> dict:
    """
    Patch product fields and, for pricing/stock fields, the newest batch.

    Setting stock_quantity rewrites the newest batch's quantity_remaining and
    moves quantity_added by the same delta so the batch invariant holds.
    A product with no batches gets one.
    """
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    except ValidationError as exc:
        raise ProductError(str(exc))
    batch_patch = _batch_patch(payload)

    def _op():
        product = get_product_in_store(store_id, product_id)

        if "sku" in patch and patch["sku"] != product.sku:
            _ensure_sku_available(store_id, patch["sku"], exclude_id=product.id)

        for key, value in patch.items():
            setattr(product, key, value)

        if batch_patch:
            batch = inventory_service.newest_batch(product.id)
            if batch is None:
                qty = batch_patch.get("quantity_remaining", 0)
                batch = InventoryBatch(
                    store_id=store_id,
                    product_id=product.id,
                    quantity_added=qty,
                    quantity_remaining=qty,
                    cost_price_cents=0,
                    selling_price_cents=0,
                    low_stock_threshold=inventory_service.default_low_stock_threshold(),
                    restock_date=utcnow(),
                )
                db.session.add(batch)
            elif "quantity_remaining" in batch_patch:
                delta = batch_patch["quantity_remaining"] - batch.quantity_remaining
                batch.quantity_added = batch.quantity_added + delta
            for column, value in batch_patch.items():
                setattr(batch, column, value)

        db.session.commit()
        return serialize_product(product)

    return run_with_retry(_op)


def deactivate_product(*, store_id: int, product_id: int) -> dict:
    """Soft delete: sale history keeps pointing at the row."""
    product = get_product_in_store(store_id, product_id)
    if product.is_active:
        product.is_active = False
    db.session.commit()
    return serialize_product(product)


def list_categories(store_id: int) -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.store_id == store_id, Product.category.isnot(None), Product.category != "")
        .distinct()
        .all()
    )
    return sorted(row[0] for row in rows)


def sku_prefix(store_name: str) -> str:
    letters = re.sub(r"[^A-Z]", "X", (store_name or "").upper()[:SKU_PREFIX_LENGTH])
    return letters.ljust(SKU_PREFIX_LENGTH, "X")


def next_sku(store_id: int) -> str:
    """Next free SKU for the store, e.g. "ACM-0007" for store "Acme"."""
    store = db.session.get(Store, store_id)
    if store is None:
        raise ProductError("Store not found", code="STORE_NOT_FOUND", status_code=404)

    prefix = sku_prefix(store.store_name)
    pattern = re.compile(rf"^{prefix}-(\d+)$")
    skus = (
        db.session.query(Product.sku)
        .filter(Product.store_id == store_id, Product.sku.like(f"{prefix}-%"))
        .all()
    )
    highest = 0
    for (sku,) in skus:
        match = pattern.match(sku)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}-{highest + 1:0{SKU_NUMBER_PAD}d}"
