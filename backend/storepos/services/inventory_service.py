# Overview: Batch-level stock operations: restock, stock queries and FIFO depletion.

"""
Inventory invariants & time semantics

Stock model:
- Stock lives on InventoryBatch rows (one per restock event), never on Product.
- A product's stock is SUM(quantity_remaining) over its batches.
- 0 <= quantity_remaining <= quantity_added holds for every batch (CHECK constraints).

Pricing vs depletion:
- Price and cost snapshots come from the NEWEST open batch
  (quantity_remaining > 0, latest restock_date, then highest id).
- Depletion is FIFO: the OLDEST open batch is drawn down first
  (earliest restock_date, then lowest id).
  The two orders are independent.

Concurrency:
- Every decrement is a conditional UPDATE guarded by
  quantity_remaining >= n and checked by rowcount, so two racing sales can
  never drive a batch negative. A miss re-reads the batch and moves on.

Time:
- restock_date is UTC-naive; responses serialize it with a trailing 'Z'.
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import func, update

from ..errors import ServiceError
from ..extensions import db
from ..models import InventoryBatch, Product
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import ValidationError, coerce_int, validate_cents
from .concurrency import lock_for_update, run_with_retry

FALLBACK_LOW_STOCK_THRESHOLD = 10


class InventoryError(ServiceError):
    """Raised for stock and batch operation errors."""
    code = "VALIDATION_ERROR"
    status_code = 400


class InsufficientStockError(InventoryError):
    code = "INSUFFICIENT_STOCK"
    status_code = 400


@dataclass(frozen=True)
class Deduction:
    batch_id: int
    quantity: int


def default_low_stock_threshold() -> int:
    try:
        return int(current_app.config.get("DEFAULT_LOW_STOCK_THRESHOLD", FALLBACK_LOW_STOCK_THRESHOLD))
    except RuntimeError:
        return FALLBACK_LOW_STOCK_THRESHOLD


def get_stock_quantity(product_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(InventoryBatch.quantity_remaining), 0))
        .filter(InventoryBatch.product_id == product_id)
        .scalar()
    )
    return int(total or 0)


def get_stock_quantities(product_ids) -> dict[int, int]:
    """Stock per product for many products in one query; missing products map to 0."""
    ids = set(product_ids)
    if not ids:
        return {}
    rows = (
        db.session.query(InventoryBatch.product_id, func.sum(InventoryBatch.quantity_remaining))
        .filter(InventoryBatch.product_id.in_(ids))
        .group_by(InventoryBatch.product_id)
        .all()
    )
    stock = {pid: 0 for pid in ids}
    for pid, total in rows:
        stock[pid] = int(total or 0)
    return stock


def newest_batch(product_id: int) -> InventoryBatch | None:
    """Most recent batch regardless of remaining stock (for editing product pricing)."""
    return (
        db.session.query(InventoryBatch)
        .filter(InventoryBatch.product_id == product_id)
        .order_by(InventoryBatch.restock_date.desc(), InventoryBatch.id.desc())
        .first()
    )


def newest_open_batch(product_id: int) -> InventoryBatch | None:
    """Batch that prices a sale: latest restock among those with stock left."""
    return (
        db.session.query(InventoryBatch)
        .filter(
            InventoryBatch.product_id == product_id,
            InventoryBatch.quantity_remaining > 0,
        )
        .order_by(InventoryBatch.restock_date.desc(), InventoryBatch.id.desc())
        .first()
    )


def open_batches_fifo(product_id: int) -> list[InventoryBatch]:
    return (
        db.session.query(InventoryBatch)
        .filter(
            InventoryBatch.product_id == product_id,
            InventoryBatch.quantity_remaining > 0,
        )
        .order_by(InventoryBatch.restock_date.asc(), InventoryBatch.id.asc())
        .all()
    )


def _try_decrement(batch_id: int, quantity: int) -> bool:
    stmt = (
        update(InventoryBatch)
        .where(
            InventoryBatch.id == batch_id,
            InventoryBatch.quantity_remaining >= quantity,
        )
        .values(
            quantity_remaining=InventoryBatch.quantity_remaining - quantity,
            version_id=InventoryBatch.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount == 1


def _current_remaining(batch_id: int) -> int:
    value = (
        db.session.query(InventoryBatch.quantity_remaining)
        .filter(InventoryBatch.id == batch_id)
        .scalar()
    )
    return int(value or 0)


def deplete_fifo(*, product_id: int, quantity: int) -> list[Deduction]:
    """
    Remove `quantity` units from the product's batches, oldest first.

    Must run inside the caller's transaction; nothing is committed here.
    Raises InsufficientStockError if the batches run dry before the
    quantity is covered (the caller rolls the whole transaction back).
    """
    if quantity <= 0:
        raise InventoryError("quantity must be greater than 0")

    remaining = quantity
    deductions: list[Deduction] = []
    touched: list[InventoryBatch] = []

    for batch in open_batches_fifo(product_id):
        if remaining <= 0:
            break
        take = min(batch.quantity_remaining, remaining)
        if take <= 0:
            continue

        if not _try_decrement(batch.id, take):
            # Another transaction drew from this batch after we read it.
            take = min(_current_remaining(batch.id), remaining)
            if take <= 0 or not _try_decrement(batch.id, take):
                continue

        deductions.append(Deduction(batch_id=batch.id, quantity=take))
        touched.append(batch)
        remaining -= take

    # ORM copies of the batches are stale after the Core UPDATEs
    for batch in touched:
        db.session.expire(batch)

    if remaining > 0:
        raise InsufficientStockError(
            f"Insufficient stock for product {product_id}",
            details={
                "product_id": product_id,
                "requested": quantity,
                "available": quantity - remaining,
            },
        )
    return deductions


def _require_product(store_id: int, product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None or product.store_id != store_id:
        raise InventoryError("Product not found", code="PRODUCT_NOT_FOUND", status_code=404)
    return product


def restock(
    *,
    store_id: int,
    product_id: int,
    quantity,
    cost_price_cents,
    selling_price_cents,
    low_stock_threshold=None,
    batch_number: str | None = None,
    notes: str | None = None,
    restock_date=None,
) -> InventoryBatch:
    """
    Record a restock as a new batch.

    Restocking an inactive product reactivates it. When omitted, the batch
    number defaults to BATCH-<YYYYmmddHHMMSS> and the threshold to the
    configured default.
    """
    try:
        qty = coerce_int(quantity, "quantity")
        if qty <= 0:
            raise ValidationError("quantity must be greater than 0")
        cost = validate_cents(cost_price_cents, "cost_price_cents")
        price = validate_cents(selling_price_cents, "selling_price_cents")
        if low_stock_threshold is None or low_stock_threshold == "":
            threshold = default_low_stock_threshold()
        else:
            threshold = coerce_int(low_stock_threshold, "low_stock_threshold")
            if threshold < 0:
                raise ValidationError("low_stock_threshold must be >= 0")
    except ValidationError as exc:
        raise InventoryError(str(exc))

    if restock_date is None:
        occurred = utcnow()
    else:
        try:
            occurred = parse_iso_datetime(restock_date) if isinstance(restock_date, str) else restock_date
        except ValueError:
            occurred = None
        if occurred is None:
            raise InventoryError("restock_date must be an ISO-8601 datetime")

    def _op():
        product = lock_for_update(
            db.session.query(Product).filter_by(id=product_id, store_id=store_id)
        ).first()
        if product is None:
            raise InventoryError("Product not found", code="PRODUCT_NOT_FOUND", status_code=404)

        batch = InventoryBatch(
            store_id=store_id,
            product_id=product.id,
            cost_price_cents=cost,
            selling_price_cents=price,
            quantity_added=qty,
            quantity_remaining=qty,
            low_stock_threshold=threshold,
            batch_number=(batch_number or "").strip() or f"BATCH-{occurred:%Y%m%d%H%M%S}",
            notes=notes or None,
            restock_date=occurred,
        )
        db.session.add(batch)

        if not product.is_active:
            product.is_active = True

        db.session.commit()
        return batch

    return run_with_retry(_op)


def restock_history(*, store_id: int, product_id: int) -> list[InventoryBatch]:
    _require_product(store_id, product_id)
    return (
        db.session.query(InventoryBatch)
        .filter(InventoryBatch.product_id == product_id)
        .order_by(InventoryBatch.restock_date.desc(), InventoryBatch.id.desc())
        .all()
    )
