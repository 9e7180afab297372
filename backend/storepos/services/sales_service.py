# Overview: Sale transaction processor and sale queries.

"""
Sales Service - checkout in one transaction

A sale is written once, at checkout, together with everything it implies:

    sale header -> payment (if anything was tendered)
                -> partial-payment customer (if Partial)
                -> per line: sale item + FIFO batch deductions

All of it commits or none of it does. Every rule that can reject the order
is checked before the first write:

    1. cart not empty                         EMPTY_CART
    2. payment method Cash / Digital          INVALID_PAYMENT_METHOD
    3. quantities, tender, discount well-formed
    4. actor belongs to the store
    5. products exist in the store and are active       PRODUCT_NOT_FOUND
    6. enough stock per product (duplicate lines summed) INSUFFICIENT_STOCK
    7. Partial sales carry full customer identification

Money is integer cents. Percentage discounts round half-up to the cent.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ServiceError
from ..extensions import db
from ..models import PartialPaymentCustomer, Payment, Product, Sale, SaleItem
from ..time_utils import day_window, parse_iso_date, utcnow
from ..validation import MAX_PRICE_CENTS, ValidationError, coerce_int
from . import inventory_service
from .concurrency import begin_write_transaction, run_with_retry
from .document_service import next_document_number
from .identity_service import (
    ActorRef,
    actor_columns,
    actor_from_columns,
    parse_actor,
    require_actor_in_store,
    resolve_display_names,
    UNKNOWN_NAME,
)

PAYMENT_METHODS = ("Cash", "Digital")

STATUS_PAID = "Paid"
STATUS_PARTIAL = "Partial"
STATUS_PENDING = "Pending"

DISCOUNT_NONE = "none"
DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_AMOUNT = "amount"
DISCOUNT_TYPES = (DISCOUNT_PERCENTAGE, DISCOUNT_AMOUNT)
# discount_value is stored as Numeric(12, 2)
PERCENT_STEP = Decimal("0.01")

SALE_DOCUMENT_TYPE = "SALE"
SALE_NUMBER_PREFIX = "SALE"

CUSTOMER_SEARCH_LIMIT = 20


class SaleError(ServiceError):
    """Raised for sale operation errors."""
    code = "VALIDATION_ERROR"
    status_code = 400


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    product: Product
    quantity: int
    unit_price_cents: int
    cost_price_cents: int

    @property
    def subtotal_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class SaleTotals:
    subtotal_cents: int
    discount_amount_cents: int
    total_cents: int
    payment_status: str
    amount_due_cents: int
    change_due_cents: int


# ---------------------------------------------------------------------------
# Pure pricing helpers
# ---------------------------------------------------------------------------

def compute_discount_cents(subtotal_cents: int, discount_type: str, discount_value: Decimal) -> int:
    """
    percentage: round_half_up(subtotal * value / 100)
    amount:     min(value, subtotal), value in cents
    """
    if discount_type == DISCOUNT_PERCENTAGE:
        raw = Decimal(subtotal_cents) * discount_value / Decimal(100)
        return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if discount_type == DISCOUNT_AMOUNT:
        return min(int(discount_value), subtotal_cents)
    return 0


def classify_payment(total_cents: int, amount_paid_cents: int) -> str:
    due = total_cents - amount_paid_cents
    if due <= 0:
        return STATUS_PAID
    if amount_paid_cents > 0:
        return STATUS_PARTIAL
    return STATUS_PENDING


def calculate_totals(
    subtotal_cents: int,
    *,
    discount_type: str = DISCOUNT_NONE,
    discount_value: Decimal = Decimal(0),
    amount_paid_cents: int = 0,
) -> SaleTotals:
    discount = compute_discount_cents(subtotal_cents, discount_type, discount_value)
    total = subtotal_cents - discount
    due = total - amount_paid_cents
    return SaleTotals(
        subtotal_cents=subtotal_cents,
        discount_amount_cents=discount,
        total_cents=total,
        payment_status=classify_payment(total, amount_paid_cents),
        amount_due_cents=max(due, 0),
        change_due_cents=max(-due, 0),
    )


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def _parse_lines(items) -> list[LineRequest]:
    if not isinstance(items, list):
        raise SaleError("items must be a list")
    lines: list[LineRequest] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise SaleError(f"items[{index}] must be an object")
        try:
            product_id = coerce_int(item.get("product_id"), f"items[{index}].product_id")
            quantity = coerce_int(item.get("quantity"), f"items[{index}].quantity")
        except ValidationError as exc:
            raise SaleError(str(exc))
        if quantity <= 0:
            raise SaleError(f"items[{index}].quantity must be greater than 0")
        lines.append(LineRequest(product_id=product_id, quantity=quantity))
    return lines


def _parse_amount_paid(value) -> int:
    if value is None or value == "":
        return 0
    try:
        cents = coerce_int(value, "amount_paid_cents")
    except ValidationError as exc:
        raise SaleError(str(exc))
    if cents < 0:
        raise SaleError("amount_paid_cents must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise SaleError(f"amount_paid_cents cannot exceed {MAX_PRICE_CENTS}")
    return cents


def _parse_discount(discount_type, discount_value) -> tuple[str, Decimal]:
    if discount_type in (None, "", DISCOUNT_NONE):
        return DISCOUNT_NONE, Decimal(0)
    if discount_type not in DISCOUNT_TYPES:
        raise SaleError(f"discount type must be one of: {', '.join(DISCOUNT_TYPES)}")
    if discount_value in (None, ""):
        return DISCOUNT_NONE, Decimal(0)
    if isinstance(discount_value, bool):
        raise SaleError("discount value must be a number")
    try:
        value = Decimal(str(discount_value))
    except InvalidOperation:
        raise SaleError("discount value must be a number")
    if not value.is_finite() or value < 0:
        raise SaleError("discount value must be >= 0")
    if discount_type == DISCOUNT_PERCENTAGE and value > 100:
        raise SaleError("percentage discount cannot exceed 100")
    if discount_type == DISCOUNT_PERCENTAGE and value != value.quantize(PERCENT_STEP):
        raise SaleError("percentage discount allows at most 2 decimal places")
    if discount_type == DISCOUNT_AMOUNT and value != value.to_integral_value():
        raise SaleError("amount discount must be whole cents")
    if value == 0:
        return DISCOUNT_NONE, Decimal(0)
    return discount_type, value


def _parse_customer(customer) -> dict | None:
    if not customer:
        return None
    if not isinstance(customer, dict):
        raise SaleError("partial_payment_customer must be an object")
    return {
        "customer_name": str(customer.get("customer_name") or "").strip(),
        "customer_national_id": str(customer.get("customer_national_id") or "").strip(),
        "customer_phone": str(customer.get("customer_phone") or "").strip(),
    }


def _load_products(store_id: int, lines: list[LineRequest]) -> dict[int, Product]:
    ids = {line.product_id for line in lines}
    products = (
        db.session.query(Product)
        .filter(Product.id.in_(ids), Product.store_id == store_id, Product.is_active.is_(True))
        .all()
    )
    by_id = {p.id: p for p in products}
    for line in lines:
        if line.product_id not in by_id:
            raise SaleError(
                f"Product {line.product_id} not found",
                code="PRODUCT_NOT_FOUND",
                status_code=404,
                details={"product_id": line.product_id},
            )
    return by_id


def _check_stock(lines: list[LineRequest], products: dict[int, Product]) -> None:
    requested: dict[int, int] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    available = inventory_service.get_stock_quantities(requested.keys())
    for product_id, quantity in requested.items():
        if available[product_id] < quantity:
            product = products[product_id]
            raise SaleError(
                f"Insufficient stock for {product.name}",
                code="INSUFFICIENT_STOCK",
                details={
                    "product_id": product_id,
                    "product_name": product.name,
                    "requested": quantity,
                    "available": available[product_id],
                },
            )


def _price_lines(lines: list[LineRequest], products: dict[int, Product]) -> list[PricedLine]:
    priced: list[PricedLine] = []
    batches: dict[int, object] = {}
    for line in lines:
        if line.product_id not in batches:
            batches[line.product_id] = inventory_service.newest_open_batch(line.product_id)
        batch = batches[line.product_id]
        priced.append(PricedLine(
            product=products[line.product_id],
            quantity=line.quantity,
            unit_price_cents=batch.selling_price_cents,
            cost_price_cents=batch.cost_price_cents,
        ))
    return priced


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------

def create_sale(
    *,
    store_id: int,
    items,
    payment_method: str,
    actor,
    amount_paid_cents=0,
    discount_type: str | None = None,
    discount_value=None,
    sale_description: str | None = None,
    notes: str | None = None,
    partial_payment_customer: dict | None = None,
) -> dict:
    """
    Validate, price and persist a sale atomically.

    Returns the serialized sale (items, payments, partial customer and
    cashier_name). Storage failures surface as CREATE_SALE_ERROR with
    details.step naming the persistence step that failed.
    """
    if not items:
        raise SaleError("Cart is empty", details={"reason": "EMPTY_CART"})
    if payment_method not in PAYMENT_METHODS:
        raise SaleError(
            f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}",
            details={"reason": "INVALID_PAYMENT_METHOD"},
        )

    lines = _parse_lines(items)
    paid = _parse_amount_paid(amount_paid_cents)
    discount_type, discount_amount = _parse_discount(discount_type, discount_value)
    customer = _parse_customer(partial_payment_customer)

    if not isinstance(actor, ActorRef):
        actor = parse_actor(actor)
    require_actor_in_store(actor, store_id)

    state = {"step": "validate"}

    def _op():
        state["step"] = "validate"
        begin_write_transaction()

        products = _load_products(store_id, lines)
        _check_stock(lines, products)
        priced = _price_lines(lines, products)

        totals = calculate_totals(
            sum(p.subtotal_cents for p in priced),
            discount_type=discount_type,
            discount_value=discount_amount,
            amount_paid_cents=paid,
        )

        if totals.payment_status == STATUS_PARTIAL:
            if not customer or not all(customer.values()):
                raise SaleError(
                    "Customer information required for partial payment",
                    details={"reason": "CUSTOMER_INFO_REQUIRED"},
                )

        now = utcnow()
        actor_cols = actor_columns(actor)

        state["step"] = "sale"
        sale = Sale(
            store_id=store_id,
            sale_number=next_document_number(
                store_id=store_id,
                document_type=SALE_DOCUMENT_TYPE,
                prefix=SALE_NUMBER_PREFIX,
            ),
            sale_description=(sale_description or None),
            notes=(notes or None),
            subtotal_cents=totals.subtotal_cents,
            discount_type=discount_type,
            discount_value=discount_amount,
            discount_amount_cents=totals.discount_amount_cents,
            total_amount_cents=totals.total_cents,
            payment_method=payment_method,
            payment_status=totals.payment_status,
            amount_paid_cents=paid,
            amount_due_cents=totals.amount_due_cents,
            change_due_cents=totals.change_due_cents,
            sale_date=now,
            **actor_cols,
        )
        db.session.add(sale)
        db.session.flush()

        if paid > 0:
            state["step"] = "payment"
            db.session.add(Payment(
                sale_id=sale.id,
                store_id=store_id,
                amount_cents=paid,
                change_cents=totals.change_due_cents,
                payment_method=payment_method,
                payment_date=now,
                **actor_cols,
            ))
            db.session.flush()

        if totals.payment_status == STATUS_PARTIAL:
            state["step"] = "partial_payment_customer"
            db.session.add(PartialPaymentCustomer(
                sale_id=sale.id,
                store_id=store_id,
                total_amount_cents=totals.total_cents,
                amount_paid_cents=paid,
                amount_remaining_cents=totals.amount_due_cents,
                **customer,
            ))
            db.session.flush()

        for line in priced:
            state["step"] = "sale_item"
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=line.product.id,
                product_sku=line.product.sku,
                product_name=line.product.name,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                cost_price_snapshot_cents=line.cost_price_cents,
                subtotal_cents=line.subtotal_cents,
            ))
            db.session.flush()

            state["step"] = "inventory"
            try:
                inventory_service.deplete_fifo(product_id=line.product.id, quantity=line.quantity)
            except inventory_service.InsufficientStockError as exc:
                raise SaleError(
                    f"Insufficient stock for {line.product.name}",
                    code="INSUFFICIENT_STOCK",
                    details=exc.details,
                )

        state["step"] = "commit"
        db.session.commit()
        return sale

    try:
        sale = run_with_retry(_op)
    except ServiceError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise SaleError(
            f"Failed to create sale: {exc}",
            code="CREATE_SALE_ERROR",
            status_code=500,
            details={"step": state["step"]},
        )

    return serialize_sales([sale])[0]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def serialize_sales(sales: list[Sale]) -> list[dict]:
    """
    Sales with items, payments and partial customer, plus display names.

    Names for every sale and payment actor are resolved in bulk.
    """
    actors = []
    for sale in sales:
        actors.append(actor_from_columns(sale.manager_id, sale.cashier_id))
        actors.extend(actor_from_columns(p.manager_id, p.cashier_id) for p in sale.payments)
    names = resolve_display_names(actors)

    out = []
    for sale in sales:
        data = sale.to_dict()
        data["items"] = [item.to_dict() for item in sale.items]
        payments = []
        for payment in sale.payments:
            p = payment.to_dict()
            recorder = actor_from_columns(payment.manager_id, payment.cashier_id)
            p["recorded_by_name"] = names.get(recorder, UNKNOWN_NAME) if recorder else None
            payments.append(p)
        data["payments"] = payments
        customer = sale.partial_payment_customer
        data["partial_payment_customer"] = customer.to_dict() if customer else None
        seller = actor_from_columns(sale.manager_id, sale.cashier_id)
        data["cashier_name"] = names.get(seller, UNKNOWN_NAME) if seller else UNKNOWN_NAME
        out.append(data)
    return out


def _coerce_day(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(value)
    except ValueError:
        raise SaleError(f"Invalid date: {value}")


def list_sales(
    *,
    store_id: int,
    start_date=None,
    end_date=None,
    actor: ActorRef | None = None,
) -> list[dict]:
    """
    Store sales, newest first.

    start_date / end_date are inclusive calendar days (UTC). actor restricts
    the list to sales recorded by that manager or cashier.
    """
    query = db.session.query(Sale).filter(Sale.store_id == store_id)

    lower, upper = day_window(_coerce_day(start_date), _coerce_day(end_date))
    if lower is not None:
        query = query.filter(Sale.sale_date >= lower)
    if upper is not None:
        query = query.filter(Sale.sale_date < upper)

    if actor is not None:
        cols = actor_columns(actor)
        if actor.is_manager:
            query = query.filter(Sale.manager_id == cols["manager_id"])
        else:
            query = query.filter(Sale.cashier_id == cols["cashier_id"])

    sales = query.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()
    return serialize_sales(sales)


def get_sale(*, store_id: int, sale_id: int) -> dict:
    sale = db.session.get(Sale, sale_id)
    if sale is None or sale.store_id != store_id:
        raise SaleError("Sale not found", code="NOT_FOUND", status_code=404)
    return serialize_sales([sale])[0]


def search_partial_payment_customers(*, store_id: int, search: str | None = None) -> list[dict]:
    """
    Previous partial-payment customers, newest first, one per name
    (case-insensitive), for autofilling the checkout form.
    """
    query = db.session.query(PartialPaymentCustomer).filter(PartialPaymentCustomer.store_id == store_id)
    if search:
        query = query.filter(
            func.lower(PartialPaymentCustomer.customer_name).like(f"%{search.strip().lower()}%")
        )
    rows = query.order_by(
        PartialPaymentCustomer.created_at.desc(),
        PartialPaymentCustomer.id.desc(),
    ).all()

    seen: set[str] = set()
    results: list[dict] = []
    for row in rows:
        key = row.customer_name.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        results.append({
            "customer_name": row.customer_name,
            "customer_national_id": row.customer_national_id,
            "customer_phone": row.customer_phone,
        })
        if len(results) >= CUSTOMER_SEARCH_LIMIT:
            break
    return results
