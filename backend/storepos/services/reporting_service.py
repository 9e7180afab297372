# Overview: Dashboard aggregates for a single store.

from __future__ import annotations

from datetime import date, datetime, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Expense, Sale, SaleItem
from ..time_utils import start_of_day, to_utc_z, utcnow
from .identity_service import UNKNOWN_NAME, actor_from_columns, resolve_display_names
from .products_service import list_products

RECENT_SALES_LIMIT = 10
TOP_PRODUCTS_LIMIT = 5
LOW_STOCK_PREVIEW_LIMIT = 5
TREND_DAYS = 7
DEFAULT_EXPENSE_CATEGORY = "Miscellaneous"


def _sales_summary(store_id: int, since: datetime, until: datetime) -> dict:
    count, revenue = (
        db.session.query(func.count(Sale.id), func.coalesce(func.sum(Sale.total_amount_cents), 0))
        .filter(Sale.store_id == store_id, Sale.sale_date >= since, Sale.sale_date < until)
        .one()
    )
    return {"count": int(count), "revenue_cents": int(revenue)}


def _expenses_total(store_id: int, since: date, until: date) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(Expense.amount_cents), 0))
        .filter(Expense.store_id == store_id, Expense.expense_date >= since, Expense.expense_date < until)
        .scalar()
    )
    return int(total or 0)


def _expenses_by_category(store_id: int, since: date, until: date) -> list[dict]:
    rows = (
        db.session.query(Expense.category, func.sum(Expense.amount_cents))
        .filter(Expense.store_id == store_id, Expense.expense_date >= since, Expense.expense_date < until)
        .group_by(Expense.category)
        .all()
    )
    totals: dict[str, int] = {}
    for category, total in rows:
        key = category or DEFAULT_EXPENSE_CATEGORY
        totals[key] = totals.get(key, 0) + int(total or 0)
    return [
        {"category": category, "total_cents": total}
        for category, total in sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def _recent_sales(store_id: int) -> list[dict]:
    sales = (
        db.session.query(Sale)
        .filter(Sale.store_id == store_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .limit(RECENT_SALES_LIMIT)
        .all()
    )
    names = resolve_display_names(actor_from_columns(s.manager_id, s.cashier_id) for s in sales)
    out = []
    for sale in sales:
        seller = actor_from_columns(sale.manager_id, sale.cashier_id)
        out.append({
            "id": sale.id,
            "sale_number": sale.sale_number,
            "total_amount_cents": sale.total_amount_cents,
            "payment_method": sale.payment_method,
            "payment_status": sale.payment_status,
            "sale_date": to_utc_z(sale.sale_date),
            "cashier_name": names.get(seller, UNKNOWN_NAME) if seller else UNKNOWN_NAME,
        })
    return out


def _top_products(store_id: int, since: datetime, until: datetime) -> list[dict]:
    revenue = func.sum(SaleItem.subtotal_cents)
    rows = (
        db.session.query(SaleItem.product_name, revenue, func.sum(SaleItem.quantity))
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(Sale.store_id == store_id, Sale.sale_date >= since, Sale.sale_date < until)
        .group_by(SaleItem.product_name)
        .order_by(revenue.desc(), SaleItem.product_name.asc())
        .limit(TOP_PRODUCTS_LIMIT)
        .all()
    )
    return [
        {"product_name": name, "revenue_cents": int(total or 0), "quantity": int(qty or 0)}
        for name, total, qty in rows
    ]


def _sales_trend(store_id: int, today: date) -> list[dict]:
    first_day = today - timedelta(days=TREND_DAYS - 1)
    rows = (
        db.session.query(Sale.sale_date, Sale.total_amount_cents)
        .filter(
            Sale.store_id == store_id,
            Sale.sale_date >= start_of_day(first_day),
            Sale.sale_date < start_of_day(today + timedelta(days=1)),
        )
        .all()
    )
    per_day = {first_day + timedelta(days=i): 0 for i in range(TREND_DAYS)}
    for sale_date, total in rows:
        day = sale_date.date()
        if day in per_day:
            per_day[day] += int(total or 0)
    return [{"date": day.isoformat(), "revenue_cents": cents} for day, cents in per_day.items()]


def _first_of_next_month(month_start: date) -> date:
    if month_start.month == 12:
        return date(month_start.year + 1, 1, 1)
    return date(month_start.year, month_start.month + 1, 1)


def dashboard_stats(*, store_id: int, now: datetime | None = None) -> dict:
    """
    Headline numbers for the store dashboard.

    Day and month windows are UTC and end where the day or month ends, so
    activity after `now`'s month is never counted. Net profit is this month's revenue minus
    this month's expenses (cost of goods is not subtracted).
    """
    now = now or utcnow()
    today = now.date()
    tomorrow = today + timedelta(days=1)
    month_start = today.replace(day=1)
    next_month = _first_of_next_month(month_start)
    start_of_month = start_of_day(month_start)
    end_of_month = start_of_day(next_month)

    today_sales = _sales_summary(store_id, start_of_day(today), start_of_day(tomorrow))
    monthly_sales = _sales_summary(store_id, start_of_month, end_of_month)
    today_expenses = _expenses_total(store_id, today, tomorrow)
    monthly_expenses = _expenses_total(store_id, month_start, next_month)

    low_stock = list_products(store_id=store_id, low_stock=True)

    return {
        "today_sales": today_sales,
        "monthly_sales": monthly_sales,
        "today_expenses_cents": today_expenses,
        "monthly_expenses_cents": monthly_expenses,
        "expenses_by_category": _expenses_by_category(store_id, month_start, next_month),
        "net_profit_cents": monthly_sales["revenue_cents"] - monthly_expenses,
        "low_stock_count": len(low_stock),
        "low_stock_products": [
            {
                "id": p["id"],
                "name": p["name"],
                "sku": p["sku"],
                "stock_quantity": p["stock_quantity"],
                "low_stock_threshold": p["low_stock_threshold"],
                "price_cents": p["price_cents"],
            }
            for p in low_stock[:LOW_STOCK_PREVIEW_LIMIT]
        ],
        "recent_sales": _recent_sales(store_id),
        "top_products": _top_products(store_id, start_of_month, end_of_month),
        "sales_trend": _sales_trend(store_id, today),
    }
