# Overview: Tests for store expenses and dashboard aggregates.

from datetime import datetime

import pytest

from storepos.models import Expense, Sale
from storepos.services import expense_service, sales_service
from storepos.services.expense_service import ExpenseError
from storepos.services.identity_service import IdentityError
from storepos.services.reporting_service import dashboard_stats

NOW = datetime(2026, 3, 15, 12, 0, 0)


def _expense(**overrides):
    payload = {
        "description": "Electricity",
        "amount_cents": 5000,
        "category": "Utilities",
        "expense_date": "2026-03-15",
    }
    payload.update(overrides)
    return payload


class TestExpenses:
    def test_add_and_list(self, db_session, store, manager_actor):
        expense_service.add_expense(store_id=store.id, payload=_expense(expense_date="2026-03-01"))
        recorded = expense_service.add_expense(
            store_id=store.id, payload=_expense(description="Rent", amount_cents=90000, category="Rent"),
            recorded_by=manager_actor,
        )
        assert recorded["recorded_by_name"] == "Mary Manager"
        assert recorded["manager_id"] == manager_actor.id

        expenses = expense_service.list_expenses(store.id)
        assert [e["description"] for e in expenses] == ["Rent", "Electricity"]
        assert expenses[1]["recorded_by_name"] is None

    @pytest.mark.parametrize("overrides", [
        {"amount_cents": 0},
        {"amount_cents": -100},
        {"amount_cents": "12.5"},
        {"description": ""},
        {"category": None},
        {"expense_date": "15/03/2026"},
    ])
    def test_invalid_expense(self, db_session, store, overrides):
        with pytest.raises(ExpenseError) as exc:
            expense_service.add_expense(store_id=store.id, payload=_expense(**overrides))
        assert exc.value.code == "VALIDATION_ERROR"
        assert db_session.query(Expense).count() == 0

    def test_recorder_must_belong_to_store(self, db_session, store, other_store, cashier_actor):
        with pytest.raises(IdentityError):
            expense_service.add_expense(store_id=other_store.id, payload=_expense(), recorded_by=cashier_actor)

    def test_routes(self, client, db_session, store, cashier):
        resp = client.post("/api/expenses", json={
            "store_id": store.id,
            **_expense(),
            "recorded_by": {"type": "cashier", "id": cashier.id},
        })
        assert resp.status_code == 201
        assert resp.get_json()["data"]["recorded_by_name"] == "Carl Cashier"

        resp = client.get(f"/api/expenses?store_id={store.id}")
        assert len(resp.get_json()["data"]) == 1

        resp = client.post("/api/expenses", json={"store_id": store.id, **_expense(amount_cents=0)})
        assert resp.status_code == 400


class TestDashboard:
    def _sell(self, db_session, store, actor, product, qty, when):
        sale = sales_service.create_sale(
            store_id=store.id,
            items=[{"product_id": product.id, "quantity": qty}],
            payment_method="Cash",
            amount_paid_cents=qty * 1000,
            actor=actor,
        )
        row = db_session.get(Sale, sale["id"])
        row.sale_date = when
        db_session.commit()
        return sale

    def test_empty_store(self, db_session, store):
        stats = dashboard_stats(store_id=store.id, now=NOW)
        assert stats["today_sales"] == {"count": 0, "revenue_cents": 0}
        assert stats["monthly_sales"] == {"count": 0, "revenue_cents": 0}
        assert stats["net_profit_cents"] == 0
        assert stats["recent_sales"] == []
        assert stats["top_products"] == []
        assert len(stats["sales_trend"]) == 7
        assert stats["sales_trend"][-1] == {"date": "2026-03-15", "revenue_cents": 0}

    def test_aggregates(self, db_session, store, other_store, cashier_actor, product, make_product):
        cheap = make_product(store, sku="ACM-0002", name="Cheap", batches=[(3, 1000, 500, 1)], threshold=5)

        self._sell(db_session, store, cashier_actor, product, 2, datetime(2026, 3, 15, 9, 0))
        self._sell(db_session, store, cashier_actor, cheap, 1, datetime(2026, 3, 14, 18, 0))
        self._sell(db_session, store, cashier_actor, product, 1, datetime(2026, 3, 2, 10, 0))
        self._sell(db_session, store, cashier_actor, product, 4, datetime(2026, 2, 27, 10, 0))

        expense_service.add_expense(store_id=store.id, payload=_expense(amount_cents=1500))
        expense_service.add_expense(store_id=store.id, payload=_expense(
            description="Shelf", amount_cents=700, category="Supplies", expense_date="2026-03-03",
        ))
        expense_service.add_expense(store_id=store.id, payload=_expense(
            description="Old", amount_cents=9999, expense_date="2026-02-28",
        ))
        expense_service.add_expense(store_id=other_store.id, payload=_expense(amount_cents=123))

        stats = dashboard_stats(store_id=store.id, now=NOW)

        assert stats["today_sales"] == {"count": 1, "revenue_cents": 2000}
        assert stats["monthly_sales"] == {"count": 3, "revenue_cents": 4000}
        assert stats["today_expenses_cents"] == 1500
        assert stats["monthly_expenses_cents"] == 2200
        assert stats["expenses_by_category"] == [
            {"category": "Utilities", "total_cents": 1500},
            {"category": "Supplies", "total_cents": 700},
        ]
        assert stats["net_profit_cents"] == 4000 - 2200

        # Cheap has 2 left against a threshold of 5
        assert stats["low_stock_count"] == 1
        assert stats["low_stock_products"][0]["name"] == "Cheap"

        assert len(stats["recent_sales"]) == 4
        assert stats["recent_sales"][0]["sale_date"] == "2026-03-15T09:00:00Z"
        assert stats["recent_sales"][0]["cashier_name"] == "Carl Cashier"

        assert stats["top_products"][0] == {"product_name": "Product A", "revenue_cents": 3000, "quantity": 3}
        assert stats["top_products"][1]["product_name"] == "Cheap"

        trend = {row["date"]: row["revenue_cents"] for row in stats["sales_trend"]}
        assert list(trend) == [f"2026-03-{d:02d}" for d in range(9, 16)]
        assert trend["2026-03-15"] == 2000
        assert trend["2026-03-14"] == 1000
        assert sum(trend.values()) == 3000

    def test_past_now_ignores_later_activity(self, db_session, store, cashier_actor, product):
        self._sell(db_session, store, cashier_actor, product, 1, datetime(2026, 3, 15, 9, 0))
        self._sell(db_session, store, cashier_actor, product, 2, datetime(2026, 4, 20, 9, 0))
        expense_service.add_expense(store_id=store.id, payload=_expense(amount_cents=800))
        expense_service.add_expense(store_id=store.id, payload=_expense(expense_date="2026-04-20"))

        stats = dashboard_stats(store_id=store.id, now=datetime(2026, 2, 5, 12, 0))

        assert stats["today_sales"] == {"count": 0, "revenue_cents": 0}
        assert stats["monthly_sales"] == {"count": 0, "revenue_cents": 0}
        assert stats["today_expenses_cents"] == 0
        assert stats["monthly_expenses_cents"] == 0
        assert stats["expenses_by_category"] == []
        assert stats["top_products"] == []
        assert sum(row["revenue_cents"] for row in stats["sales_trend"]) == 0

    def test_month_window_ends_at_month_end(self, db_session, store, cashier_actor, product):
        self._sell(db_session, store, cashier_actor, product, 1, datetime(2026, 3, 31, 23, 59))
        self._sell(db_session, store, cashier_actor, product, 2, datetime(2026, 4, 1, 0, 0))

        stats = dashboard_stats(store_id=store.id, now=NOW)

        assert stats["monthly_sales"] == {"count": 1, "revenue_cents": 1000}
        assert stats["today_sales"] == {"count": 0, "revenue_cents": 0}

    def test_route(self, client, db_session, store):
        resp = client.get(f"/api/dashboard/stats?store_id={store.id}")
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert "today_sales" in data
        assert len(data["sales_trend"]) == 7
