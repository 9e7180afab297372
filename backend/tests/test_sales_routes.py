# Overview: HTTP-level tests for checkout, sale history and the response envelope.

import pytest


def _checkout(client, store, product, actor, **overrides):
    body = {
        "store_id": store.id,
        "actor": actor,
        "items": [{"product_id": product.id, "quantity": 2}],
        "payment_method": "Cash",
        "amount_paid_cents": 2000,
    }
    body.update(overrides)
    return client.post("/api/sales", json=body)


@pytest.fixture
def cashier_ref(cashier):
    return {"type": "cashier", "id": cashier.id}


def test_checkout_returns_created_sale(client, db_session, store, product, cashier_ref):
    resp = _checkout(client, store, product, cashier_ref)

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["message"] == "Sale completed successfully"
    sale = body["data"]
    assert sale["sale_number"] == "SALE-000001"
    assert sale["payment_status"] == "Paid"
    assert sale["cashier_name"] == "Carl Cashier"
    assert sale["sale_date"].endswith("Z")


def test_checkout_with_discount_object(client, db_session, store, product, cashier_ref):
    resp = _checkout(
        client, store, product, cashier_ref,
        amount_paid_cents=1800,
        discount={"type": "percentage", "value": 10},
    )
    assert resp.status_code == 201
    sale = resp.get_json()["data"]
    assert sale["discount_amount_cents"] == 200
    assert sale["total_amount_cents"] == 1800


def test_checkout_requires_store_id(client, db_session, product, cashier_ref):
    resp = client.post("/api/sales", json={
        "actor": cashier_ref,
        "items": [{"product_id": product.id, "quantity": 1}],
        "payment_method": "Cash",
    })
    assert resp.status_code == 400
    body = resp.get_json()
    assert body == {"success": False, "error": "store_id is required", "code": "VALIDATION_ERROR"}


def test_checkout_unknown_store(client, db_session, store, product, cashier_ref):
    resp = client.post("/api/sales", json={
        "store_id": store.id + 100,
        "actor": cashier_ref,
        "items": [{"product_id": product.id, "quantity": 1}],
        "payment_method": "Cash",
    })
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "STORE_NOT_FOUND"


def test_checkout_empty_cart_envelope(client, db_session, store, cashier_ref):
    resp = client.post("/api/sales", json={
        "store_id": store.id,
        "actor": cashier_ref,
        "items": [],
        "payment_method": "Cash",
    })
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["success"] is False
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"] == {"reason": "EMPTY_CART"}


def test_checkout_insufficient_stock_envelope(client, db_session, store, product, cashier_ref):
    resp = _checkout(client, store, product, cashier_ref, items=[{"product_id": product.id, "quantity": 500}])
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["code"] == "INSUFFICIENT_STOCK"
    assert body["details"]["available"] == 50


def test_checkout_missing_actor(client, db_session, store, product):
    resp = _checkout(client, store, product, None)
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "VALIDATION_ERROR"


def test_checkout_rejects_non_object_discount(client, db_session, store, product, cashier_ref):
    resp = _checkout(client, store, product, cashier_ref, discount="10%")
    assert resp.status_code == 400


def test_list_and_get_sales(client, db_session, store, product, cashier_ref):
    created = _checkout(client, store, product, cashier_ref).get_json()["data"]

    resp = client.get(f"/api/sales?store_id={store.id}")
    assert resp.status_code == 200
    sales = resp.get_json()["data"]
    assert [s["id"] for s in sales] == [created["id"]]

    resp = client.get(f"/api/sales/{created['id']}?store_id={store.id}")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["items"][0]["quantity"] == 2


def test_list_sales_by_actor(client, db_session, store, product, cashier_ref, manager):
    _checkout(client, store, product, cashier_ref)
    _checkout(client, store, product, {"type": "manager", "id": manager.id})

    resp = client.get(
        f"/api/sales?store_id={store.id}&actor_type=manager&actor_id={manager.id}"
    )
    sales = resp.get_json()["data"]
    assert len(sales) == 1
    assert sales[0]["manager_id"] == manager.id


def test_get_sale_from_other_store_is_not_found(client, db_session, store, other_store, product, cashier_ref):
    created = _checkout(client, store, product, cashier_ref).get_json()["data"]
    resp = client.get(f"/api/sales/{created['id']}?store_id={other_store.id}")
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "NOT_FOUND"


def test_partial_payment_customer_search(client, db_session, store, product, cashier_ref):
    _checkout(
        client, store, product, cashier_ref,
        amount_paid_cents=500,
        partial_payment_customer={
            "customer_name": "Jane Doe",
            "customer_national_id": "ID-1",
            "customer_phone": "0733000000",
        },
    )
    resp = client.get(f"/api/partial-payment-customers?store_id={store.id}&search=jan")
    assert resp.status_code == 200
    assert resp.get_json()["data"] == [{
        "customer_name": "Jane Doe",
        "customer_national_id": "ID-1",
        "customer_phone": "0733000000",
    }]


def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["checks"]["database"]["status"] == "healthy"


def test_unknown_route_uses_envelope(client, db_session):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "NOT_FOUND"
