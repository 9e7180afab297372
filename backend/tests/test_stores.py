# Overview: Tests for store creation, cashier signup and the join-request workflow.

import re
import uuid

import pytest

from storepos.models import CashierAccount, DocumentSequence, JoinRequest, Manager, Store
from storepos.services import sales_service, store_service
from storepos.services.auth_service import verify_password
from storepos.services.identity_service import CASHIER, MANAGER, ActorRef, IdentityError
from storepos.services.store_service import StoreError


def _new_store(name="Corner Shop"):
    return store_service.create_store(
        store_name=name,
        manager_id=str(uuid.uuid4()),
        manager_email="owner@corner.test",
        manager_name="Olive Owner",
        manager_phone="0700111222",
    )


class TestCreateStore:
    def test_store_gets_code_and_manager(self, db_session):
        store, manager = _new_store()

        assert len(store.store_code) == 6
        assert re.fullmatch(r"[A-Z0-9]{6}", store.store_code)
        assert store.created_by == manager.id
        assert manager.store_id == store.id
        assert manager.is_active is True

    def test_sale_sequence_is_seeded(self, db_session, make_product):
        store, manager = _new_store()

        seq = db_session.query(DocumentSequence).filter_by(store_id=store.id).one()
        assert seq.document_type == "SALE"
        assert seq.next_number == 1

        product = make_product(store, sku="COR-0001", name="Tea", batches=[(5, 200, 100, 1)])
        sale = sales_service.create_sale(
            store_id=store.id,
            items=[{"product_id": product.id, "quantity": 1}],
            payment_method="Cash",
            amount_paid_cents=200,
            actor=ActorRef(MANAGER, manager.id),
        )
        assert sale["sale_number"] == "SALE-000001"
        assert db_session.query(DocumentSequence).filter_by(store_id=store.id).count() == 1

    def test_codes_are_unique(self, db_session):
        codes = {_new_store(f"Shop {i}")[0].store_code for i in range(5)}
        assert len(codes) == 5

    def test_missing_fields(self, db_session):
        with pytest.raises(StoreError) as exc:
            store_service.create_store(
                store_name="", manager_id=str(uuid.uuid4()),
                manager_email="a@b.c", manager_name="A", manager_phone="1",
            )
        assert "store_name" in str(exc.value)

    def test_manager_id_must_be_uuid(self, db_session):
        with pytest.raises(StoreError):
            store_service.create_store(
                store_name="X", manager_id="42",
                manager_email="a@b.c", manager_name="A", manager_phone="1",
            )

    def test_manager_with_store_cannot_found_another(self, db_session, manager):
        with pytest.raises(StoreError) as exc:
            store_service.create_store(
                store_name="Second", manager_id=manager.id,
                manager_email="a@b.c", manager_name="A", manager_phone="1",
            )
        assert exc.value.code == "CONFLICT"
        assert db_session.query(Store).count() == 1


class TestCashierSignup:
    def test_signup_creates_inactive_cashier_and_request(self, db_session, store):
        cashier, join_request = store_service.signup_cashier(
            full_name="New Hire",
            phone_number="0755000000",
            password="Str0ng!Pass",
            store_code=store.store_code.lower(),
        )

        assert cashier.store_id is None
        assert cashier.is_active is False
        assert cashier.password_hash != "Str0ng!Pass"
        assert verify_password("Str0ng!Pass", cashier.password_hash)
        assert not verify_password("wrong", cashier.password_hash)

        assert join_request.status == "pending"
        assert join_request.user_type == "Cashier"
        assert join_request.user_id == str(cashier.id)
        assert "password_hash" not in cashier.to_dict()

    @pytest.mark.parametrize("password", ["short1!", "alllowercase1!", "NoDigits!!", "NoSpecial123"])
    def test_weak_passwords(self, db_session, store, password):
        with pytest.raises(StoreError) as exc:
            store_service.signup_cashier(
                full_name="New Hire", phone_number="0755000000",
                password=password, store_code=store.store_code,
            )
        assert exc.value.code == "VALIDATION_ERROR"
        assert db_session.query(CashierAccount).count() == 0

    def test_duplicate_phone(self, db_session, store, cashier):
        with pytest.raises(StoreError) as exc:
            store_service.signup_cashier(
                full_name="Copycat", phone_number=cashier.phone_number,
                password="Str0ng!Pass", store_code=store.store_code,
            )
        assert exc.value.code == "CONFLICT"

    def test_unknown_store_code(self, db_session):
        with pytest.raises(StoreError) as exc:
            store_service.signup_cashier(
                full_name="New Hire", phone_number="0755000000",
                password="Str0ng!Pass", store_code="NOPE00",
            )
        assert exc.value.code == "STORE_NOT_FOUND"


class TestJoinRequests:
    def _signup(self, store, phone="0755000000"):
        return store_service.signup_cashier(
            full_name="New Hire", phone_number=phone,
            password="Str0ng!Pass", store_code=store.store_code,
        )

    def test_approve_attaches_and_activates_cashier(self, db_session, store, manager_actor):
        cashier, join_request = self._signup(store)

        reviewed = store_service.review_join_request(
            request_id=join_request.id, action="approve", reviewer=manager_actor,
        )

        assert reviewed.status == "approved"
        assert reviewed.reviewed_by == manager_actor.id
        assert reviewed.reviewed_at is not None
        db_session.refresh(cashier)
        assert cashier.store_id == store.id
        assert cashier.is_active is True

    def test_reject_leaves_account_unassigned(self, db_session, store, manager_actor):
        cashier, join_request = self._signup(store)
        store_service.review_join_request(request_id=join_request.id, action="reject", reviewer=manager_actor)

        db_session.refresh(cashier)
        assert cashier.store_id is None
        assert cashier.is_active is False

    def test_second_review_conflicts(self, db_session, store, manager_actor):
        _, join_request = self._signup(store)
        store_service.review_join_request(request_id=join_request.id, action="approve", reviewer=manager_actor)

        with pytest.raises(StoreError) as exc:
            store_service.review_join_request(request_id=join_request.id, action="reject", reviewer=manager_actor)
        assert exc.value.code == "CONFLICT"

    def test_invalid_action(self, db_session, store, manager_actor):
        _, join_request = self._signup(store)
        with pytest.raises(StoreError):
            store_service.review_join_request(request_id=join_request.id, action="maybe", reviewer=manager_actor)

    def test_unknown_request(self, db_session, manager_actor):
        with pytest.raises(StoreError) as exc:
            store_service.review_join_request(request_id=424242, action="approve", reviewer=manager_actor)
        assert exc.value.code == "NOT_FOUND"

    def test_cashier_cannot_review(self, db_session, store, cashier_actor):
        _, join_request = self._signup(store, phone="0755000001")
        with pytest.raises(StoreError) as exc:
            store_service.review_join_request(request_id=join_request.id, action="approve", reviewer=cashier_actor)
        assert exc.value.code == "FORBIDDEN"
        assert exc.value.status_code == 403

    def test_manager_of_other_store_cannot_review(self, db_session, store, other_store):
        outsider = Manager(
            id=str(uuid.uuid4()), store_id=other_store.id, full_name="Other Boss", is_active=True,
        )
        db_session.add(outsider)
        db_session.commit()

        _, join_request = self._signup(store)
        with pytest.raises(IdentityError):
            store_service.review_join_request(
                request_id=join_request.id, action="approve", reviewer=ActorRef(MANAGER, outsider.id),
            )
        assert db_session.get(JoinRequest, join_request.id).status == "pending"

    def test_manager_join_creates_unassigned_manager(self, db_session, store, manager_actor):
        new_id = str(uuid.uuid4())
        join_request = store_service.request_to_join(
            store_code=store.store_code,
            user_type="Manager",
            user_id=new_id,
            user_name="Second Manager",
            user_phone="0766000000",
            user_email="second@acme.test",
        )
        pending = db_session.get(Manager, new_id)
        assert pending.store_id is None
        assert pending.is_active is False

        store_service.review_join_request(request_id=join_request.id, action="approve", reviewer=manager_actor)
        db_session.refresh(pending)
        assert pending.store_id == store.id
        assert pending.is_active is True

    def test_duplicate_pending_request(self, db_session, store):
        kwargs = dict(
            store_code=store.store_code, user_type="Manager", user_id=str(uuid.uuid4()),
            user_name="Dup", user_phone="0766000000",
        )
        store_service.request_to_join(**kwargs)
        with pytest.raises(StoreError) as exc:
            store_service.request_to_join(**kwargs)
        assert exc.value.code == "CONFLICT"

    def test_unknown_cashier_join(self, db_session, store):
        with pytest.raises(StoreError) as exc:
            store_service.request_to_join(
                store_code=store.store_code, user_type="Cashier", user_id="9999",
                user_name="Ghost", user_phone="0",
            )
        assert exc.value.code == "NOT_FOUND"

    def test_list_only_pending(self, db_session, store, manager_actor):
        _, first = self._signup(store, phone="0755000001")
        _, second = self._signup(store, phone="0755000002")
        store_service.review_join_request(request_id=first.id, action="reject", reviewer=manager_actor)

        pending = store_service.list_join_requests(store.id)
        assert [r.id for r in pending] == [second.id]

    def test_actor_for_join_request(self, db_session, store):
        cashier, join_request = self._signup(store)
        assert store_service.actor_for_join_request(join_request) == ActorRef(CASHIER, cashier.id)


class TestStoreRoutes:
    def test_create_store_and_list_users(self, client, db_session):
        manager_id = str(uuid.uuid4())
        resp = client.post("/api/stores", json={
            "store_name": "Route Mart",
            "manager_id": manager_id,
            "manager_email": "m@route.test",
            "manager_name": "Route Manager",
            "manager_phone": "0711999999",
        })
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        store_id = data["store"]["id"]
        store_code = data["store"]["store_code"]

        resp = client.post("/api/stores/signup-cashier", json={
            "full_name": "Route Cashier",
            "phone_number": "0722999999",
            "password": "Str0ng!Pass",
            "store_code": store_code,
        })
        assert resp.status_code == 201
        request_id = resp.get_json()["data"]["join_request"]["id"]

        resp = client.get(f"/api/stores/{store_id}/join-requests")
        assert [r["id"] for r in resp.get_json()["data"]] == [request_id]

        resp = client.patch(f"/api/stores/join-requests/{request_id}", json={
            "action": "approve",
            "reviewer": {"type": "manager", "id": manager_id},
        })
        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "approved"

        resp = client.get(f"/api/stores/{store_id}/users")
        users = resp.get_json()["data"]
        assert [(u["type"], u["full_name"]) for u in users] == [
            ("manager", "Route Manager"),
            ("cashier", "Route Cashier"),
        ]

    def test_review_requires_reviewer(self, client, db_session, store):
        resp = client.patch("/api/stores/join-requests/1", json={"action": "approve"})
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "VALIDATION_ERROR"

    def test_users_of_unknown_store(self, client, db_session):
        resp = client.get("/api/stores/999/users")
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "STORE_NOT_FOUND"


class TestListUsers:
    def test_deactivated_cashiers_are_hidden(self, db_session, store, manager, cashier):
        retired = CashierAccount(
            store_id=store.id,
            full_name="Rita Retired",
            phone_number="0733000000",
            password_hash="x",
            is_active=False,
        )
        db_session.add(retired)
        db_session.commit()

        users = store_service.list_users(store.id)
        assert [(u["type"], u["full_name"]) for u in users] == [
            ("manager", "Mary Manager"),
            ("cashier", "Carl Cashier"),
        ]
