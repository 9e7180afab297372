# Overview: Tests for tagged actor references and display-name resolution.

import uuid

import pytest

from storepos.services.identity_service import (
    CASHIER,
    MANAGER,
    UNKNOWN_NAME,
    ActorRef,
    IdentityError,
    actor_columns,
    actor_from_columns,
    parse_actor,
    parse_optional_actor,
    require_actor_in_store,
    resolve_display_name,
    resolve_display_names,
)


class TestParseActor:
    def test_manager_uuid_is_normalized(self):
        raw = uuid.uuid4()
        actor = parse_actor({"type": "manager", "id": str(raw).upper()})
        assert actor == ActorRef(MANAGER, str(raw))

    def test_cashier_id_accepts_numeric_string(self):
        assert parse_actor({"type": "cashier", "id": "7"}) == ActorRef(CASHIER, 7)

    @pytest.mark.parametrize("payload", [
        None,
        "cashier:7",
        {"type": "owner", "id": 1},
        {"type": "cashier"},
        {"type": "cashier", "id": 0},
        {"type": "cashier", "id": "abc"},
        {"type": "manager", "id": "not-a-uuid"},
        # No guessing the kind from the id's shape
        {"id": 7},
    ])
    def test_rejects_malformed(self, payload):
        with pytest.raises(IdentityError):
            parse_actor(payload)

    def test_optional(self):
        assert parse_optional_actor(None) is None

    def test_error_names_the_field(self):
        with pytest.raises(IdentityError) as exc:
            parse_actor({"type": "x", "id": 1}, field="reviewer")
        assert str(exc.value).startswith("reviewer.type")


class TestColumns:
    def test_round_trip(self):
        manager = ActorRef(MANAGER, str(uuid.uuid4()))
        cashier = ActorRef(CASHIER, 3)
        assert actor_columns(manager) == {"manager_id": manager.id, "cashier_id": None}
        assert actor_columns(cashier) == {"manager_id": None, "cashier_id": 3}
        assert actor_from_columns(**actor_columns(manager)) == manager
        assert actor_from_columns(**actor_columns(cashier)) == cashier
        assert actor_from_columns(None, None) is None


class TestStoreMembership:
    def test_active_member(self, db_session, store, cashier_actor, manager_actor):
        assert require_actor_in_store(cashier_actor, store.id).full_name == "Carl Cashier"
        assert require_actor_in_store(manager_actor, store.id).full_name == "Mary Manager"

    def test_other_store(self, db_session, other_store, cashier_actor):
        with pytest.raises(IdentityError):
            require_actor_in_store(cashier_actor, other_store.id)

    def test_inactive(self, db_session, store, cashier, cashier_actor):
        cashier.is_active = False
        db_session.commit()
        with pytest.raises(IdentityError):
            require_actor_in_store(cashier_actor, store.id)

    def test_unknown(self, db_session, store):
        with pytest.raises(IdentityError):
            require_actor_in_store(ActorRef(CASHIER, 999), store.id)


def test_resolve_display_names(db_session, manager_actor, cashier_actor):
    ghost = ActorRef(CASHIER, 999)
    names = resolve_display_names([manager_actor, cashier_actor, ghost, None])
    assert names == {
        manager_actor: "Mary Manager",
        cashier_actor: "Carl Cashier",
        ghost: UNKNOWN_NAME,
    }


class TestResolveDisplayName:
    def test_known_accounts(self, db_session, manager_actor, cashier_actor):
        assert resolve_display_name(manager_actor) == "Mary Manager"
        assert resolve_display_name(cashier_actor) == "Carl Cashier"

    def test_missing_account_is_unknown(self, db_session):
        assert resolve_display_name(ActorRef(CASHIER, 999)) == UNKNOWN_NAME
        assert resolve_display_name(ActorRef(MANAGER, str(uuid.uuid4()))) == UNKNOWN_NAME

    def test_no_actor(self, db_session):
        assert resolve_display_name(None) is None
