# Overview: Acting-user references across the manager and cashier identity tables.

"""
Identity resolution for the two disjoint account spaces.

Managers are keyed by a UUID string issued by the external identity provider;
cashiers by a sequential integer. Requests carry an explicit tagged
reference instead of an id whose kind would have to be guessed from its shape:

    {"type": "manager", "id": "5b0c...-..."}
    {"type": "cashier", "id": 12}

Rows that point at an actor (sales, payments, expenses) store it in two
mutually exclusive columns, manager_id and cashier_id; actor_columns() and
actor_from_columns() convert between the two representations.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Iterable

from ..errors import ServiceError
from ..extensions import db
from ..models import CashierAccount, Manager
from ..validation import ValidationError, coerce_int

MANAGER = "manager"
CASHIER = "cashier"
ACTOR_TYPES = (MANAGER, CASHIER)

UNKNOWN_NAME = "Unknown"


class IdentityError(ServiceError):
    """Raised when an actor reference is malformed or does not belong to the store."""
    code = "VALIDATION_ERROR"
    status_code = 400


@dataclass(frozen=True)
class ActorRef:
    kind: str
    id: str | int

    @property
    def is_manager(self) -> bool:
        return self.kind == MANAGER

    def to_dict(self) -> dict:
        return {"type": self.kind, "id": self.id}


def parse_actor(payload, *, field: str = "actor") -> ActorRef:
    """Parse a tagged actor reference from request JSON."""
    if not isinstance(payload, dict):
        raise IdentityError(f"{field} must be an object with 'type' and 'id'")

    kind = payload.get("type")
    raw_id = payload.get("id")
    if kind not in ACTOR_TYPES:
        raise IdentityError(f"{field}.type must be one of: {', '.join(ACTOR_TYPES)}")
    if raw_id is None or raw_id == "":
        raise IdentityError(f"{field}.id is required")

    if kind == MANAGER:
        try:
            return ActorRef(MANAGER, str(uuid.UUID(str(raw_id))))
        except ValueError:
            raise IdentityError(f"{field}.id must be a UUID for managers")

    try:
        cashier_id = coerce_int(raw_id, f"{field}.id")
    except ValidationError as exc:
        raise IdentityError(str(exc))
    if cashier_id <= 0:
        raise IdentityError(f"{field}.id must be a positive integer for cashiers")
    return ActorRef(CASHIER, cashier_id)


def parse_optional_actor(payload, *, field: str = "actor") -> ActorRef | None:
    if payload is None:
        return None
    return parse_actor(payload, field=field)


def actor_columns(actor: ActorRef | None) -> dict:
    """Column values for tables with split manager_id / cashier_id foreign keys."""
    if actor is None:
        return {"manager_id": None, "cashier_id": None}
    if actor.is_manager:
        return {"manager_id": actor.id, "cashier_id": None}
    return {"manager_id": None, "cashier_id": actor.id}


def actor_from_columns(manager_id: str | None, cashier_id: int | None) -> ActorRef | None:
    if manager_id is not None:
        return ActorRef(MANAGER, manager_id)
    if cashier_id is not None:
        return ActorRef(CASHIER, cashier_id)
    return None


def get_account(actor: ActorRef) -> Manager | CashierAccount | None:
    model = Manager if actor.is_manager else CashierAccount
    return db.session.get(model, actor.id)


def require_actor_in_store(actor: ActorRef, store_id: int) -> Manager | CashierAccount:
    """
    Ensure the actor is an active account attached to the store.

    Raises IdentityError otherwise; the message does not reveal whether the
    account exists in another store.
    """
    account = get_account(actor)
    if account is None or account.store_id != store_id or not account.is_active:
        raise IdentityError(f"Unknown {actor.kind} for this store: {actor.id}")
    return account


def resolve_display_name(actor: ActorRef | None) -> str | None:
    if actor is None:
        return None
    account = get_account(actor)
    return account.full_name if account else UNKNOWN_NAME


def resolve_display_names(actors: Iterable[ActorRef | None]) -> dict[ActorRef, str]:
    """
    Bulk name lookup: one query per identity table, regardless of how many actors.
    Actors that cannot be found map to "Unknown".
    """
    wanted = {a for a in actors if a is not None}
    manager_ids = {a.id for a in wanted if a.is_manager}
    cashier_ids = {a.id for a in wanted if not a.is_manager}

    names: dict[ActorRef, str] = {a: UNKNOWN_NAME for a in wanted}

    if manager_ids:
        rows = db.session.query(Manager.id, Manager.full_name).filter(Manager.id.in_(manager_ids)).all()
        for manager_id, full_name in rows:
            names[ActorRef(MANAGER, manager_id)] = full_name

    if cashier_ids:
        rows = (
            db.session.query(CashierAccount.id, CashierAccount.full_name)
            .filter(CashierAccount.id.in_(cashier_ids))
            .all()
        )
        for cashier_id, full_name in rows:
            names[ActorRef(CASHIER, cashier_id)] = full_name

    return names
