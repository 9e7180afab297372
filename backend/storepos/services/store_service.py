# Overview: Store (tenant) lifecycle, staff accounts and join requests.

from __future__ import annotations

import secrets
import string
import uuid

from sqlalchemy.exc import SQLAlchemyError

from storepos.errors import ServiceError
from storepos.extensions import db
from storepos.models import CashierAccount, JoinRequest, Manager, Store
from storepos.services.auth_service import PasswordValidationError, hash_password
from storepos.services.concurrency import lock_for_update, run_with_retry
from storepos.services.document_service import seed_document_sequence
from storepos.services.identity_service import (
    CASHIER,
    MANAGER,
    ActorRef,
    get_account,
    require_actor_in_store,
)
from storepos.services.sales_service import SALE_DOCUMENT_TYPE
from storepos.time_utils import utcnow

STORE_CODE_LENGTH = 6
STORE_CODE_ALPHABET = string.ascii_uppercase + string.digits
STORE_CODE_ATTEMPTS = 10

USER_TYPE_MANAGER = "Manager"
USER_TYPE_CASHIER = "Cashier"
USER_TYPES = (USER_TYPE_MANAGER, USER_TYPE_CASHIER)

JOIN_PENDING = "pending"
JOIN_APPROVED = "approved"
JOIN_REJECTED = "rejected"


class StoreError(ServiceError):
    """Raised when store, account or join request operations fail."""
    code = "VALIDATION_ERROR"
    status_code = 400


def _require(fields: dict) -> None:
    missing = [name for name, value in fields.items() if value in (None, "")]
    if missing:
        raise StoreError(f"Missing required fields: {', '.join(missing)}")


def _normalize_uuid(value, field: str) -> str:
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        raise StoreError(f"{field} must be a UUID")


def get_store(store_id: int) -> Store | None:
    return db.session.get(Store, store_id)


def require_store(store_id: int) -> Store:
    store = get_store(store_id)
    if store is None:
        raise StoreError("Store not found", code="STORE_NOT_FOUND", status_code=404)
    return store


def get_store_by_code(store_code: str) -> Store:
    store = (
        db.session.query(Store)
        .filter_by(store_code=(store_code or "").strip().upper())
        .first()
    )
    if store is None:
        raise StoreError("Invalid store code", code="STORE_NOT_FOUND", status_code=404)
    return store


def generate_store_code() -> str:
    """Random 6-character uppercase code not yet used by another store."""
    for _ in range(STORE_CODE_ATTEMPTS):
        code = "".join(secrets.choice(STORE_CODE_ALPHABET) for _ in range(STORE_CODE_LENGTH))
        if not db.session.query(Store.id).filter_by(store_code=code).first():
            return code
    raise StoreError("Failed to generate store code", code="CREATE_STORE_ERROR", status_code=500)


def create_store(
    *,
    store_name: str,
    manager_id: str,
    manager_email: str,
    manager_name: str,
    manager_phone: str,
) -> tuple[Store, Manager]:
    """
    Create a store and its founding manager in one transaction.

    The manager id comes from the external identity provider. A manager who
    already exists without a store (e.g. signed up through a join request that
    was never approved) is attached to the new store; one already attached to a
    store is a conflict.
    """
    _require({
        "store_name": store_name,
        "manager_id": manager_id,
        "manager_email": manager_email,
        "manager_name": manager_name,
        "manager_phone": manager_phone,
    })
    manager_id = _normalize_uuid(manager_id, "manager_id")

    def _op():
        manager = lock_for_update(db.session.query(Manager).filter_by(id=manager_id)).first()
        if manager is not None and manager.store_id is not None:
            raise StoreError("Manager already belongs to a store", code="CONFLICT", status_code=409)

        store = Store(
            store_code=generate_store_code(),
            store_name=store_name.strip(),
            created_by=manager_id,
        )
        db.session.add(store)
        db.session.flush()
        seed_document_sequence(store_id=store.id, document_type=SALE_DOCUMENT_TYPE)

        if manager is None:
            manager = Manager(id=manager_id)
            db.session.add(manager)
        manager.email = manager_email.strip()
        manager.full_name = manager_name.strip()
        manager.phone_number = manager_phone.strip()
        manager.store_id = store.id
        manager.is_active = True

        db.session.commit()
        return store, manager

    try:
        return run_with_retry(_op)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError(f"Failed to create store: {exc}", code="CREATE_STORE_ERROR", status_code=500)


def _ensure_no_pending_request(store_id: int, user_type: str, user_id: str) -> None:
    existing = db.session.query(JoinRequest.id).filter_by(
        store_id=store_id,
        user_type=user_type,
        user_id=user_id,
        status=JOIN_PENDING,
    ).first()
    if existing:
        raise StoreError("A join request is already pending for this store", code="CONFLICT", status_code=409)


def signup_cashier(*, full_name: str, phone_number: str, password: str, store_code: str) -> tuple[CashierAccount, JoinRequest]:
    """
    Create an unassigned, inactive cashier account and a pending join request.

    The cashier can only act for the store once a manager approves the request.
    """
    _require({
        "full_name": full_name,
        "phone_number": phone_number,
        "password": password,
        "store_code": store_code,
    })
    phone_number = phone_number.strip()

    if db.session.query(CashierAccount.id).filter_by(phone_number=phone_number).first():
        raise StoreError("Phone number already exists", code="CONFLICT", status_code=409)

    store = get_store_by_code(store_code)

    try:
        password_hash = hash_password(password)
    except PasswordValidationError as exc:
        raise StoreError(str(exc))

    cashier = CashierAccount(
        full_name=full_name.strip(),
        phone_number=phone_number,
        password_hash=password_hash,
        role="Cashier",
        store_id=None,
        is_active=False,
    )
    db.session.add(cashier)
    db.session.flush()

    join_request = JoinRequest(
        store_id=store.id,
        user_id=str(cashier.id),
        user_type=USER_TYPE_CASHIER,
        user_name=cashier.full_name,
        user_phone=phone_number,
        user_email=None,
        status=JOIN_PENDING,
    )
    db.session.add(join_request)
    db.session.commit()
    return cashier, join_request


def request_to_join(
    *,
    store_code: str,
    user_type: str,
    user_id,
    user_name: str,
    user_phone: str,
    user_email: str | None = None,
) -> JoinRequest:
    """
    Submit a join request for an existing identity.

    Managers are created here (unassigned, inactive) if the identity provider
    id is new. Cashiers must already exist (see signup_cashier).
    """
    _require({
        "store_code": store_code,
        "user_type": user_type,
        "user_id": user_id,
        "user_name": user_name,
        "user_phone": user_phone,
    })
    if user_type not in USER_TYPES:
        raise StoreError(f"user_type must be one of: {', '.join(USER_TYPES)}")

    store = get_store_by_code(store_code)

    if user_type == USER_TYPE_MANAGER:
        user_id = _normalize_uuid(user_id, "user_id")
        manager = db.session.get(Manager, user_id)
        if manager is None:
            manager = Manager(
                id=user_id,
                email=user_email,
                full_name=user_name.strip(),
                phone_number=user_phone.strip(),
                store_id=None,
                is_active=False,
            )
            db.session.add(manager)
        elif manager.store_id is not None:
            raise StoreError("Manager already belongs to a store", code="CONFLICT", status_code=409)
    else:
        cashier = db.session.get(CashierAccount, int(user_id)) if str(user_id).isdigit() else None
        if cashier is None:
            raise StoreError("Cashier account not found", code="NOT_FOUND", status_code=404)
        if cashier.store_id is not None:
            raise StoreError("Cashier already belongs to a store", code="CONFLICT", status_code=409)
        user_id = str(cashier.id)

    _ensure_no_pending_request(store.id, user_type, user_id)

    join_request = JoinRequest(
        store_id=store.id,
        user_id=user_id,
        user_type=user_type,
        user_name=user_name.strip(),
        user_phone=user_phone.strip(),
        user_email=user_email or None,
        status=JOIN_PENDING,
    )
    db.session.add(join_request)
    db.session.commit()
    return join_request


def list_join_requests(store_id: int) -> list[JoinRequest]:
    return (
        db.session.query(JoinRequest)
        .filter_by(store_id=store_id, status=JOIN_PENDING)
        .order_by(JoinRequest.requested_at.desc(), JoinRequest.id.desc())
        .all()
    )


def actor_for_join_request(join_request: JoinRequest) -> ActorRef:
    if join_request.user_type == USER_TYPE_MANAGER:
        return ActorRef(MANAGER, join_request.user_id)
    return ActorRef(CASHIER, int(join_request.user_id))


def review_join_request(*, request_id: int, action: str, reviewer: ActorRef) -> JoinRequest:
    """
    Approve or reject a pending join request.

    Only an active manager of the request's store may review it. Approval
    attaches the account to the store and activates it, in the same transaction
    as the status change.
    """
    if action not in ("approve", "reject"):
        raise StoreError('Invalid action. Must be "approve" or "reject"')

    def _op():
        join_request = lock_for_update(
            db.session.query(JoinRequest).filter_by(id=request_id)
        ).first()
        if join_request is None:
            raise StoreError("Join request not found", code="NOT_FOUND", status_code=404)

        if reviewer.kind != MANAGER:
            raise StoreError("Only managers can review join requests", code="FORBIDDEN", status_code=403)
        require_actor_in_store(reviewer, join_request.store_id)

        if join_request.status != JOIN_PENDING:
            raise StoreError(
                f"Join request already {join_request.status}",
                code="CONFLICT",
                status_code=409,
            )

        join_request.status = JOIN_APPROVED if action == "approve" else JOIN_REJECTED
        join_request.reviewed_by = str(reviewer.id)
        join_request.reviewed_at = utcnow()

        if action == "approve":
            account = get_account(actor_for_join_request(join_request))
            if account is None:
                raise StoreError("Account for join request not found", code="NOT_FOUND", status_code=404)
            account.store_id = join_request.store_id
            account.is_active = True

        db.session.commit()
        return join_request

    return run_with_retry(_op)


def list_users(store_id: int) -> list[dict]:
    """Managers of the store, then its active cashiers."""
    managers = (
        db.session.query(Manager)
        .filter_by(store_id=store_id)
        .order_by(Manager.full_name.asc())
        .all()
    )
    cashiers = (
        db.session.query(CashierAccount)
        .filter_by(store_id=store_id, is_active=True)
        .order_by(CashierAccount.full_name.asc())
        .all()
    )
    return [m.to_dict() for m in managers] + [c.to_dict() for c in cashiers]
