# Overview: Store expenses (rent, utilities, supplies...).

from __future__ import annotations

from ..errors import ServiceError
from ..extensions import db
from ..models import Expense
from ..validation import ModelValidationPolicy, ValidationError, validate_cents, validate_payload
from .identity_service import (
    ActorRef,
    UNKNOWN_NAME,
    actor_columns,
    actor_from_columns,
    require_actor_in_store,
    resolve_display_names,
)

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"description", "amount_cents", "category", "expense_date"},
    required_on_create={"description", "amount_cents", "category", "expense_date"},
)


class ExpenseError(ServiceError):
    """Raised for expense validation errors."""
    code = "VALIDATION_ERROR"
    status_code = 400


def add_expense(*, store_id: int, payload: dict, recorded_by: ActorRef | None = None) -> dict:
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        patch["amount_cents"] = validate_cents(patch["amount_cents"], "amount_cents", allow_zero=False)
    except ValidationError as exc:
        raise ExpenseError(str(exc))

    if recorded_by is not None:
        require_actor_in_store(recorded_by, store_id)

    expense = Expense(store_id=store_id, **patch, **actor_columns(recorded_by))
    db.session.add(expense)
    db.session.commit()
    return serialize_expenses([expense])[0]


def serialize_expenses(expenses: list[Expense]) -> list[dict]:
    names = resolve_display_names(actor_from_columns(e.manager_id, e.cashier_id) for e in expenses)
    out = []
    for expense in expenses:
        data = expense.to_dict()
        recorder = actor_from_columns(expense.manager_id, expense.cashier_id)
        data["recorded_by_name"] = names.get(recorder, UNKNOWN_NAME) if recorder else None
        out.append(data)
    return out


def list_expenses(store_id: int) -> list[dict]:
    expenses = (
        db.session.query(Expense)
        .filter(Expense.store_id == store_id)
        .order_by(Expense.expense_date.desc(), Expense.created_at.desc(), Expense.id.desc())
        .all()
    )
    return serialize_expenses(expenses)
