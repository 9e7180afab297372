from __future__ import annotations

from ..extensions import db
from storepos.time_utils import to_utc_z


class Expense(db.Model):
    """Store expense (rent, utilities, supplies...). recorded_by is optional."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
        db.CheckConstraint(
            "NOT (manager_id IS NOT NULL AND cashier_id IS NOT NULL)",
            name="ck_expenses_single_recorder",
        ),
        db.Index("ix_expenses_store_date", "store_id", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    description = db.Column(db.String(255), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(120), nullable=False)
    expense_date = db.Column(db.Date, nullable=False)

    manager_id = db.Column(db.String(36), db.ForeignKey("managers.id"), nullable=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("cashier_accounts.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("expenses", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "category": self.category,
            "expense_date": self.expense_date.isoformat() if self.expense_date else None,
            "manager_id": self.manager_id,
            "cashier_id": self.cashier_id,
            "created_at": to_utc_z(self.created_at),
        }
