from __future__ import annotations

from ..extensions import db
from storepos.time_utils import to_utc_z

# Exactly one of the two actor columns is set: managers and cashiers live in
# separate identity tables with different key shapes.
ACTOR_XOR_SQL = "(manager_id IS NULL) <> (cashier_id IS NULL)"


class Sale(db.Model):
    """
    One checkout transaction.

    AMOUNTS (all in cents):
    - subtotal_cents: sum of item subtotals, before discount
    - discount_amount_cents: discount actually applied
    - total_amount_cents: subtotal_cents - discount_amount_cents
    - amount_paid_cents: amount tendered at checkout
    - amount_due_cents: max(total - paid, 0)
    - change_due_cents: max(paid - total, 0)

    IMMUTABLE: Sales are written once, at checkout, together with their items,
    payment and (for Partial) customer record.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("store_id", "sale_number", name="uq_sales_store_sale_number"),
        db.CheckConstraint(ACTOR_XOR_SQL, name="ck_sales_single_actor"),
        # Composite index for store-scoped queries by date
        db.Index("ix_sales_store_sale_date", "store_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    # Human-readable number (e.g., "SALE-000123"), sequential per store
    sale_number = db.Column(db.String(64), nullable=False)
    sale_description = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Acting user attribution
    manager_id = db.Column(db.String(36), db.ForeignKey("managers.id"), nullable=True, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("cashier_accounts.id"), nullable=True, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_type = db.Column(db.String(16), nullable=False, default="none")  # none, percentage, amount
    discount_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)  # Cash, Digital
    payment_status = db.Column(db.String(16), nullable=False, index=True)  # Paid, Partial, Pending
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_due_cents = db.Column(db.Integer, nullable=False, default=0)
    change_due_cents = db.Column(db.Integer, nullable=False, default=0)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store", backref=db.backref("sales", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "sale_number": self.sale_number,
            "sale_description": self.sale_description,
            "notes": self.notes,
            "manager_id": self.manager_id,
            "cashier_id": self.cashier_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_type": self.discount_type,
            "discount_value": float(self.discount_value or 0),
            "discount_amount_cents": self.discount_amount_cents,
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "amount_paid_cents": self.amount_paid_cents,
            "amount_due_cents": self.amount_due_cents,
            "change_due_cents": self.change_due_cents,
            "sale_date": to_utc_z(self.sale_date),
            "version_id": self.version_id,
        }


class SaleItem(db.Model):
    """
    Line item of a sale.

    SNAPSHOTS: product_sku, product_name, unit_price_cents and
    cost_price_snapshot_cents are copied at checkout so historical reports do
    not move when a product is renamed or restocked at a different price.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_sku = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    cost_price_snapshot_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("items", lazy=True, order_by="SaleItem.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_sku": self.product_sku,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "cost_price_snapshot_cents": self.cost_price_snapshot_cents,
            "subtotal_cents": self.subtotal_cents,
            "created_at": to_utc_z(self.created_at),
        }


class Payment(db.Model):
    """
    Funds received against a sale.

    ATTRIBUTION: recorded by either a manager (manager_id) or a cashier
    (cashier_id), never both.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint(ACTOR_XOR_SQL, name="ck_payments_single_actor"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    # Change given back (cash over-tender)
    change_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_method = db.Column(db.String(16), nullable=False)

    manager_id = db.Column(db.String(36), db.ForeignKey("managers.id"), nullable=True, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("cashier_accounts.id"), nullable=True, index=True)

    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    sale = db.relationship("Sale", backref=db.backref("payments", lazy=True, order_by="Payment.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "store_id": self.store_id,
            "amount_cents": self.amount_cents,
            "change_cents": self.change_cents,
            "payment_method": self.payment_method,
            "manager_id": self.manager_id,
            "cashier_id": self.cashier_id,
            "payment_date": to_utc_z(self.payment_date),
        }


class PartialPaymentCustomer(db.Model):
    """
    Customer carrying the outstanding balance of a Partial sale (1:1 with the sale).
    """
    __tablename__ = "partial_payment_customers"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_partial_payment_customers_sale"),
        db.Index("ix_partial_payment_customers_store_name", "store_id", "customer_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(255), nullable=False)
    customer_national_id = db.Column(db.String(64), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=False)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    amount_paid_cents = db.Column(db.Integer, nullable=False)
    amount_remaining_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship(
        "Sale",
        backref=db.backref("partial_payment_customer", uselist=False, lazy=True),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "store_id": self.store_id,
            "customer_name": self.customer_name,
            "customer_national_id": self.customer_national_id,
            "customer_phone": self.customer_phone,
            "total_amount_cents": self.total_amount_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "amount_remaining_cents": self.amount_remaining_cents,
            "created_at": to_utc_z(self.created_at),
        }
