from __future__ import annotations

from ..extensions import db
from storepos.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are scoped to stores via store_id.

    Pricing and stock live on InventoryBatch rows, not here: a product's price
    is the newest batch's selling price and its stock is the sum of
    quantity_remaining over its batches.

    Products are never hard-deleted once sold against; sale items keep SKU/name
    snapshots, and deactivation (is_active=False) hides them from the POS.
    """
    __tablename__ = "products"
    __table_args__ = (
        # SKUs are unique within a store
        db.UniqueConstraint("store_id", "sku", name="uq_products_store_sku"),
        db.Index("ix_products_store_name", "store_id", "name"),
        db.Index("ix_products_store_active", "store_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryBatch(db.Model):
    """
    One restock event (lot) for a product.

    INVARIANT: 0 <= quantity_remaining <= quantity_added, enforced by CHECK
    constraints so a racing decrement can never drive a batch negative.

    Batches are never deleted; a fully consumed batch stays as restock history
    with quantity_remaining = 0.
    """
    __tablename__ = "inventory_batches"
    __table_args__ = (
        db.CheckConstraint("quantity_remaining >= 0", name="ck_inventory_batches_remaining_nonneg"),
        db.CheckConstraint("quantity_remaining <= quantity_added", name="ck_inventory_batches_remaining_le_added"),
        db.CheckConstraint("cost_price_cents >= 0", name="ck_inventory_batches_cost_nonneg"),
        db.CheckConstraint("selling_price_cents >= 0", name="ck_inventory_batches_price_nonneg"),
        db.Index("ix_inventory_batches_product_restock", "product_id", "restock_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity_added = db.Column(db.Integer, nullable=False)
    quantity_remaining = db.Column(db.Integer, nullable=False)

    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)
    batch_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    restock_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", backref=db.backref("batches", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<InventoryBatch id={self.id} product_id={self.product_id} "
            f"remaining={self.quantity_remaining}/{self.quantity_added}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "quantity_added": self.quantity_added,
            "quantity_remaining": self.quantity_remaining,
            "low_stock_threshold": self.low_stock_threshold,
            "batch_number": self.batch_number,
            "notes": self.notes,
            "restock_date": to_utc_z(self.restock_date),
            "version_id": self.version_id,
        }
