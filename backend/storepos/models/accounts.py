from __future__ import annotations

from ..extensions import db
from storepos.time_utils import to_utc_z


class Manager(db.Model):
    """
    Manager accounts.

    IDENTITY: id is the UUID issued by the external identity provider, so it is
    globally unique and assigned by the caller, never generated here.
    store_id stays NULL until a join request is approved (or the manager creates a store).
    """
    __tablename__ = "managers"

    id = db.Column(db.String(36), primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)

    email = db.Column(db.String(255), nullable=True)
    full_name = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("managers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": "manager",
            "store_id": self.store_id,
            "email": self.email,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class CashierAccount(db.Model):
    """
    Cashier accounts.

    IDENTITY: id is a sequential integer local to this database, which is what
    distinguishes a cashier reference from a manager UUID.
    """
    __tablename__ = "cashier_accounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)

    full_name = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(32), nullable=False, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False, default="Cashier")
    is_active = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("cashiers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": "cashier",
            "store_id": self.store_id,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class JoinRequest(db.Model):
    """
    Pending request from a manager or cashier to be attached to a store.

    user_id holds the string form of either identity (UUID or integer id);
    user_type says which table it points into.
    """
    __tablename__ = "join_requests"
    __table_args__ = (
        db.Index("ix_join_requests_store_status", "store_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    user_id = db.Column(db.String(36), nullable=False)
    user_type = db.Column(db.String(16), nullable=False)  # Manager, Cashier
    user_name = db.Column(db.String(255), nullable=False)
    user_phone = db.Column(db.String(32), nullable=False)
    user_email = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)  # pending, approved, rejected
    reviewed_by = db.Column(db.String(36), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("join_requests", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "user_id": self.user_id,
            "user_type": self.user_type,
            "user_name": self.user_name,
            "user_phone": self.user_phone,
            "user_email": self.user_email,
            "status": self.status,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": to_utc_z(self.reviewed_at) if self.reviewed_at else None,
            "requested_at": to_utc_z(self.requested_at),
        }
