from __future__ import annotations

from ..extensions import db
from storepos.time_utils import to_utc_z


class Store(db.Model):
    """
    Tenant root. Every product, sale, expense and account belongs to one store.

    store_code is the short public code staff type in to join a store;
    store_id is the internal key used everywhere else.
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_code = db.Column(db.String(16), nullable=False, unique=True, index=True)
    store_name = db.Column(db.String(120), nullable=False)

    # Manager UUID of the creator (no FK: the manager row is created in the same transaction)
    created_by = db.Column(db.String(36), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} code={self.store_code!r} name={self.store_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_code": self.store_code,
            "store_name": self.store_name,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
