# Overview: Per-store document number allocation.

from __future__ import annotations

from sqlalchemy import update

from ..errors import ServiceError
from ..extensions import db
from ..models import DocumentSequence


class DocumentSequenceError(ServiceError):
    code = "VALIDATION_ERROR"
    status_code = 400


def seed_document_sequence(*, store_id: int, document_type: str) -> DocumentSequence:
    """Counter row for a new store (flush only); allocations then only UPDATE it."""
    seq = DocumentSequence(store_id=store_id, document_type=document_type, next_number=1)
    db.session.add(seq)
    db.session.flush()
    return seq


def next_document_number(
    *,
    store_id: int,
    document_type: str,
    prefix: str,
    pad: int = 6,
) -> str:
    """
    Allocate the next document number for a store/type, e.g. "SALE-000042".

    Runs inside the caller's transaction (flush only, no commit) so a rolled
    back sale also gives its number back. The UPDATE takes a row lock on
    (store_id, document_type), serializing concurrent allocations.
    """
    if not store_id:
        raise DocumentSequenceError("store_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.store_id == store_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(store_id=store_id, document_type=document_type)
            .scalar()
        )
        next_num = current - 1
    else:
        seq = DocumentSequence(store_id=store_id, document_type=document_type, next_number=2)
        db.session.add(seq)
        db.session.flush()
        next_num = 1

    return f"{prefix}-{next_num:0{pad}d}"
