# Overview: Request decorators for API routes.

from functools import wraps

from flask import g, request

from .errors import error_response
from .extensions import db
from .models import Store
from .validation import ValidationError, coerce_int


def _raw_store_id():
    if request.method in ("GET", "DELETE"):
        return request.args.get("store_id")
    payload = request.get_json(silent=True) or {}
    if isinstance(payload, dict) and payload.get("store_id") not in (None, ""):
        return payload.get("store_id")
    return request.args.get("store_id")


def require_store(f):
    """
    Resolve the tenant for the request.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.store_id: int, from the query string on reads and the JSON body on writes
    - g.store: the Store row

    Returns 400 VALIDATION_ERROR if store_id is missing or not an integer,
    404 STORE_NOT_FOUND if no such store exists.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = _raw_store_id()
        if raw in (None, ""):
            return error_response(code="VALIDATION_ERROR", message="store_id is required")
        try:
            store_id = coerce_int(raw, "store_id")
        except ValidationError as e:
            return error_response(code="VALIDATION_ERROR", message=str(e))

        store = db.session.get(Store, store_id)
        if store is None:
            return error_response(code="STORE_NOT_FOUND", message="Store not found", status_code=404)

        g.store_id = store.id
        g.store = store
        return f(*args, **kwargs)

    return decorated_function
