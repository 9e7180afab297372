# Overview: Flask API routes for stores, staff signup and join requests.

"""
Store management routes.

Stores are created by their founding manager. Everyone else joins through a
join request that a manager of the store approves or rejects.
"""
from flask import Blueprint, current_app, request

from ..errors import ServiceError, error_response, service_error_response, success_response
from ..services import store_service
from ..services.identity_service import parse_actor

stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


def _internal_error():
    return error_response(code="INTERNAL_ERROR", message="Internal server error", status_code=500)


@stores_bp.post("")
def create_store():
    data = request.get_json(silent=True) or {}
    try:
        store, manager = store_service.create_store(
            store_name=data.get("store_name"),
            manager_id=data.get("manager_id"),
            manager_email=data.get("manager_email"),
            manager_name=data.get("manager_name"),
            manager_phone=data.get("manager_phone"),
        )
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create store")
        return _internal_error()

    current_app.logger.info("Store created id=%s code=%s", store.id, store.store_code)
    return success_response(
        {"store": store.to_dict(), "manager": manager.to_dict()},
        status_code=201,
        message="Store created successfully",
    )


@stores_bp.post("/join")
def request_to_join():
    data = request.get_json(silent=True) or {}
    try:
        join_request = store_service.request_to_join(
            store_code=data.get("store_code"),
            user_type=data.get("user_type"),
            user_id=data.get("user_id"),
            user_name=data.get("user_name"),
            user_phone=data.get("user_phone"),
            user_email=data.get("user_email"),
        )
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to submit join request")
        return _internal_error()

    return success_response(
        join_request.to_dict(),
        status_code=201,
        message="Join request submitted. Waiting for manager approval.",
    )


@stores_bp.post("/signup-cashier")
def signup_cashier():
    data = request.get_json(silent=True) or {}
    try:
        cashier, join_request = store_service.signup_cashier(
            full_name=data.get("full_name"),
            phone_number=data.get("phone_number"),
            password=data.get("password"),
            store_code=data.get("store_code"),
        )
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to sign up cashier")
        return _internal_error()

    return success_response(
        {"cashier": cashier.to_dict(), "join_request": join_request.to_dict()},
        status_code=201,
        message="Signup successful. Waiting for manager approval.",
    )


@stores_bp.get("/<int:store_id>/join-requests")
def list_join_requests(store_id: int):
    try:
        store_service.require_store(store_id)
        requests_ = store_service.list_join_requests(store_id)
        return success_response([r.to_dict() for r in requests_])
    except ServiceError as e:
        return service_error_response(e)


@stores_bp.patch("/join-requests/<int:request_id>")
def review_join_request(request_id: int):
    """
    Body: {"action": "approve" | "reject", "reviewer": {"type": "manager", "id": "<uuid>"}}
    """
    data = request.get_json(silent=True) or {}
    try:
        reviewer = parse_actor(data.get("reviewer"), field="reviewer")
        join_request = store_service.review_join_request(
            request_id=request_id,
            action=data.get("action"),
            reviewer=reviewer,
        )
    except ServiceError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to review join request")
        return _internal_error()

    current_app.logger.info(
        "Join request %s %s by manager %s", request_id, join_request.status, reviewer.id,
    )
    return success_response(join_request.to_dict(), message=f"Request {join_request.status}")


@stores_bp.get("/<int:store_id>/users")
def list_users(store_id: int):
    try:
        store_service.require_store(store_id)
        return success_response(store_service.list_users(store_id))
    except ServiceError as e:
        return service_error_response(e)
