# Overview: JSON response envelope and app-level error handlers.

"""
Every API response uses one envelope:

- success: {"success": true, "data": ..., "message"?: str}
- failure: {"success": false, "error": str, "code": str, "details"?: dict}

Services raise ServiceError subclasses carrying a stable code and HTTP
status; routes turn them into the failure envelope with service_error_response().
"""
from __future__ import annotations

from typing import Any

from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException

from .extensions import db
from .validation import ValidationError

GENERIC_SERVER_ERROR_MESSAGE = "An unexpected error occurred."


class ServiceError(Exception):
    """Base for domain errors that map onto an API error code."""

    code = "ERROR"
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}


def build_error_envelope(*, code: str, message: str, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": message, "code": code}
    if details:
        body["details"] = details
    return body


def error_response(*, code: str, message: str, status_code: int = 400, details: Any = None):
    return jsonify(build_error_envelope(code=code, message=message, details=details)), status_code


def service_error_response(exc: ServiceError):
    return error_response(
        code=exc.code,
        message=str(exc),
        status_code=exc.status_code,
        details=exc.details,
    )


def validation_error_response(exc: ValidationError):
    return error_response(code="VALIDATION_ERROR", message=str(exc), status_code=400)


def success_response(data: Any = None, *, status_code: int = 200, message: str | None = None, **extra):
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    body.update(extra)
    return jsonify(body), status_code


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def _handle_service_error(exc: ServiceError):
        db.session.rollback()
        return service_error_response(exc)

    @app.errorhandler(ValidationError)
    def _handle_validation_error(exc: ValidationError):
        return validation_error_response(exc)

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):
        codes = {404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}
        return error_response(
            code=codes.get(exc.code, "HTTP_ERROR"),
            message=exc.description or exc.name,
            status_code=exc.code or 500,
        )

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled API exception")
        return error_response(
            code="INTERNAL_ERROR",
            message=GENERIC_SERVER_ERROR_MESSAGE,
            status_code=500,
        )
