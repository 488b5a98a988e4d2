"""
Lifecycle error taxonomy and the JSON error envelope.

Hierarchy:
    LifecycleError
    ├── NotFound                 404
    ├── InvalidArgument          400  (also a ValueError)
    ├── InvalidTransition        400
    ├── ExclusivityViolation     409
    ├── InvalidState             400
    │   └── TrailCorruption      500
    ├── ConcurrentModification   409
    └── StorageError             500  (also a RuntimeError)

Every error raised by the lifecycle core is one of these; the HTTP layer turns them into
``{timestamp, status, message, path}``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException


class LifecycleError(Exception):
    status_code = 500

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context: dict[str, Any] = context
        super().__init__(message)

    def public_message(self) -> str:
        return self.message


class NotFound(LifecycleError):
    status_code = 404


class InvalidArgument(LifecycleError, ValueError):
    status_code = 400


class InvalidTransition(LifecycleError):
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        required_state: str | None = None,
        available_operations: list[str] | None = None,
        **context: Any,
    ):
        super().__init__(message, **context)
        self.current_state = current_state
        self.required_state = required_state
        self.available_operations = list(available_operations or [])


class ExclusivityViolation(LifecycleError):
    status_code = 409

    def __init__(self, message: str, *, conflicting_states: list[str] | None = None, **context: Any):
        super().__init__(message, **context)
        self.conflicting_states = list(conflicting_states or [])


class InvalidState(LifecycleError):
    status_code = 400


class TrailCorruption(InvalidState):
    """Audit trail and documents disagree; caller cannot fix this by retrying."""

    status_code = 500


class ConcurrentModification(LifecycleError):
    status_code = 409


class StorageError(LifecycleError, RuntimeError):
    status_code = 500

    def public_message(self) -> str:
        # Driver/SQL details stay in the logs.
        return "A storage error occurred while processing the request."


def error_body(status: int, message: str) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": status,
        "message": message,
        "path": request.path if request else None,
    }


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(LifecycleError)
    def _lifecycle_error(e: LifecycleError):  # type: ignore[no-redef]
        if e.status_code >= 500:
            app.logger.error("Lifecycle error (%s): %s", type(e).__name__, e.message)
        return jsonify(error_body(e.status_code, e.public_message())), e.status_code

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):  # type: ignore[no-redef]
        status = e.code or 500
        return jsonify(error_body(status, e.description or e.name)), status

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):  # type: ignore[no-redef]
        app.logger.exception("Unhandled error on %s", request.path)
        return jsonify(error_body(500, "Internal server error")), 500
