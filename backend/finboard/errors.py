"""
Error kinds exposed to API clients.

Every failure reaches the client as ``{"error": <kind>}`` with an optional
``details`` payload; raw exception messages are never returned.
"""

from __future__ import annotations

from typing import Any, Optional


class ApiError(Exception):
    status_code = 500
    error = "internal_error"

    def __init__(self, message: Optional[str] = None, details: Any = None) -> None:
        super().__init__(message or self.error)
        self.details = details


class InvalidBody(ApiError):
    status_code = 400
    error = "invalid_body"


class Unauthenticated(ApiError):
    status_code = 401
    error = "unauthorized"


class Forbidden(ApiError):
    status_code = 403
    error = "forbidden"


class NotFound(ApiError):
    status_code = 404
    error = "not_found"


class MethodNotAllowed(ApiError):
    status_code = 405
    error = "method_not_allowed"


class Conflict(ApiError):
    status_code = 409
    error = "conflict"


ERROR_KEYS_BY_STATUS = {
    400: InvalidBody.error,
    401: Unauthenticated.error,
    403: Forbidden.error,
    404: NotFound.error,
    405: MethodNotAllowed.error,
    409: Conflict.error,
}


def error_key_for_status(status_code: int) -> str:
    return ERROR_KEYS_BY_STATUS.get(status_code, ApiError.error)


def flatten_validation_errors(errors: list[dict]) -> dict:
    """
    Collapse pydantic/FastAPI validation errors into ``formErrors`` (not tied
    to a field) and ``fieldErrors`` keyed by the first field of the location.
    """
    form_errors: list[str] = []
    field_errors: dict[str, list[str]] = {}
    for err in errors:
        loc = [part for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        message = err.get("msg", "Invalid value")
        if loc:
            field_errors.setdefault(str(loc[0]), []).append(message)
        else:
            form_errors.append(message)
    return {"formErrors": form_errors, "fieldErrors": field_errors}
