"""
Error taxonomy shared by services and routes.

Services raise these; the handler installed by create_app turns each one
into a JSON response of the form {"error": code, "detail": message}.
"""
from typing import Optional


class LockboxError(Exception):
    """Base exception: carries an HTTP status and a stable machine-readable code."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.code.replace("_", " ").capitalize()
        super().__init__(self.message)


class BadRequest(LockboxError):
    status_code = 400
    code = "bad_request"


class Unauthorized(LockboxError):
    status_code = 401
    code = "unauthorized"


class Forbidden(LockboxError):
    status_code = 403
    code = "forbidden"


class NotFound(LockboxError):
    status_code = 404
    code = "not_found"


class Conflict(LockboxError):
    status_code = 409
    code = "conflict"


class TooManyRequests(LockboxError):
    status_code = 429
    code = "too_many_requests"


class Internal(LockboxError):
    status_code = 500
    code = "internal_error"
