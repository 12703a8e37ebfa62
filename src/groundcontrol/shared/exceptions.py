"""
Application errors.

Each error carries the HTTP status the GraphQL layer reports for it. The
admin UI reads the JSON form of `to_payload()` out of the GraphQL error
message.
"""

import json
from typing import Any


class AppException(Exception):
    """Base class; subclasses set `status_code`, `code` and a default message."""

    status_code: int = 500
    code: str = "APP_ERROR"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"status": self.status_code, "message": self.message}

    def to_json(self) -> str:
        return json.dumps(self.to_payload())


class AuthenticationError(AppException):
    status_code = 401
    code = "AUTH_REQUIRED"
    default_message = "You must login to access that resource."


class TokenExpiredError(AuthenticationError):
    code = "TOKEN_EXPIRED"
    default_message = "Token has expired"


class InvalidTokenError(AuthenticationError):
    code = "INVALID_TOKEN"
    default_message = "Invalid token"


class AuthorizationError(AppException):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "You are not authorized to access that resource."


class ValidationError(AppException):
    """Bad input caught by our own checks, not by pydantic."""

    status_code = 400
    code = "VALIDATION_ERROR"


class CallAssignmentMismatchError(ValidationError):
    """A call survey that does not match the caller's assigned call."""

    code = "ASSIGNED_CALL_MISMATCH"


class NotFoundError(AppException):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class ExternalServiceError(AppException):
    """BSD or Mailgun failed in a way the caller has to see."""

    status_code = 500
    code = "EXTERNAL_SERVICE_ERROR"
