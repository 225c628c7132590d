"""Error vocabulary shared by the user handler and the HTTP layer.

Every failure a handler can produce is an ``ApiError`` subclass carrying the
envelope ``code``, the HTTP status and a user-facing message. The Flask
blueprint renders them through ``zeus.core.envelope.Failure``.
"""
from __future__ import annotations
from typing import Any, Optional

SUCCESS_CODE = 200
GENERIC_ERROR_CODE = 500


class ApiError(Exception):
    """Base class for failures surfaced through the response envelope."""

    code: int = GENERIC_ERROR_CODE
    status: int = 500
    default_message: str = "internal error"

    def __init__(self, message: Optional[str] = None, detail: Optional[dict[str, Any]] = None):
        self.message = message or self.default_message
        self.detail = detail or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert to the failure envelope shape."""
        return {"code": self.code, "msg": self.message}


class ValidationFailed(ApiError):
    """Malformed or missing input; raised before any collaborator call."""

    code = 10001
    status = 400
    default_message = "validation failed"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class NoSuchUser(ApiError):
    code = 10004
    status = 404
    default_message = "user does not exist"


class CreateFailed(ApiError):
    code = 10005
    status = 400
    default_message = "create failed"


class EditFailed(ApiError):
    code = 10006
    status = 400
    default_message = "update failed"


class DeleteFailed(ApiError):
    code = 10007
    status = 400
    default_message = "delete failed"


ERROR_KINDS: tuple[type[ApiError], ...] = (
    ValidationFailed,
    NoSuchUser,
    CreateFailed,
    EditFailed,
    DeleteFailed,
)
