"""Typed response envelope.

A request ends in exactly one of three shapes:

    Success(data)       -> {"code": 200, "data": {...}}
    Acknowledgement     -> {"code": 200, "msg": "update done"}
    Failure             -> {"code": <kind>, "msg": "..."}

The payload carried by ``Success`` is one of the per-operation result types
below, so the set of response bodies is closed.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Union

from zeus.core.errors import SUCCESS_CODE, ApiError
from zeus.core.models import User

UPDATE_DONE = "update done"
DELETED_DONE = "deleted done"


@dataclass(frozen=True)
class UserResult:
    """Single user (Get)."""
    result: User

    def to_dict(self) -> dict[str, Any]:
        return {"result": self.result.to_dict()}


@dataclass(frozen=True)
class UserPage:
    """One page of users plus the unpaginated total (List)."""
    result: tuple[User, ...] = ()
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"result": [user.to_dict() for user in self.result], "total": self.total}


@dataclass(frozen=True)
class CreatedId:
    """Identifier assigned by the store (Create)."""
    id: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id}


@dataclass(frozen=True)
class PermissionList:
    """Resolved permissions of a user (GetUserPermissions)."""
    result: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {"result": list(self.result)}


Payload = Union[UserResult, UserPage, CreatedId, PermissionList]


@dataclass(frozen=True)
class Success:
    data: Payload

    def to_dict(self) -> dict[str, Any]:
        return {"code": SUCCESS_CODE, "data": self.data.to_dict()}


@dataclass(frozen=True)
class Acknowledgement:
    msg: str = UPDATE_DONE

    def to_dict(self) -> dict[str, Any]:
        return {"code": SUCCESS_CODE, "msg": self.msg}


@dataclass(frozen=True)
class Failure:
    code: int
    msg: str
    status: int = 400

    @classmethod
    def from_error(cls, error: ApiError) -> "Failure":
        return cls(code=error.code, msg=error.message, status=error.status)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "msg": self.msg}


Envelope = Union[Success, Acknowledgement, Failure]


def http_status(envelope: Envelope) -> int:
    """HTTP status that accompanies an envelope."""
    if isinstance(envelope, Failure):
        return envelope.status
    return 200
