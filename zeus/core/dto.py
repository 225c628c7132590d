"""Operation inputs produced by the validators.

Each value is built for one request, consumed by exactly one handler method
and then dropped.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional

from zeus.core.models import DepartmentRef, Sex, UserStatus


@dataclass(frozen=True)
class IdentityLookup:
    id: int


@dataclass(frozen=True)
class ListQuery:
    limit: int = 20
    offset: int = 0
    q: Optional[str] = None
    department: Optional[DepartmentRef] = None
    status: Optional[UserStatus] = None
    order: str = "-id"


@dataclass(frozen=True)
class UserCreateInput:
    username: str
    password: str
    department: DepartmentRef
    mobile: str = ""
    email: str = ""
    realname: str = ""
    sex: Sex = Sex.UNKNOWN
    title: str = ""
    status: UserStatus = UserStatus.ENABLED
    roles: tuple[int, ...] = ()


@dataclass(frozen=True)
class UserEditInput:
    """Identifier plus only the fields the caller sent."""
    id: int
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UserStatusEditInput:
    id: int
    status: UserStatus


@dataclass(frozen=True)
class UserPasswordEditInput:
    id: int
    password: str = field(repr=False)


@dataclass(frozen=True)
class UserDeleteInput:
    id: int


@dataclass(frozen=True)
class DepartmentMoveInput:
    ids: tuple[int, ...]
    department: DepartmentRef
