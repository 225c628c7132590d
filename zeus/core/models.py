"""User entity as returned by the store."""
from __future__ import annotations
import datetime
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, Optional, Union

# Departments are referenced by numeric id or by a short code such as "eng"
DepartmentRef = Union[int, str]


class UserStatus(IntEnum):
    DISABLED = 0
    ENABLED = 1


class Sex(IntEnum):
    UNKNOWN = 0
    MALE = 1
    FEMALE = 2


@dataclass(frozen=True)
class User:
    """Persisted user. ``id < 1`` means the lookup found nothing."""

    id: int = 0
    username: str = ""
    realname: str = ""
    mobile: str = ""
    email: str = ""
    sex: Sex = Sex.UNKNOWN
    department: Optional[DepartmentRef] = None
    title: str = ""
    status: UserStatus = UserStatus.ENABLED
    roles: tuple[int, ...] = ()
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None
    password_hash: str = field(default="", repr=False, compare=False)

    @property
    def exists(self) -> bool:
        return self.id >= 1

    def with_changes(self, **changes: Any) -> "User":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the API; the password hash never leaves the store."""
        return {
            "id": self.id,
            "username": self.username,
            "realname": self.realname,
            "mobile": self.mobile,
            "email": self.email,
            "sex": int(self.sex),
            "department": self.department,
            "title": self.title,
            "status": int(self.status),
            "roles": list(self.roles),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        """Build a user from a store/service representation."""
        return cls(
            id=int(data.get("id") or 0),
            username=data.get("username") or "",
            realname=data.get("realname") or "",
            mobile=data.get("mobile") or "",
            email=data.get("email") or "",
            sex=Sex(int(data.get("sex") or 0)),
            department=data.get("department"),
            title=data.get("title") or "",
            status=UserStatus.ENABLED if data.get("status") is None else UserStatus(int(data["status"])),
            roles=tuple(int(role) for role in data.get("roles") or ()),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )


ABSENT_USER = User()


def _parse_timestamp(value: Any) -> Optional[datetime.datetime]:
    if not value:
        return None
    if isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
