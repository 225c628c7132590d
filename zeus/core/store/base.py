"""Collaborator interfaces the user handler depends on.

Both protocols are satisfied by the in-memory implementation (demo and tests)
and by the remote implementation that talks to a user service over HTTP.
"""
from __future__ import annotations
from typing import Protocol, Sequence, runtime_checkable

from zeus.core.dto import ListQuery, UserCreateInput
from zeus.core.models import DepartmentRef, User, UserStatus


@runtime_checkable
class UserStore(Protocol):
    """Persistence for users.

    Mutations return the affected-row count; lookups return ``ABSENT_USER``
    (id 0) rather than raising when nothing matches.
    """

    def fetch_by_id(self, user_id: int) -> User: ...

    def search(self, query: ListQuery) -> tuple[list[User], int]: ...

    def insert(self, data: UserCreateInput) -> User: ...

    def update_fields(self, user_id: int, fields: dict) -> int: ...

    def update_status(self, user_id: int, status: UserStatus) -> int: ...

    def update_credential(self, user_id: int, password: str) -> int: ...

    def delete(self, user_id: int) -> int: ...

    def move_department(self, user_ids: Sequence[int], department: DepartmentRef) -> None:
        """Reassign every user or none; raise ``StoreError`` on any failure."""
        ...


@runtime_checkable
class PermissionResolver(Protocol):
    def resolve(self, user_id: int) -> list[str]: ...
