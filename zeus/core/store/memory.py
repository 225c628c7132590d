"""In-process user store and permission resolver.

Used in demo mode and by the test-suite. All state sits behind one re-entrant
lock, so a department move is applied to every user or to none even under a
threaded server.
"""
from __future__ import annotations
import datetime
import logging
import threading
from typing import Iterable, Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from zeus.core.dto import ListQuery, UserCreateInput
from zeus.core.models import ABSENT_USER, DepartmentRef, Sex, User, UserStatus
from .exceptions import DepartmentNotFoundError, UserNotFoundError

logger = logging.getLogger(__name__)


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class MemoryUserStore:
    """Thread-safe dictionary-backed implementation of ``UserStore``.

    Args:
        departments: Known department ids/codes. ``None`` accepts any department.
    """

    def __init__(self, departments: Optional[Iterable[DepartmentRef]] = None):
        self._lock = threading.RLock()
        self._users: dict[int, User] = {}
        self._next_id = 1
        self._departments = set(departments) if departments is not None else None

    # ─────────────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────────────

    def fetch_by_id(self, user_id: int) -> User:
        with self._lock:
            return self._users.get(user_id, ABSENT_USER)

    def search(self, query: ListQuery) -> tuple[list[User], int]:
        with self._lock:
            users = list(self._users.values())

        if query.q:
            needle = query.q.lower()
            users = [
                user for user in users
                if any(needle in value.lower() for value in (user.username, user.realname, user.email, user.mobile))
            ]
        if query.department is not None:
            users = [user for user in users if user.department == query.department]
        if query.status is not None:
            users = [user for user in users if user.status == query.status]

        key = query.order.lstrip("-")
        users.sort(key=lambda user: (getattr(user, key) is None, getattr(user, key), user.id),
                   reverse=query.order.startswith("-"))

        total = len(users)
        return users[query.offset:query.offset + query.limit], total

    def verify_password(self, user_id: int, password: str) -> bool:
        user = self.fetch_by_id(user_id)
        return user.exists and check_password_hash(user.password_hash, password)

    # ─────────────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────────────

    def insert(self, data: UserCreateInput) -> User:
        with self._lock:
            if self._username_taken(data.username):
                logger.info("Create rejected: username '%s' already exists", data.username)
                return ABSENT_USER
            if not self._department_known(data.department):
                logger.info("Create rejected: unknown department %r", data.department)
                return ABSENT_USER

            now = _now()
            user = User(
                id=self._next_id,
                username=data.username,
                realname=data.realname,
                mobile=data.mobile,
                email=data.email,
                sex=data.sex,
                department=data.department,
                title=data.title,
                status=data.status,
                roles=data.roles,
                created_at=now,
                updated_at=now,
                password_hash=generate_password_hash(data.password),
            )
            self._users[user.id] = user
            self._next_id += 1
            return user

    def update_fields(self, user_id: int, fields: dict) -> int:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return 0
            if "username" in fields and self._username_taken(fields["username"], exclude_id=user_id):
                logger.info("Edit rejected: username '%s' already exists", fields["username"])
                return 0
            if "department" in fields and not self._department_known(fields["department"]):
                logger.info("Edit rejected: unknown department %r", fields["department"])
                return 0
            self._users[user_id] = user.with_changes(updated_at=_now(), **fields)
            return 1

    def update_status(self, user_id: int, status: UserStatus) -> int:
        return self._touch(user_id, status=status)

    def update_credential(self, user_id: int, password: str) -> int:
        return self._touch(user_id, password_hash=generate_password_hash(password))

    def delete(self, user_id: int) -> int:
        with self._lock:
            return 1 if self._users.pop(user_id, None) is not None else 0

    def move_department(self, user_ids: Sequence[int], department: DepartmentRef) -> None:
        with self._lock:
            if not self._department_known(department):
                raise DepartmentNotFoundError(f"department {department!r} does not exist")
            missing = [user_id for user_id in user_ids if user_id not in self._users]
            if missing:
                raise UserNotFoundError(f"users not found: {', '.join(str(i) for i in missing)}")

            now = _now()
            for user_id in user_ids:
                self._users[user_id] = self._users[user_id].with_changes(department=department, updated_at=now)

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def add_department(self, department: DepartmentRef) -> None:
        with self._lock:
            if self._departments is None:
                self._departments = set()
            self._departments.add(department)

    def _touch(self, user_id: int, **changes) -> int:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return 0
            self._users[user_id] = user.with_changes(updated_at=_now(), **changes)
            return 1

    def _username_taken(self, username: str, exclude_id: int = 0) -> bool:
        return any(user.username == username and user.id != exclude_id for user in self._users.values())

    def _department_known(self, department: DepartmentRef) -> bool:
        return self._departments is None or department in self._departments


class MemoryPermissionResolver:
    """Resolve permissions through the roles held by a user.

    Args:
        store: Store used to look up the user's roles
        role_permissions: Mapping of role id to permission codes
    """

    def __init__(self, store: MemoryUserStore, role_permissions: Optional[dict[int, Iterable[str]]] = None):
        self._store = store
        self._role_permissions = {role: tuple(perms) for role, perms in (role_permissions or {}).items()}

    def resolve(self, user_id: int) -> list[str]:
        user = self._store.fetch_by_id(user_id)
        if not user.exists:
            return []
        permissions: set[str] = set()
        for role in user.roles:
            permissions.update(self._role_permissions.get(role, ()))
        return sorted(permissions)


# ─────────────────────────────────────────────────────────────────────────────
# Demo data
# ─────────────────────────────────────────────────────────────────────────────

DEMO_DEPARTMENTS: tuple[DepartmentRef, ...] = ("eng", "ops", "sales")

DEMO_ROLE_PERMISSIONS: dict[int, tuple[str, ...]] = {
    1: ("users:read", "users:write", "users:delete", "departments:write"),
    2: ("users:read", "users:write"),
    3: ("users:read",),
}


def seed_demo_data(store: MemoryUserStore, password: str = "Demo12345") -> list[User]:
    """Insert a handful of demo users; returns the created users."""
    for department in DEMO_DEPARTMENTS:
        store.add_department(department)

    seeds = [
        UserCreateInput(username="alice", password=password, department="eng", realname="Alice Wonder",
                        email="alice@example.com", sex=Sex.FEMALE, title="Engineer", roles=(1,)),
        UserCreateInput(username="bob", password=password, department="ops", realname="Bob Builder",
                        email="bob@example.com", sex=Sex.MALE, title="Operator", roles=(2,)),
        UserCreateInput(username="carol", password=password, department="sales", realname="Carol Singer",
                        email="carol@example.com", sex=Sex.FEMALE, roles=(3,), status=UserStatus.DISABLED),
    ]
    created = [store.insert(seed) for seed in seeds]
    logger.info("[demo-mode] Seeded %d users", len([user for user in created if user.exists]))
    return created
