"""User store collaborators.

Usage:
    from zeus.core.store import MemoryUserStore, MemoryPermissionResolver

    store = MemoryUserStore()
    resolver = MemoryPermissionResolver(store, {1: ["users:read"]})
"""
from .base import PermissionResolver, UserStore
from .exceptions import (
    DepartmentNotFoundError,
    ServiceAPIError,
    StoreError,
    UserNotFoundError,
)
from .memory import (
    DEMO_ROLE_PERMISSIONS,
    MemoryPermissionResolver,
    MemoryUserStore,
    seed_demo_data,
)
from .remote import REQUEST_TIMEOUT, RemotePermissionResolver, RemoteUserStore, ServiceClient

__all__ = [
    "UserStore",
    "PermissionResolver",
    "StoreError",
    "ServiceAPIError",
    "UserNotFoundError",
    "DepartmentNotFoundError",
    "MemoryUserStore",
    "MemoryPermissionResolver",
    "DEMO_ROLE_PERMISSIONS",
    "seed_demo_data",
    "ServiceClient",
    "RemoteUserStore",
    "RemotePermissionResolver",
    "REQUEST_TIMEOUT",
]
