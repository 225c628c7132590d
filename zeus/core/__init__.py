"""Core Business Logic Module

User administration logic, independent of the HTTP framework.

Architecture:
    - Pure Python (no Flask imports in core logic)
    - Testable without HTTP mocking
    - Collaborators (store, permission resolver) injected at construction

Module Structure:
    - store/        : UserStore / PermissionResolver protocols, in-memory and
                      remote (user service over HTTP) implementations
    - users.py      : UserResourceHandler, one method per user operation
    - validators.py : Bind+validate raw request data into operation inputs
    - dto.py        : Operation input types
    - models.py     : User entity
    - envelope.py   : Success / Acknowledgement / Failure response shapes
    - errors.py     : ApiError taxonomy (ValidationFailed, NoSuchUser, ...)
    - audit.py      : Signed JSONL audit trail of user mutations

Usage Pattern:
    Import explicitly when needed:
        from zeus.core.users import UserResourceHandler
        from zeus.core.store import MemoryUserStore, MemoryPermissionResolver

        store = MemoryUserStore()
        handler = UserResourceHandler(store, MemoryPermissionResolver(store))
        envelope = handler.get("1")
"""
