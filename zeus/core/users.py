"""User resource handler: bind, call one collaborator, map the result.

Every public method follows the same sequence:

1. bind+validate the raw request data (``ValidationFailed`` stops here, no
   collaborator is touched);
2. make exactly one call to the ``UserStore`` or ``PermissionResolver``;
3. map the returned entity/count to a ``Success``/``Acknowledgement`` or
   raise the matching ``ApiError``.

The handler holds no per-request state. Collaborators are passed in at
construction, so callers outside Flask can wire their own.
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Mapping, Optional, TypeVar

from zeus.core import validators
from zeus.core.envelope import (
    DELETED_DONE,
    UPDATE_DONE,
    Acknowledgement,
    CreatedId,
    PermissionList,
    Success,
    UserPage,
    UserResult,
)
from zeus.core.errors import CreateFailed, DeleteFailed, EditFailed, NoSuchUser, ValidationFailed
from zeus.core.store.base import PermissionResolver, UserStore
from zeus.core.store.exceptions import StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (event_type, target, success, details) -> None
AuditHook = Callable[[str, str, bool, dict], None]


def _no_audit(event_type: str, target: str, success: bool, details: dict) -> None:
    return None


class UserResourceHandler:
    """One method per user operation.

    Args:
        store: User persistence collaborator
        resolver: Permission resolution collaborator
        lenient_edits: Acknowledge single-user edits that changed no row
            instead of failing with EditFailed (historical behaviour)
        list_default_limit: Page size when the caller sends none
        list_max_limit: Upper bound applied to the requested page size
        audit_hook: Called after every mutation attempt that passed validation
    """

    def __init__(
        self,
        store: UserStore,
        resolver: PermissionResolver,
        *,
        lenient_edits: bool = False,
        list_default_limit: int = 20,
        list_max_limit: int = 1000,
        audit_hook: Optional[AuditHook] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.lenient_edits = lenient_edits
        self.list_default_limit = list_default_limit
        self.list_max_limit = list_max_limit
        self._audit = audit_hook or _no_audit

    # ─────────────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────────────

    def get(self, raw_id: Any) -> Success:
        lookup = self._bind(validators.bind_identity, raw_id)
        user = self.store.fetch_by_id(lookup.id)
        if user.id < 1:
            raise NoSuchUser()
        return Success(UserResult(user))

    def list(self, args: Mapping) -> Success:
        query = self._bind(
            validators.bind_list_query,
            args,
            default_limit=self.list_default_limit,
            max_limit=self.list_max_limit,
        )
        users, total = self.store.search(query)
        return Success(UserPage(result=tuple(users), total=total))

    def get_permissions(self, raw_id: Any) -> Success:
        lookup = self._bind(validators.bind_identity, raw_id)
        # Resolver failures are not translated; they surface as a generic error
        permissions = self.resolver.resolve(lookup.id)
        return Success(PermissionList(result=tuple(permissions)))

    # ─────────────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────────────

    def create(self, payload: Any) -> Success:
        data = self._bind(validators.bind_create, payload)
        details = {"username": data.username, "department": data.department}
        try:
            created = self.store.insert(data)
        except StoreError as exc:
            logger.warning("Create of '%s' failed in store: %s", data.username, exc)
            self._audit("user_create", data.username, False, details)
            raise CreateFailed()

        if created.id <= 0:
            self._audit("user_create", data.username, False, details)
            raise CreateFailed()

        logger.info("Created user '%s' (id=%d)", data.username, created.id)
        self._audit("user_create", str(created.id), True, details)
        return Success(CreatedId(created.id))

    def edit(self, raw_id: Any, payload: Any) -> Acknowledgement:
        data = self._bind(validators.bind_edit, raw_id, payload)
        affected = self.store.update_fields(data.id, dict(data.fields))
        return self._single_edit_result("user_edit", data.id, affected, {"fields": sorted(data.fields)})

    def edit_status(self, raw_id: Any, payload: Any) -> Acknowledgement:
        data = self._bind(validators.bind_status, raw_id, payload)
        affected = self.store.update_status(data.id, data.status)
        return self._single_edit_result("user_status", data.id, affected, {"status": int(data.status)})

    def edit_password(self, raw_id: Any, payload: Any) -> Acknowledgement:
        data = self._bind(validators.bind_password, raw_id, payload)
        affected = self.store.update_credential(data.id, data.password)
        return self._single_edit_result("user_password", data.id, affected, {})

    def delete(self, raw_id: Any) -> Acknowledgement:
        data = self._bind(validators.bind_delete, raw_id)
        affected = self.store.delete(data.id)
        if affected <= 0:
            self._audit("user_delete", str(data.id), False, {})
            raise DeleteFailed()

        logger.info("Deleted user id=%d", data.id)
        self._audit("user_delete", str(data.id), True, {})
        return Acknowledgement(DELETED_DONE)

    def update_department(self, payload: Any) -> Acknowledgement:
        """Move every listed user to one department, all or nothing.

        Any store failure is reported as EditFailed without saying which ids
        would have succeeded.
        """
        data = self._bind(validators.bind_department_move, payload)
        target = ",".join(str(user_id) for user_id in data.ids)
        details = {"department": data.department, "count": len(data.ids)}
        try:
            self.store.move_department(data.ids, data.department)
        except StoreError as exc:
            logger.warning("Department move of [%s] to %r failed: %s", target, data.department, exc)
            self._audit("user_move_department", target, False, details)
            raise EditFailed()

        logger.info("Moved %d user(s) to department %r", len(data.ids), data.department)
        self._audit("user_move_department", target, True, details)
        return Acknowledgement(UPDATE_DONE)

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _bind(self, binder: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return binder(*args, **kwargs)
        except ValidationFailed as exc:
            logger.debug("Rejected by %s: %s", binder.__name__, exc.message)
            raise

    def _single_edit_result(self, event_type: str, user_id: int, affected: int, details: dict) -> Acknowledgement:
        if affected <= 0:
            if not self.lenient_edits:
                self._audit(event_type, str(user_id), False, details)
                raise EditFailed()
            logger.warning("%s on id=%d changed no rows; acknowledged (lenient edits)", event_type, user_id)
            self._audit(event_type, str(user_id), False, details)
            return Acknowledgement(UPDATE_DONE)

        logger.info("%s applied to id=%d", event_type, user_id)
        self._audit(event_type, str(user_id), True, details)
        return Acknowledgement(UPDATE_DONE)
