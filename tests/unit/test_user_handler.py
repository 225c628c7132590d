"""Dispatch tests for UserResourceHandler with mocked collaborators."""
from unittest.mock import MagicMock

import pytest

from zeus.core.dto import ListQuery
from zeus.core.envelope import Acknowledgement, CreatedId, PermissionList, Success, UserPage, UserResult
from zeus.core.errors import CreateFailed, DeleteFailed, EditFailed, NoSuchUser, ValidationFailed
from zeus.core.models import ABSENT_USER, User, UserStatus
from zeus.core.store import DepartmentNotFoundError, StoreError
from zeus.core.users import UserResourceHandler


@pytest.fixture()
def store():
    return MagicMock()


@pytest.fixture()
def resolver():
    return MagicMock()


@pytest.fixture()
def audit():
    return MagicMock()


@pytest.fixture()
def handler(store, resolver, audit):
    return UserResourceHandler(store, resolver, audit_hook=audit)


VALID_CREATE = {"username": "dave", "password": "Passw0rd1", "department": "eng"}


# ─────────────────────────────────────────────────────────────────────────────
# Validation short-circuits before any collaborator call
# ─────────────────────────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "call",
    [
        lambda h: h.get("abc"),
        lambda h: h.list({"limit": "many"}),
        lambda h: h.get_permissions("-3"),
        lambda h: h.create({"username": "dave"}),
        lambda h: h.edit("1", {}),
        lambda h: h.edit_status("1", {"status": "on"}),
        lambda h: h.edit_password("1", {"password": "abc"}),
        lambda h: h.delete("x"),
        lambda h: h.update_department({"ids": "1,,2", "department": "eng"}),
    ],
)
def test_validation_failure_never_reaches_collaborators(handler, store, resolver, audit, call):
    with pytest.raises(ValidationFailed):
        call(handler)

    assert store.method_calls == []
    assert resolver.method_calls == []
    audit.assert_not_called()


# ─────────────────────────────────────────────────────────────────────────────
# Reads
# ─────────────────────────────────────────────────────────────────────────────
def test_get_returns_user(handler, store):
    user = User(id=5, username="eve")
    store.fetch_by_id.return_value = user

    envelope = handler.get("5")

    assert envelope == Success(UserResult(user))
    store.fetch_by_id.assert_called_once_with(5)


def test_get_absent_user_raises_no_such_user(handler, store):
    store.fetch_by_id.return_value = ABSENT_USER

    with pytest.raises(NoSuchUser):
        handler.get("0")

    store.fetch_by_id.assert_called_once_with(0)


def test_list_passes_clamped_query(store, resolver):
    handler = UserResourceHandler(store, resolver, list_default_limit=10, list_max_limit=50)
    store.search.return_value = ([User(id=1, username="alice")], 11)

    envelope = handler.list({"limit": "500", "offset": "-1", "q": " ali "})

    store.search.assert_called_once_with(ListQuery(limit=50, offset=0, q="ali"))
    assert isinstance(envelope.data, UserPage)
    assert envelope.data.total == 11


def test_list_uses_default_limit(store, resolver):
    handler = UserResourceHandler(store, resolver, list_default_limit=10)
    store.search.return_value = ([], 0)

    handler.list({})

    assert store.search.call_args.args[0].limit == 10


def test_get_permissions(handler, resolver):
    resolver.resolve.return_value = ["users:read"]

    envelope = handler.get_permissions("2")

    assert envelope == Success(PermissionList(result=("users:read",)))
    resolver.resolve.assert_called_once_with(2)


def test_get_permissions_propagates_resolver_failure(handler, resolver):
    resolver.resolve.side_effect = RuntimeError("directory down")

    with pytest.raises(RuntimeError):
        handler.get_permissions("2")


# ─────────────────────────────────────────────────────────────────────────────
# Create
# ─────────────────────────────────────────────────────────────────────────────
def test_create_returns_store_id(handler, store, audit):
    store.insert.return_value = User(id=42, username="dave")

    envelope = handler.create(VALID_CREATE)

    assert envelope == Success(CreatedId(42))
    assert envelope.to_dict() == {"code": 200, "data": {"id": 42}}
    inserted = store.insert.call_args.args[0]
    assert inserted.username == "dave"
    assert inserted.department == "eng"
    audit.assert_called_once_with("user_create", "42", True, {"username": "dave", "department": "eng"})


def test_create_absent_result_raises_create_failed(handler, store, audit):
    store.insert.return_value = ABSENT_USER

    with pytest.raises(CreateFailed):
        handler.create(VALID_CREATE)

    assert audit.call_args.args[2] is False


def test_create_store_error_raises_create_failed(handler, store):
    store.insert.side_effect = StoreError("timeout")

    with pytest.raises(CreateFailed):
        handler.create(VALID_CREATE)


# ─────────────────────────────────────────────────────────────────────────────
# Single-user edits
# ─────────────────────────────────────────────────────────────────────────────
def test_edit_passes_only_sent_fields(handler, store):
    store.update_fields.return_value = 1

    envelope = handler.edit("3", {"realname": "Carol", "mobile": "+33 612 345 678"})

    assert envelope == Acknowledgement("update done")
    store.update_fields.assert_called_once_with(3, {"realname": "Carol", "mobile": "+33612345678"})


@pytest.mark.parametrize(
    "call,method",
    [
        (lambda h: h.edit("9", {"title": "CTO"}), "update_fields"),
        (lambda h: h.edit_status("9", {"status": 1}), "update_status"),
        (lambda h: h.edit_password("9", {"password": "Passw0rd99"}), "update_credential"),
    ],
)
def test_zero_affected_edit_is_edit_failed(handler, store, call, method):
    getattr(store, method).return_value = 0

    with pytest.raises(EditFailed):
        call(handler)


@pytest.mark.parametrize(
    "call,method",
    [
        (lambda h: h.edit("9", {"title": "CTO"}), "update_fields"),
        (lambda h: h.edit_status("9", {"status": 1}), "update_status"),
        (lambda h: h.edit_password("9", {"password": "Passw0rd99"}), "update_credential"),
    ],
)
def test_zero_affected_edit_acknowledged_when_lenient(store, resolver, call, method):
    handler = UserResourceHandler(store, resolver, lenient_edits=True)
    getattr(store, method).return_value = 0

    assert call(handler) == Acknowledgement("update done")


def test_edit_status_passes_enum(handler, store):
    store.update_status.return_value = 1

    handler.edit_status("4", {"status": "0"})

    store.update_status.assert_called_once_with(4, UserStatus.DISABLED)


def test_edit_password_keeps_password_out_of_audit(handler, store, audit):
    store.update_credential.return_value = 1

    handler.edit_password("4", {"password": "Passw0rd99"})

    store.update_credential.assert_called_once_with(4, "Passw0rd99")
    event_type, target, success, details = audit.call_args.args
    assert (event_type, target, success) == ("user_password", "4", True)
    assert "Passw0rd99" not in repr(details)


# ─────────────────────────────────────────────────────────────────────────────
# Delete
# ─────────────────────────────────────────────────────────────────────────────
def test_delete_acknowledges(handler, store):
    store.delete.return_value = 1

    assert handler.delete("8") == Acknowledgement("deleted done")
    store.delete.assert_called_once_with(8)


def test_delete_zero_affected_raises(handler, store):
    store.delete.return_value = 0

    with pytest.raises(DeleteFailed):
        handler.delete("8")


# ─────────────────────────────────────────────────────────────────────────────
# Department move
# ─────────────────────────────────────────────────────────────────────────────
def test_update_department_moves_deduplicated_ids(handler, store, audit):
    envelope = handler.update_department({"ids": "1,2,1", "department": "eng"})

    assert envelope == Acknowledgement("update done")
    store.move_department.assert_called_once_with((1, 2), "eng")
    audit.assert_called_once_with("user_move_department", "1,2", True, {"department": "eng", "count": 2})


def test_update_department_numeric_department(handler, store):
    handler.update_department({"ids": [4], "department": "12"})

    store.move_department.assert_called_once_with((4,), 12)


def test_update_department_store_error_is_edit_failed(handler, store, audit):
    store.move_department.side_effect = DepartmentNotFoundError("no such department")

    with pytest.raises(EditFailed):
        handler.update_department({"ids": "1,2", "department": "hr"})

    assert audit.call_args.args[2] is False
