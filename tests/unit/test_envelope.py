import datetime

import pytest

from zeus.core.envelope import (
    Acknowledgement,
    CreatedId,
    Failure,
    PermissionList,
    Success,
    UserPage,
    UserResult,
    http_status,
)
from zeus.core.errors import ERROR_KINDS, CreateFailed, DeleteFailed, EditFailed, NoSuchUser, ValidationFailed
from zeus.core.models import User


def test_success_wraps_payload():
    created = datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc)
    user = User(id=1, username="alice", department="eng", roles=(1,), created_at=created, password_hash="x")

    body = Success(UserResult(user)).to_dict()

    assert body["code"] == 200
    assert body["data"]["result"]["created_at"] == "2024-01-02T03:04:05+00:00"
    assert body["data"]["result"]["roles"] == [1]
    assert "password_hash" not in body["data"]["result"]


def test_page_and_permissions_shapes():
    page = Success(UserPage(result=(User(id=2, username="bob"),), total=9)).to_dict()
    perms = Success(PermissionList(result=("users:read",))).to_dict()

    assert page["data"]["total"] == 9
    assert [user["id"] for user in page["data"]["result"]] == [2]
    assert perms == {"code": 200, "data": {"result": ["users:read"]}}
    assert Success(CreatedId(42)).to_dict() == {"code": 200, "data": {"id": 42}}


def test_acknowledgement_shape():
    assert Acknowledgement().to_dict() == {"code": 200, "msg": "update done"}
    assert http_status(Acknowledgement("deleted done")) == 200


@pytest.mark.parametrize(
    "error,code,status",
    [
        (ValidationFailed("ids is required", field="ids"), 10001, 400),
        (NoSuchUser(), 10004, 404),
        (CreateFailed(), 10005, 400),
        (EditFailed(), 10006, 400),
        (DeleteFailed(), 10007, 400),
    ],
)
def test_failure_from_error(error, code, status):
    failure = Failure.from_error(error)

    assert failure.to_dict() == {"code": code, "msg": error.message}
    assert failure.to_dict() == error.to_dict()
    assert http_status(failure) == status


def test_error_kinds_have_distinct_codes():
    codes = [kind.code for kind in ERROR_KINDS]

    assert len(codes) == len(set(codes))


def test_validation_failed_keeps_field():
    error = ValidationFailed("bad", field="department")

    assert error.field == "department"
    assert error.detail == {"field": "department"}
    assert str(error) == "bad"
