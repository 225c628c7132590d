"""Bind and validate raw request data into operation inputs.

Every ``bind_*`` function either returns a fully checked input value from
``zeus.core.dto`` or raises ``ValidationFailed``. Nothing here talks to a
store, so a rejected request never reaches a collaborator.
"""
from __future__ import annotations
import re
from collections.abc import Mapping
from typing import Any, Optional

from zeus.core.dto import (
    DepartmentMoveInput,
    IdentityLookup,
    ListQuery,
    UserCreateInput,
    UserDeleteInput,
    UserEditInput,
    UserPasswordEditInput,
    UserStatusEditInput,
)
from zeus.core.errors import ValidationFailed
from zeus.core.models import DepartmentRef, Sex, UserStatus

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 32
EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 64
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 64
SEARCH_MAX_LENGTH = 64

MOBILE_PATTERN = re.compile(r"^\+?[0-9]{6,20}$")
DEPARTMENT_CODE_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]{0,63}$")
ORDER_FIELDS = ("id", "-id", "username", "-username", "created_at", "-created_at")

# Fields a partial edit may carry
EDITABLE_FIELDS = ("username", "mobile", "email", "realname", "sex", "department", "title", "roles")


# ─────────────────────────────────────────────────────────────────────────────
# Field validators
# ─────────────────────────────────────────────────────────────────────────────

def normalize_username(raw: Any) -> str:
    """Normalize and validate username.

    Args:
        raw: Raw username input

    Returns:
        Normalized username

    Raises:
        ValidationFailed: If username is invalid
    """
    if not isinstance(raw, str):
        raise ValidationFailed("username must be a string", field="username")
    normalized = "".join(char for char in raw.lower().strip() if char.isalnum() or char in {".", "-", "_"})

    if len(normalized) < USERNAME_MIN_LENGTH:
        raise ValidationFailed(f"username must be at least {USERNAME_MIN_LENGTH} characters", field="username")
    if len(normalized) > USERNAME_MAX_LENGTH:
        raise ValidationFailed(f"username must not exceed {USERNAME_MAX_LENGTH} characters", field="username")
    if normalized[0] in {".", "-", "_"} or normalized[-1] in {".", "-", "_"}:
        raise ValidationFailed("username cannot start or end with special characters", field="username")

    return normalized


def validate_email(email: Any) -> str:
    """Validate email address; empty string means "not provided"."""
    if not isinstance(email, str):
        raise ValidationFailed("email must be a string", field="email")
    email = email.strip().lower()
    if not email:
        return ""
    if "@" not in email:
        raise ValidationFailed("invalid email format", field="email")

    local, domain = email.rsplit("@", 1)
    if not local or not domain or "." not in domain:
        raise ValidationFailed("invalid email format", field="email")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValidationFailed("email exceeds maximum length", field="email")

    return email


def validate_name(name: Any, field: str) -> str:
    """Validate free-text name fields (realname, title).

    Args:
        name: Name to validate
        field: Field name for error messages

    Returns:
        Trimmed name, possibly empty
    """
    if not isinstance(name, str):
        raise ValidationFailed(f"{field} must be a string", field=field)
    name = name.strip()
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationFailed(f"{field} exceeds maximum length", field=field)

    # Prevent injection attacks
    if any(char in name for char in "<>\"'`;&|$"):
        raise ValidationFailed(f"{field} contains invalid characters", field=field)

    return name


def validate_mobile(mobile: Any) -> str:
    if isinstance(mobile, int) and not isinstance(mobile, bool):
        mobile = str(mobile)
    if not isinstance(mobile, str):
        raise ValidationFailed("mobile must be a string", field="mobile")
    mobile = mobile.strip().replace(" ", "").replace("-", "")
    if mobile and not MOBILE_PATTERN.match(mobile):
        raise ValidationFailed("mobile must be 6-20 digits, optionally prefixed with +", field="mobile")
    return mobile


def validate_password(password: Any) -> str:
    """Check password strength; hashing is the store's job."""
    if not isinstance(password, str) or not password:
        raise ValidationFailed("password is required", field="password")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationFailed(f"password must be at least {PASSWORD_MIN_LENGTH} characters", field="password")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValidationFailed(f"password must not exceed {PASSWORD_MAX_LENGTH} characters", field="password")
    if not any(char.isalpha() for char in password) or not any(char.isdigit() for char in password):
        raise ValidationFailed("password must contain letters and digits", field="password")
    return password


def parse_int(raw: Any, field: str, minimum: Optional[int] = None) -> int:
    """Parse an integer from JSON or a transport string; booleans are rejected."""
    if isinstance(raw, bool):
        raise ValidationFailed(f"{field} must be an integer", field=field)
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and re.fullmatch(r"-?[0-9]+", raw.strip()):
        value = int(raw.strip())
    else:
        raise ValidationFailed(f"{field} must be an integer", field=field)
    if minimum is not None and value < minimum:
        raise ValidationFailed(f"{field} must be >= {minimum}", field=field)
    return value


def parse_identifier(raw: Any, field: str = "id") -> int:
    """Parse a path identifier.

    Zero is accepted here: it is a well-formed identifier that simply resolves
    to no user, which the handler reports as NoSuchUser.
    """
    return parse_int(raw, field, minimum=0)


def parse_department(raw: Any) -> DepartmentRef:
    """Department is a positive id or a short code such as ``eng``."""
    if isinstance(raw, str) and raw.strip() and not re.fullmatch(r"-?[0-9]+", raw.strip()):
        code = raw.strip()
        if not DEPARTMENT_CODE_PATTERN.match(code):
            raise ValidationFailed("department code is malformed", field="department")
        return code
    if raw is None or raw == "":
        raise ValidationFailed("department is required", field="department")
    return parse_int(raw, "department", minimum=1)


def parse_status(raw: Any) -> UserStatus:
    value = parse_int(raw, "status")
    try:
        return UserStatus(value)
    except ValueError:
        raise ValidationFailed("status must be 0 (disabled) or 1 (enabled)", field="status")


def parse_sex(raw: Any) -> Sex:
    value = parse_int(raw, "sex")
    try:
        return Sex(value)
    except ValueError:
        raise ValidationFailed("sex must be 0, 1 or 2", field="sex")


def parse_roles(raw: Any) -> tuple[int, ...]:
    """Role ids as a JSON list or a comma-joined string."""
    if raw is None or raw == "":
        return ()
    if isinstance(raw, str):
        tokens: list[Any] = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        tokens = list(raw)
    else:
        raise ValidationFailed("roles must be a list of role ids", field="roles")
    roles: list[int] = []
    for token in tokens:
        role_id = parse_int(token, "roles", minimum=1)
        if role_id not in roles:
            roles.append(role_id)
    return tuple(roles)


def parse_id_list(raw: Any, field: str = "ids") -> tuple[int, ...]:
    """Split ``"1,2,3"`` (or a JSON list) into positive identifiers.

    Empty and malformed tokens are rejected instead of skipped. Duplicates
    collapse, keeping first-seen order.
    """
    if isinstance(raw, str):
        if not raw.strip():
            raise ValidationFailed(f"{field} is required", field=field)
        tokens: list[Any] = [token.strip() for token in raw.split(",")]
    elif isinstance(raw, (list, tuple)):
        if not raw:
            raise ValidationFailed(f"{field} is required", field=field)
        tokens = list(raw)
    elif raw is None:
        raise ValidationFailed(f"{field} is required", field=field)
    else:
        raise ValidationFailed(f"{field} must be a comma-separated list of ids", field=field)

    ids: list[int] = []
    for position, token in enumerate(tokens):
        if token == "":
            raise ValidationFailed(f"{field} contains an empty entry at position {position}", field=field)
        try:
            value = parse_int(token, field, minimum=1)
        except ValidationFailed:
            raise ValidationFailed(f"{field} contains a malformed entry {token!r}", field=field)
        if value not in ids:
            ids.append(value)
    return tuple(ids)


def _require_mapping(payload: Any) -> Mapping:
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValidationFailed("request body must be an object")
    return payload


# ─────────────────────────────────────────────────────────────────────────────
# Operation binders
# ─────────────────────────────────────────────────────────────────────────────

def bind_identity(raw_id: Any) -> IdentityLookup:
    return IdentityLookup(id=parse_identifier(raw_id))


def bind_delete(raw_id: Any) -> UserDeleteInput:
    return UserDeleteInput(id=parse_identifier(raw_id))


def bind_list_query(args: Mapping, default_limit: int = 20, max_limit: int = 1000) -> ListQuery:
    """Bind list parameters; limit and offset are clamped rather than rejected."""
    args = _require_mapping(args)

    raw_limit = args.get("limit")
    limit = default_limit if raw_limit in (None, "") else parse_int(raw_limit, "limit")
    limit = max(1, min(limit, max_limit))

    raw_offset = args.get("offset")
    offset = 0 if raw_offset in (None, "") else parse_int(raw_offset, "offset")
    offset = max(0, offset)

    q = args.get("q")
    if q is not None:
        if not isinstance(q, str):
            raise ValidationFailed("q must be a string", field="q")
        q = q.strip() or None
        if q and len(q) > SEARCH_MAX_LENGTH:
            raise ValidationFailed("q exceeds maximum length", field="q")

    department = args.get("department")
    department = None if department in (None, "") else parse_department(department)

    status = args.get("status")
    status = None if status in (None, "") else parse_status(status)

    order = args.get("order") or "-id"
    if order not in ORDER_FIELDS:
        raise ValidationFailed(f"order must be one of {', '.join(ORDER_FIELDS)}", field="order")

    return ListQuery(limit=limit, offset=offset, q=q, department=department, status=status, order=order)


def bind_create(payload: Any) -> UserCreateInput:
    payload = _require_mapping(payload)
    for required in ("username", "password", "department"):
        if payload.get(required) in (None, ""):
            raise ValidationFailed(f"{required} is required", field=required)

    return UserCreateInput(
        username=normalize_username(payload["username"]),
        password=validate_password(payload["password"]),
        department=parse_department(payload["department"]),
        mobile=validate_mobile(payload.get("mobile", "")),
        email=validate_email(payload.get("email", "")),
        realname=validate_name(payload.get("realname", ""), "realname"),
        sex=parse_sex(payload.get("sex", 0)),
        title=validate_name(payload.get("title", ""), "title"),
        status=parse_status(payload.get("status", int(UserStatus.ENABLED))),
        roles=parse_roles(payload.get("roles")),
    )


def bind_edit(raw_id: Any, payload: Any) -> UserEditInput:
    """Bind a partial edit; status and password have dedicated operations."""
    user_id = parse_identifier(raw_id)
    payload = _require_mapping(payload)

    for forbidden in ("password", "status"):
        if forbidden in payload:
            raise ValidationFailed(f"{forbidden} cannot be changed through this operation", field=forbidden)

    validators = {
        "username": normalize_username,
        "mobile": validate_mobile,
        "email": validate_email,
        "realname": lambda value: validate_name(value, "realname"),
        "sex": parse_sex,
        "department": parse_department,
        "title": lambda value: validate_name(value, "title"),
        "roles": parse_roles,
    }
    fields = {name: validators[name](payload[name]) for name in EDITABLE_FIELDS if name in payload}
    if not fields:
        raise ValidationFailed(f"at least one of {', '.join(EDITABLE_FIELDS)} is required")

    return UserEditInput(id=user_id, fields=fields)


def bind_status(raw_id: Any, payload: Any) -> UserStatusEditInput:
    user_id = parse_identifier(raw_id)
    payload = _require_mapping(payload)
    if payload.get("status") in (None, ""):
        raise ValidationFailed("status is required", field="status")
    return UserStatusEditInput(id=user_id, status=parse_status(payload["status"]))


def bind_password(raw_id: Any, payload: Any) -> UserPasswordEditInput:
    user_id = parse_identifier(raw_id)
    payload = _require_mapping(payload)
    return UserPasswordEditInput(id=user_id, password=validate_password(payload.get("password")))


def bind_department_move(payload: Any) -> DepartmentMoveInput:
    payload = _require_mapping(payload)
    return DepartmentMoveInput(
        ids=parse_id_list(payload.get("ids")),
        department=parse_department(payload.get("department")),
    )
