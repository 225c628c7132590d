"""User store backed by a remote user service over HTTP.

Handles authentication headers, timeouts and error mapping so that the
handler sees the same signals as with the in-memory store: absent users come
back as id 0 and mutations report an affected-row count.

Mutation replies are read as follows: an allowed 4xx (e.g. 404) is 0 rows,
204 or an empty body is 1 row, and a JSON body counts `{"affected": N}` rows,
defaulting to 1 when the key is absent. A transport failure (connection
refused, timeout) surfaces as ``ServiceAPIError`` with status 0.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Sequence

import requests

from zeus.core.dto import ListQuery, UserCreateInput
from zeus.core.models import ABSENT_USER, DepartmentRef, User, UserStatus
from .exceptions import ServiceAPIError

REQUEST_TIMEOUT = 5

logger = logging.getLogger(__name__)


class ServiceClient:
    """HTTP client for the user service.

    Usage:
        client = ServiceClient("http://users:8080/v1", token="...")
        response = client.get("/users/1")
    """

    def __init__(self, base_url: str, token: str = "", timeout: int = REQUEST_TIMEOUT):
        """Initialize service client.

        Args:
            base_url: Service base URL
            token: Bearer token sent with every request (optional)
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = token

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Accept": "application/json", "User-Agent": "zeus-admin/1.0"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        if extra:
            headers.update(extra)
        return headers

    def get(self, path: str, params: Optional[Dict] = None, allow: Sequence[int] = (), **kwargs) -> requests.Response:
        """Execute GET request.

        Args:
            path: API endpoint path (e.g., "/users/1")
            params: Query parameters
            allow: Error status codes returned to the caller instead of raised

        Raises:
            ServiceAPIError: On HTTP error or when the service cannot be reached
        """
        return self._request("get", path, allow, params=params, **kwargs)

    def post(self, path: str, json: Optional[Any] = None, allow: Sequence[int] = (), **kwargs) -> requests.Response:
        return self._request("post", path, allow, json=json, **kwargs)

    def put(self, path: str, json: Optional[Any] = None, allow: Sequence[int] = (), **kwargs) -> requests.Response:
        return self._request("put", path, allow, json=json, **kwargs)

    def delete(self, path: str, allow: Sequence[int] = (), **kwargs) -> requests.Response:
        return self._request("delete", path, allow, **kwargs)

    def _request(self, method: str, path: str, allow: Sequence[int], **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        try:
            resp = getattr(requests, method)(url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            # Status 0: no HTTP answer (connection refused, timeout, ...)
            logger.warning("User service %s %s failed: %s", method.upper(), url, exc)
            raise ServiceAPIError(0, str(exc), url) from exc
        self._handle_error(resp, allow)
        return resp

    def _handle_error(self, resp: requests.Response, allow: Sequence[int] = ()) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            ServiceAPIError: If response status indicates error
        """
        if resp.status_code >= 400 and resp.status_code not in allow:
            raise ServiceAPIError(resp.status_code, resp.text, resp.url)


def _affected(resp: requests.Response) -> int:
    if resp.status_code >= 400:
        return 0
    if resp.status_code == 204 or not resp.content:
        return 1
    body = resp.json()
    if isinstance(body, dict) and "affected" in body:
        return int(body["affected"])
    return 1


class RemoteUserStore:
    """``UserStore`` implementation over the user service REST API."""

    def __init__(self, client: ServiceClient):
        self.client = client

    def fetch_by_id(self, user_id: int) -> User:
        resp = self.client.get(f"/users/{user_id}", allow=(404,))
        if resp.status_code == 404:
            return ABSENT_USER
        return User.from_dict(resp.json())

    def search(self, query: ListQuery) -> tuple[list[User], int]:
        params: Dict[str, Any] = {"limit": query.limit, "offset": query.offset, "order": query.order}
        if query.q:
            params["q"] = query.q
        if query.department is not None:
            params["department"] = query.department
        if query.status is not None:
            params["status"] = int(query.status)

        body = self.client.get("/users", params=params).json()
        users = [User.from_dict(item) for item in body.get("result") or []]
        return users, int(body.get("total", len(users)))

    def insert(self, data: UserCreateInput) -> User:
        payload = {
            "username": data.username,
            "password": data.password,
            "department": data.department,
            "mobile": data.mobile,
            "email": data.email,
            "realname": data.realname,
            "sex": int(data.sex),
            "title": data.title,
            "status": int(data.status),
            "roles": list(data.roles),
        }
        resp = self.client.post("/users", json=payload, allow=(409,))
        if resp.status_code == 409:
            logger.info("Create rejected by user service: username '%s' already exists", data.username)
            return ABSENT_USER
        return User.from_dict(resp.json())

    def update_fields(self, user_id: int, fields: dict) -> int:
        payload = {
            name: (list(value) if isinstance(value, tuple) else int(value) if name == "sex" else value)
            for name, value in fields.items()
        }
        return _affected(self.client.put(f"/users/{user_id}", json=payload, allow=(404, 409)))

    def update_status(self, user_id: int, status: UserStatus) -> int:
        return _affected(self.client.put(f"/users/{user_id}/status", json={"status": int(status)}, allow=(404,)))

    def update_credential(self, user_id: int, password: str) -> int:
        return _affected(self.client.put(f"/users/{user_id}/password", json={"password": password}, allow=(404,)))

    def delete(self, user_id: int) -> int:
        return _affected(self.client.delete(f"/users/{user_id}", allow=(404,)))

    def move_department(self, user_ids: Sequence[int], department: DepartmentRef) -> None:
        # Any non-2xx answer raises ServiceAPIError; the service applies the move atomically
        self.client.post("/users/department/move", json={"ids": list(user_ids), "department": department})


class RemotePermissionResolver:
    def __init__(self, client: ServiceClient):
        self.client = client

    def resolve(self, user_id: int) -> list[str]:
        body = self.client.get(f"/users/{user_id}/permissions").json()
        return [str(permission) for permission in body.get("result") or []]
