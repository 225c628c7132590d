"""Store-specific exceptions for error handling."""


class StoreError(Exception):
    """Base exception for all user store operations."""
    pass


class ServiceAPIError(StoreError):
    """HTTP error from the remote user service.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class UserNotFoundError(StoreError):
    """One or more user ids do not exist."""
    pass


class DepartmentNotFoundError(StoreError):
    """Department does not exist."""
    pass
