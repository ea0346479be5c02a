from typing import Any, Dict, Optional


class ReadingsApiError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response_body(self) -> Dict[str, Any]:
        return {"error": self.message}


class InvalidQueryParameter(ReadingsApiError):
    """A query string parameter could not be interpreted."""

    status_code = 400

    def __init__(self, parameter: str, message: str):
        self.parameter = parameter
        super().__init__(message)


class Unauthorized(ReadingsApiError):
    status_code = 401

    def __init__(self, message: str = "Invalid Credentials"):
        super().__init__(message)


class StorageError(ReadingsApiError):
    """Any failure reported by the database driver."""

    status_code = 500

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message or "storage operation failed")


class StartupFailure(Exception):
    """The service cannot start: configuration is missing or the database is unreachable."""
