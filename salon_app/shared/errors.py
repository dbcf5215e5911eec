"""Application error taxonomy, rendered to JSON by the handlers in main.py"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that map to an HTTP status"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(AppError):
    """Required input missing or malformed"""

    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class DuplicateError(AppError):
    """A client with the same phone or name already exists"""

    status_code = 409

    def __init__(self, duplicate_type: str, existing_client: dict[str, Any], message: str):
        super().__init__(message)
        self.duplicate_type = duplicate_type
        self.existing_client = existing_client

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "Duplicate client found",
            "duplicateType": self.duplicate_type,
            "existingClient": self.existing_client,
            "message": self.message,
        }


class UpstreamError(AppError):
    """Persistence failure; the detail is logged, never returned"""

    status_code = 500

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause
