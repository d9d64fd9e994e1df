"""Custom exceptions for the record service."""

from typing import Any, Optional


class KVShareError(Exception):
    """Base exception for record service errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


class ValidationError(KVShareError):
    """Raised when a request field is missing, malformed or oversized."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(
            message,
            status_code=400,
            details={"field": field} if field else None,
        )


class NotFoundError(KVShareError):
    """Raised when no live record exists under the key."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"Record not found: {key}",
            status_code=404,
            error_code="NotFound",
            details={"key": key},
        )


class UnauthorizedError(KVShareError):
    """Raised when the record is password protected and the password does not match."""

    def __init__(self, message: str = "Invalid password") -> None:
        super().__init__(message, status_code=401, error_code="Unauthorized")


class ForbiddenError(KVShareError):
    """Raised when the caller IP does not satisfy the record's IP rule."""

    def __init__(self, message: str = "Caller IP is not permitted to access this record") -> None:
        super().__init__(message, status_code=403, error_code="Forbidden")


class BackendError(KVShareError):
    """Raised when a record store operation fails (network, auth, quota)."""

    def __init__(
        self,
        message: str,
        backend: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            status_code=500,
            details={"backend": backend, **(details or {})},
        )


class ConfigurationError(KVShareError):
    """Raised at startup when the selected backend is missing required settings."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=500)
