"""Error taxonomy shared by the directory services."""

from __future__ import annotations


class DirectoryError(Exception):
    """Base exception for directory domain errors."""


class ValidationError(DirectoryError):
    """Raised when input is missing or malformed."""


class AuthenticationError(DirectoryError):
    """Raised when credentials cannot be verified."""


class AuthorizationError(DirectoryError):
    """Raised when the actor lacks the required role or ownership."""


class NotFoundError(DirectoryError):
    """Raised when a referenced record does not exist."""


class InvalidStateError(DirectoryError):
    """Raised when a record is not in the state an operation requires."""


class ConflictError(DirectoryError):
    """Raised when a unique value (username, email) is already taken."""


class PersistenceError(DirectoryError):
    """Raised when the data store rejects or fails a write."""


class GatewayError(DirectoryError):
    """Raised when an external service (Telegram, payments) fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
