"""
Application error hierarchy.

Services raise these; a single exception handler in main.py turns them into
JSON responses. 5xx errors carry a generic public message so that driver or
browser error text never reaches the client.

    SwitcherError (500)
    ├── ValidationError      (400)
    ├── UnauthorizedError    (401)
    ├── ForbiddenError       (403)
    ├── NotFoundError        (404)
    ├── ConflictError        (409)
    ├── StorageError         (500)
    ├── ExternalActionError  (500)
    └── ConfigurationError   (500)
"""

from typing import List, Optional


class SwitcherError(Exception):
    """Base class for all application errors."""

    http_status: int = 500
    default_public_message: Optional[str] = None

    def __init__(self, message: str = "", *, details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    @property
    def public_message(self) -> str:
        """Message that is safe to send to the client."""
        if self.default_public_message:
            return self.default_public_message
        return self.message or "Internal server error"


class ValidationError(SwitcherError):
    """Missing or malformed request field."""

    http_status = 400


class UnauthorizedError(SwitcherError):
    """No usable bearer credentials on the request."""

    http_status = 401


class ForbiddenError(SwitcherError):
    """Credentials rejected, or caller is not entitled to the resource."""

    http_status = 403


class NotFoundError(SwitcherError):
    http_status = 404


class ConflictError(SwitcherError):
    """Uniqueness violation or duplicate assignment."""

    http_status = 409


class StorageError(SwitcherError):
    """Unexpected persistence failure."""

    http_status = 500


class ExternalActionError(SwitcherError):
    """The browser automation collaborator failed or timed out."""

    http_status = 500
    default_public_message = "Failed to change temperature sensor"


class ConfigurationError(SwitcherError):
    """Required server configuration is missing."""

    http_status = 500
