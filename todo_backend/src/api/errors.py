"""
Domain errors raised by the entity stores.

The router translates each of these into an HTTP status; none of them is fatal
to the process.
"""


class StoreError(Exception):
    """Base class for recoverable store failures."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(StoreError):
    """Malformed or missing required input."""


class NotFoundError(StoreError):
    """No matching entity, or the identifier is not a valid ObjectId."""


class ConflictError(StoreError):
    """A unique constraint would be violated (e.g. duplicate email)."""


class AuthError(StoreError):
    """Credential or token check failed. The message is deliberately uniform."""
