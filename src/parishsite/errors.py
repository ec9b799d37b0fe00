from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails.

    The message never says which factor was wrong.
    """

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class AccessDeniedError(UserError):
    """Raised when a request needs an admin session it does not have."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation."""


class PayloadTooLargeError(UserError):
    """Raised when a submitted document exceeds the size limit."""

    def __init__(self, message: str = "Payload too large") -> None:
        super().__init__(message)


class RateLimitedError(UserError):
    """Raised when a client exceeds its attempt budget."""

    def __init__(self, retry_after: int, message: str = "Too many attempts. Please try again later.") -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ConfigurationError(Exception):
    """Raised at startup when a required setting is missing or invalid."""


class StorageUnavailableError(Exception):
    """Raised by storage backends when the underlying store cannot be reached."""
