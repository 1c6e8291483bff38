"""
Error types for the auth subsystem.

Every AuthError carries the HTTP status the API layer should answer with
and a client-safe message.
"""


class AuthError(Exception):
    """Base class for errors reported back to the client."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AuthError):
    """Missing or malformed request fields."""


class ConflictError(AuthError):
    """Email or username already taken."""


class AuthenticationError(AuthError):
    """Unknown user, wrong password, invalid or expired OTP."""


class InternalError(AuthError):
    """Repository or infrastructure failure."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


class ConfigurationError(RuntimeError):
    """Fatal misconfiguration detected at start-up."""


class DuplicateUserError(ValueError):
    """Raised by the user store when a unique field is already taken."""

    def __init__(self, field: str, value: str):
        super().__init__(f"User with {field} {value} already exists")
        self.field = field
        self.value = value
