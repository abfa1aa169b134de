"""Error taxonomy shared by repositories, services and the API layer."""

from typing import Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP status code.

    Attributes:
        message: Human-readable message safe to return to clients
        status_code: HTTP status the API layer responds with
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(AppError):
    """A referenced entity does not exist."""

    status_code = 404


class ValidationError(AppError):
    """Caller input fails a domain rule."""

    status_code = 400


class PersistenceError(AppError):
    """The entity store failed.

    Wraps the underlying driver error. ``unique_violation`` is set when the
    failure was a unique constraint the caller did not pre-check.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        unique_violation: bool = False,
    ):
        super().__init__(message)
        self.cause = cause
        self.unique_violation = unique_violation


class InvalidCredentialError(AppError):
    """A session token is missing, malformed, badly signed or expired."""

    status_code = 401


class ConfigurationError(AppError):
    """Required runtime configuration is missing. Fatal at startup."""

    status_code = 500
