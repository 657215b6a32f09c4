"""Exception taxonomy shared by the dashboard, database and proxy layers.

Every error carries the HTTP status it maps to so the exception handlers in
``dentalhub.main`` remain the single place where failures become responses.
"""

from typing import Iterable, Optional


class DentalHubError(Exception):
    """Base class for errors that translate directly to an HTTP response."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type


class ValidationError(DentalHubError):
    status_code = 400
    error_type = "validation_error"


class NotFoundError(DentalHubError):
    status_code = 404
    error_type = "not_found"


class MethodNotAllowedError(DentalHubError):
    status_code = 405
    error_type = "method_not_allowed"


class ConflictError(DentalHubError):
    status_code = 409
    error_type = "conflict"


class ConfigurationError(DentalHubError):
    """Raised when required environment variables are missing."""

    status_code = 500
    error_type = "configuration_error"

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            f"Missing required environment variables: {', '.join(self.missing)}"
        )


def missing_fields_error(missing: Iterable[str]) -> ValidationError:
    return ValidationError(f"Missing required fields: {', '.join(missing)}")
