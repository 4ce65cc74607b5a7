"""
Domain exception taxonomy for coordinate conversion, geometry and imports.

Every error carries a machine-readable ``error_code`` and the HTTP status
the API should answer with, so the global error handler can translate any
of them without knowing the concrete class.
"""
from typing import Any, Dict, Optional


class LocationsError(Exception):
    """
    Base exception for all location pipeline errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable identifier for the error type
        status_code: HTTP status code for API responses
        details: Extra context for logging and API payloads
    """

    default_error_code: str = "LOCATIONS_ERROR"
    default_status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.status_code = status_code or self.default_status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the exception to a dictionary for API responses.

        Returns:
            Dictionary with stable keys
        """
        return {
            "error": self.error_code,
            "detail": self.message,
            "context": self.details,
        }


class InvalidCoordinateInput(LocationsError, ValueError):
    """Zone, band or projected coordinates outside the valid UTM domain."""
    default_error_code = "INVALID_COORDINATE_INPUT"
    default_status_code = 400


class EmptyPointSetError(LocationsError, ValueError):
    """No geometry can be computed from an empty point set."""
    default_error_code = "EMPTY_POINT_SET"
    default_status_code = 422


class BatchRejected(LocationsError):
    """A batch-level validation failure. The whole batch is discarded."""
    default_error_code = "BATCH_REJECTED"
    default_status_code = 400


class InvalidProjectCode(BatchRejected):
    """A record's project code does not match the active project."""
    default_error_code = "INVALID_PROJECT_CODE"


class MissingOrMalformedField(BatchRejected):
    """A required field is missing, blank or not numeric."""
    default_error_code = "MISSING_OR_MALFORMED_FIELD"


class ImportFailed(LocationsError):
    """The location store rejected the bulk write."""
    default_error_code = "IMPORT_FAILED"
    default_status_code = 502


class ImportInProgress(LocationsError):
    """Another batch is already being processed for the project."""
    default_error_code = "IMPORT_IN_PROGRESS"
    default_status_code = 409
