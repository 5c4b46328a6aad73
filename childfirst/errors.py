"""
ChildFirst Error Taxonomy.

Capture-path errors (recovered locally by the session controller):
    - DeviceUnavailable     microphone cannot be acquired
    - RecognitionError      speech engine failed mid-session
    - LocationUnavailable   geolocation denied or timed out

Surfaced errors (propagate to the caller, no silent data loss):
    - ValidationError       incident save with missing/invalid fields
    - PersistenceError      storage read/write failed, prior state retained
    - ImportFormatError     backup document rejected, store untouched
"""

from typing import Any


def build_error(
    code: str,
    message: str,
    detail: dict | None = None,
) -> dict:
    """
    Build a structured error object.
    
    Args:
        code: Error code (e.g., "VALIDATION_FAILED")
        message: Human-readable error message
        detail: Optional additional details
    
    Returns:
        Structured error dictionary.
    """
    error: dict[str, Any] = {
        "code": code,
        "message": message,
    }
    if detail is not None:
        error["detail"] = detail
    return error


class ChildFirstError(Exception):
    """Base class for every error raised by the core."""

    code = "CHILDFIRST_ERROR"

    def __init__(self, message: str, detail: dict | None = None):
        self.message = message
        self.error = build_error(self.code, message, detail)
        super().__init__(message)


# =============================================================================
# Capture Path
# =============================================================================


class DeviceUnavailable(ChildFirstError):
    """Raised when the audio capture device cannot be acquired."""

    code = "DEVICE_UNAVAILABLE"


class RecognitionError(ChildFirstError):
    """Raised (or reported through the fragment channel) when recognition fails."""

    code = "RECOGNITION_FAILED"


class LocationUnavailable(ChildFirstError):
    """
    Raised by a geolocator that cannot produce a position.
    
    Attributes:
        denied: True when access was refused (as opposed to no provider).
    """

    code = "LOCATION_UNAVAILABLE"

    def __init__(self, message: str, denied: bool = False):
        self.denied = denied
        super().__init__(message, {"denied": denied})


# =============================================================================
# Surfaced Errors
# =============================================================================


class ValidationError(ChildFirstError):
    """
    Raised when an incident cannot be saved.
    
    Attributes:
        fields: Names of the offending fields, in check order
    """

    code = "VALIDATION_FAILED"

    def __init__(self, fields: list[str], message: str):
        self.fields = fields
        super().__init__(message, {"fields": fields})


class PersistenceError(ChildFirstError):
    """
    Raised when the incident store or settings file cannot be read or written.
    
    The previously stored state is always retained when this is raised.
    """

    code = "PERSISTENCE_FAILED"

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message, {"path": path} if path else None)


class ImportFormatError(ChildFirstError):
    """
    Raised when a backup document fails validation.
    
    Attributes:
        errors: One "<path>: <message>" string per violation
    """

    code = "IMPORT_FORMAT"

    def __init__(self, errors: list[str]):
        self.errors = errors
        parts = ["Invalid backup file format"]
        if errors:
            parts.append("; ".join(errors[:5]))
        super().__init__(": ".join(parts), {"errors": errors})
