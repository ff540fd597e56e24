"""Domain error taxonomy for ediscovery-custody.

Every error carries a stable ``kind`` (surfaced to API clients in the error
envelope) and the HTTP status the API layer maps it to.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Stable error kinds reported to callers."""

    VALIDATION = "ValidationError"
    NOT_FOUND = "NotFound"
    INVALID_TRANSITION = "InvalidTransition"
    PRIVILEGED_DOCUMENT = "PrivilegedDocument"
    PARTIAL_BATCH_FAILURE = "PartialBatchFailure"
    CONTENT_STORE = "ContentStoreError"


class EDiscoveryError(Exception):
    """Base class for all domain errors.

    Args:
        message: Human-readable description of the failure.
    """

    kind: ErrorKind = ErrorKind.VALIDATION
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(EDiscoveryError):
    """Input failed a domain rule; nothing was written."""

    kind = ErrorKind.VALIDATION
    status_code = 422


class NotFoundError(EDiscoveryError):
    """A referenced record does not exist in the tenant scope."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, resource: str, identifier: object) -> None:
        super().__init__(f"{resource} '{identifier}' not found")
        self.resource = resource
        self.identifier = identifier


class InvalidTransitionError(EDiscoveryError):
    """The requested state change is not allowed from the current state."""

    kind = ErrorKind.INVALID_TRANSITION
    status_code = 409


class PrivilegedDocumentError(EDiscoveryError):
    """A withheld privileged document was submitted for production."""

    kind = ErrorKind.PRIVILEGED_DOCUMENT
    status_code = 409


class ContentStoreError(EDiscoveryError):
    """The external content store failed or timed out."""

    kind = ErrorKind.CONTENT_STORE
    status_code = 502
