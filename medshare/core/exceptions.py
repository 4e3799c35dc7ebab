"""
Error taxonomy for the record sharing workflow.

Services raise these; the API layer maps them to HTTP responses in
medshare.main. Notification and audit failures are never raised.
"""


class RecordSharingError(Exception):
    """Base class for workflow errors."""

    default_message = "Record sharing operation failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(RecordSharingError):
    """Malformed input: unknown patient or organization, identical organizations, foreign record ids."""

    default_message = "Invalid record sharing input."


class EmptySelectionError(ValidationError):
    default_message = "Please select at least one record to share."


class InvalidStateError(RecordSharingError):
    """Transition attempted from a non-pending request."""

    default_message = "Record request is no longer pending."


class NotFoundError(RecordSharingError):
    default_message = "Resource not found."


class AuthorizationError(RecordSharingError):
    default_message = "Not allowed to act on this record request."


class StorageError(RecordSharingError):
    """Wraps persistence failures; the surfaced message stays generic."""

    default_message = "Failed to save changes. Please try again."
