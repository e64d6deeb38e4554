"""Custom exceptions for the sample collaboration core."""


class CollaborationError(Exception):
    """Base exception for collaboration layer errors."""

    def __init__(self, message: str, error_type: str = "collaboration_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(message)


class ValidationRejected(CollaborationError):
    """Raised when a client-side guard refuses an operation.

    Never reaches the network.
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, "validation_rejected")
        self.field = field


class UpdateRejected(CollaborationError):
    """Raised when the server declines a mutation.

    The locally displayed state is left unchanged and nothing is retried.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, "update_rejected")
        self.status_code = status_code


class TransitionInProgress(CollaborationError):
    """Raised when a mutation is attempted while an equivalent one is pending."""

    def __init__(self, sample_id: str, surface: str):
        super().__init__(
            f"A {surface} update for sample '{sample_id}' is already in progress",
            "transition_in_progress",
        )
        self.sample_id = sample_id
        self.surface = surface


class ProjectionDegraded(CollaborationError):
    """Describes a metadata field replaced by a safe default.

    Timeline projection records these on the affected entry instead of
    raising them; a degraded field is not an error to the user.
    """

    def __init__(self, event_id: str, event_type: str, field: str, reason: str = "missing"):
        super().__init__(
            f"Event '{event_id}' ({event_type}): field '{field}' is {reason}",
            "projection_degraded",
        )
        self.event_id = event_id
        self.event_type = event_type
        self.field = field
        self.reason = reason
