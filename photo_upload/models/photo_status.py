"""
Status enums for photos and upload jobs.

State transitions for a photo: PENDING -> UPLOADING -> (COMPLETED | FAILED),
plus PENDING -> FAILED when the upload location is invalidated before any
bytes are sent. An upload job's status is never set directly; it is derived
from the states of its photos.
"""
from enum import Enum


class PhotoStatus(str, Enum):
    """Lifecycle status of a single photo upload."""

    PENDING = "PENDING"
    UPLOADING = "UPLOADING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    def is_terminal(self) -> bool:
        """Check if this state is terminal (no further transitions)."""
        return self in {PhotoStatus.COMPLETED, PhotoStatus.FAILED}

    def can_transition_to(self, new_status: "PhotoStatus") -> bool:
        """
        Check if transition to new status is valid.

        Args:
            new_status: Target status

        Returns:
            True if transition is allowed
        """
        return new_status in _VALID_TRANSITIONS[self]


_VALID_TRANSITIONS = {
    PhotoStatus.PENDING: frozenset({PhotoStatus.UPLOADING, PhotoStatus.FAILED}),
    PhotoStatus.UPLOADING: frozenset({PhotoStatus.COMPLETED, PhotoStatus.FAILED}),
    PhotoStatus.COMPLETED: frozenset(),
    PhotoStatus.FAILED: frozenset(),
}


class UploadJobStatus(str, Enum):
    """Overall status of an upload job."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"
    FAILED = "FAILED"

    def is_terminal(self) -> bool:
        return self is not UploadJobStatus.IN_PROGRESS
