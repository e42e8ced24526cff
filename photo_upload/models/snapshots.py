"""
Read-only views of upload jobs and photos.
Handed to API responses and persistence adapters instead of the live aggregate.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from photo_upload.models.photo_metadata import PhotoMetadata, S3Location
from photo_upload.models.photo_status import PhotoStatus, UploadJobStatus


def utcnow() -> datetime:
    """Timezone-aware current time used for every domain timestamp."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PhotoSnapshot:
    photo_id: str
    job_id: str
    user_id: str
    metadata: PhotoMetadata
    filename: str
    s3_location: S3Location
    status: PhotoStatus
    created_at: datetime
    updated_at: datetime
    upload_started_at: Optional[datetime] = None
    upload_completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal()


@dataclass(frozen=True)
class UploadJobSnapshot:
    """Consistent point-in-time copy of an upload job and all of its photos."""

    job_id: str
    user_id: str
    status: UploadJobStatus
    total_photos: int
    completed_photos: int
    failed_photos: int
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime]
    version: int
    photos: Tuple[PhotoSnapshot, ...]

    @property
    def pending_photos(self) -> int:
        return self.total_photos - self.completed_photos - self.failed_photos

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal()
