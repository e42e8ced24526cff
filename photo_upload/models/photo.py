"""
Photo domain model.
Represents an individual photo upload with its lifecycle and S3 location.

Invariants:
- status changes only through mark_started, mark_completed and mark_failed
- the S3 location is derived from the photo id and original filename once, at creation
- an illegal transition raises before anything is mutated
"""
import uuid
from datetime import datetime
from typing import Optional

from photo_upload.core.exceptions import CorruptedUploadJobException, InvalidTransitionException
from photo_upload.models.photo_metadata import PhotoMetadata, S3Location
from photo_upload.models.photo_status import PhotoStatus
from photo_upload.models.snapshots import PhotoSnapshot, utcnow

_FACTORY_TOKEN = object()


class Photo:
    """A single photo inside an upload job."""

    def __init__(
        self,
        photo_id: str,
        job_id: str,
        user_id: str,
        metadata: PhotoMetadata,
        filename: str,
        s3_location: S3Location,
        status: PhotoStatus,
        created_at: datetime,
        updated_at: datetime,
        upload_started_at: Optional[datetime],
        upload_completed_at: Optional[datetime],
        _token: object = None
    ):
        if _token is not _FACTORY_TOKEN:
            raise TypeError("Use Photo.create() or Photo.reconstruct() to build a Photo")
        self._photo_id = photo_id
        self._job_id = job_id
        self._user_id = user_id
        self._metadata = metadata
        self._filename = filename
        self._s3_location = s3_location
        self._status = status
        self._created_at = created_at
        self._updated_at = updated_at
        self._upload_started_at = upload_started_at
        self._upload_completed_at = upload_completed_at

    @classmethod
    def create(cls, job_id: str, user_id: str, metadata: PhotoMetadata, s3_bucket: str) -> "Photo":
        """Create a new photo in PENDING status."""
        photo_id = str(uuid.uuid4())
        filename = metadata.generate_s3_filename(photo_id)
        now = utcnow()
        return cls(
            photo_id=photo_id,
            job_id=job_id,
            user_id=user_id,
            metadata=metadata,
            filename=filename,
            s3_location=S3Location.for_photo(s3_bucket, job_id, filename),
            status=PhotoStatus.PENDING,
            created_at=now,
            updated_at=now,
            upload_started_at=None,
            upload_completed_at=None,
            _token=_FACTORY_TOKEN
        )

    @classmethod
    def reconstruct(
        cls,
        photo_id: str,
        job_id: str,
        user_id: str,
        metadata: PhotoMetadata,
        s3_location: S3Location,
        status: PhotoStatus,
        created_at: datetime,
        updated_at: datetime,
        upload_started_at: Optional[datetime] = None,
        upload_completed_at: Optional[datetime] = None
    ) -> "Photo":
        """
        Rebuild a photo from persisted fields.

        Raises:
            CorruptedUploadJobException: If the stored fields cannot describe a real photo
        """
        status = PhotoStatus(status)
        filename = metadata.generate_s3_filename(photo_id)
        if s3_location != S3Location.for_photo(s3_location.bucket, job_id, filename):
            raise CorruptedUploadJobException(
                f"Photo '{photo_id}' has S3 key '{s3_location.key}' not derived from its id and filename"
            )

        started_expected = status in (PhotoStatus.UPLOADING, PhotoStatus.COMPLETED)
        if started_expected and upload_started_at is None:
            raise CorruptedUploadJobException(f"Photo '{photo_id}' is {status.value} without a start time")
        if status is PhotoStatus.PENDING and upload_started_at is not None:
            raise CorruptedUploadJobException(f"Photo '{photo_id}' is PENDING but has a start time")
        if status.is_terminal() != (upload_completed_at is not None):
            raise CorruptedUploadJobException(
                f"Photo '{photo_id}' is {status.value} but its completion time does not match"
            )

        return cls(
            photo_id=photo_id,
            job_id=job_id,
            user_id=user_id,
            metadata=metadata,
            filename=filename,
            s3_location=s3_location,
            status=status,
            created_at=created_at,
            updated_at=updated_at,
            upload_started_at=upload_started_at,
            upload_completed_at=upload_completed_at,
            _token=_FACTORY_TOKEN
        )

    def mark_started(self) -> None:
        """Transition: PENDING -> UPLOADING."""
        self._upload_started_at = self._transition_to(PhotoStatus.UPLOADING)

    def mark_completed(self) -> None:
        """Transition: UPLOADING -> COMPLETED."""
        self._upload_completed_at = self._transition_to(PhotoStatus.COMPLETED)

    def mark_failed(self) -> None:
        """Transition: PENDING | UPLOADING -> FAILED."""
        # Completion time doubles as "terminal at" for failures.
        self._upload_completed_at = self._transition_to(PhotoStatus.FAILED)

    def _transition_to(self, target: PhotoStatus) -> datetime:
        if not self._status.can_transition_to(target):
            raise InvalidTransitionException(self._photo_id, self._status, target)
        now = utcnow()
        self._status = target
        self._updated_at = now
        return now

    @property
    def photo_id(self) -> str:
        return self._photo_id

    @property
    def job_id(self) -> str:
        return self._job_id

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def metadata(self) -> PhotoMetadata:
        return self._metadata

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def s3_location(self) -> S3Location:
        return self._s3_location

    @property
    def status(self) -> PhotoStatus:
        return self._status

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def upload_started_at(self) -> Optional[datetime]:
        return self._upload_started_at

    @property
    def upload_completed_at(self) -> Optional[datetime]:
        return self._upload_completed_at

    def is_completed(self) -> bool:
        return self._status is PhotoStatus.COMPLETED

    def is_failed(self) -> bool:
        return self._status is PhotoStatus.FAILED

    def is_terminal(self) -> bool:
        return self._status.is_terminal()

    def snapshot(self) -> PhotoSnapshot:
        return PhotoSnapshot(
            photo_id=self._photo_id,
            job_id=self._job_id,
            user_id=self._user_id,
            metadata=self._metadata,
            filename=self._filename,
            s3_location=self._s3_location,
            status=self._status,
            created_at=self._created_at,
            updated_at=self._updated_at,
            upload_started_at=self._upload_started_at,
            upload_completed_at=self._upload_completed_at
        )

    def __eq__(self, other):
        if not isinstance(other, Photo):
            return NotImplemented
        return self._photo_id == other._photo_id

    def __hash__(self):
        return hash(self._photo_id)

    def __repr__(self):
        return f"Photo(photo_id={self._photo_id}, status={self._status.value}, filename={self._filename})"
