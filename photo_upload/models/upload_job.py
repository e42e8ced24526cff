"""
UploadJob aggregate.
A batch upload session containing a fixed set of photos.

Invariants, re-established after every photo transition:
- total_photos equals the number of photos and never changes
- completed_photos + failed_photos <= total_photos
- status is terminal iff every photo is terminal
- status is only ever derived by the status aggregator

Each instance serializes its own mutations with a lock, so transitions reported
concurrently for different photos of the same job cannot lose counter updates.
"""
import threading
import uuid
from datetime import datetime
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from photo_upload.core.exceptions import (
    CorruptedUploadJobException,
    EmptyUploadJobException,
    PhotoNotFoundException,
)
from photo_upload.models.photo import Photo
from photo_upload.models.photo_metadata import PhotoMetadata
from photo_upload.models.photo_status import UploadJobStatus
from photo_upload.models.snapshots import PhotoSnapshot, UploadJobSnapshot, utcnow
from photo_upload.models.status_aggregator import recompute

_FACTORY_TOKEN = object()

PhotoTransition = Callable[[Photo], None]


class UploadJob:
    """Aggregate root owning the photos of one batch upload."""

    def __init__(
        self,
        job_id: str,
        user_id: str,
        photos: List[Photo],
        status: UploadJobStatus,
        completed_photos: int,
        failed_photos: int,
        created_at: datetime,
        updated_at: datetime,
        completed_at: Optional[datetime],
        version: int,
        write_locations: Optional[Dict] = None,
        _token: object = None
    ):
        if _token is not _FACTORY_TOKEN:
            raise TypeError("Use UploadJob.create() or UploadJob.reconstruct() to build an UploadJob")
        self._lock = threading.Lock()
        self._job_id = job_id
        self._user_id = user_id
        self._photos = tuple(photos)
        self._photos_by_id = {photo.photo_id: photo for photo in self._photos}
        self._total_photos = len(self._photos)
        self._status = status
        self._completed_photos = completed_photos
        self._failed_photos = failed_photos
        self._created_at = created_at
        self._updated_at = updated_at
        self._completed_at = completed_at
        self._version = version
        self._write_locations = MappingProxyType(dict(write_locations or {}))

    @classmethod
    def create(cls, user_id: str, photo_metadata_list: Sequence[PhotoMetadata], location_issuer) -> "UploadJob":
        """
        Create a new upload job with one PENDING photo per metadata entry.

        Args:
            user_id: Owner of the job
            photo_metadata_list: Metadata of the photos to upload, in order
            location_issuer: LocationIssuer supplying the bucket and one write location per photo

        Returns:
            A new, unsaved UploadJob in IN_PROGRESS status

        Raises:
            EmptyUploadJobException: If photo_metadata_list is empty
        """
        if not photo_metadata_list:
            raise EmptyUploadJobException()

        job_id = str(uuid.uuid4())
        bucket = location_issuer.bucket_name
        photos = [Photo.create(job_id, user_id, metadata, bucket) for metadata in photo_metadata_list]
        write_locations = {
            photo.photo_id: location_issuer.issue_write_location(photo.snapshot())
            for photo in photos
        }

        now = utcnow()
        return cls(
            job_id=job_id,
            user_id=user_id,
            photos=photos,
            status=UploadJobStatus.IN_PROGRESS,
            completed_photos=0,
            failed_photos=0,
            created_at=now,
            updated_at=now,
            completed_at=None,
            version=0,
            write_locations=write_locations,
            _token=_FACTORY_TOKEN
        )

    @classmethod
    def reconstruct(
        cls,
        job_id: str,
        user_id: str,
        photos: Sequence[Photo],
        status: UploadJobStatus,
        total_photos: int,
        completed_photos: int,
        failed_photos: int,
        created_at: datetime,
        updated_at: datetime,
        completed_at: Optional[datetime],
        version: int
    ) -> "UploadJob":
        """
        Rebuild an upload job from persisted fields.

        The stored counters and status must agree with a fresh recomputation
        over the stored photos.

        Raises:
            CorruptedUploadJobException: If the stored state violates an invariant
        """
        status = UploadJobStatus(status)
        if not photos:
            raise CorruptedUploadJobException(f"Upload job '{job_id}' has no photos")

        seen = set()
        for photo in photos:
            if photo.job_id != job_id:
                raise CorruptedUploadJobException(
                    f"Photo '{photo.photo_id}' belongs to job '{photo.job_id}', not '{job_id}'"
                )
            if photo.photo_id in seen:
                raise CorruptedUploadJobException(f"Photo '{photo.photo_id}' appears twice in job '{job_id}'")
            seen.add(photo.photo_id)

        if total_photos != len(photos):
            raise CorruptedUploadJobException(
                f"Upload job '{job_id}' records {total_photos} photos but has {len(photos)}"
            )

        expected = recompute(photos)
        if (status, completed_photos, failed_photos) != tuple(expected):
            raise CorruptedUploadJobException(
                f"Upload job '{job_id}' stored status {status.value} "
                f"({completed_photos} completed, {failed_photos} failed) does not match its photos "
                f"({expected.status.value}, {expected.completed} completed, {expected.failed} failed)"
            )
        if status.is_terminal() != (completed_at is not None):
            raise CorruptedUploadJobException(
                f"Upload job '{job_id}' is {status.value} but its completion time does not match"
            )
        if version < 0:
            raise CorruptedUploadJobException(f"Upload job '{job_id}' has negative version {version}")

        return cls(
            job_id=job_id,
            user_id=user_id,
            photos=list(photos),
            status=status,
            completed_photos=completed_photos,
            failed_photos=failed_photos,
            created_at=created_at,
            updated_at=updated_at,
            completed_at=completed_at,
            version=version,
            _token=_FACTORY_TOKEN
        )

    def apply_photo_transition(self, photo_id: str, transition: PhotoTransition) -> PhotoSnapshot:
        """
        Apply a status transition to one photo and recompute the job status.

        Args:
            photo_id: Photo to transition
            transition: Callable applying the change, e.g. ``Photo.mark_started``

        Returns:
            Snapshot of the photo after the transition

        Raises:
            PhotoNotFoundException: If the photo is not part of this job
            InvalidTransitionException: If the photo cannot make the transition
        """
        with self._lock:
            photo = self._photos_by_id.get(photo_id)
            if photo is None or photo.job_id != self._job_id:
                raise PhotoNotFoundException(f"Photo '{photo_id}' not found in upload job '{self._job_id}'")

            transition(photo)
            self._refresh_status()
            return photo.snapshot()

    def _refresh_status(self) -> None:
        # A terminal job cannot change; every photo is already terminal.
        if self._status.is_terminal():
            return

        aggregate = recompute(self._photos)
        now = utcnow()
        self._status = aggregate.status
        self._completed_photos = aggregate.completed
        self._failed_photos = aggregate.failed
        self._updated_at = now
        if aggregate.status.is_terminal():
            self._completed_at = now

    def find_photo(self, photo_id: str) -> PhotoSnapshot:
        """
        Raises:
            PhotoNotFoundException: If the photo is not part of this job
        """
        with self._lock:
            photo = self._photos_by_id.get(photo_id)
            if photo is None:
                raise PhotoNotFoundException(f"Photo '{photo_id}' not found in upload job '{self._job_id}'")
            return photo.snapshot()

    def snapshot(self) -> UploadJobSnapshot:
        with self._lock:
            return UploadJobSnapshot(
                job_id=self._job_id,
                user_id=self._user_id,
                status=self._status,
                total_photos=self._total_photos,
                completed_photos=self._completed_photos,
                failed_photos=self._failed_photos,
                created_at=self._created_at,
                updated_at=self._updated_at,
                completed_at=self._completed_at,
                version=self._version,
                photos=tuple(photo.snapshot() for photo in self._photos)
            )

    @property
    def job_id(self) -> str:
        return self._job_id

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def photos(self) -> Tuple[PhotoSnapshot, ...]:
        return self.snapshot().photos

    @property
    def status(self) -> UploadJobStatus:
        return self._status

    @property
    def total_photos(self) -> int:
        return self._total_photos

    @property
    def completed_photos(self) -> int:
        return self._completed_photos

    @property
    def failed_photos(self) -> int:
        return self._failed_photos

    @property
    def pending_photos(self) -> int:
        return self._total_photos - self._completed_photos - self._failed_photos

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def completed_at(self) -> Optional[datetime]:
        return self._completed_at

    @property
    def version(self) -> int:
        return self._version

    @property
    def write_locations(self) -> Mapping:
        """Write locations issued at creation, keyed by photo id. Empty for reconstructed jobs."""
        return self._write_locations

    def is_terminal(self) -> bool:
        return self._status.is_terminal()

    def __eq__(self, other):
        if not isinstance(other, UploadJob):
            return NotImplemented
        return self._job_id == other._job_id

    def __hash__(self):
        return hash(self._job_id)

    def __repr__(self):
        return (
            f"UploadJob(job_id={self._job_id}, status={self._status.value}, "
            f"total_photos={self._total_photos}, completed_photos={self._completed_photos}, "
            f"failed_photos={self._failed_photos})"
        )
