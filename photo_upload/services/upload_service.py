"""
Upload Service for business logic.
Orchestrates upload jobs between the API, the job repository and the location issuer.
"""
import logging
import random
import threading
import time
from typing import List, Optional, Sequence

from photo_upload.core import config
from photo_upload.core.exceptions import (
    ConcurrentModificationException,
    UploadJobNotFoundException,
    ValidationException,
)
from photo_upload.models.dto.upload_dto import (
    InitializeUploadResponse,
    PhotoDetailResponse,
    PhotoUploadUrlResponse,
    UploadJobStatusResponse,
)
from photo_upload.models.photo import Photo
from photo_upload.models.photo_metadata import PhotoMetadata
from photo_upload.models.photo_status import PhotoStatus
from photo_upload.models.snapshots import UploadJobSnapshot
from photo_upload.models.upload_job import PhotoTransition, UploadJob
from photo_upload.repositories.dynamo_upload_job_repository import DynamoUploadJobRepository
from photo_upload.repositories.location_issuer import LocationIssuer
from photo_upload.repositories.s3_repository import S3Repository
from photo_upload.repositories.upload_job_repository import UploadJobRepository

logger = logging.getLogger(__name__)


# Transitions on jobs that hash to the same stripe share a lock.
JOB_LOCK_STRIPES = 64


def _backoff_seconds(attempt: int) -> float:
    """Full-jitter exponential backoff: 2^(attempt-1) base delays, capped."""
    ceiling_ms = min(
        config.settings.transition_retry_max_delay_ms,
        config.settings.transition_retry_base_delay_ms * 2 ** min(attempt - 1, 16)
    )
    return random.uniform(0, ceiling_ms) / 1000


def _mark_stored(photo: Photo) -> None:
    """Complete a photo whose bytes are in S3, starting it first if the client never reported the start."""
    if photo.status is PhotoStatus.PENDING:
        photo.mark_started()
    photo.mark_completed()


class UploadService:
    """Service for upload job operations."""

    def __init__(
        self,
        upload_job_repository: UploadJobRepository = None,
        location_issuer: LocationIssuer = None
    ):
        self.upload_job_repository = upload_job_repository or DynamoUploadJobRepository()
        self.location_issuer = location_issuer or S3Repository()
        self._job_locks = [threading.Lock() for _ in range(JOB_LOCK_STRIPES)]

    def create_upload_job(self, user_id: str, photo_metadata_list: Sequence[PhotoMetadata]) -> InitializeUploadResponse:
        """
        Create an upload job and issue one pre-signed upload URL per photo.

        Args:
            user_id: Owner of the new job
            photo_metadata_list: Photos the client is going to upload

        Returns:
            InitializeUploadResponse with the job id and upload URLs

        Raises:
            EmptyUploadJobException: If no photos are given
            ValidationException: If the job exceeds the configured limits or would outgrow
                the job store once every photo is finished
            S3Exception: If URL signing fails
            DynamoDBException: If the job cannot be saved
        """
        self._validate_limits(photo_metadata_list)

        upload_job = UploadJob.create(user_id, photo_metadata_list, self.location_issuer)
        self.upload_job_repository.ensure_capacity(upload_job)
        saved_job = self.upload_job_repository.save(upload_job)

        logger.info("Created upload job %s for user %s with %d photos",
                    saved_job.job_id, user_id, saved_job.total_photos)

        photos: List[PhotoUploadUrlResponse] = []
        for photo in upload_job.photos:
            location = upload_job.write_locations[photo.photo_id]
            photos.append(PhotoUploadUrlResponse(
                photo_id=photo.photo_id,
                filename=photo.filename,
                upload_url=location.url,
                upload_method=location.method,
                expires_at=location.expires_at
            ))

        return InitializeUploadResponse(
            job_id=saved_job.job_id,
            status=saved_job.status.value,
            total_photos=saved_job.total_photos,
            photos=photos
        )

    def report_photo_started(self, job_id: str, photo_id: str, user_id: Optional[str] = None) -> UploadJobSnapshot:
        """Mark a photo as UPLOADING (the client is about to PUT it to S3)."""
        return self._apply_transition(job_id, photo_id, Photo.mark_started, user_id)

    def report_photo_completed(self, job_id: str, photo_id: str, user_id: Optional[str] = None) -> UploadJobSnapshot:
        """Mark a photo as COMPLETED and recompute the job status."""
        return self._apply_transition(job_id, photo_id, Photo.mark_completed, user_id)

    def report_photo_failed(self, job_id: str, photo_id: str, user_id: Optional[str] = None) -> UploadJobSnapshot:
        """Mark a photo as FAILED and recompute the job status."""
        return self._apply_transition(job_id, photo_id, Photo.mark_failed, user_id)

    def confirm_photo_stored(self, job_id: str, photo_id: str) -> UploadJobSnapshot:
        """
        Complete a photo after S3 reported its object was created.
        Used by the S3 event processor, which has no user context.
        """
        return self._apply_transition(job_id, photo_id, _mark_stored, None)

    def get_upload_job_status(self, job_id: str, user_id: Optional[str] = None) -> UploadJobStatusResponse:
        """
        Get upload job status with all photo statuses (for client polling).

        Raises:
            UploadJobNotFoundException: If the job does not exist or belongs to another user
        """
        snapshot = self._load(job_id, user_id).snapshot()

        logger.debug("Retrieved upload job %s (status=%s, %d/%d completed)",
                     job_id, snapshot.status.value, snapshot.completed_photos, snapshot.total_photos)

        return UploadJobStatusResponse.from_snapshot(snapshot)

    def get_photo(self, job_id: str, photo_id: str, user_id: Optional[str] = None) -> PhotoDetailResponse:
        """
        Get a single photo; completed photos include a pre-signed download URL.

        Raises:
            UploadJobNotFoundException: If the job does not exist or belongs to another user
            PhotoNotFoundException: If the photo is not part of the job
            S3Exception: If URL signing fails
        """
        photo = self._load(job_id, user_id).find_photo(photo_id)
        download_location = None
        if photo.status is PhotoStatus.COMPLETED:
            download_location = self.location_issuer.issue_read_location(photo)
        return PhotoDetailResponse.from_snapshot(photo, download_location)

    def _apply_transition(
        self,
        job_id: str,
        photo_id: str,
        transition: PhotoTransition,
        user_id: Optional[str]
    ) -> UploadJobSnapshot:
        """
        Load, transition and save a job, reloading when another writer saved it first.

        Transitions on one job are serialized within this service. Conflicts with
        writers in other processes are retried with jittered backoff until the
        save succeeds; every conflict means another transition was committed.
        A reload re-applies the transition to fresh state, so a duplicate report
        that lost the race fails with InvalidTransitionException.
        """
        attempt = 0
        while True:
            with self._job_lock(job_id):
                upload_job = self._load(job_id, user_id)
                photo = upload_job.apply_photo_transition(photo_id, transition)
                try:
                    saved_job = self.upload_job_repository.save(upload_job)
                except ConcurrentModificationException:
                    saved_job = None

            if saved_job is not None:
                logger.info("Photo %s marked as %s; upload job %s is %s (%d completed, %d failed of %d)",
                            photo_id, photo.status.value, job_id, saved_job.status.value,
                            saved_job.completed_photos, saved_job.failed_photos, saved_job.total_photos)
                return saved_job.snapshot()

            attempt += 1
            delay = _backoff_seconds(attempt)
            logger.info("Upload job %s changed concurrently, retrying photo %s in %.3fs (attempt %d)",
                        job_id, photo_id, delay, attempt + 1)
            time.sleep(delay)

    def _job_lock(self, job_id: str) -> threading.Lock:
        return self._job_locks[hash(job_id) % len(self._job_locks)]

    def _load(self, job_id: str, user_id: Optional[str]) -> UploadJob:
        upload_job = self.upload_job_repository.find_by_id(job_id)
        # Jobs of other users are reported as missing rather than forbidden.
        if upload_job is None or (user_id is not None and upload_job.user_id != user_id):
            raise UploadJobNotFoundException(f"Upload job '{job_id}' not found")
        return upload_job

    def _validate_limits(self, photo_metadata_list: Sequence[PhotoMetadata]) -> None:
        max_photos = config.settings.max_photos_per_job
        if len(photo_metadata_list) > max_photos:
            raise ValidationException(
                f"Upload job has {len(photo_metadata_list)} photos; the maximum is {max_photos}"
            )

        max_size_bytes = config.settings.max_file_size_mb * 1024 * 1024
        for metadata in photo_metadata_list:
            if metadata.file_size_bytes > max_size_bytes:
                raise ValidationException(
                    f"File '{metadata.original_filename}' ({metadata.file_size_bytes / (1024 * 1024):.2f}MB) "
                    f"exceeds maximum allowed size of {config.settings.max_file_size_mb}MB"
                )
