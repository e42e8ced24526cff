"""
Abstract base class for upload job repositories.
Defines the contract for persisting an upload job together with all of its photos.
"""
from abc import ABC, abstractmethod
from typing import Optional

from photo_upload.models.photo import Photo
from photo_upload.models.snapshots import UploadJobSnapshot
from photo_upload.models.upload_job import UploadJob


class UploadJobRepository(ABC):
    """
    Repository interface for upload jobs.

    Implementations store a job and its photos as one atomic unit and apply
    optimistic concurrency on the job's version.
    """

    @abstractmethod
    def save(self, upload_job: UploadJob) -> UploadJob:
        """
        Persist the job if nobody else saved it since it was loaded.

        Returns:
            The persisted job, carrying the incremented version

        Raises:
            ConcurrentModificationException: If the stored version differs from the job's version
        """
        pass

    @abstractmethod
    def find_by_id(self, job_id: str) -> Optional[UploadJob]:
        """Find an upload job by ID, or None if it does not exist."""
        pass

    def ensure_capacity(self, upload_job: UploadJob) -> None:
        """
        Check that the job can still be saved once every photo is finished.
        Stores without a size limit accept every job.

        Raises:
            ValidationException: If the finished job would not fit the store
        """


def job_from_snapshot(snapshot: UploadJobSnapshot) -> UploadJob:
    """Rebuild a live upload job from a stored snapshot through the reconstruction factories."""
    photos = [
        Photo.reconstruct(
            photo_id=photo.photo_id,
            job_id=photo.job_id,
            user_id=photo.user_id,
            metadata=photo.metadata,
            s3_location=photo.s3_location,
            status=photo.status,
            created_at=photo.created_at,
            updated_at=photo.updated_at,
            upload_started_at=photo.upload_started_at,
            upload_completed_at=photo.upload_completed_at
        )
        for photo in snapshot.photos
    ]
    return UploadJob.reconstruct(
        job_id=snapshot.job_id,
        user_id=snapshot.user_id,
        photos=photos,
        status=snapshot.status,
        total_photos=snapshot.total_photos,
        completed_photos=snapshot.completed_photos,
        failed_photos=snapshot.failed_photos,
        created_at=snapshot.created_at,
        updated_at=snapshot.updated_at,
        completed_at=snapshot.completed_at,
        version=snapshot.version
    )
