"""
In-process upload job repository.
Used for local development and tests; follows the same versioning rules as DynamoDB.
"""
import dataclasses
import threading
from typing import Dict, Optional

from photo_upload.core.exceptions import ConcurrentModificationException
from photo_upload.models.snapshots import UploadJobSnapshot
from photo_upload.models.upload_job import UploadJob
from photo_upload.repositories.upload_job_repository import UploadJobRepository, job_from_snapshot


class InMemoryUploadJobRepository(UploadJobRepository):
    """Stores immutable snapshots so callers never share live aggregates."""

    def __init__(self):
        self._lock = threading.Lock()
        self._jobs: Dict[str, UploadJobSnapshot] = {}

    def save(self, upload_job: UploadJob) -> UploadJob:
        snapshot = upload_job.snapshot()
        with self._lock:
            stored = self._jobs.get(snapshot.job_id)
            stored_version = stored.version if stored else 0
            if stored_version != snapshot.version:
                raise ConcurrentModificationException(
                    f"Upload job '{snapshot.job_id}' was modified concurrently "
                    f"(expected version {snapshot.version}, found {stored_version})"
                )
            persisted = dataclasses.replace(snapshot, version=snapshot.version + 1)
            self._jobs[snapshot.job_id] = persisted
        return job_from_snapshot(persisted)

    def find_by_id(self, job_id: str) -> Optional[UploadJob]:
        with self._lock:
            stored = self._jobs.get(job_id)
        if stored is None:
            return None
        return job_from_snapshot(stored)
