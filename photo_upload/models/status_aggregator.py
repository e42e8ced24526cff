"""
Derives an upload job's status and counters from the statuses of its photos.

Counts are the source of truth: the job status is always recomputed from them,
never patched incrementally.
"""
from typing import Iterable, NamedTuple

from photo_upload.models.photo_status import PhotoStatus, UploadJobStatus


class AggregateStatus(NamedTuple):
    status: UploadJobStatus
    completed: int
    failed: int


def recompute(photos: Iterable) -> AggregateStatus:
    """
    Compute the job status for a collection of photos.

    Args:
        photos: Photos (or photo snapshots); only their ``status`` is read

    Returns:
        AggregateStatus with the derived status and completed/failed counts
    """
    total = completed = failed = 0
    for photo in photos:
        total += 1
        if photo.status is PhotoStatus.COMPLETED:
            completed += 1
        elif photo.status is PhotoStatus.FAILED:
            failed += 1

    if completed + failed < total:
        status = UploadJobStatus.IN_PROGRESS
    elif completed == total:
        status = UploadJobStatus.COMPLETED
    elif failed == total:
        status = UploadJobStatus.FAILED
    else:
        status = UploadJobStatus.PARTIAL_FAILURE

    return AggregateStatus(status, completed, failed)
