"""
Upload Job Repository for DynamoDB operations.
Stores each upload job and all of its photos as a single item, so one
conditional put persists the whole aggregate atomically.
"""
import dataclasses
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from photo_upload.core import config
from photo_upload.core.exceptions import (
    ConcurrentModificationException,
    CorruptedUploadJobException,
    DynamoDBException,
    PhotoUploadException,
    ValidationException,
)
from photo_upload.models.photo_metadata import PhotoMetadata, S3Location
from photo_upload.models.photo_status import PhotoStatus, UploadJobStatus
from photo_upload.models.snapshots import PhotoSnapshot, UploadJobSnapshot
from photo_upload.models.upload_job import UploadJob
from photo_upload.repositories.upload_job_repository import UploadJobRepository, job_from_snapshot

# DynamoDB item size limit (400 KB), kept below the service's 409,600 byte ceiling.
MAX_ITEM_SIZE_BYTES = 400_000

# Longest isoformat() a timestamp can take: microseconds plus a UTC offset.
_WIDEST_TIMESTAMP = datetime.max.replace(tzinfo=timezone.utc)


class DynamoUploadJobRepository(UploadJobRepository):
    """Repository for upload jobs in DynamoDB, keyed by job_id."""

    def __init__(self):
        self.dynamodb = boto3.resource('dynamodb', region_name=config.settings.aws_region)
        self.table = self.dynamodb.Table(config.settings.upload_jobs_table_name)

    def ensure_capacity(self, upload_job: UploadJob) -> None:
        """
        Reject a job whose item would outgrow DynamoDB once every photo is finished.

        Transitions only add timestamps, so the finished item is the largest
        the job will ever be.

        Raises:
            ValidationException: If the finished item would exceed MAX_ITEM_SIZE_BYTES
        """
        snapshot = upload_job.snapshot()
        size = estimate_item_size(self._snapshot_to_item(_finished_snapshot(snapshot)))
        if size > MAX_ITEM_SIZE_BYTES:
            raise ValidationException(
                f"Upload job with {snapshot.total_photos} photos would need {size} bytes of storage "
                f"once finished; the limit is {MAX_ITEM_SIZE_BYTES} bytes. Use fewer photos or shorter filenames"
            )

    def save(self, upload_job: UploadJob) -> UploadJob:
        """
        Save the job with a version check.

        A never-saved job (version 0) must not exist yet; otherwise the stored
        version must equal the job's version. The stored version is incremented.

        Raises:
            ConcurrentModificationException: If the version check fails
            DynamoDBException: If the put fails for any other reason
        """
        snapshot = upload_job.snapshot()
        item = self._snapshot_to_item(snapshot)
        item['version'] = snapshot.version + 1

        if snapshot.version == 0:
            condition = {'ConditionExpression': 'attribute_not_exists(job_id)'}
        else:
            condition = {
                'ConditionExpression': '#version = :expected_version',
                'ExpressionAttributeNames': {'#version': 'version'},
                'ExpressionAttributeValues': {':expected_version': snapshot.version}
            }

        try:
            self.table.put_item(Item=item, **condition)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException':
                raise ConcurrentModificationException(
                    f"Upload job '{snapshot.job_id}' was modified concurrently (expected version {snapshot.version})"
                ) from e
            raise DynamoDBException(f"Failed to save upload job: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error saving upload job: {str(e)}") from e

        return job_from_snapshot(self._item_to_snapshot(item))

    def find_by_id(self, job_id: str) -> Optional[UploadJob]:
        """
        Retrieve an upload job by ID.

        Raises:
            CorruptedUploadJobException: If the stored item violates the job invariants
            DynamoDBException: If the read fails
        """
        try:
            response = self.table.get_item(Key={'job_id': job_id}, ConsistentRead=True)

            if 'Item' not in response:
                return None

            return job_from_snapshot(self._item_to_snapshot(response['Item']))

        except ValidationException as e:
            raise CorruptedUploadJobException(f"Upload job '{job_id}' has invalid stored photo data: {e.message}") from e
        except (KeyError, ValueError) as e:
            # Missing attributes, unparseable timestamps or unknown statuses
            raise CorruptedUploadJobException(f"Upload job '{job_id}' has malformed stored data: {e!r}") from e
        except PhotoUploadException:
            raise
        except ClientError as e:
            raise DynamoDBException(f"Failed to get upload job: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error getting upload job: {str(e)}") from e

    def _snapshot_to_item(self, snapshot: UploadJobSnapshot) -> dict:
        item = {
            'job_id': snapshot.job_id,
            'user_id': snapshot.user_id,
            'status': snapshot.status.value,
            'total_photos': snapshot.total_photos,
            'completed_photos': snapshot.completed_photos,
            'failed_photos': snapshot.failed_photos,
            'created_at': snapshot.created_at.isoformat(),
            'updated_at': snapshot.updated_at.isoformat(),
            'version': snapshot.version,
            'photos': [self._photo_to_item(photo) for photo in snapshot.photos]
        }
        if snapshot.completed_at:
            item['completed_at'] = snapshot.completed_at.isoformat()
        return item

    def _photo_to_item(self, photo: PhotoSnapshot) -> dict:
        item = {
            'photo_id': photo.photo_id,
            'user_id': photo.user_id,
            'original_filename': photo.metadata.original_filename,
            'file_size_bytes': photo.metadata.file_size_bytes,
            'mime_type': photo.metadata.mime_type,
            's3_bucket': photo.s3_location.bucket,
            's3_key': photo.s3_location.key,
            'status': photo.status.value,
            'created_at': photo.created_at.isoformat(),
            'updated_at': photo.updated_at.isoformat()
        }
        if photo.upload_started_at:
            item['upload_started_at'] = photo.upload_started_at.isoformat()
        if photo.upload_completed_at:
            item['upload_completed_at'] = photo.upload_completed_at.isoformat()
        return item

    def _item_to_snapshot(self, item: dict) -> UploadJobSnapshot:
        """Convert DynamoDB item to an upload job snapshot."""
        job_id = item['job_id']
        return UploadJobSnapshot(
            job_id=job_id,
            user_id=item['user_id'],
            status=UploadJobStatus(item['status']),
            total_photos=int(item['total_photos']),
            completed_photos=int(item['completed_photos']),
            failed_photos=int(item['failed_photos']),
            created_at=datetime.fromisoformat(item['created_at']),
            updated_at=datetime.fromisoformat(item['updated_at']),
            completed_at=_parse_optional(item.get('completed_at')),
            version=int(item['version']),
            photos=tuple(self._item_to_photo(job_id, photo) for photo in item.get('photos', []))
        )

    def _item_to_photo(self, job_id: str, item: dict) -> PhotoSnapshot:
        metadata = PhotoMetadata(
            original_filename=item['original_filename'],
            file_size_bytes=int(item['file_size_bytes']),
            mime_type=item['mime_type']
        )
        return PhotoSnapshot(
            photo_id=item['photo_id'],
            job_id=job_id,
            user_id=item['user_id'],
            metadata=metadata,
            filename=metadata.generate_s3_filename(item['photo_id']),
            s3_location=S3Location(bucket=item['s3_bucket'], key=item['s3_key']),
            status=PhotoStatus(item['status']),
            created_at=datetime.fromisoformat(item['created_at']),
            updated_at=datetime.fromisoformat(item['updated_at']),
            upload_started_at=_parse_optional(item.get('upload_started_at')),
            upload_completed_at=_parse_optional(item.get('upload_completed_at'))
        )


def _parse_optional(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _finished_snapshot(snapshot: UploadJobSnapshot) -> UploadJobSnapshot:
    """The job as it will look with every photo finished, using the longest status values and timestamps."""
    photos = tuple(
        dataclasses.replace(
            photo,
            status=PhotoStatus.COMPLETED,
            updated_at=_WIDEST_TIMESTAMP,
            upload_started_at=_WIDEST_TIMESTAMP,
            upload_completed_at=_WIDEST_TIMESTAMP
        )
        for photo in snapshot.photos
    )
    return dataclasses.replace(
        snapshot,
        status=UploadJobStatus.PARTIAL_FAILURE,
        created_at=_WIDEST_TIMESTAMP,
        updated_at=_WIDEST_TIMESTAMP,
        completed_at=_WIDEST_TIMESTAMP,
        photos=photos
    )


def estimate_item_size(item: dict) -> int:
    """
    Upper bound of an item's size as DynamoDB counts it.

    Attribute names count as UTF-8 bytes like string values. Every number is
    charged the 21 byte maximum, and maps and lists carry 3 bytes plus 1 per element.
    """
    return sum(len(name.encode('utf-8')) + _value_size(value) for name, value in item.items())


def _value_size(value) -> int:
    if isinstance(value, str):
        return len(value.encode('utf-8'))
    if isinstance(value, bool) or value is None:
        return 1
    if isinstance(value, (int, float, Decimal)):
        return 21
    if isinstance(value, dict):
        return 3 + sum(len(name.encode('utf-8')) + _value_size(element) + 1 for name, element in value.items())
    if isinstance(value, (list, tuple)):
        return 3 + sum(_value_size(element) + 1 for element in value)
    raise TypeError(f"Unsupported DynamoDB attribute type: {type(value).__name__}")
