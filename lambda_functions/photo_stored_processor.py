"""
Lambda function confirming photos uploaded directly to S3.
Triggered by S3 ObjectCreated events on the photos/ prefix.
"""
import json
import logging
import re
from typing import Optional, Tuple
from urllib.parse import unquote_plus

from photo_upload.core.exceptions import (
    InvalidTransitionException,
    PhotoNotFoundException,
    UploadJobNotFoundException,
)
from photo_upload.core.logging_config import configure_logging
from photo_upload.services.upload_service import UploadService

configure_logging()
logger = logging.getLogger(__name__)

_UUID = r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}'
_PHOTO_KEY = re.compile(rf'^photos/({_UUID})/({_UUID})-')


def handler(event, context, upload_service: UploadService = None):
    """
    Lambda handler for S3 event processing.

    S3 delivers events at least once, so a photo that is already terminal is
    skipped rather than treated as an error.

    Args:
        event: S3 event containing bucket and object information
        context: Lambda context object
        upload_service: Service override for tests

    Returns:
        dict: Processing result with confirmed and skipped keys
    """
    upload_service = upload_service or UploadService()
    confirmed = []
    skipped = []

    for record in event.get('Records', []):
        bucket = record['s3']['bucket']['name']
        s3_key = unquote_plus(record['s3']['object']['key'])

        ids = _extract_ids(s3_key)
        if not ids:
            logger.warning("Ignoring object outside the photos layout: s3://%s/%s", bucket, s3_key)
            skipped.append(s3_key)
            continue

        job_id, photo_id = ids
        try:
            upload_service.confirm_photo_stored(job_id, photo_id)
        except InvalidTransitionException as e:
            logger.info("Photo %s already settled, skipping: %s", photo_id, e.message)
            skipped.append(s3_key)
            continue
        except (UploadJobNotFoundException, PhotoNotFoundException) as e:
            logger.warning("No photo for s3://%s/%s: %s", bucket, s3_key, e.message)
            skipped.append(s3_key)
            continue

        logger.info("Confirmed photo %s of job %s from s3://%s/%s", photo_id, job_id, bucket, s3_key)
        confirmed.append(s3_key)

    return {
        'statusCode': 200,
        'body': json.dumps({
            'confirmed': confirmed,
            'skipped': skipped
        })
    }


def _extract_ids(s3_key: str) -> Optional[Tuple[str, str]]:
    """
    Extract (job_id, photo_id) from an S3 key.
    Expected format: photos/{job_id}/{photo_id}-{sanitized-filename}

    Returns:
        Tuple of ids or None if the key does not match
    """
    match = _PHOTO_KEY.match(s3_key)
    return (match.group(1), match.group(2)) if match else None
