"""
S3 Repository for photo storage locations.
Issues pre-signed URLs so clients upload and download photos directly against S3,
keeping photo bytes off the API entirely.
"""
import logging
from datetime import timedelta

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from photo_upload.core import config
from photo_upload.core.exceptions import S3Exception
from photo_upload.models.snapshots import PhotoSnapshot, utcnow
from photo_upload.repositories.location_issuer import LocationIssuer, PresignedLocation

logger = logging.getLogger(__name__)


class S3Repository(LocationIssuer):
    """Location issuer backed by S3 pre-signed URLs."""

    def __init__(self):
        self.s3_client = boto3.client('s3', region_name=config.settings.aws_region)
        self._bucket_name = config.settings.s3_bucket_name
        self.expiration_seconds = config.settings.presigned_url_expiration_minutes * 60

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def issue_write_location(self, photo: PhotoSnapshot) -> PresignedLocation:
        """
        Generate a pre-signed PUT URL for the photo's S3 location.

        The signature covers the photo's content type, so the client must send
        the same Content-Type header it declared when the job was created.

        Raises:
            S3Exception: If signing fails
        """
        return self._presign(
            'put_object',
            'PUT',
            photo,
            {'ContentType': photo.metadata.mime_type}
        )

    def issue_read_location(self, photo: PhotoSnapshot) -> PresignedLocation:
        """
        Generate a pre-signed GET URL for the photo's S3 location.

        Raises:
            S3Exception: If signing fails
        """
        return self._presign('get_object', 'GET', photo, {})

    def _presign(self, client_method: str, http_method: str, photo: PhotoSnapshot, extra_params: dict) -> PresignedLocation:
        location = photo.s3_location
        params = {'Bucket': location.bucket, 'Key': location.key, **extra_params}
        try:
            expires_at = utcnow() + timedelta(seconds=self.expiration_seconds)
            url = self.s3_client.generate_presigned_url(
                ClientMethod=client_method,
                Params=params,
                ExpiresIn=self.expiration_seconds
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to sign %s URL for %s: %s", http_method, location.to_uri(), e)
            raise S3Exception(f"Failed to generate S3 {http_method} URL: {str(e)}") from e

        logger.debug(
            "Generated pre-signed %s URL for %s (expires in %s seconds)",
            http_method, location.to_uri(), self.expiration_seconds
        )
        return PresignedLocation(url=url, method=http_method, expires_at=expires_at)
