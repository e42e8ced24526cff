"""
Dependency injection container for FastAPI.
Provides singleton-like behavior for services and repositories.
"""
from functools import lru_cache
from photo_upload.core import config
from photo_upload.repositories.dynamo_upload_job_repository import DynamoUploadJobRepository
from photo_upload.repositories.in_memory_upload_job_repository import InMemoryUploadJobRepository
from photo_upload.repositories.location_issuer import LocationIssuer
from photo_upload.repositories.s3_repository import S3Repository
from photo_upload.repositories.upload_job_repository import UploadJobRepository
from photo_upload.services.upload_service import UploadService


@lru_cache()
def get_location_issuer() -> LocationIssuer:
    """Get S3Repository singleton instance."""
    return S3Repository()


@lru_cache()
def get_upload_job_repository() -> UploadJobRepository:
    """Get the upload job repository; in-memory when no DynamoDB table is configured."""
    if not config.settings.upload_jobs_table_name:
        return InMemoryUploadJobRepository()
    return DynamoUploadJobRepository()


@lru_cache()
def get_upload_service() -> UploadService:
    """Get UploadService singleton instance with injected dependencies."""
    return UploadService(
        upload_job_repository=get_upload_job_repository(),
        location_issuer=get_location_issuer()
    )
