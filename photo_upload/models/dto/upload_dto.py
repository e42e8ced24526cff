"""
Data Transfer Objects for the Upload API.
Defines request and response schemas for upload job endpoints.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from photo_upload.models.photo_metadata import ALLOWED_MIME_TYPES, PhotoMetadata
from photo_upload.models.snapshots import PhotoSnapshot, UploadJobSnapshot


class PhotoMetadataRequest(BaseModel):
    """Metadata of one photo the client is about to upload."""
    filename: str = Field(..., min_length=1, max_length=255, description="Original filename")
    file_size_bytes: int = Field(..., gt=0, description="File size in bytes")
    mime_type: str = Field(..., description="Image MIME type")

    @field_validator('filename')
    @classmethod
    def validate_filename(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Filename cannot be empty")
        return v.strip()

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ALLOWED_MIME_TYPES:
            raise ValueError(f"Unsupported MIME type '{v}'. Allowed: {', '.join(sorted(ALLOWED_MIME_TYPES))}")
        return v

    def to_metadata(self) -> PhotoMetadata:
        return PhotoMetadata(
            original_filename=self.filename,
            file_size_bytes=self.file_size_bytes,
            mime_type=self.mime_type
        )


class InitializeUploadRequest(BaseModel):
    """Request schema for creating an upload job."""
    photos: list[PhotoMetadataRequest] = Field(..., description="Photos to upload in this job")


class PhotoUploadUrlResponse(BaseModel):
    """Where and how to upload one photo."""
    photo_id: str
    filename: str
    upload_url: str
    upload_method: str = "PUT"
    expires_at: datetime


class InitializeUploadResponse(BaseModel):
    """Response schema for a newly created upload job."""
    job_id: str
    status: str
    total_photos: int
    photos: list[PhotoUploadUrlResponse]


class PhotoStatusResponse(BaseModel):
    """Response schema for a photo inside an upload job."""
    photo_id: str
    filename: str
    original_filename: str
    status: str
    file_size_bytes: int
    mime_type: str
    created_at: datetime
    upload_started_at: Optional[datetime] = None
    upload_completed_at: Optional[datetime] = None

    @classmethod
    def from_snapshot(cls, photo: PhotoSnapshot) -> "PhotoStatusResponse":
        return cls(**_photo_fields(photo))


class PhotoDetailResponse(PhotoStatusResponse):
    """Single photo, with a download URL once the upload is completed."""
    job_id: str
    s3_uri: str
    download_url: Optional[str] = None
    download_url_expires_at: Optional[datetime] = None

    @classmethod
    def from_snapshot(cls, photo: PhotoSnapshot, download_location=None) -> "PhotoDetailResponse":
        return cls(
            **_photo_fields(photo),
            job_id=photo.job_id,
            s3_uri=photo.s3_location.to_uri(),
            download_url=download_location.url if download_location else None,
            download_url_expires_at=download_location.expires_at if download_location else None
        )


class UploadJobStatusResponse(BaseModel):
    """Response schema for upload job status polling."""
    job_id: str
    user_id: str
    status: str
    total_photos: int
    completed_photos: int
    failed_photos: int
    pending_photos: int
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    photos: list[PhotoStatusResponse]

    @classmethod
    def from_snapshot(cls, job: UploadJobSnapshot) -> "UploadJobStatusResponse":
        return cls(
            job_id=job.job_id,
            user_id=job.user_id,
            status=job.status.value,
            total_photos=job.total_photos,
            completed_photos=job.completed_photos,
            failed_photos=job.failed_photos,
            pending_photos=job.pending_photos,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
            photos=[PhotoStatusResponse.from_snapshot(photo) for photo in job.photos]
        )


def _photo_fields(photo: PhotoSnapshot) -> dict:
    return {
        'photo_id': photo.photo_id,
        'filename': photo.filename,
        'original_filename': photo.metadata.original_filename,
        'status': photo.status.value,
        'file_size_bytes': photo.metadata.file_size_bytes,
        'mime_type': photo.metadata.mime_type,
        'created_at': photo.created_at,
        'upload_started_at': photo.upload_started_at,
        'upload_completed_at': photo.upload_completed_at
    }
