"""
Value objects describing a photo file and where it lives in S3.
"""
import re
from dataclasses import dataclass

from photo_upload.core.exceptions import ValidationException

ALLOWED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/heic",
})

PHOTOS_PREFIX = "photos"

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(filename: str) -> str:
    """Replace characters that are unsafe in an S3 key and lower-case the result."""
    return _UNSAFE_KEY_CHARS.sub("_", filename).lower()


@dataclass(frozen=True)
class PhotoMetadata:
    """Immutable information about the photo file supplied by the client."""

    original_filename: str
    file_size_bytes: int
    mime_type: str

    def __post_init__(self):
        if not self.original_filename or not self.original_filename.strip():
            raise ValidationException("Original filename cannot be blank")
        if self.file_size_bytes <= 0:
            raise ValidationException("File size must be positive")
        if self.mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationException(f"Invalid image MIME type: {self.mime_type}")

    def generate_s3_filename(self, photo_id: str) -> str:
        """
        Generate a unique S3-safe filename.

        Format: {photo_id}-{sanitized-original-name}
        """
        return f"{photo_id}-{sanitize_filename(self.original_filename)}"


@dataclass(frozen=True)
class S3Location:
    """Bucket and key of a photo object."""

    bucket: str
    key: str

    def __post_init__(self):
        if not self.bucket or not self.bucket.strip():
            raise ValidationException("S3 bucket cannot be blank")
        if not self.key or not self.key.strip():
            raise ValidationException("S3 key cannot be blank")

    @classmethod
    def for_photo(cls, bucket: str, job_id: str, filename: str) -> "S3Location":
        """Key photos under photos/{job_id}/ so an object key identifies its job."""
        return cls(bucket=bucket, key=f"{PHOTOS_PREFIX}/{job_id}/{filename}")

    def to_uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"
