"""
Abstract base class for storage location issuers.
Defines the contract for granting time-bounded direct-to-storage access to a photo.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from photo_upload.models.snapshots import PhotoSnapshot


@dataclass(frozen=True)
class PresignedLocation:
    """A URL the client can use directly against object storage until it expires."""
    url: str
    method: str
    expires_at: datetime


class LocationIssuer(ABC):
    """Issues write and read locations for photos."""

    @property
    @abstractmethod
    def bucket_name(self) -> str:
        """Bucket new photos are stored in."""
        pass

    @abstractmethod
    def issue_write_location(self, photo: PhotoSnapshot) -> PresignedLocation:
        """Grant upload access to the photo's S3 location."""
        pass

    @abstractmethod
    def issue_read_location(self, photo: PhotoSnapshot) -> PresignedLocation:
        """Grant download access to the photo's S3 location."""
        pass
