"""
Shared test fixtures and utilities.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from photo_upload.core import config, parameter_store
from photo_upload.models.photo_metadata import PhotoMetadata
from photo_upload.repositories.location_issuer import LocationIssuer, PresignedLocation

TEST_JWT_SECRET = "test-secret-change-in-production"
TEST_USER_ID = "user-123"
TEST_BUCKET = "test-bucket"


class FakeLocationIssuer(LocationIssuer):
    """Location issuer producing predictable URLs without touching AWS."""

    def __init__(self, bucket: str = TEST_BUCKET):
        self._bucket = bucket
        self.write_requests = []
        self.read_requests = []

    @property
    def bucket_name(self) -> str:
        return self._bucket

    def issue_write_location(self, photo):
        self.write_requests.append(photo.photo_id)
        return self._location(photo, "PUT")

    def issue_read_location(self, photo):
        self.read_requests.append(photo.photo_id)
        return self._location(photo, "GET")

    def _location(self, photo, method):
        return PresignedLocation(
            url=f"https://{self._bucket}.s3.amazonaws.com/{photo.s3_location.key}?method={method}",
            method=method,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1)
        )


@pytest.fixture(autouse=True)
def aws_test_env(monkeypatch):
    """Fake AWS credentials and a local JWT secret for every test."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')
    monkeypatch.setenv('AWS_REGION', 'us-east-1')
    monkeypatch.setenv('S3_BUCKET_NAME', TEST_BUCKET)
    monkeypatch.setattr(parameter_store, 'get_parameter', lambda name, region='us-east-1': TEST_JWT_SECRET)
    config.settings = config.Settings()
    yield
    config.settings = config.Settings()


@pytest.fixture
def location_issuer():
    return FakeLocationIssuer()


@pytest.fixture
def make_location_issuer():
    """Build a fake location issuer, e.g. for another bucket."""
    return FakeLocationIssuer


@pytest.fixture
def make_metadata():
    """Build a list of valid photo metadata."""
    def _make(count, mime_type="image/jpeg"):
        return [
            PhotoMetadata(
                original_filename=f"IMG_{i:04d}.jpg",
                file_size_bytes=1024 * (i + 1),
                mime_type=mime_type
            )
            for i in range(count)
        ]
    return _make


@pytest.fixture
def auth_headers():
    """Generate valid JWT token and return authorization headers."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": TEST_USER_ID,
        "username": "test_user",
        "exp": now + timedelta(hours=1),
        "iat": now
    }
    token = jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}
