import uuid

import pytest
from unittest.mock import patch
from moto import mock_aws
import boto3
from botocore.exceptions import ClientError
from photo_upload.repositories.dynamo_upload_job_repository import DynamoUploadJobRepository, estimate_item_size
from photo_upload.models.photo import Photo
from photo_upload.models.photo_metadata import PhotoMetadata
from photo_upload.models.photo_status import UploadJobStatus
from photo_upload.models.upload_job import UploadJob
from photo_upload.core import config
from photo_upload.services.upload_service import UploadService
from photo_upload.core.exceptions import (
    ConcurrentModificationException,
    CorruptedUploadJobException,
    DynamoDBException,
    ValidationException,
)


@pytest.fixture
def setup_test_env(monkeypatch):
    monkeypatch.setenv("UPLOAD_JOBS_TABLE_NAME", "UploadJobs-test")
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    config.settings = config.Settings()
    yield
    config.settings = config.Settings()


@pytest.fixture
def dynamodb_table(setup_test_env):
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        table = dynamodb.create_table(
            TableName="UploadJobs-test",
            KeySchema=[{"AttributeName": "job_id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "job_id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST"
        )
        yield table


@pytest.fixture
def new_job(location_issuer, make_metadata):
    return UploadJob.create("user-1", make_metadata(3), location_issuer)


class TestDynamoUploadJobRepository:
    def test_save_new_job(self, dynamodb_table, new_job):
        repo = DynamoUploadJobRepository()

        saved = repo.save(new_job)

        assert saved.version == 1
        item = dynamodb_table.get_item(Key={"job_id": new_job.job_id})["Item"]
        assert item["user_id"] == "user-1"
        assert item["status"] == "IN_PROGRESS"
        assert item["total_photos"] == 3
        assert item["version"] == 1
        assert len(item["photos"]) == 3
        assert item["photos"][0]["status"] == "PENDING"
        assert item["photos"][0]["s3_key"].startswith(f"photos/{new_job.job_id}/")
        assert "completed_at" not in item
        assert "upload_started_at" not in item["photos"][0]

    def test_find_by_id_round_trip(self, dynamodb_table, new_job):
        repo = DynamoUploadJobRepository()
        repo.save(new_job)

        result = repo.find_by_id(new_job.job_id)

        assert result is not None
        assert result.version == 1
        assert [p.photo_id for p in result.photos] == [p.photo_id for p in new_job.photos]
        assert result.photos[0].metadata == new_job.photos[0].metadata
        assert result.photos[0].s3_location == new_job.photos[0].s3_location
        assert result.created_at == new_job.created_at

    def test_find_by_id_not_found(self, dynamodb_table):
        repo = DynamoUploadJobRepository()
        assert repo.find_by_id("nonexistent-id") is None

    def test_save_terminal_job(self, dynamodb_table, new_job):
        repo = DynamoUploadJobRepository()
        repo.save(new_job)
        loaded = repo.find_by_id(new_job.job_id)
        for photo in loaded.photos:
            loaded.apply_photo_transition(photo.photo_id, Photo.mark_started)
            loaded.apply_photo_transition(photo.photo_id, Photo.mark_completed)

        repo.save(loaded)
        result = repo.find_by_id(new_job.job_id)

        assert result.status is UploadJobStatus.COMPLETED
        assert result.completed_photos == 3
        assert result.completed_at == loaded.completed_at
        assert result.version == 2
        assert all(photo.upload_completed_at is not None for photo in result.photos)

    def test_stale_save_raises_conflict(self, dynamodb_table, new_job):
        repo = DynamoUploadJobRepository()
        repo.save(new_job)
        first = repo.find_by_id(new_job.job_id)
        second = repo.find_by_id(new_job.job_id)

        first.apply_photo_transition(first.photos[0].photo_id, Photo.mark_failed)
        repo.save(first)
        second.apply_photo_transition(second.photos[1].photo_id, Photo.mark_failed)

        with pytest.raises(ConcurrentModificationException):
            repo.save(second)
        assert repo.find_by_id(new_job.job_id).failed_photos == 1

    def test_saving_new_job_twice_raises_conflict(self, dynamodb_table, new_job):
        repo = DynamoUploadJobRepository()
        repo.save(new_job)
        with pytest.raises(ConcurrentModificationException):
            repo.save(new_job)

    def test_find_by_id_corrupted_counters(self, dynamodb_table, new_job):
        repo = DynamoUploadJobRepository()
        repo.save(new_job)
        dynamodb_table.update_item(
            Key={"job_id": new_job.job_id},
            UpdateExpression="SET completed_photos = :c",
            ExpressionAttributeValues={":c": 2}
        )

        with pytest.raises(CorruptedUploadJobException):
            repo.find_by_id(new_job.job_id)

    def test_find_by_id_corrupted_photo_metadata(self, dynamodb_table, new_job):
        repo = DynamoUploadJobRepository()
        repo.save(new_job)
        item = dynamodb_table.get_item(Key={"job_id": new_job.job_id})["Item"]
        item["photos"][0]["mime_type"] = "text/csv"
        dynamodb_table.put_item(Item=item)

        with pytest.raises(CorruptedUploadJobException):
            repo.find_by_id(new_job.job_id)

    def test_save_client_error(self, dynamodb_table, new_job):
        repo = DynamoUploadJobRepository()
        error = ClientError({"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}}, "PutItem")

        with patch.object(repo.table, "put_item", side_effect=error):
            with pytest.raises(DynamoDBException) as exc_info:
                repo.save(new_job)
        assert "Failed to save upload job" in str(exc_info.value.message)

    def test_find_by_id_client_error(self, dynamodb_table):
        repo = DynamoUploadJobRepository()
        error = ClientError({"Error": {"Code": "InternalServerError", "Message": "boom"}}, "GetItem")

        with patch.object(repo.table, "get_item", side_effect=error):
            with pytest.raises(DynamoDBException):
                repo.find_by_id("job-1")

    def test_find_by_id_malformed_timestamp(self, dynamodb_table, new_job):
        repo = DynamoUploadJobRepository()
        repo.save(new_job)
        dynamodb_table.update_item(
            Key={"job_id": new_job.job_id},
            UpdateExpression="SET created_at = :c",
            ExpressionAttributeValues={":c": "yesterday"}
        )

        with pytest.raises(CorruptedUploadJobException):
            repo.find_by_id(new_job.job_id)

    def test_find_by_id_unknown_photo_status(self, dynamodb_table, new_job):
        repo = DynamoUploadJobRepository()
        repo.save(new_job)
        item = dynamodb_table.get_item(Key={"job_id": new_job.job_id})["Item"]
        item["photos"][1]["status"] = "ARCHIVED"
        dynamodb_table.put_item(Item=item)

        with pytest.raises(CorruptedUploadJobException):
            repo.find_by_id(new_job.job_id)

    def test_find_by_id_missing_attribute(self, dynamodb_table, new_job):
        repo = DynamoUploadJobRepository()
        repo.save(new_job)
        dynamodb_table.update_item(Key={"job_id": new_job.job_id}, UpdateExpression="REMOVE user_id")

        with pytest.raises(CorruptedUploadJobException):
            repo.find_by_id(new_job.job_id)


# Longest bucket name S3 allows.
LONG_BUCKET = "photo-upload-" + "x" * 50
LONGEST_FILENAME = "a" * 251 + ".jpg"


def _largest_metadata(count):
    return [PhotoMetadata(LONGEST_FILENAME, 50 * 1024 * 1024, "image/jpeg") for _ in range(count)]


class TestItemCapacity:
    @pytest.fixture
    def issuer(self, make_location_issuer):
        return make_location_issuer(bucket=LONG_BUCKET)

    def test_largest_allowed_job_can_finish(self, dynamodb_table, issuer):
        repo = DynamoUploadJobRepository()
        service = UploadService(upload_job_repository=repo, location_issuer=issuer)
        response = service.create_upload_job(
            str(uuid.uuid4()), _largest_metadata(config.settings.max_photos_per_job)
        )

        loaded = repo.find_by_id(response.job_id)
        for index, photo in enumerate(loaded.photos):
            loaded.apply_photo_transition(photo.photo_id, Photo.mark_started)
            transition = Photo.mark_completed if index % 2 else Photo.mark_failed
            loaded.apply_photo_transition(photo.photo_id, transition)
        repo.save(loaded)

        result = repo.find_by_id(response.job_id)
        assert result.status is UploadJobStatus.PARTIAL_FAILURE
        assert result.total_photos == config.settings.max_photos_per_job
        assert result.completed_photos + result.failed_photos == result.total_photos

    def test_job_too_large_to_finish_is_rejected_before_saving(self, dynamodb_table, issuer, monkeypatch):
        monkeypatch.setattr(config.settings, "max_photos_per_job", 500)
        service = UploadService(upload_job_repository=DynamoUploadJobRepository(), location_issuer=issuer)

        with pytest.raises(ValidationException) as exc_info:
            service.create_upload_job(str(uuid.uuid4()), _largest_metadata(500))

        assert "the limit is 400000 bytes" in exc_info.value.message
        assert dynamodb_table.scan()["Count"] == 0

    def test_item_size_estimate(self):
        assert estimate_item_size({"name": "photo"}) == 9
        assert estimate_item_size({"n": 1}) == 22
        assert estimate_item_size({"l": ["ab"]}) == 1 + 3 + 2 + 1
        assert estimate_item_size({"m": {"k": "v"}}) == 1 + 3 + 1 + 1 + 1
        assert estimate_item_size({"s": "é"}) == 3
