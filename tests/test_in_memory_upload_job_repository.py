import pytest
from photo_upload.core.exceptions import ConcurrentModificationException
from photo_upload.models.photo import Photo
from photo_upload.models.upload_job import UploadJob
from photo_upload.repositories.in_memory_upload_job_repository import InMemoryUploadJobRepository


@pytest.fixture
def repo():
    return InMemoryUploadJobRepository()


@pytest.fixture
def new_job(location_issuer, make_metadata):
    return UploadJob.create("user-1", make_metadata(2), location_issuer)


class TestInMemoryUploadJobRepository:
    def test_save_new_job_increments_version(self, repo, new_job):
        saved = repo.save(new_job)

        assert saved.job_id == new_job.job_id
        assert saved.version == 1
        assert new_job.version == 0

    def test_empty_repository_is_truthy(self, repo):
        assert repo

    def test_find_by_id_returns_fresh_copy(self, repo, new_job):
        repo.save(new_job)

        first = repo.find_by_id(new_job.job_id)
        second = repo.find_by_id(new_job.job_id)
        first.apply_photo_transition(first.photos[0].photo_id, Photo.mark_started)

        assert first is not second
        assert second.photos[0].status.value == "PENDING"
        assert repo.find_by_id(new_job.job_id).photos[0].status.value == "PENDING"

    def test_find_by_id_not_found(self, repo):
        assert repo.find_by_id("nonexistent") is None

    def test_save_loaded_job(self, repo, new_job):
        repo.save(new_job)
        loaded = repo.find_by_id(new_job.job_id)
        loaded.apply_photo_transition(loaded.photos[0].photo_id, Photo.mark_failed)

        saved = repo.save(loaded)

        assert saved.version == 2
        assert repo.find_by_id(new_job.job_id).failed_photos == 1

    def test_stale_save_rejected(self, repo, new_job):
        repo.save(new_job)
        first = repo.find_by_id(new_job.job_id)
        second = repo.find_by_id(new_job.job_id)
        photo_ids = [photo.photo_id for photo in first.photos]

        first.apply_photo_transition(photo_ids[0], Photo.mark_failed)
        repo.save(first)
        second.apply_photo_transition(photo_ids[1], Photo.mark_failed)

        with pytest.raises(ConcurrentModificationException):
            repo.save(second)

        stored = repo.find_by_id(new_job.job_id)
        assert stored.failed_photos == 1
        assert stored.version == 2

    def test_saving_new_job_twice_rejected(self, repo, new_job):
        repo.save(new_job)
        with pytest.raises(ConcurrentModificationException):
            repo.save(new_job)
