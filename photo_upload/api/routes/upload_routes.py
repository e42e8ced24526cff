"""
Upload API routes.
Handles HTTP endpoints for upload jobs and per-photo status reports.
"""
import logging

from fastapi import APIRouter, Depends, Response, status

from photo_upload.core.auth_dependencies import verify_token
from photo_upload.core.dependencies import get_upload_service
from photo_upload.models.dto.upload_dto import (
    InitializeUploadRequest,
    InitializeUploadResponse,
    PhotoDetailResponse,
    UploadJobStatusResponse,
)
from photo_upload.services.upload_service import UploadService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/api/uploads", tags=["Uploads"])


@router.post("", response_model=InitializeUploadResponse, status_code=status.HTTP_201_CREATED)
def initialize_upload(
    request: InitializeUploadRequest,
    upload_service: UploadService = Depends(get_upload_service),
    user_id: str = Depends(verify_token)
):
    """
    Create an upload job.

    Returns one pre-signed S3 PUT URL per photo; the client uploads the bytes
    directly to S3 and reports progress through the photo endpoints.
    """
    logger.info("Initializing upload for user %s with %d photos", user_id, len(request.photos))
    metadata = [photo.to_metadata() for photo in request.photos]
    return upload_service.create_upload_job(user_id, metadata)


@router.get("/{job_id}", response_model=UploadJobStatusResponse)
def get_upload_job_status(
    job_id: str,
    upload_service: UploadService = Depends(get_upload_service),
    user_id: str = Depends(verify_token)
):
    """
    Get upload job status with all photo statuses (for polling).
    """
    return upload_service.get_upload_job_status(job_id, user_id)


@router.put("/{job_id}/photos/{photo_id}/start", status_code=status.HTTP_204_NO_CONTENT)
def start_photo_upload(
    job_id: str,
    photo_id: str,
    upload_service: UploadService = Depends(get_upload_service),
    user_id: str = Depends(verify_token)
):
    """
    Mark a photo as started uploading.
    Transition: PENDING -> UPLOADING
    """
    upload_service.report_photo_started(job_id, photo_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{job_id}/photos/{photo_id}/complete", status_code=status.HTTP_204_NO_CONTENT)
def complete_photo_upload(
    job_id: str,
    photo_id: str,
    upload_service: UploadService = Depends(get_upload_service),
    user_id: str = Depends(verify_token)
):
    """
    Mark a photo as completed.
    Transition: UPLOADING -> COMPLETED; also recomputes the job status.
    """
    upload_service.report_photo_completed(job_id, photo_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{job_id}/photos/{photo_id}/fail", status_code=status.HTTP_204_NO_CONTENT)
def fail_photo_upload(
    job_id: str,
    photo_id: str,
    upload_service: UploadService = Depends(get_upload_service),
    user_id: str = Depends(verify_token)
):
    """
    Mark a photo as failed.
    Transition: PENDING | UPLOADING -> FAILED; also recomputes the job status.
    """
    logger.warning("Marking photo %s of job %s as failed", photo_id, job_id)
    upload_service.report_photo_failed(job_id, photo_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{job_id}/photos/{photo_id}", response_model=PhotoDetailResponse)
def get_photo(
    job_id: str,
    photo_id: str,
    upload_service: UploadService = Depends(get_upload_service),
    user_id: str = Depends(verify_token)
):
    """
    Get one photo; completed photos include a pre-signed download URL.
    """
    return upload_service.get_photo(job_id, photo_id, user_id)
