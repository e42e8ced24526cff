"""
Global exception handler for the Photo Upload API.
Provides centralized error handling for all API exceptions.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from .exceptions import (
    CorruptedUploadJobException,
    DynamoDBException,
    EmptyUploadJobException,
    InvalidTransitionException,
    PhotoNotFoundException,
    S3Exception,
    UploadJobNotFoundException,
    UserAlreadyExistsException,
    ValidationException,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""

    @app.exception_handler(UploadJobNotFoundException)
    async def handle_job_not_found(request: Request, exc: UploadJobNotFoundException):
        return _error(404, "Not Found", exc.message)

    @app.exception_handler(PhotoNotFoundException)
    async def handle_photo_not_found(request: Request, exc: PhotoNotFoundException):
        return _error(404, "Not Found", exc.message)

    @app.exception_handler(EmptyUploadJobException)
    async def handle_empty_job(request: Request, exc: EmptyUploadJobException):
        return _error(400, "Empty Upload Job", exc.message)

    @app.exception_handler(ValidationException)
    async def handle_validation_error(request: Request, exc: ValidationException):
        return _error(400, "Validation Error", exc.message)

    @app.exception_handler(InvalidTransitionException)
    async def handle_invalid_transition(request: Request, exc: InvalidTransitionException):
        return _error(409, "Invalid Transition", exc.message)

    @app.exception_handler(UserAlreadyExistsException)
    async def handle_user_exists(request: Request, exc: UserAlreadyExistsException):
        return _error(409, "Conflict", exc.message)

    @app.exception_handler(CorruptedUploadJobException)
    async def handle_corrupted_job(request: Request, exc: CorruptedUploadJobException):
        logger.error("Corrupted upload job state: %s", exc.message)
        return _error(500, "Corrupted Upload Job", exc.message)

    @app.exception_handler(S3Exception)
    async def handle_s3_error(request: Request, exc: S3Exception):
        return _error(500, "S3 Error", exc.message)

    @app.exception_handler(DynamoDBException)
    async def handle_dynamodb_error(request: Request, exc: DynamoDBException):
        return _error(500, "Database Error", exc.message)

    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return _error(500, "Internal Server Error", "An unexpected error occurred")
