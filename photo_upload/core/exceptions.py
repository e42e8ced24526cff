"""
Custom exceptions for the Photo Upload API.
Provides specific error types for different failure scenarios.
"""


class PhotoUploadException(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationException(PhotoUploadException):
    """Raised when request data validation fails."""
    pass


class EmptyUploadJobException(PhotoUploadException):
    """Raised when an upload job is created without any photos."""
    def __init__(self, message: str = "Cannot create upload job with zero photos"):
        super().__init__(message)


class InvalidTransitionException(PhotoUploadException):
    """Raised when a photo status transition is not allowed from its current state."""
    def __init__(self, photo_id: str, current, target):
        self.photo_id = photo_id
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot transition photo '{photo_id}' from {current.value} to {target.value}"
        )


class PhotoNotFoundException(PhotoUploadException):
    """Raised when a photo does not exist or belongs to a different upload job."""
    pass


class UploadJobNotFoundException(PhotoUploadException):
    """Raised when an upload job is not found."""
    pass


class CorruptedUploadJobException(PhotoUploadException):
    """Raised when persisted upload job state violates the aggregate invariants."""
    pass


class ConcurrentModificationException(PhotoUploadException):
    """Raised when an upload job was saved by another writer since it was loaded."""
    pass


class UserAlreadyExistsException(PhotoUploadException):
    """Raised when registering a username that is already taken."""
    pass


class S3Exception(PhotoUploadException):
    """Raised when S3 operation fails."""
    pass


class DynamoDBException(PhotoUploadException):
    """Raised when DynamoDB operation fails."""
    pass
