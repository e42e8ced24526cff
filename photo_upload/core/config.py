"""
Core configuration for the Photo Upload API.
Manages environment variables and AWS service settings.
"""
import logging
import os
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # AWS Configuration
    aws_region: str = os.getenv("AWS_REGION", "us-east-1")
    s3_bucket_name: str = os.getenv("S3_BUCKET_NAME", "")
    upload_jobs_table_name: str = os.getenv("UPLOAD_JOBS_TABLE_NAME", "")
    users_table_name: str = os.getenv("USERS_TABLE_NAME", "")

    # API Configuration
    api_title: str = os.getenv("API_TITLE", "Photo Upload API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Upload Limits
    # 350 photos with 255 character filenames still fit one DynamoDB item when finished
    max_photos_per_job: int = int(os.getenv("MAX_PHOTOS_PER_JOB", "350"))
    max_file_size_mb: int = int(os.getenv("MAX_FILE_SIZE_MB", "50"))
    presigned_url_expiration_minutes: int = int(os.getenv("PRESIGNED_URL_EXPIRATION_MINUTES", "60"))

    # Optimistic concurrency: backoff between reloads after a conflicting save
    transition_retry_base_delay_ms: int = int(os.getenv("TRANSITION_RETRY_BASE_DELAY_MS", "10"))
    transition_retry_max_delay_ms: int = int(os.getenv("TRANSITION_RETRY_MAX_DELAY_MS", "250"))

    # Authentication
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    jwt_expiration_hours: int = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))

    @property
    def jwt_secret(self) -> str:
        """Get JWT secret from Parameter Store."""
        try:
            from photo_upload.core.parameter_store import get_parameter
            return get_parameter(f"/photo-upload-api/{self.environment}/jwt-secret", self.aws_region)
        except Exception as e:
            # Fallback for local dev or if parameter doesn't exist
            logger.warning("Using fallback JWT secret: %s", e)
            return os.getenv("JWT_SECRET", "dev-secret-change-in-production")

    # Environment
    environment: str = os.getenv("ENVIRONMENT", "dev")

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
