"""
Main FastAPI application entry point.
Configures and initializes the Photo Upload API.
"""
import logging

from fastapi import FastAPI, Request
from mangum import Mangum
from photo_upload.core.config import settings
from photo_upload.core.exception_handler import register_exception_handlers
from photo_upload.core.logging_config import configure_logging
from photo_upload.api.routes import auth_routes, health_routes, upload_routes

configure_logging()
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Batch photo uploads direct to S3 with server-side progress tracking",
    root_path=f"/{settings.environment}"
)

# Register exception handlers
register_exception_handlers(app)

# Register routes
app.include_router(health_routes.router)
app.include_router(auth_routes.router)
app.include_router(upload_routes.router)


@app.middleware("http")
async def log_request(request: Request, call_next):
    response = await call_next(request)
    logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
    return response

# Lambda handler for AWS
handler = Mangum(app, lifespan="off")


# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
