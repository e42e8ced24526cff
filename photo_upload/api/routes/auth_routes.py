"""
Authentication API routes.
"""
import logging

from fastapi import APIRouter, HTTPException, status

from photo_upload.models.dto.auth_dto import LoginRequest, LoginResponse, RegisterRequest, RegisterResponse
from photo_upload.services import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/api/auth", tags=["Authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest):
    """
    Register a new user.

    - **username**: 3-50 characters, letters, digits, `_`, `.`, `-`
    - **password**: at least 8 characters
    """
    user = auth_service.register_user(request.username, request.password)
    logger.info("Registered user %s", user['username'])
    return RegisterResponse(user_id=user['user_id'], username=user['username'])


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
def login(request: LoginRequest):
    """
    Authenticate user and return JWT access token.

    - **username**: User's username
    - **password**: User's password

    Returns JWT token for accessing protected endpoints.
    """
    user = auth_service.authenticate_user(request.username, request.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password"
        )

    access_token = auth_service.create_access_token(user['user_id'], user['username'])

    return LoginResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=user['user_id'],
        username=user['username']
    )
