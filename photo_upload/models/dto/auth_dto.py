"""
Data Transfer Objects for authentication endpoints.
"""
from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Request model for user login."""
    username: str = Field(..., description="Username")
    password: str = Field(..., description="Password")


class LoginResponse(BaseModel):
    """Response model for successful login."""
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user_id: str = Field(..., description="Authenticated user id")
    username: str = Field(..., description="Authenticated username")


class RegisterRequest(BaseModel):
    """Request model for user registration."""
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$", description="Username")
    password: str = Field(..., min_length=8, max_length=128, description="Password")


class RegisterResponse(BaseModel):
    """Response model for a registered user."""
    user_id: str = Field(..., description="New user id")
    username: str = Field(..., description="Registered username")
