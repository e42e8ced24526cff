"""
Authentication service for user registration, login and JWT token management.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import boto3
import jwt
from botocore.exceptions import ClientError

from photo_upload.core import config
from photo_upload.core.exceptions import DynamoDBException, UserAlreadyExistsException


def create_access_token(user_id: str, username: str) -> str:
    """
    Generate a JWT access token for an authenticated user.

    Args:
        user_id: The user id, stored as the token subject
        username: The username, stored as an informational claim

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "username": username,
        "exp": now + timedelta(hours=config.settings.jwt_expiration_hours),
        "iat": now
    }
    return jwt.encode(payload, config.settings.jwt_secret, algorithm=config.settings.jwt_algorithm)


def hash_password(plain_password: str) -> str:
    return bcrypt.hashpw(plain_password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a bcrypt hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The bcrypt hashed password from database

    Returns:
        True if password matches, False otherwise
    """
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def _users_table():
    dynamodb = boto3.resource('dynamodb', region_name=config.settings.aws_region)
    return dynamodb.Table(config.settings.users_table_name)


def register_user(username: str, password: str) -> dict:
    """
    Create a user with a bcrypt password hash.

    Returns:
        The stored user item (without the password hash)

    Raises:
        UserAlreadyExistsException: If the username is taken
        DynamoDBException: If the write fails
    """
    user = {
        'username': username,
        'user_id': str(uuid.uuid4()),
        'created_at': datetime.now(timezone.utc).isoformat()
    }
    try:
        _users_table().put_item(
            Item={**user, 'password_hash': hash_password(password)},
            ConditionExpression='attribute_not_exists(username)'
        )
    except ClientError as e:
        if e.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException':
            raise UserAlreadyExistsException(f"Username '{username}' is already taken") from e
        raise DynamoDBException(f"Failed to register user: {str(e)}") from e
    return user


def authenticate_user(username: str, password: str) -> Optional[dict]:
    """
    Authenticate user by verifying credentials against DynamoDB.

    Args:
        username: Username to authenticate
        password: Plain text password to verify

    Returns:
        User dict if authentication successful, None otherwise
    """
    response = _users_table().get_item(Key={'username': username})

    if 'Item' not in response:
        return None

    user = response['Item']

    if not verify_password(password, user['password_hash']):
        return None

    return user
