"""
Authentication-related schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field

from account_service.schemas.common import CamelModel
from account_service.schemas.user import (
    EMAIL_MAX_LENGTH,
    PASSWORD_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
    UserPublic,
)


class LoginRequest(BaseModel):
    """Login with either username or email, plus password."""

    username: Optional[str] = Field(default=None, max_length=USERNAME_MAX_LENGTH)
    email: Optional[str] = Field(default=None, max_length=EMAIL_MAX_LENGTH)
    password: str = Field(max_length=PASSWORD_MAX_LENGTH, description="User password")


class LoginData(CamelModel):
    """Login payload: the user and both tokens."""

    user: UserPublic
    access_token: str = Field(description="JWT access token")
    refresh_token: str = Field(description="JWT refresh token for token renewal")
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token expiration in seconds")


class TokenRefreshRequest(CamelModel):
    """Request to refresh the token pair. The cookie is used when absent."""

    refresh_token: Optional[str] = Field(default=None, description="Current refresh token")


class TokenRefreshData(CamelModel):
    """The rotated token pair."""

    access_token: str = Field(description="New JWT access token")
    refresh_token: str = Field(description="New JWT refresh token")
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token expiration in seconds")


class PasswordChangeRequest(CamelModel):
    """Request to change password."""

    old_password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)
    new_password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)
