"""
User-related schemas.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from account_service.schemas.common import CamelModel

# Shared by registration, login and password change
USERNAME_MAX_LENGTH = 64
EMAIL_MAX_LENGTH = 255
FULL_NAME_MAX_LENGTH = 255
PASSWORD_MAX_LENGTH = 128


class UserPublic(CamelModel):
    """
    A user as callers see it.

    There is deliberately no password_hash or refresh_token field: building
    this from an ORM row drops them.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: str
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str = ""
    created_at: datetime
    updated_at: datetime


class RegistrationInput(BaseModel):
    """
    Everything needed to register an account.

    The avatar and cover image are local file paths of already-received
    uploads; the avatar is required, the cover image is not. Length limits
    are checked by AccountService.register so that every accepted account
    can also log in.
    """

    full_name: str = ""
    email: str = ""
    username: str = ""
    password: str = ""
    avatar_path: Optional[Path] = None
    cover_image_path: Optional[Path] = None


class AccountUpdateRequest(CamelModel):
    """Request to change the display name and email."""

    full_name: str = Field(min_length=1, max_length=FULL_NAME_MAX_LENGTH)
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower().strip()

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()
