"""
Account registration and maintenance.

Registration, profile reads, password change, account detail updates and
avatar/cover image replacement. Authentication itself lives in
``account_service.auth.session``.
"""

from pathlib import Path
from typing import Optional

import structlog
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from account_service.auth.password import hash_password_async, verify_password_async
from account_service.core.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from account_service.core.result import returns_result
from account_service.schemas.user import (
    EMAIL_MAX_LENGTH,
    FULL_NAME_MAX_LENGTH,
    PASSWORD_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
    RegistrationInput,
    UserPublic,
)
from account_service.storage.assets import AssetStorage
from account_service.store.users import UserStore

logger = structlog.get_logger(__name__)

_email_adapter = TypeAdapter(EmailStr)


def _normalize_email(value: str) -> str:
    try:
        return _email_adapter.validate_python(value.strip()).lower()
    except PydanticValidationError:
        raise ValidationError("Invalid email address")


def _check_length(label: str, value: str, limit: int) -> None:
    if len(value) > limit:
        raise ValidationError(f"{label} must be at most {limit} characters")


class AccountService:
    def __init__(self, store: UserStore, assets: AssetStorage):
        self.store = store
        self.assets = assets

    async def _require_user(self, user_id: str):
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User does not exist")
        return user

    @returns_result
    async def register(self, registration: RegistrationInput) -> UserPublic:
        """
        Create an account.

        All text fields must be non-blank and an avatar file must be given.
        The username is stored lowercase. The returned user never carries
        the password hash or refresh token.
        """
        fields = [
            registration.full_name,
            registration.email,
            registration.username,
            registration.password,
        ]
        if any(not (value or "").strip() for value in fields):
            raise ValidationError("All fields are required")
        if registration.avatar_path is None:
            raise ValidationError("Avatar image is required")

        username = registration.username.strip().lower()
        full_name = registration.full_name.strip()
        _check_length("Username", username, USERNAME_MAX_LENGTH)
        _check_length("Full name", full_name, FULL_NAME_MAX_LENGTH)
        _check_length("Password", registration.password, PASSWORD_MAX_LENGTH)
        email = _normalize_email(registration.email)
        _check_length("Email", email, EMAIL_MAX_LENGTH)

        existing = await self.store.find_one(username=username, email=email)
        if existing is not None:
            raise ConflictError("Username or email already taken")

        avatar_url = await self.assets.upload(registration.avatar_path)
        if not avatar_url:
            raise ValidationError("Avatar image is required")
        cover_image_url = await self.assets.upload(registration.cover_image_path)

        try:
            created = await self.store.create(
                username=username,
                email=email,
                full_name=full_name,
                password_hash=await hash_password_async(registration.password),
                avatar=avatar_url,
                cover_image=cover_image_url or "",
            )
        except ConflictError:
            await self.assets.delete(avatar_url)
            await self.assets.delete(cover_image_url)
            raise

        user = await self.store.find_by_id(created.id)
        if user is None:
            raise InternalError("Something went wrong while registering the user")

        logger.info("user_registered", user_id=user.id, username=user.username)
        return UserPublic.model_validate(user)

    @returns_result
    async def current_user(self, user_id: str) -> UserPublic:
        return UserPublic.model_validate(await self._require_user(user_id))

    @returns_result
    async def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        if not (new_password or "").strip():
            raise ValidationError("New password is required")
        _check_length("New password", new_password, PASSWORD_MAX_LENGTH)

        user = await self._require_user(user_id)
        if not await verify_password_async(old_password or "", user.password_hash):
            raise ValidationError("Invalid old password")

        await self.store.update(user.id, password_hash=await hash_password_async(new_password))
        logger.info("password_changed", user_id=user.id)

    @returns_result
    async def update_account(self, user_id: str, full_name: str, email: str) -> UserPublic:
        if not (full_name or "").strip() or not (email or "").strip():
            raise ValidationError("All fields are required")

        email = _normalize_email(email)
        other = await self.store.find_one(email=email)
        if other is not None and other.id != user_id:
            raise ConflictError("Email already taken")

        user = await self.store.update(user_id, full_name=full_name.strip(), email=email)
        if user is None:
            raise NotFoundError("User does not exist")

        logger.info("account_updated", user_id=user_id)
        return UserPublic.model_validate(user)

    async def _replace_image(self, user_id: str, field: str, local_path: Optional[Path], label: str) -> UserPublic:
        if local_path is None:
            raise ValidationError(f"{label} file is missing")

        url = await self.assets.upload(local_path)
        if not url:
            raise ValidationError(f"Error while uploading {label.lower()}")

        user = await self.store.update(user_id, **{field: url})
        if user is None:
            await self.assets.delete(url)
            raise NotFoundError("User does not exist")

        logger.info("image_replaced", user_id=user_id, field=field)
        return UserPublic.model_validate(user)

    @returns_result
    async def update_avatar(self, user_id: str, local_path: Optional[Path]) -> UserPublic:
        return await self._replace_image(user_id, "avatar", local_path, "Avatar")

    @returns_result
    async def update_cover_image(self, user_id: str, local_path: Optional[Path]) -> UserPublic:
        return await self._replace_image(user_id, "cover_image", local_path, "Cover image")
