"""
Credential store adapter.

The only module that talks SQL about users. Everything above it sees four
operations (find one, find by id, create, update) plus the narrow
refresh-token write used by the session lifecycle.
"""

from typing import Any, Optional

import structlog
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from account_service.core.errors import ConflictError
from account_service.models.user import User

logger = structlog.get_logger(__name__)

# Columns callers may change through update(); credentials go through their
# own paths.
UPDATABLE_FIELDS = {"full_name", "email", "avatar", "cover_image", "password_hash"}


class UserStore:
    """User persistence over one AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_one(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[User]:
        """Return the user matching username OR email, if any."""
        conditions = []
        if username:
            conditions.append(User.username == username.strip().lower())
        if email:
            conditions.append(User.email == email.strip().lower())
        if not conditions:
            return None

        result = await self.session.execute(
            select(User)
            .where(or_(*conditions))
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> User:
        """
        Insert a new user.

        Raises:
            ConflictError: if the username or email is already taken.
        """
        user = User(**fields)
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info("user_create_conflict", username=fields.get("username"))
            raise ConflictError("Username or email already taken")
        return user

    async def update(self, user_id: str, **fields: Any) -> Optional[User]:
        """Change the given fields of one user. Returns None if it is gone."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")

        user = await self.find_by_id(user_id)
        if user is None:
            return None

        for name, value in fields.items():
            setattr(user, name, value)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Username or email already taken")
        return user

    async def set_refresh_token(self, user_id: str, token: Optional[str]) -> bool:
        """
        Write only the refresh_token column of one user.

        A single-row UPDATE, so concurrent writers for the same user resolve
        as last-writer-wins. Instances already loaded in this session are
        left as they were. Returns False if no such user exists.
        """
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(refresh_token=token)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def delete(self, user_id: str) -> bool:
        result = await self.session.execute(
            delete(User)
            .where(User.id == user_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0
