"""
Authorization guard for protected operations.

Validates an access token and resolves it to the public identity of a user
who still exists. Every failure after "no token at all" looks the same to
the caller.
"""

from typing import Optional

import structlog

from account_service.auth.tokens import InvalidTokenError, TokenIssuer
from account_service.core.errors import AuthenticationError
from account_service.core.result import returns_result
from account_service.schemas.user import UserPublic
from account_service.store.users import UserStore

logger = structlog.get_logger(__name__)

INVALID_ACCESS_TOKEN = "invalid or expired access token"


class AuthorizationGuard:
    def __init__(self, store: UserStore, issuer: TokenIssuer):
        self.store = store
        self.issuer = issuer

    @returns_result
    async def authorize(self, token: Optional[str]) -> UserPublic:
        """
        Resolve an access token to a user identity.

        Fails with AuthenticationError when the token is absent, does not
        verify, or names a user that has since been deleted.
        """
        if not token:
            raise AuthenticationError("unauthorized request")

        try:
            payload = self.issuer.verify_access_token(token)
        except InvalidTokenError:
            logger.info("access_token_rejected")
            raise AuthenticationError(INVALID_ACCESS_TOKEN)

        user = await self.store.find_by_id(payload.sub)
        if user is None:
            logger.info("access_token_user_missing", user_id=payload.sub)
            raise AuthenticationError(INVALID_ACCESS_TOKEN)

        return UserPublic.model_validate(user)
