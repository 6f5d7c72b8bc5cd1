"""
FastAPI dependencies for authentication and the account services.

Provides:
- get_current_user: resolve the caller from the access token
- get_session_manager / get_account_service: per-request service wiring
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from account_service.auth.guard import AuthorizationGuard
from account_service.auth.session import ACCESS_TOKEN_COOKIE, SessionManager
from account_service.auth.tokens import TokenIssuer
from account_service.core.config import Settings
from account_service.core.database import get_db
from account_service.schemas.user import UserPublic
from account_service.services.accounts import AccountService
from account_service.storage.assets import AssetStorage
from account_service.store.users import UserStore

# HTTP Bearer token extractor
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_asset_storage(request: Request) -> AssetStorage:
    return request.app.state.asset_storage


def get_user_store(db: AsyncSession = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_session_manager(
    store: UserStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
) -> SessionManager:
    return SessionManager(store, issuer, settings)


def get_account_service(
    store: UserStore = Depends(get_user_store),
    assets: AssetStorage = Depends(get_asset_storage),
) -> AccountService:
    return AccountService(store, assets)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: UserStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> UserPublic:
    """
    Resolve the current user from the access token.

    Looks for token in:
    1. Cookie: accessToken
    2. Authorization: Bearer <token> header

    The identity is also attached to ``request.state.user``.

    Raises:
        AuthenticationError: if the token is missing, invalid, expired, or
            belongs to a user that no longer exists
    """
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token and credentials:
        token = credentials.credentials

    guard = AuthorizationGuard(store, issuer)
    user = (await guard.authorize(token)).unwrap()
    request.state.user = user
    return user


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.
    Handles X-Forwarded-For header for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"
