"""
User account endpoints.

Provides:
- Registration (multipart, with avatar and optional cover image)
- Login / logout / token refresh
- Current user, password change, account details, avatar and cover image
"""

from pathlib import Path
from typing import Iterable, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Request, Response, UploadFile, status

from account_service.auth.dependencies import (
    get_account_service,
    get_current_user,
    get_session_manager,
    get_settings,
)
from account_service.auth.session import (
    REFRESH_TOKEN_COOKIE,
    CookieDirective,
    SessionManager,
)
from account_service.core.config import Settings
from account_service.core.errors import ValidationError
from account_service.schemas.auth import (
    LoginData,
    LoginRequest,
    PasswordChangeRequest,
    TokenRefreshData,
    TokenRefreshRequest,
)
from account_service.schemas.common import ApiResponse
from account_service.schemas.user import AccountUpdateRequest, RegistrationInput, UserPublic
from account_service.services.accounts import AccountService
from account_service.storage.assets import (
    ALLOWED_IMAGE_CONTENT_TYPES,
    ALLOWED_IMAGE_EXTENSIONS,
    get_safe_filename,
)

router = APIRouter()


# =============================================================================
# Helpers
# =============================================================================

def apply_cookies(response: Response, cookies: Iterable[CookieDirective]) -> None:
    """Write the cookie directives of a session outcome onto the response."""
    for cookie in cookies:
        if cookie.clears:
            response.delete_cookie(
                cookie.name,
                secure=cookie.options.get("secure", True),
                httponly=cookie.options.get("httponly", True),
                samesite=cookie.options.get("samesite", "lax"),
            )
        else:
            response.set_cookie(key=cookie.name, value=cookie.value, **cookie.options)


def validate_image(file: UploadFile) -> None:
    """Validate an uploaded image."""
    ext = Path(file.filename or "").suffix.lower().lstrip(".")
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(
            f"File type '{ext}' not allowed. Allowed: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}"
        )
    if file.content_type and file.content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
        raise ValidationError(f"Content type '{file.content_type}' not allowed")


async def save_upload(file: Optional[UploadFile], settings: Settings) -> Optional[Path]:
    """Store an upload in the temp directory and return its path."""
    if file is None or not file.filename:
        return None

    validate_image(file)
    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise ValidationError(
            f"File too large. Maximum size is {settings.max_upload_bytes // 1024} KB"
        )

    settings.upload_tmp_dir.mkdir(parents=True, exist_ok=True)
    path = settings.upload_tmp_dir / get_safe_filename(file.filename)
    path.write_bytes(content)
    return path


def discard(*paths: Optional[Path]) -> None:
    for path in paths:
        if path is not None:
            path.unlink(missing_ok=True)


# =============================================================================
# Registration and session
# =============================================================================

@router.post(
    "/register",
    response_model=ApiResponse[UserPublic],
    status_code=status.HTTP_201_CREATED,
)
async def register_user(
    full_name: str = Form("", alias="fullName"),
    email: str = Form(""),
    username: str = Form(""),
    password: str = Form(""),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    settings: Settings = Depends(get_settings),
    accounts: AccountService = Depends(get_account_service),
):
    """Register a new account. The avatar image is required."""
    avatar_path = cover_image_path = None
    try:
        avatar_path = await save_upload(avatar, settings)
        cover_image_path = await save_upload(cover_image, settings)
        registration = RegistrationInput(
            full_name=full_name,
            email=email,
            username=username,
            password=password,
            avatar_path=avatar_path,
            cover_image_path=cover_image_path,
        )
        user = (await accounts.register(registration)).unwrap()
    finally:
        discard(avatar_path, cover_image_path)

    return ApiResponse[UserPublic].create(
        status.HTTP_201_CREATED, user, "User registered successfully"
    )


@router.post("/login", response_model=ApiResponse[LoginData])
async def login_user(
    login_data: LoginRequest,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
):
    """
    Authenticate with username or email and password.

    Both tokens are set as HttpOnly, Secure cookies and also returned in the
    body for clients that cannot use cookies.
    """
    outcome = (
        await sessions.login(
            login_data.password,
            username=login_data.username,
            email=login_data.email,
        )
    ).unwrap()
    apply_cookies(response, outcome.cookies)

    data = LoginData(
        user=outcome.user,
        access_token=outcome.tokens.access_token,
        refresh_token=outcome.tokens.refresh_token,
        expires_in=outcome.tokens.expires_in,
    )
    return ApiResponse[LoginData].create(status.HTTP_200_OK, data, "User logged in successfully")


@router.post("/logout", response_model=ApiResponse[dict])
async def logout_user(
    response: Response,
    current_user: UserPublic = Depends(get_current_user),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Invalidate the stored refresh token and clear both cookies."""
    outcome = (await sessions.logout(current_user.id)).unwrap()
    apply_cookies(response, outcome.cookies)
    return ApiResponse[dict].create(status.HTTP_200_OK, {}, "User logged out")


@router.post("/refresh-token", response_model=ApiResponse[TokenRefreshData])
async def refresh_access_token(
    request: Request,
    response: Response,
    token_data: Optional[TokenRefreshRequest] = Body(None),
    sessions: SessionManager = Depends(get_session_manager),
):
    """
    Rotate the token pair.

    Accepts the refresh token from:
    1. HttpOnly cookie (for web apps)
    2. Request body (for clients without cookies)
    """
    incoming = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not incoming and token_data is not None:
        incoming = token_data.refresh_token

    outcome = (await sessions.refresh(incoming)).unwrap()
    apply_cookies(response, outcome.cookies)

    data = TokenRefreshData(
        access_token=outcome.tokens.access_token,
        refresh_token=outcome.tokens.refresh_token,
        expires_in=outcome.tokens.expires_in,
    )
    return ApiResponse[TokenRefreshData].create(status.HTTP_200_OK, data, "Access token refreshed")


# =============================================================================
# Account maintenance
# =============================================================================

@router.get("/current-user", response_model=ApiResponse[UserPublic])
async def get_current_user_info(
    current_user: UserPublic = Depends(get_current_user),
):
    return ApiResponse[UserPublic].create(
        status.HTTP_200_OK, current_user, "Current user fetched successfully"
    )


@router.post("/change-password", response_model=ApiResponse[dict])
async def change_password(
    password_data: PasswordChangeRequest,
    current_user: UserPublic = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    (
        await accounts.change_password(
            current_user.id,
            password_data.old_password,
            password_data.new_password,
        )
    ).unwrap()
    return ApiResponse[dict].create(status.HTTP_200_OK, {}, "Password changed successfully")


@router.patch("/update-account", response_model=ApiResponse[UserPublic])
async def update_account_details(
    update_data: AccountUpdateRequest,
    current_user: UserPublic = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    user = (
        await accounts.update_account(current_user.id, update_data.full_name, update_data.email)
    ).unwrap()
    return ApiResponse[UserPublic].create(
        status.HTTP_200_OK, user, "Account details updated successfully"
    )


@router.patch("/avatar", response_model=ApiResponse[UserPublic])
async def update_user_avatar(
    avatar: Optional[UploadFile] = File(None),
    current_user: UserPublic = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    accounts: AccountService = Depends(get_account_service),
):
    avatar_path = None
    try:
        avatar_path = await save_upload(avatar, settings)
        user = (await accounts.update_avatar(current_user.id, avatar_path)).unwrap()
    finally:
        discard(avatar_path)
    return ApiResponse[UserPublic].create(status.HTTP_200_OK, user, "Avatar updated successfully")


@router.patch("/cover-image", response_model=ApiResponse[UserPublic])
async def update_user_cover_image(
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    current_user: UserPublic = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    accounts: AccountService = Depends(get_account_service),
):
    cover_image_path = None
    try:
        cover_image_path = await save_upload(cover_image, settings)
        user = (await accounts.update_cover_image(current_user.id, cover_image_path)).unwrap()
    finally:
        discard(cover_image_path)
    return ApiResponse[UserPublic].create(
        status.HTTP_200_OK, user, "Cover image updated successfully"
    )
