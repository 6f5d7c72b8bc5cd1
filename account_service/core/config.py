"""
Application settings.

Every value is read from the environment once, by ``Settings.from_env()``,
and the resulting object is handed to the components that need it. Business
logic never calls ``os.getenv`` itself.
"""

import os
import secrets
import tempfile
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

# Base directory of the project (parent of 'account_service')
BASE_DIR = Path(__file__).resolve().parent.parent.parent


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_secret(name: str) -> str:
    value = os.getenv(name)
    if not value:
        # Generate a random key for development (NOT for production!)
        value = secrets.token_urlsafe(32)
        logger.warning("secret_autogenerated", variable=name)
    return value


class Settings(BaseModel):
    """Runtime configuration for the account service."""

    # Tokens
    access_token_secret: str = Field(min_length=1)
    access_token_expire_minutes: int = Field(default=15, gt=0)
    refresh_token_secret: str = Field(min_length=1)
    refresh_token_expire_days: int = Field(default=10, gt=0)
    token_issuer: str = "account-service"
    token_audience: str = "account-client"
    jwt_algorithm: str = "HS256"

    # Persistence
    database_url: str = f"sqlite+aiosqlite:///{BASE_DIR / 'accounts.db'}"
    sql_debug: bool = False

    # Media
    media_root: Path = BASE_DIR / "media"
    media_base_url: str = "/media"
    upload_tmp_dir: Path = Path(tempfile.gettempdir()) / "account-uploads"
    max_upload_bytes: int = 5 * 1024 * 1024

    # Cookies
    cookie_samesite: str = Field(default="lax", pattern="^(lax|strict|none)$")

    # HTTP
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    enable_docs: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def access_token_expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return self.access_token_expire_minutes * 60

    @property
    def refresh_token_max_age(self) -> int:
        """Refresh token lifetime in seconds."""
        return self.refresh_token_expire_days * 24 * 60 * 60

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
        fields = {
            "access_token_secret": _env_secret("ACCESS_TOKEN_SECRET"),
            "access_token_expire_minutes": int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15")),
            "refresh_token_secret": _env_secret("REFRESH_TOKEN_SECRET"),
            "refresh_token_expire_days": int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "10")),
            "token_issuer": os.getenv("TOKEN_ISSUER", "account-service"),
            "token_audience": os.getenv("TOKEN_AUDIENCE", "account-client"),
            "sql_debug": _env_bool("SQL_DEBUG", "false"),
            "media_base_url": os.getenv("MEDIA_BASE_URL", "/media").rstrip("/"),
            "max_upload_bytes": int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024))),
            "cookie_samesite": os.getenv("COOKIE_SAMESITE", "lax").lower(),
            "cors_origins": [o.strip() for o in origins.split(",") if o.strip()],
            "enable_docs": _env_bool("ENABLE_DOCS", "true"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "log_json": _env_bool("LOG_JSON", "true"),
        }
        if database_url := os.getenv("DATABASE_URL"):
            fields["database_url"] = database_url
        if media_root := os.getenv("MEDIA_ROOT"):
            fields["media_root"] = Path(media_root)
        if upload_tmp_dir := os.getenv("UPLOAD_TMP_DIR"):
            fields["upload_tmp_dir"] = Path(upload_tmp_dir)
        return cls(**fields)
