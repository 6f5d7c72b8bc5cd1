"""Pytest configuration and fixtures."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import pytest
import pytest_asyncio

from account_service.auth.session import SessionManager
from account_service.auth.tokens import TokenIssuer
from account_service.core.config import Settings
from account_service.core.database import Database
from account_service.schemas.user import RegistrationInput, UserPublic
from account_service.services.accounts import AccountService
from account_service.storage.assets import LocalAssetStorage
from account_service.store.users import UserStore

# Smallest valid PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)

ALICE_PASSWORD = "correct horse battery staple"


def make_image(directory: Path, name: str = "avatar.png") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(PNG_BYTES)
    return path


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Isolated settings: temp database, temp media, fixed secrets."""
    return Settings(
        access_token_secret="test-access-secret",
        refresh_token_secret="test-refresh-secret",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'accounts.db'}",
        media_root=tmp_path / "media",
        upload_tmp_dir=tmp_path / "uploads",
        cors_origins=["https://testserver"],
        log_json=False,
        log_level="WARNING",
    )


@pytest.fixture
def issuer(settings: Settings) -> TokenIssuer:
    return TokenIssuer(settings)


@pytest.fixture
def assets(settings: Settings) -> LocalAssetStorage:
    return LocalAssetStorage(settings.media_root, settings.media_base_url)


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncIterator[Database]:
    db = Database(settings.database_url)
    await db.init()
    yield db
    await db.close()


@pytest.fixture
def open_store(database: Database):
    """Open a UserStore on a fresh session, for checking persisted state."""

    @asynccontextmanager
    async def _open() -> AsyncIterator[UserStore]:
        async with database.session_maker() as session:
            yield UserStore(session)

    return _open


@pytest_asyncio.fixture
async def store(database: Database) -> AsyncIterator[UserStore]:
    async with database.session_maker() as session:
        yield UserStore(session)


@pytest.fixture
def sessions(store: UserStore, issuer: TokenIssuer, settings: Settings) -> SessionManager:
    return SessionManager(store, issuer, settings)


@pytest.fixture
def accounts(store: UserStore, assets: LocalAssetStorage) -> AccountService:
    return AccountService(store, assets)


@pytest.fixture
def alice_registration(tmp_path: Path) -> RegistrationInput:
    uploads = tmp_path / "incoming"
    return RegistrationInput(
        full_name="Alice Liddell",
        email="Alice@Example.com",
        username="Alice",
        password=ALICE_PASSWORD,
        avatar_path=make_image(uploads, "alice-avatar.png"),
        cover_image_path=make_image(uploads, "alice-cover.png"),
    )


@pytest_asyncio.fixture
async def alice(open_store, assets: LocalAssetStorage, alice_registration: RegistrationInput) -> UserPublic:
    """A registered user, created through its own session."""
    async with open_store() as user_store:
        result = await AccountService(user_store, assets).register(alice_registration)
    return result.unwrap()
