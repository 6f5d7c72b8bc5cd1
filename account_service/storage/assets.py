"""
Media asset storage.

Uploaded images arrive as temporary local files. An AssetStorage takes such
a file, stores it somewhere durable and returns the public URL, or None if
the file could not be stored. The temporary file is removed either way.
``delete`` drops a stored asset again, given the URL upload returned.
"""

import asyncio
import secrets
import shutil
from pathlib import Path
from typing import Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
ALLOWED_IMAGE_CONTENT_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp"}


class AssetStorage(Protocol):
    async def upload(self, local_path: Optional[Path]) -> Optional[str]:
        ...

    async def delete(self, url: Optional[str]) -> bool:
        ...


def get_safe_filename(filename: str) -> str:
    """Generate a random filename while preserving extension."""
    ext = Path(filename).suffix.lower()
    return f"{secrets.token_urlsafe(16)}{ext}"


class LocalAssetStorage:
    """Stores assets under a local media directory served at ``base_url``."""

    def __init__(self, media_root: Path, base_url: str = "/media"):
        self.media_root = Path(media_root)
        self.base_url = base_url.rstrip("/")

    def _store(self, local_path: Path) -> str:
        self.media_root.mkdir(parents=True, exist_ok=True)
        name = get_safe_filename(local_path.name)
        shutil.move(str(local_path), self.media_root / name)
        return name

    async def upload(self, local_path: Optional[Path]) -> Optional[str]:
        if local_path is None:
            return None
        local_path = Path(local_path)
        if not local_path.is_file():
            logger.warning("asset_missing", path=str(local_path))
            return None

        try:
            name = await asyncio.to_thread(self._store, local_path)
        except OSError:
            logger.error("asset_store_failed", path=str(local_path), exc_info=True)
            local_path.unlink(missing_ok=True)
            return None

        url = f"{self.base_url}/{name}"
        logger.info("asset_stored", url=url)
        return url

    def _path_for(self, url: str) -> Optional[Path]:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return None
        name = url[len(prefix):]
        if not name or Path(name).name != name:
            return None
        return self.media_root / name

    async def delete(self, url: Optional[str]) -> bool:
        """Remove a stored asset. Unknown or foreign URLs are ignored."""
        if not url:
            return False
        path = self._path_for(url)
        if path is None or not path.is_file():
            return False

        try:
            await asyncio.to_thread(path.unlink)
        except OSError:
            logger.error("asset_delete_failed", url=url, exc_info=True)
            return False

        logger.info("asset_deleted", url=url)
        return True
