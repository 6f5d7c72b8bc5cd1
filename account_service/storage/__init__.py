"""Media storage for avatars and cover images."""

from account_service.storage.assets import AssetStorage, LocalAssetStorage

__all__ = ["AssetStorage", "LocalAssetStorage"]
