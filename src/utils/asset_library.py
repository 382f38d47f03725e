"""In-memory collection of generated and uploaded images."""

import logging
from typing import Any, Dict, List, Optional

from src.core.models import GeneratedAsset

logger = logging.getLogger(__name__)


class AssetLibrary:
    """Holds a user's images, newest first.

    ``add`` has the shape of a save-resource callback and can be passed
    straight to ``ImageGenerator.generate_image``.
    """

    def __init__(self, max_assets: int = 50):
        """Initialize the library.

        Args:
            max_assets: Maximum number of assets kept; the oldest are dropped
        """
        self.max_assets = max_assets
        self._assets: Dict[str, GeneratedAsset] = {}

    def add(self, asset: GeneratedAsset) -> GeneratedAsset:
        """Store an asset, replacing any asset with the same id.

        Args:
            asset: The asset to store

        Returns:
            The stored asset
        """
        self._assets[asset.id] = asset

        if len(self._assets) > self.max_assets:
            for old in self.get_all()[self.max_assets:]:
                del self._assets[old.id]
                logger.debug(f"Dropped oldest asset: {old.id}")

        logger.info(f"Saved asset {asset.id} ({len(self._assets)} total)")
        return asset

    def get_all(self) -> List[GeneratedAsset]:
        """Get all assets ordered by creation time, newest first."""
        return sorted(self._assets.values(), key=lambda a: a.created_at, reverse=True)

    def get_latest(self, n: int = 1) -> List[GeneratedAsset]:
        """Get the N most recent assets."""
        return self.get_all()[:n]

    def get_by_id(self, asset_id: str) -> Optional[GeneratedAsset]:
        """Get an asset by id, or None."""
        return self._assets.get(asset_id)

    def delete(self, asset_id: str) -> bool:
        """Delete an asset.

        Returns:
            True if the asset existed
        """
        if self._assets.pop(asset_id, None) is None:
            logger.warning(f"Asset not found for deletion: {asset_id}")
            return False
        return True

    def clear(self) -> None:
        """Remove all assets."""
        self._assets.clear()

    def get_count(self) -> int:
        """Get the number of stored assets."""
        return len(self._assets)

    def export_metadata(self) -> List[Dict[str, Any]]:
        """Export asset metadata without image payloads, newest first."""
        return [
            asset.model_dump(mode="json", exclude={"url", "thumbnail"})
            for asset in self.get_all()
        ]
