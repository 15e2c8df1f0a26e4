"""
On-disk caches for remote terrain inputs.

- TileCache: decoded elevation tiles stored as compressed .npz, keyed by z/x/y
- FeatureCache: Overpass development features stored as JSON plus a
  metadata file, keyed by a bbox hash and expired after a fixed age

Both caches treat any read failure as a miss, so a corrupt file only
costs one refetch.
"""

import hashlib
import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from src.config import FEATURE_CACHE, FEATURE_CACHE_MAX_AGE_DAYS, TILE_CACHE
from src.terrain.geometry import BoundingBox

logger = logging.getLogger(__name__)


class TileCache:
    """
    Caches decoded Terrarium tiles.

    Attributes:
        cache_dir: Directory where tile files are stored
        enabled: Whether caching is enabled
    """

    def __init__(self, cache_dir: Optional[Path] = None, enabled: bool = True):
        self.cache_dir = Path(cache_dir) if cache_dir is not None else TILE_CACHE
        self.enabled = enabled

        if self.enabled:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Tile cache initialized at: {self.cache_dir}")

    def get_cache_path(self, z: int, x: int, y: int) -> Path:
        return self.cache_dir / f"tile_{z}_{x}_{y}.npz"

    def load(self, z: int, x: int, y: int) -> Optional[np.ndarray]:
        """
        Load a cached tile.

        Returns:
            Elevation array (float32, 256x256) or None on a miss
        """
        if not self.enabled:
            return None

        cache_path = self.get_cache_path(z, x, y)
        if not cache_path.exists():
            return None

        try:
            with np.load(cache_path) as cache_data:
                return cache_data["elevation"].astype(np.float32)
        except Exception as e:
            logger.warning(f"Failed to load cached tile {cache_path.name}: {e}")
            return None

    def save(self, z: int, x: int, y: int, elevation: np.ndarray) -> Optional[Path]:
        if not self.enabled:
            return None

        cache_path = self.get_cache_path(z, x, y)
        try:
            np.savez_compressed(cache_path, elevation=elevation.astype(np.float32))
        except OSError as e:
            logger.warning(f"Error caching tile {z}/{x}/{y}: {e}")
            return None
        logger.debug(f"Cached tile {z}/{x}/{y}")
        return cache_path

    def clear(self) -> int:
        """
        Delete all cached tiles.

        Returns:
            Number of files deleted
        """
        if not self.cache_dir.exists():
            return 0

        deleted_count = 0
        for cache_file in self.cache_dir.glob("tile_*.npz"):
            cache_file.unlink()
            deleted_count += 1

        logger.info(f"Cleared {deleted_count} cached tiles")
        return deleted_count


def compute_bbox_hash(bbox: BoundingBox) -> str:
    """SHA256 of the bbox rounded to 6 decimals."""
    bbox_str = f"{bbox.west:.6f},{bbox.south:.6f},{bbox.east:.6f},{bbox.north:.6f}"
    return hashlib.sha256(bbox_str.encode()).hexdigest()


class FeatureCache:
    """
    Caches raw Overpass elements for a bounding box.

    Attributes:
        cache_dir: Directory where feature files are stored
        enabled: Whether caching is enabled
        max_age: Entries older than this are ignored
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        enabled: bool = True,
        max_age_days: int = FEATURE_CACHE_MAX_AGE_DAYS,
    ):
        self.cache_dir = Path(cache_dir) if cache_dir is not None else FEATURE_CACHE
        self.enabled = enabled
        self.max_age = timedelta(days=max_age_days)

        if self.enabled:
            self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _paths(self, bbox: BoundingBox):
        bbox_hash = compute_bbox_hash(bbox)
        return (
            self.cache_dir / f"features_{bbox_hash}.json",
            self.cache_dir / f"features_{bbox_hash}_meta.json",
        )

    def load(self, bbox: BoundingBox) -> Optional[List[Dict[str, Any]]]:
        """
        Load cached elements if present and fresh.

        Returns:
            List of Overpass elements, or None on a miss or expired entry
        """
        if not self.enabled:
            return None

        cache_file, meta_file = self._paths(bbox)
        if not cache_file.exists() or not meta_file.exists():
            logger.debug("No feature cache for bbox")
            return None

        try:
            with open(meta_file) as f:
                meta = json.load(f)

            age = datetime.now() - datetime.fromisoformat(meta.get("created_at", ""))
            if age > self.max_age:
                logger.debug(f"Feature cache expired ({age.days} days old)")
                return None

            with open(cache_file) as f:
                return json.load(f)

        except Exception as e:
            logger.warning(f"Error loading feature cache: {e}")
            return None

    def save(self, bbox: BoundingBox, elements: List[Dict[str, Any]]) -> None:
        if not self.enabled:
            return

        cache_file, meta_file = self._paths(bbox)
        meta = {
            "created_at": datetime.now().isoformat(),
            "bbox": bbox.to_tuple(),
            "num_elements": len(elements),
        }

        try:
            with open(cache_file, "w") as f:
                json.dump(elements, f)
            with open(meta_file, "w") as f:
                json.dump(meta, f, indent=2)
        except OSError as e:
            logger.warning(f"Error caching development features: {e}")
            return

        logger.info(f"Cached {len(elements)} development features")
