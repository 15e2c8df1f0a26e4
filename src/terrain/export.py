"""
Writers for analysis outputs.

- save_overlay_png: RGBA suitability overlay as PNG (Pillow)
- write_score_geotiff: raw score raster as a GeoTIFF on the mosaic's
  Web-Mercator pixel grid (rasterio)
- hotspots_to_geojson / save_hotspots_geojson: ranked hotspots as a
  GeoJSON FeatureCollection
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

import numpy as np
import rasterio
from PIL import Image

from src.terrain.hotspots import Hotspot
from src.terrain.tiles import TileGrid

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

WEB_MERCATOR_CRS = "EPSG:3857"


def save_overlay_png(rgba: np.ndarray, output_path: PathLike) -> Path:
    """
    Save an RGBA overlay as PNG.

    Args:
        rgba: uint8 array of shape (height, width, 4)
        output_path: Destination file

    Returns:
        Path to the written file
    """
    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise ValueError(f"Expected an RGBA array (H, W, 4), got shape {rgba.shape}")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(rgba.astype(np.uint8)).save(output_path)

    logger.info(f"Saved overlay: {output_path}")
    return output_path


def write_score_geotiff(
    score: np.ndarray,
    grid: TileGrid,
    output_path: PathLike,
    metadata: Optional[Dict] = None,
) -> Path:
    """
    Write a score raster as a single-band float32 GeoTIFF in EPSG:3857.

    Args:
        score: 2D score array with shape grid.shape
        grid: Mosaic grid providing the georeferencing
        output_path: Destination file
        metadata: Optional tags written to the dataset (values stringified)

    Returns:
        Path to the written file
    """
    if score.shape != grid.shape:
        raise ValueError(f"Score shape {score.shape} does not match grid shape {grid.shape}")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with rasterio.open(
        output_path,
        "w",
        driver="GTiff",
        height=score.shape[0],
        width=score.shape[1],
        count=1,
        dtype="float32",
        crs=WEB_MERCATOR_CRS,
        transform=grid.mercator_transform,
        compress="lzw",
    ) as dst:
        dst.write(score.astype(np.float32), 1)
        if metadata:
            dst.update_tags(**{k: str(v) for k, v in metadata.items()})

    logger.info(f"Saved score GeoTIFF: {output_path} ({score.shape[1]}×{score.shape[0]})")
    return output_path


def hotspots_to_geojson(hotspots: Sequence[Hotspot]) -> Dict:
    """Convert hotspots to a GeoJSON FeatureCollection, keeping rank order."""
    features = []
    for rank, hotspot in enumerate(hotspots, start=1):
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [hotspot.lon, hotspot.lat]},
                "properties": {"rank": rank, "score": round(hotspot.score, 4)},
            }
        )
    return {"type": "FeatureCollection", "features": features}


def save_hotspots_geojson(hotspots: Sequence[Hotspot], output_path: PathLike) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(hotspots_to_geojson(hotspots), f, indent=2)

    logger.info(f"Saved {len(hotspots)} hotspots: {output_path}")
    return output_path
