"""
Raster masks in mosaic pixel space.

Both masks are built by projecting lon/lat vector shapes into the mosaic's
pixel grid and burning them with rasterio.features.rasterize. Pixel
coordinates are used directly as the raster's coordinate system, so the
transform is the identity.

- AOI mask: True where a pixel center falls inside the area-of-interest ring
- Development mask: True wherever a buffered building/landuse area or a
  class-width road stroke touches a pixel
"""

import logging
import math
from typing import Iterable, List, Sequence

import numpy as np
from rasterio import Affine
from rasterio.features import rasterize
from shapely.geometry import LineString, Polygon

from src.terrain.geometry import AOIPolygon
from src.terrain.osm_features import DevelopmentFeature
from src.terrain.tiles import TileGrid

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_M = 80.0
MIN_ROAD_WIDTH_PX = 2

# Stroke width multiplier per highway class, checked in order. A class
# matches when the highway value contains any of its names, so link roads
# take their parent's width.
ROAD_WIDTH_MULTIPLIERS = (
    (("motorway", "trunk", "primary"), 1.6),
    (("secondary", "tertiary"), 1.3),
    (("residential", "unclassified", "service", "track"), 1.1),
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def buffer_pixels(buffer_m: float, meters_per_pixel: float) -> int:
    """Development buffer in whole pixels (at least 1)."""
    return max(1, round_half_up(buffer_m / meters_per_pixel))


def road_width_pixels(highway: str, buffer_px: int) -> int:
    """Stroke width of a road class in pixels."""
    multiplier = 1.0
    for names, class_multiplier in ROAD_WIDTH_MULTIPLIERS:
        if any(name in highway for name in names):
            multiplier = class_multiplier
            break
    return max(MIN_ROAD_WIDTH_PX, round_half_up(buffer_px * multiplier))


def _to_pixels(grid: TileGrid, coords: Iterable[Sequence[float]]) -> List[tuple]:
    return [grid.lnglat_to_pixel(lon, lat) for lon, lat in coords]


# =============================================================================
# AOI MASK
# =============================================================================


def rasterize_aoi_mask(aoi: AOIPolygon, grid: TileGrid) -> np.ndarray:
    """
    Rasterize an AOI ring into the mosaic grid.

    A pixel is inside when its center lies inside the ring.

    Args:
        aoi: Area-of-interest polygon
        grid: Mosaic grid

    Returns:
        Boolean array of shape grid.shape, True inside the AOI
    """
    ring = Polygon(_to_pixels(grid, aoi.ring))
    if not ring.is_valid:
        ring = ring.buffer(0)

    inside = rasterize(
        [(ring, 1)],
        out_shape=grid.shape,
        transform=Affine.identity(),
        fill=0,
        all_touched=False,
        dtype="uint8",
    ).astype(bool)

    logger.debug(f"AOI mask covers {int(inside.sum())} of {inside.size} pixels")
    return inside


def apply_aoi_mask(score: np.ndarray, inside: np.ndarray) -> np.ndarray:
    """Return a copy of score with every pixel outside the AOI set to 0."""
    masked = score.copy()
    masked[~inside] = 0.0
    return masked


# =============================================================================
# DEVELOPMENT EXCLUSION MASK
# =============================================================================


def development_shapes(
    features: Sequence[DevelopmentFeature],
    grid: TileGrid,
    meters_per_pixel: float,
    buffer_m: float = DEFAULT_BUFFER_M,
) -> list:
    """
    Build the pixel-space shapes that make up the development mask.

    Areas are filled and, when the buffer exceeds one pixel, grown by the
    buffer. Roads become round-capped strokes of their class width.

    Args:
        features: Parsed development features
        grid: Mosaic grid
        meters_per_pixel: Ground resolution of the mosaic
        buffer_m: Exclusion buffer in meters

    Returns:
        List of shapely geometries in pixel coordinates
    """
    buffer_px = buffer_pixels(buffer_m, meters_per_pixel)
    shapes = []

    for feature in features:
        pixels = _to_pixels(grid, feature.coords)
        if feature.kind == "road":
            if len(pixels) < 2:
                continue
            width = road_width_pixels(feature.value, buffer_px)
            shapes.append(LineString(pixels).buffer(width / 2.0))
        else:
            if len(pixels) < 3:
                continue
            area = Polygon(pixels)
            if not area.is_valid:
                area = area.buffer(0)
            if buffer_px > 1:
                area = area.buffer(buffer_px)
            shapes.append(area)

    return [shape for shape in shapes if not shape.is_empty]


def rasterize_development_mask(
    features: Sequence[DevelopmentFeature],
    grid: TileGrid,
    meters_per_pixel: float,
    buffer_m: float = DEFAULT_BUFFER_M,
) -> np.ndarray:
    """
    Rasterize development features into an exclusion mask.

    Any pixel touched by a shape is excluded.

    Returns:
        Boolean array of shape grid.shape, True where excluded
    """
    shapes = development_shapes(features, grid, meters_per_pixel, buffer_m)
    if not shapes:
        logger.info("No development features to mask")
        return np.zeros(grid.shape, dtype=bool)

    excluded = rasterize(
        [(shape, 1) for shape in shapes],
        out_shape=grid.shape,
        transform=Affine.identity(),
        fill=0,
        all_touched=True,
        dtype="uint8",
    ).astype(bool)

    logger.info(
        f"Development mask: {len(shapes)} shapes, {int(excluded.sum())} pixels excluded "
        f"({100.0 * excluded.mean():.1f}%)"
    )
    return excluded


def apply_exclusion_mask(score: np.ndarray, excluded: np.ndarray) -> np.ndarray:
    """Return a copy of score with every excluded pixel set to 0."""
    masked = score.copy()
    masked[excluded] = 0.0
    return masked
