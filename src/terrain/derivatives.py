"""
Terrain derivatives computed from an elevation mosaic.

- slope (degrees) and aspect (degrees clockwise from north, downslope
  direction) from central differences on the 4-neighbourhood
- TPI (topographic position index): elevation minus the 9x9 window mean
- aspect variance: 1 - mean resultant length of aspect over the 9x9 window

Operators are undefined near the raster edge, so a 1 px border of
slope/aspect and a 4 px border of TPI/aspect variance stay at 0. Those
zeros are later scored like real measurements.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
from scipy import ndimage

logger = logging.getLogger(__name__)

# Web-Mercator ground resolution at the equator for zoom 0 (m/px)
EQUATOR_RESOLUTION_M = 156543.03392

SLOPE_BORDER = 1
WINDOW_RADIUS = 4


@dataclass
class TerrainDerivatives:
    """Derivative rasters sharing the elevation mosaic's shape."""

    slope: np.ndarray
    """Slope in degrees, >= 0."""

    aspect: np.ndarray
    """Aspect in degrees, [0, 360)."""

    tpi: np.ndarray
    """Topographic position index in meters (signed)."""

    aspect_variance: np.ndarray
    """Circular variance of aspect in [0, 1]."""

    meters_per_pixel: float


def meters_per_pixel(latitude: float, zoom: int) -> float:
    """Web-Mercator ground resolution at a latitude and zoom."""
    return EQUATOR_RESOLUTION_M * math.cos(math.radians(latitude)) / 2**zoom


def compute_slope_aspect(elevation: np.ndarray, mpp: float):
    """
    Slope and aspect by central differences.

    dzdx uses the east minus west neighbour and dzdy the row below minus
    the row above (south minus north).

    Args:
        elevation: 2D elevation array in meters
        mpp: Ground resolution in meters per pixel

    Returns:
        (slope, aspect) float32 arrays with a 1 px border of zeros
    """
    elev = elevation.astype(np.float64)
    height, width = elev.shape
    slope = np.zeros((height, width), dtype=np.float32)
    aspect = np.zeros((height, width), dtype=np.float32)
    if height < 3 or width < 3:
        return slope, aspect

    dzdx = (elev[1:-1, 2:] - elev[1:-1, :-2]) / (2 * mpp)
    dzdy = (elev[2:, 1:-1] - elev[:-2, 1:-1]) / (2 * mpp)

    slope[1:-1, 1:-1] = np.degrees(np.arctan(np.hypot(dzdx, dzdy)))

    a = (np.degrees(np.arctan2(-dzdx, dzdy)) % 360.0).astype(np.float32)
    # tiny negative angles wrap to exactly 360
    a[a >= 360.0] = 0.0
    aspect[1:-1, 1:-1] = a
    return slope, aspect


def compute_tpi_and_aspect_variance(
    elevation: np.ndarray,
    aspect: np.ndarray,
    radius: int = WINDOW_RADIUS,
):
    """
    TPI and aspect variance over a (2r+1)x(2r+1) window.

    The window includes the slope/aspect border pixels, whose aspect is 0.

    Args:
        elevation: 2D elevation array in meters
        aspect: Aspect raster in degrees
        radius: Window radius in pixels

    Returns:
        (tpi, aspect_variance) float32 arrays with an r px border of zeros
    """
    height, width = elevation.shape
    tpi = np.zeros((height, width), dtype=np.float32)
    variance = np.zeros((height, width), dtype=np.float32)
    if height <= 2 * radius or width <= 2 * radius:
        return tpi, variance

    size = 2 * radius + 1
    inner = (slice(radius, height - radius), slice(radius, width - radius))

    elev = elevation.astype(np.float64)
    window_mean = ndimage.uniform_filter(elev, size=size, mode="nearest")
    tpi[inner] = (elev - window_mean)[inner]

    theta = np.radians(aspect.astype(np.float64))
    mean_cos = ndimage.uniform_filter(np.cos(theta), size=size, mode="nearest")
    mean_sin = ndimage.uniform_filter(np.sin(theta), size=size, mode="nearest")
    resultant = np.hypot(mean_cos, mean_sin)
    variance[inner] = np.clip(1.0 - resultant, 0.0, 1.0)[inner]

    return tpi, variance


def compute_terrain_derivatives(elevation: np.ndarray, latitude: float, zoom: int) -> TerrainDerivatives:
    """
    Compute all derivative rasters for an elevation mosaic.

    Args:
        elevation: Mosaic elevation array in meters
        latitude: Latitude used for the ground resolution (mosaic mid-latitude)
        zoom: Mosaic zoom level

    Returns:
        TerrainDerivatives
    """
    mpp = meters_per_pixel(latitude, zoom)
    logger.info(f"Computing terrain derivatives ({elevation.shape[1]}×{elevation.shape[0]}, {mpp:.2f} m/px)")

    slope, aspect = compute_slope_aspect(elevation, mpp)
    tpi, variance = compute_tpi_and_aspect_variance(elevation, aspect)

    logger.debug(f"Slope range: {slope.min():.2f} to {slope.max():.2f}°")
    logger.debug(f"TPI range: {tpi.min():.2f} to {tpi.max():.2f} m")

    return TerrainDerivatives(
        slope=slope,
        aspect=aspect,
        tpi=tpi,
        aspect_variance=variance,
        meters_per_pixel=mpp,
    )
