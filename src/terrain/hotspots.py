"""
Hotspot extraction from a suitability score raster.

Candidates are sampled on a stride-8 grid with an 8 px margin. A candidate
is a local maximum when its score is >= every sample of a sparse 5x5 grid
spanning +/-8 px at step 4. Accepted maxima are thinned greedily in scan
order by great-circle distance, then ranked and capped.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from src.terrain.geometry import AOIPolygon, haversine_distance
from src.terrain.tiles import TileGrid

logger = logging.getLogger(__name__)

STRIDE = 8
WINDOW_STEP = 4
WINDOW_REACH = 8
MIN_SCORE = 0.5
MIN_SEPARATION_M = 150.0
MAX_HOTSPOTS = 20

_OFFSETS = [
    (dy, dx)
    for dy in range(-WINDOW_REACH, WINDOW_REACH + 1, WINDOW_STEP)
    for dx in range(-WINDOW_REACH, WINDOW_REACH + 1, WINDOW_STEP)
    if (dy, dx) != (0, 0)
]


@dataclass(frozen=True)
class Hotspot:
    """A ranked high-suitability point."""

    lon: float
    lat: float
    score: float

    def to_dict(self) -> dict:
        return {"lon": self.lon, "lat": self.lat, "score": self.score}


def find_local_maxima(
    score: np.ndarray,
    stride: int = STRIDE,
    min_score: float = MIN_SCORE,
) -> List[Tuple[int, int, float]]:
    """
    Find sparse-window local maxima on the stride grid.

    Ties with neighbours count as maxima.

    Args:
        score: 2D score raster
        stride: Candidate spacing and edge margin in pixels
        min_score: Minimum accepted score

    Returns:
        List of (x, y, score) in raster scan order (row by row)
    """
    height, width = score.shape
    rows = np.arange(stride, height - stride, stride)
    cols = np.arange(stride, width - stride, stride)
    if rows.size == 0 or cols.size == 0:
        return []

    centers = score[np.ix_(rows, cols)]
    is_max = centers >= min_score
    for dy, dx in _OFFSETS:
        is_max &= centers >= score[np.ix_(rows + dy, cols + dx)]

    hit_rows, hit_cols = np.nonzero(is_max)
    return [
        (int(cols[c]), int(rows[r]), float(centers[r, c]))
        for r, c in zip(hit_rows, hit_cols)
    ]


def extract_hotspots(
    score: np.ndarray,
    grid: TileGrid,
    aoi: Optional[AOIPolygon] = None,
    min_separation_m: float = MIN_SEPARATION_M,
    max_hotspots: int = MAX_HOTSPOTS,
    min_score: float = MIN_SCORE,
) -> List[Hotspot]:
    """
    Extract well-separated hotspots from a score raster.

    Args:
        score: 2D score raster aligned with grid
        grid: Mosaic grid used to georeference pixels
        aoi: Optional AOI; candidates outside it are dropped
        min_separation_m: Minimum distance between kept hotspots
        max_hotspots: Maximum number returned
        min_score: Minimum candidate score

    Returns:
        Hotspots sorted by score descending
    """
    candidates = find_local_maxima(score, min_score=min_score)

    kept: List[Hotspot] = []
    for x, y, value in candidates:
        lon, lat = grid.pixel_to_lnglat(x, y)
        if aoi is not None and not aoi.contains(lon, lat):
            continue
        if all(
            haversine_distance(lon, lat, h.lon, h.lat) >= min_separation_m for h in kept
        ):
            kept.append(Hotspot(lon=lon, lat=lat, score=value))

    kept.sort(key=lambda h: h.score, reverse=True)
    hotspots = kept[:max_hotspots]

    logger.info(
        f"Hotspots: {len(candidates)} local maxima, {len(kept)} after spacing, "
        f"{len(hotspots)} returned"
    )
    return hotspots
