"""
Color mapping for the suitability overlay.

Scores below ALPHA_THRESHOLD are fully transparent so weak terrain does not
wash out the basemap. Above it, color runs blue → cyan → green → yellow →
orange → red across five equal bands of [threshold, 1] and alpha ramps
from 30 to 230.
"""

import logging

import numpy as np
from matplotlib.colors import LinearSegmentedColormap

logger = logging.getLogger(__name__)

ALPHA_THRESHOLD = 0.35
ALPHA_GAMMA = 1.2
ALPHA_RANGE = 200
ALPHA_FLOOR = 30


# =============================================================================
# Custom Colormaps
# =============================================================================

_SUITABILITY_STOPS = [
    (0.0, (0.0, 0.0, 1.0)),  # blue
    (0.2, (0.0, 1.0, 1.0)),  # cyan
    (0.4, (0.0, 1.0, 0.0)),  # green
    (0.6, (1.0, 1.0, 0.0)),  # yellow
    (0.8, (1.0, 0.5, 0.0)),  # orange
    (1.0, (1.0, 0.0, 0.0)),  # red
]

suitability_cmap = LinearSegmentedColormap.from_list("deer_suitability", _SUITABILITY_STOPS, N=1024)


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def suitability_alpha(score) -> np.ndarray:
    """
    Overlay alpha for score(s) at or above the threshold.

    Scores below the threshold are not special-cased here; see
    suitability_colormap.
    """
    t = np.clip(np.asarray(score, dtype=np.float64), ALPHA_THRESHOLD, 1.0)
    ramp = ((t - ALPHA_THRESHOLD) / (1.0 - ALPHA_THRESHOLD)) ** ALPHA_GAMMA
    return np.minimum(_round_half_up(ramp * ALPHA_RANGE) + ALPHA_FLOOR, 255).astype(np.uint8)


def suitability_colormap(score: np.ndarray) -> np.ndarray:
    """
    Map a score raster to an RGBA overlay.

    Args:
        score: 2D score array; values are clamped to [0, 1], NaN counts as 0

    Returns:
        uint8 array of shape (height, width, 4)
    """
    t = np.clip(np.nan_to_num(np.asarray(score, dtype=np.float64), nan=0.0), 0.0, 1.0)
    visible = t >= ALPHA_THRESHOLD

    band_position = np.clip((t - ALPHA_THRESHOLD) / (1.0 - ALPHA_THRESHOLD), 0.0, 1.0)
    colors = suitability_cmap(band_position)[..., :3]

    rgba = np.zeros(t.shape + (4,), dtype=np.uint8)
    rgba[..., :3] = _round_half_up(colors * 255).astype(np.uint8)
    rgba[..., 3] = suitability_alpha(t)
    rgba[~visible] = 0

    logger.debug(f"Overlay: {int(visible.sum())} of {t.size} pixels visible")
    return rgba
