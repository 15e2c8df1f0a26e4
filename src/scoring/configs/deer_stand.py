"""
Default deer-stand terrain suitability scoring configuration.

This config defines how terrain derivatives are combined into a single
suitability score. Users can modify this config or create their own.

Score formula:
    final = clamp01(weighted sum), weights normalized by their total

Components (relative weights, total 5.0):
  - bench (1.2): near-level shelves, triangular on slope (peak 6°, 2-12°)
  - saddle (1.6): saddles/pinch points, flat TPI with mixed surrounding aspect
  - wind (1.2): leeward exposure relative to the wind-from bearing
  - thermal (1.0): aspect alignment with the time-of-day thermal regime
    (day: south-facing upslope heating, evening: north-facing drainage)
"""

import logging

import numpy as np

from src.scoring.combiner import ScoreComponent, ScoreCombiner
from src.scoring.transforms import saddle_strength

logger = logging.getLogger(__name__)

RELATIVE_WEIGHTS = {
    "bench": 1.2,
    "saddle": 1.6,
    "wind": 1.2,
    "thermal": 1.0,
}

# Aspect (degrees) favored by each thermal regime
THERMAL_FAVORED_ASPECT = {
    "day": 180.0,
    "evening": 0.0,
}


def create_default_deer_stand_scorer() -> ScoreCombiner:
    """
    Create the default deer-stand suitability scorer.

    Returns:
        ScoreCombiner configured for deer-stand suitability analysis.

    Example:
        >>> scorer = create_default_deer_stand_scorer()
        >>> score = scorer.compute({
        ...     "bench": 6.0,      # slope in degrees
        ...     "saddle": 0.4,     # saddle_strength(tpi, aspect_variance)
        ...     "wind": 0.0,       # degrees away from leeward
        ...     "thermal": 1.0,    # cos(aspect - favored aspect)
        ... })
    """
    return ScoreCombiner.from_relative_weights(
        name="deer_stand_suitability",
        components=[
            # Benches: flat shelves on a slope, 6° ideal, nothing outside 2-12°
            ScoreComponent(
                name="bench",
                transform="triangular",
                transform_params={"peak": 6.0, "half_width": 10.0, "support": (2.0, 12.0)},
                weight=RELATIVE_WEIGHTS["bench"],
            ),
            # Saddles: already in [0, 1] from saddle_strength()
            ScoreComponent(
                name="saddle",
                transform="linear",
                transform_params={"value_range": (0.0, 1.0)},
                weight=RELATIVE_WEIGHTS["saddle"],
            ),
            # Wind: 0° from leeward scores 1, facing the wind (180°) scores 0
            ScoreComponent(
                name="wind",
                transform="linear",
                transform_params={"value_range": (0.0, 180.0), "invert": True},
                weight=RELATIVE_WEIGHTS["wind"],
            ),
            # Thermal: cosine alignment in [-1, 1] mapped to [0, 1]
            ScoreComponent(
                name="thermal",
                transform="linear",
                transform_params={"value_range": (-1.0, 1.0)},
                weight=RELATIVE_WEIGHTS["thermal"],
            ),
        ],
    )


# Default scorer instance
DEFAULT_DEER_STAND_SCORER = create_default_deer_stand_scorer()


# Export as dict for JSON serialization
DEFAULT_DEER_STAND_CONFIG = DEFAULT_DEER_STAND_SCORER.to_dict()


def get_required_inputs() -> dict[str, str]:
    """
    Get documentation of required inputs for the deer-stand scorer.

    Returns:
        Dictionary mapping input names to descriptions.
    """
    return {
        "bench": "Slope in degrees (from TerrainDerivatives)",
        "saddle": "Pre-computed via saddle_strength(tpi, aspect_variance)",
        "wind": "Pre-computed: shortest angle between aspect and leeward bearing, degrees",
        "thermal": "Pre-computed: cos(aspect - favored aspect for the time of day)",
    }


def leeward_bearing(wind_from_deg: float) -> float:
    """Bearing the wind blows toward."""
    return (wind_from_deg + 180.0) % 360.0


def angular_distance(aspect, bearing: float):
    """Shortest-arc angle in degrees between aspect(s) and a bearing, in [0, 180]."""
    aspect = np.asarray(aspect, dtype=float)
    return np.abs(((aspect - bearing + 540.0) % 360.0) - 180.0)


def compute_derived_inputs(derivatives, wind_from_deg: float, time_of_day: str) -> dict:
    """
    Compute scorer inputs from terrain derivatives.

    Args:
        derivatives: TerrainDerivatives (slope, aspect, tpi, aspect_variance)
        wind_from_deg: Bearing the wind blows from, degrees
        time_of_day: "day" or "evening"

    Returns:
        Dictionary ready to pass to scorer.compute()
    """
    regime = str(getattr(time_of_day, "value", time_of_day))
    if regime not in THERMAL_FAVORED_ASPECT:
        raise ValueError(
            f"Unknown time_of_day '{time_of_day}'. Available: {list(THERMAL_FAVORED_ASPECT)}"
        )

    aspect = derivatives.aspect.astype(np.float64)
    favored = THERMAL_FAVORED_ASPECT[regime]

    return {
        "bench": derivatives.slope,
        "saddle": saddle_strength(derivatives.tpi, derivatives.aspect_variance),
        "wind": angular_distance(aspect, leeward_bearing(wind_from_deg)),
        "thermal": np.cos(np.radians(aspect - favored)),
    }


def compute_suitability_score(
    derivatives,
    wind_from_deg: float,
    time_of_day: str,
    scorer: ScoreCombiner = None,
) -> np.ndarray:
    """
    Score every pixel of a derivative raster set.

    Border pixels keep their sentinel derivatives (0) and are scored as if
    those were measurements.

    Args:
        derivatives: TerrainDerivatives
        wind_from_deg: Bearing the wind blows from, degrees
        time_of_day: "day" or "evening"
        scorer: Optional custom combiner; defaults to the deer-stand scorer

    Returns:
        float32 score raster in [0, 1]
    """
    scorer = scorer or DEFAULT_DEER_STAND_SCORER
    inputs = compute_derived_inputs(derivatives, wind_from_deg, time_of_day)
    score = np.asarray(scorer.compute(inputs), dtype=np.float32)
    logger.info(
        f"Scored {score.size} pixels (mean {float(score.mean()):.3f}, max {float(score.max()):.3f})"
    )
    return score
