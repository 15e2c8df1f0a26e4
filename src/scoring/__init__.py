"""
Scoring module for terrain suitability analysis.

Provides transformation functions and combination logic for computing
multi-factor suitability scores (e.g., deer-stand suitability).

Transformation types:
- triangular: Single peak with linear falloff inside a support window
  (e.g., bench slope angle)
- linear: Simple normalization with optional power/invert
  (e.g., leeward angle, thermal alignment)
- saddle_strength: Combined TPI flatness + aspect variance metric

Combination:
- ScoreComponent: Defines a single weighted scoring factor
- ScoreCombiner: Weighted sum of components, clamped to [0, 1]
"""

from src.scoring.transforms import (
    triangular,
    linear,
    saddle_strength,
)
from src.scoring.combiner import ScoreComponent, ScoreCombiner

__all__ = [
    # Transforms
    "triangular",
    "linear",
    "saddle_strength",
    # Combiner
    "ScoreComponent",
    "ScoreCombiner",
]
