"""
Scoring configurations for different use cases.

Available configs:
- deer_stand: Deer-stand terrain suitability scoring
"""

from src.scoring.configs.deer_stand import (
    DEFAULT_DEER_STAND_SCORER,
    DEFAULT_DEER_STAND_CONFIG,
    create_default_deer_stand_scorer,
    compute_derived_inputs as deer_stand_compute_derived_inputs,
    compute_suitability_score,
    get_required_inputs as deer_stand_get_required_inputs,
)

__all__ = [
    "DEFAULT_DEER_STAND_SCORER",
    "DEFAULT_DEER_STAND_CONFIG",
    "create_default_deer_stand_scorer",
    "deer_stand_compute_derived_inputs",
    "compute_suitability_score",
    "deer_stand_get_required_inputs",
]
