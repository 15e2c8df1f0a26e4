"""
Tests for the deer-stand suitability scoring configuration.
"""

import numpy as np
import pytest

from src.scoring.configs.deer_stand import (
    DEFAULT_DEER_STAND_CONFIG,
    DEFAULT_DEER_STAND_SCORER,
    RELATIVE_WEIGHTS,
    angular_distance,
    compute_derived_inputs,
    compute_suitability_score,
    create_default_deer_stand_scorer,
    get_required_inputs,
    leeward_bearing,
)
from src.terrain.derivatives import TerrainDerivatives, compute_terrain_derivatives


def _derivatives(slope=0.0, aspect=0.0, tpi=0.0, variance=0.0, shape=(3, 3)):
    return TerrainDerivatives(
        slope=np.full(shape, slope, dtype=np.float32),
        aspect=np.full(shape, aspect, dtype=np.float32),
        tpi=np.full(shape, tpi, dtype=np.float32),
        aspect_variance=np.full(shape, variance, dtype=np.float32),
        meters_per_pixel=10.0,
    )


def _component(name):
    return next(c for c in DEFAULT_DEER_STAND_SCORER.components if c.name == name)


class TestScorerConfiguration:
    """Weights and component layout."""

    def test_relative_weights(self):
        assert RELATIVE_WEIGHTS == {"bench": 1.2, "saddle": 1.6, "wind": 1.2, "thermal": 1.0}

    def test_weights_normalized_by_total(self):
        weights = {c.name: c.weight for c in create_default_deer_stand_scorer().components}

        assert weights["bench"] == pytest.approx(0.24)
        assert weights["saddle"] == pytest.approx(0.32)
        assert weights["wind"] == pytest.approx(0.24)
        assert weights["thermal"] == pytest.approx(0.20)

    def test_config_serializes(self):
        assert DEFAULT_DEER_STAND_CONFIG["name"] == "deer_stand_suitability"
        names = [c["name"] for c in DEFAULT_DEER_STAND_CONFIG["components"]]
        assert names == ["bench", "saddle", "wind", "thermal"]

    def test_required_inputs_documented(self):
        assert set(get_required_inputs()) == {"bench", "saddle", "wind", "thermal"}


class TestWindAndThermalTerms:
    """Leeward and thermal orientation."""

    def test_leeward_bearing(self):
        assert leeward_bearing(270.0) == 90.0
        assert leeward_bearing(200.0) == 20.0

    def test_angular_distance_wraps(self):
        assert angular_distance(350.0, 10.0) == pytest.approx(20.0)
        assert angular_distance(10.0, 350.0) == pytest.approx(20.0)
        assert angular_distance(0.0, 180.0) == pytest.approx(180.0)

    @pytest.mark.parametrize("wind_from", [0.0, 45.0, 270.0, 333.0])
    def test_wind_term_leeward_and_windward(self, wind_from):
        leeward = leeward_bearing(wind_from)
        windward = (leeward + 180.0) % 360.0
        wind = _component("wind")

        leeward_inputs = compute_derived_inputs(_derivatives(aspect=leeward), wind_from, "day")
        windward_inputs = compute_derived_inputs(_derivatives(aspect=windward), wind_from, "day")

        np.testing.assert_allclose(wind.apply(leeward_inputs["wind"]), 1.0, atol=1e-9)
        np.testing.assert_allclose(wind.apply(windward_inputs["wind"]), 0.0, atol=1e-9)

    def test_thermal_symmetry(self):
        thermal = _component("thermal")

        day = compute_derived_inputs(_derivatives(aspect=180.0), 0.0, "day")
        evening = compute_derived_inputs(_derivatives(aspect=0.0), 0.0, "evening")

        np.testing.assert_allclose(thermal.apply(day["thermal"]), 1.0)
        np.testing.assert_allclose(thermal.apply(evening["thermal"]), 1.0)

    def test_thermal_opposite_aspect(self):
        thermal = _component("thermal")
        day = compute_derived_inputs(_derivatives(aspect=0.0), 0.0, "day")
        np.testing.assert_allclose(thermal.apply(day["thermal"]), 0.0, atol=1e-9)

    def test_unknown_time_of_day(self):
        with pytest.raises(ValueError, match="time_of_day"):
            compute_derived_inputs(_derivatives(), 0.0, "noon")


class TestSuitabilityScore:
    """Scoring whole derivative rasters."""

    def test_flat_raster_scenario(self):
        derivatives = compute_terrain_derivatives(np.full((32, 32), 100.0, dtype=np.float32), 35.0, 13)

        # Aspect 0 everywhere: 90° off the leeward bearing of a west wind,
        # fully aligned with evening drainage
        score = compute_suitability_score(derivatives, 270.0, "evening")
        np.testing.assert_allclose(score, 0.24 * 0.5 + 0.20 * 1.0, atol=1e-6)

        for wind_from in range(0, 360, 15):
            for regime in ("day", "evening"):
                score = compute_suitability_score(derivatives, float(wind_from), regime)
                assert score.max() < 0.55

    def test_ideal_bench_saddle(self):
        # Slope 6°, flat TPI, mixed aspects, facing leeward in the evening
        derivatives = _derivatives(slope=6.0, aspect=0.0, tpi=0.0, variance=1.0)

        score = compute_suitability_score(derivatives, 180.0, "evening")

        np.testing.assert_allclose(score, 1.0, atol=1e-6)

    def test_output_range_and_dtype(self, sample_dem):
        derivatives = compute_terrain_derivatives(sample_dem, 40.0, 13)
        score = compute_suitability_score(derivatives, 90.0, "day")

        assert score.dtype == np.float32
        assert score.shape == sample_dem.shape
        assert score.min() >= 0.0
        assert score.max() <= 1.0

    def test_enum_time_of_day_accepted(self):
        from src.terrain.session import TimeOfDay

        derivatives = _derivatives(aspect=180.0)
        by_enum = compute_suitability_score(derivatives, 0.0, TimeOfDay.DAY)
        by_str = compute_suitability_score(derivatives, 0.0, "day")

        np.testing.assert_array_equal(by_enum, by_str)
