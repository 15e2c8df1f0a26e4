"""
Tests for the weighted score combiner.

Formula: final_score = clamp01(sum of weight * transform(input)), with
weights summing to 1.0 (or normalized from relative weights).
"""

import numpy as np
import pytest

from src.scoring.combiner import ScoreCombiner, ScoreComponent


def _linear_component(name, weight, **params):
    params.setdefault("value_range", (0.0, 1.0))
    return ScoreComponent(name=name, transform="linear", transform_params=params, weight=weight)


# =============================================================================
# SCORE COMPONENT DEFINITION TESTS
# =============================================================================


class TestScoreComponent:
    """ScoreComponent definition."""

    def test_create_component(self):
        component = ScoreComponent(
            name="bench",
            transform="triangular",
            transform_params={"peak": 6, "half_width": 10, "support": (2, 12)},
            weight=0.24,
        )

        assert component.name == "bench"
        assert component.transform == "triangular"
        assert component.weight == 0.24

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError, match="weight"):
            _linear_component("wind", weight=-0.1)

    def test_unknown_transform_rejected(self):
        with pytest.raises(ValueError, match="Unknown transform"):
            ScoreComponent(name="x", transform="sigmoid", transform_params={}, weight=1.0)

    def test_apply(self):
        component = _linear_component("wind", 1.0, value_range=(0.0, 180.0), invert=True)
        assert component.apply(45.0) == pytest.approx(0.75)

    def test_dict_roundtrip(self):
        component = _linear_component("thermal", 0.2, value_range=(-1.0, 1.0))
        restored = ScoreComponent.from_dict(component.to_dict())
        assert restored == component


# =============================================================================
# SCORE COMBINER TESTS
# =============================================================================


class TestScoreCombiner:
    """Combining components into a final score."""

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError, match="sum to 1.0"):
            ScoreCombiner(
                name="bad",
                components=[_linear_component("a", 0.5), _linear_component("b", 0.6)],
            )

    def test_empty_combiner_allowed(self):
        assert ScoreCombiner(name="empty").components == []

    def test_weighted_sum(self):
        combiner = ScoreCombiner(
            name="test",
            components=[_linear_component("a", 0.25), _linear_component("b", 0.75)],
        )

        assert combiner.compute({"a": 1.0, "b": 0.0}) == pytest.approx(0.25)
        assert combiner.compute({"a": 0.0, "b": 1.0}) == pytest.approx(0.75)
        assert combiner.compute({"a": 1.0, "b": 1.0}) == pytest.approx(1.0)

    def test_array_inputs(self):
        combiner = ScoreCombiner(
            name="test",
            components=[_linear_component("a", 0.5), _linear_component("b", 0.5)],
        )
        result = combiner.compute({"a": np.array([0.0, 1.0]), "b": np.array([1.0, 1.0])})

        np.testing.assert_allclose(result, [0.5, 1.0])

    def test_missing_input(self):
        combiner = ScoreCombiner(
            name="test",
            components=[_linear_component("a", 0.5), _linear_component("b", 0.5)],
        )
        with pytest.raises(KeyError, match="b"):
            combiner.compute({"a": 1.0})

    def test_component_scores(self):
        combiner = ScoreCombiner(
            name="test",
            components=[_linear_component("a", 0.5), _linear_component("b", 0.5, invert=True)],
        )
        scores = combiner.get_component_scores({"a": 0.2, "b": 0.2})

        assert scores["a"] == pytest.approx(0.2)
        assert scores["b"] == pytest.approx(0.8)

    def test_from_relative_weights(self):
        combiner = ScoreCombiner.from_relative_weights(
            name="relative",
            components=[_linear_component("a", 1.2), _linear_component("b", 1.6), _linear_component("c", 2.2)],
        )
        weights = {c.name: c.weight for c in combiner.components}

        assert weights["a"] == pytest.approx(0.24)
        assert weights["b"] == pytest.approx(0.32)
        assert weights["c"] == pytest.approx(0.44)
        assert sum(weights.values()) == pytest.approx(1.0)

    def test_from_relative_weights_rejects_zero_total(self):
        with pytest.raises(ValueError, match="positive sum"):
            ScoreCombiner.from_relative_weights(
                name="zero",
                components=[_linear_component("a", 0.0)],
            )

    def test_dict_roundtrip(self):
        combiner = ScoreCombiner(
            name="test",
            components=[_linear_component("a", 0.4), _linear_component("b", 0.6)],
        )
        restored = ScoreCombiner.from_dict(combiner.to_dict())

        inputs = {"a": 0.3, "b": 0.9}
        assert restored.name == "test"
        assert restored.compute(inputs) == pytest.approx(combiner.compute(inputs))
