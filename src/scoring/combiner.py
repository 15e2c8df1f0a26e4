"""
Score combination system for multi-factor suitability scoring.

Provides:
- ScoreComponent: Defines a single scoring factor with transform and weight
- ScoreCombiner: Combines multiple components into a final score

Formula: final_score = clamp01(sum of weight * transform(input))

Weights must sum to 1.0. Configurations written with relative weights
(e.g. bench 1.2, saddle 1.6) go through ScoreCombiner.from_relative_weights,
which divides each weight by their total.
"""

from dataclasses import dataclass, field
from typing import Any, Union

import numpy as np

from src.scoring.transforms import linear, triangular

# Type alias
NumericType = Union[float, np.ndarray]

# Map transform names to functions
TRANSFORM_FUNCTIONS = {
    "triangular": triangular,
    "linear": linear,
}


@dataclass
class ScoreComponent:
    """
    A single weighted scoring component.

    Attributes:
        name: Identifier for this component (used as key in input dict)
        transform: Name of transform function ("triangular", "linear")
        transform_params: Parameters to pass to the transform function
        weight: Contribution to the weighted sum
    """

    name: str
    transform: str
    transform_params: dict[str, Any]
    weight: float

    def __post_init__(self):
        """Validate the component configuration."""
        if self.weight is None or self.weight < 0:
            raise ValueError(
                f"Component '{self.name}' needs a non-negative weight, got {self.weight}"
            )

        if self.transform not in TRANSFORM_FUNCTIONS:
            raise ValueError(
                f"Unknown transform '{self.transform}'. "
                f"Available: {list(TRANSFORM_FUNCTIONS.keys())}"
            )

    def apply(self, value: NumericType) -> NumericType:
        """
        Apply this component's transform to a value.

        Args:
            value: Raw input value(s)

        Returns:
            Transformed score in [0, 1]
        """
        transform_fn = TRANSFORM_FUNCTIONS[self.transform]
        return transform_fn(value, **self.transform_params)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "transform": self.transform,
            "transform_params": self.transform_params,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoreComponent":
        """Deserialize from dictionary."""
        return cls(
            name=data["name"],
            transform=data["transform"],
            transform_params=data["transform_params"],
            weight=data["weight"],
        )


@dataclass
class ScoreCombiner:
    """
    Combines multiple ScoreComponents into a final score.

    Attributes:
        name: Identifier for this combiner
        components: List of ScoreComponent instances
    """

    name: str
    components: list[ScoreComponent] = field(default_factory=list)

    def __post_init__(self):
        """Check that weights sum to 1.0."""
        if not self.components:
            return

        total = sum(c.weight for c in self.components)
        if not np.isclose(total, 1.0, rtol=1e-5):
            raise ValueError(
                f"Component weights must sum to 1.0, got {total:.4f}. "
                f"Weights: {[c.weight for c in self.components]}"
            )

    @classmethod
    def from_relative_weights(
        cls,
        name: str,
        components: list[ScoreComponent],
    ) -> "ScoreCombiner":
        """
        Build a combiner from components carrying relative weights.

        Each weight is divided by the total so the result sums to 1.0.
        """
        total = sum(c.weight for c in components)
        if total <= 0:
            raise ValueError(f"Relative weights must have a positive sum, got {total}")

        normalized = [
            ScoreComponent(
                name=c.name,
                transform=c.transform,
                transform_params=c.transform_params,
                weight=c.weight / total,
            )
            for c in components
        ]
        return cls(name=name, components=normalized)

    def compute(self, inputs: dict[str, NumericType]) -> NumericType:
        """
        Compute the combined score from input values.

        Args:
            inputs: Dictionary mapping component names to their raw values

        Returns:
            Final combined score clamped to [0, 1]
        """
        component_scores = self.get_component_scores(inputs)

        total = 0.0
        for component in self.components:
            total = total + component.weight * component_scores[component.name]

        result = np.clip(total, 0.0, 1.0)
        if np.ndim(result) == 0:
            return float(result)
        return result

    def get_component_scores(self, inputs: dict[str, NumericType]) -> dict[str, NumericType]:
        """
        Get individual transformed scores for each component.

        Useful for debugging and visualization.

        Args:
            inputs: Dictionary mapping component names to their raw values

        Returns:
            Dictionary mapping component names to their transformed scores
        """
        scores = {}
        for component in self.components:
            if component.name not in inputs:
                raise KeyError(
                    f"Missing input for component '{component.name}'. "
                    f"Available inputs: {list(inputs.keys())}"
                )
            scores[component.name] = component.apply(inputs[component.name])
        return scores

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "components": [c.to_dict() for c in self.components],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoreCombiner":
        """Deserialize from dictionary."""
        components = [ScoreComponent.from_dict(c) for c in data["components"]]
        return cls(name=data["name"], components=components)
