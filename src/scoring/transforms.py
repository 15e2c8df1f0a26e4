"""
Scoring transformation functions.

All transformations convert raw values into scores in the range [0, 1].

Transformation types:
1. triangular - single peak with linear falloff inside a support window
   (e.g., bench slope angle)
2. linear - simple normalization with optional power/invert
   (e.g., angular distance from leeward, thermal alignment)

These are designed to be composable and user-configurable.
"""

from typing import Union
import numpy as np

# Type alias for values that can be scalar or array
NumericType = Union[float, np.ndarray]


def triangular(
    value: NumericType,
    peak: float,
    half_width: float,
    support: tuple[float, float],
) -> NumericType:
    """
    Triangular membership around a peak, zero outside a support window.

    Shape:
                 /\\
                /  \\
               /    \\
    ______|   /      \\   |______
        support  peak    support
         start            end

    Inside the support the score is max(0, 1 - |value - peak| / half_width);
    outside it the score is 0. The support may cut the triangle off before
    it reaches zero.

    Args:
        value: Input value(s) to transform
        peak: Value scoring 1.0
        half_width: Distance from the peak at which the ramp reaches 0
        support: (start, end) inclusive window where the ramp applies

    Returns:
        Score in [0, 1]

    Example:
        >>> triangular(6.0, peak=6, half_width=10, support=(2, 12))
        1.0
        >>> triangular(11.0, peak=6, half_width=10, support=(2, 12))
        0.5
        >>> triangular(1.0, peak=6, half_width=10, support=(2, 12))
        0.0
    """
    value = np.asarray(value, dtype=float)
    support_start, support_end = support

    ramp = np.maximum(0.0, 1.0 - np.abs(value - peak) / half_width)
    in_support = (value >= support_start) & (value <= support_end)
    result = np.where(in_support, ramp, 0.0)

    # Return scalar if input was scalar
    if result.ndim == 0:
        return float(result)
    return result


def linear(
    value: NumericType,
    value_range: tuple[float, float],
    invert: bool = False,
    power: float = 1.0,
) -> NumericType:
    """
    Linear normalization transformation.

    Maps value_range to [0, 1], clamping values outside the range.
    Optional power scaling for non-linear relationships.

    Args:
        value: Input value(s) to transform
        value_range: (min, max) range to normalize
        invert: If True, high values map to low scores
        power: Power to apply (0.5 = sqrt for diminishing returns, 2.0 = squared)

    Returns:
        Score in [0, 1]

    Example:
        >>> linear(90.0, value_range=(0, 180), invert=True)  # 90° off leeward
        0.5
        >>> linear(0.0, value_range=(-1, 1))  # cos alignment of 0
        0.5
    """
    value = np.asarray(value)
    vmin, vmax = value_range

    # Normalize to [0, 1]
    normalized = (value - vmin) / (vmax - vmin)

    # Clamp to [0, 1]
    result = np.clip(normalized, 0.0, 1.0)

    # Apply power scaling
    if power != 1.0:
        result = np.power(result, power)

    # Invert if requested
    if invert:
        result = 1.0 - result

    # Return scalar if input was scalar
    if result.ndim == 0:
        return float(result)
    return result


def saddle_strength(
    tpi: NumericType,
    aspect_variance: NumericType,
    tpi_scale: float = 12.0,
) -> NumericType:
    """
    Saddle/pinch indicator from TPI and aspect variance.

    Near-flat local position (|TPI| small relative to tpi_scale) combined
    with heterogeneous surrounding aspect scores high.

    Args:
        tpi: Topographic position index in meters
        aspect_variance: Circular aspect variance in [0, 1]
        tpi_scale: |TPI| at which the flatness term reaches 0

    Returns:
        Saddle strength in [0, 1]

    Example:
        >>> saddle_strength(tpi=0.0, aspect_variance=0.8)
        0.8
        >>> saddle_strength(tpi=6.0, aspect_variance=1.0)
        0.5
    """
    tpi = np.asarray(tpi, dtype=float)
    aspect_variance = np.asarray(aspect_variance, dtype=float)

    flatness = np.maximum(0.0, 1.0 - np.abs(tpi) / tpi_scale)
    result = np.clip(flatness * aspect_variance, 0.0, 1.0)

    if result.ndim == 0:
        return float(result)
    return result
