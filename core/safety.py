"""
Liquid Glass - Safety & Resource Guards
Validation run before any field is allocated or any surface is mounted.
Prevents zero-sized buffers, runaway allocations, and lifecycle bugs.
"""

import math

# --- Configurable Limits ---
MAX_DIMENSION = 8192       # Maximum grid size per axis (after pixel ratio)
MAX_PIXEL_RATIO = 4.0      # Maximum supported device pixel ratio
MIN_MAGNITUDE = 1e-6       # Epsilon floor for the displacement scale


class GlassError(Exception):
    """Base class for all liquid glass errors."""
    pass


class InvalidDimensionError(GlassError, ValueError):
    """Raised when a width, height or pixel ratio is unusable."""
    pass


class LifecycleError(GlassError, RuntimeError):
    """Raised when a surface is used or destroyed after it was destroyed."""
    pass


def validate_dimensions(width, height) -> tuple[int, int]:
    """Check that a grid size is a pair of positive integers within limits.

    Args:
        width: Grid width in pixels.
        height: Grid height in pixels.

    Returns:
        (width, height) as ints.

    Raises:
        InvalidDimensionError: If either value is non-integral, <= 0, or
            larger than MAX_DIMENSION.
    """
    checked = []
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, (bool, str, bytes)):
            raise InvalidDimensionError(f"{name} must be an integer, got {value!r}")
        try:
            as_float = float(value)
        except (TypeError, ValueError):
            raise InvalidDimensionError(f"{name} must be an integer, got {value!r}")
        if not math.isfinite(as_float) or as_float != int(as_float):
            raise InvalidDimensionError(f"{name} must be an integer, got {value!r}")
        value = int(as_float)
        if value <= 0:
            raise InvalidDimensionError(f"{name} must be positive, got {value}")
        if value > MAX_DIMENSION:
            raise InvalidDimensionError(
                f"{name} is {value}px, exceeds {MAX_DIMENSION}px limit. "
                f"Use a smaller surface or a lower pixel ratio."
            )
        checked.append(value)
    return checked[0], checked[1]


def validate_pixel_ratio(pixel_ratio) -> float:
    """Check that a pixel ratio is a finite positive number.

    Raises:
        InvalidDimensionError: If the ratio is <= 0, NaN/Inf, or above
            MAX_PIXEL_RATIO.
    """
    try:
        ratio = float(pixel_ratio)
    except (TypeError, ValueError):
        raise InvalidDimensionError(f"pixel_ratio must be a number, got {pixel_ratio!r}")
    if not math.isfinite(ratio) or ratio <= 0:
        raise InvalidDimensionError(f"pixel_ratio must be positive, got {pixel_ratio!r}")
    if ratio > MAX_PIXEL_RATIO:
        raise InvalidDimensionError(
            f"pixel_ratio {ratio} exceeds {MAX_PIXEL_RATIO} limit"
        )
    return ratio


def scaled_dimensions(width, height, pixel_ratio=1.0) -> tuple[int, int]:
    """Grid size for a surface rendered at the given pixel ratio.

    The surface size itself is validated first, then the scaled grid.
    """
    width, height = validate_dimensions(width, height)
    ratio = validate_pixel_ratio(pixel_ratio)
    grid_w = max(1, int(round(width * ratio)))
    grid_h = max(1, int(round(height * ratio)))
    return validate_dimensions(grid_w, grid_h)
