"""
Liquid Glass - Displacement Field Renderer

Samples an effect function over every pixel of the surface, turns the
sampled coordinates into per-pixel offsets, normalizes them by the largest
offset, and packs the result into an RGBA texture:

    R = x offset, G = y offset, B = 0, A = 255
    byte = round(clamp01(offset / max_magnitude + 0.5) * 255)

max_magnitude is half the largest absolute offset. A compositor applying
the texture as a displacement map with scale = max_magnitude reproduces
offsets up to max_magnitude / 2; larger ones saturate at 0 or 255.

The pointer is handed to the effect through TrackedPointer, which records
whether the effect read it during the pass. Effects that never read the
pointer don't need re-rendering when it moves.
"""

import logging
from dataclasses import dataclass

import numpy as np

from core.safety import MIN_MAGNITUDE, validate_dimensions
from core.sdf_math import Coord

logger = logging.getLogger(__name__)


@dataclass
class PointerState:
    """Pointer position in normalized surface space (may leave [0, 1])."""
    x: float = 0.0
    y: float = 0.0


class TrackedPointer:
    """Read-only view of a PointerState that records every read.

    `accessed` is cleared at the start of each render pass and set the
    first time the effect reads x or y.
    """

    __slots__ = ("_state", "accessed")

    def __init__(self, state: PointerState):
        self._state = state
        self.accessed = False

    @property
    def x(self) -> float:
        self.accessed = True
        return self._state.x

    @property
    def y(self) -> float:
        self.accessed = True
        return self._state.y

    def reset(self):
        self.accessed = False


@dataclass
class DisplacementField:
    """Per-pixel offsets in grid pixels, plus the normalization scale."""
    dx: np.ndarray
    dy: np.ndarray
    max_magnitude: float
    non_finite_count: int = 0


@dataclass
class RenderResult:
    """Output of one render pass.

    texture: (H, W, 4) uint8 RGBA array. Row-major, channel order is fixed.
    max_magnitude: Displacement scale the compositor must use (grid pixels).
    pointer_used: Whether the effect read the pointer during this pass.
    non_finite_count: Pixels whose sample was NaN/Inf and were zeroed.
    """
    texture: np.ndarray
    max_magnitude: float
    pointer_used: bool
    non_finite_count: int = 0

    @property
    def width(self) -> int:
        return self.texture.shape[1]

    @property
    def height(self) -> int:
        return self.texture.shape[0]

    def tobytes(self) -> bytes:
        """RGBA bytes, width*height*4 long."""
        return self.texture.tobytes()


def _to_byte(values: np.ndarray, max_magnitude: float) -> np.ndarray:
    """Map offsets in [-max_magnitude/2, +max_magnitude/2] onto [0, 255]."""
    norm = np.clip(values / max_magnitude + 0.5, 0.0, 1.0)
    return np.rint(norm * 255.0).astype(np.uint8)


def pack_field(field: DisplacementField) -> np.ndarray:
    """Pack a displacement field into a fresh (H, W, 4) uint8 RGBA texture."""
    h, w = field.dx.shape
    texture = np.empty((h, w, 4), dtype=np.uint8)
    texture[:, :, 0] = _to_byte(field.dx, field.max_magnitude)
    texture[:, :, 1] = _to_byte(field.dy, field.max_magnitude)
    texture[:, :, 2] = 0
    texture[:, :, 3] = 255
    return texture


class DisplacementRenderer:
    """Renders displacement textures for one surface.

    Coordinate grids and offset buffers are allocated once per grid size
    and reused across passes. Each pass returns a new texture array.

    Args:
        width: Grid width in pixels.
        height: Grid height in pixels.
        effect: Callable (uv: Coord, pointer) -> (x, y).
        pointer_state: Shared pointer state (a new one if omitted).
        vectorized: If True the effect is called once with coordinate
            arrays. If False it is called once per pixel with floats,
            for effects that branch on their input.
    """

    def __init__(self, width, height, effect, pointer_state: PointerState = None,
                 vectorized: bool = True):
        self.effect = effect
        self.pointer_state = pointer_state if pointer_state is not None else PointerState()
        self.pointer = TrackedPointer(self.pointer_state)
        self.vectorized = vectorized
        self.pointer_used = False
        self.passes = 0
        self.width = 0
        self.height = 0
        self.resize(width, height)

    def resize(self, width, height):
        """Change the grid size. Buffers are kept when the size is unchanged."""
        width, height = validate_dimensions(width, height)
        if (width, height) == (self.width, self.height):
            return
        self.width, self.height = width, height
        py, px = np.mgrid[0:height, 0:width].astype(np.float64)
        self._px = px
        self._py = py
        self._uv = Coord(px / width, py / height)
        self._dx = np.empty((height, width), dtype=np.float64)
        self._dy = np.empty((height, width), dtype=np.float64)

    def _sample_vectorized(self):
        ux, uy = self.effect(self._uv, self.pointer)
        with np.errstate(invalid="ignore", over="ignore"):
            np.multiply(ux, self.width, out=self._dx)
            np.multiply(uy, self.height, out=self._dy)
        self._dx -= self._px
        self._dy -= self._py

    def _sample_per_pixel(self):
        w, h = self.width, self.height
        dx, dy = self._dx, self._dy
        for py in range(h):
            v = py / h
            for px in range(w):
                ux, uy = self.effect(Coord(px / w, v), self.pointer)
                dx[py, px] = float(ux) * w - px
                dy[py, px] = float(uy) * h - py

    def sample(self) -> DisplacementField:
        """Evaluate the effect over the grid and normalize the offsets.

        Non-finite offsets become zero displacement. If every offset is
        zero the scale falls back to MIN_MAGNITUDE.

        The returned arrays are the renderer's buffers; they are overwritten
        by the next pass.
        """
        self.pointer.reset()
        if self.vectorized:
            self._sample_vectorized()
        else:
            self._sample_per_pixel()
        self.pointer_used = self.pointer.accessed

        bad = ~(np.isfinite(self._dx) & np.isfinite(self._dy))
        non_finite = int(np.count_nonzero(bad))
        if non_finite:
            self._dx[bad] = 0.0
            self._dy[bad] = 0.0
            logger.debug("Zeroed %d non-finite samples", non_finite)

        max_abs = max(float(np.max(np.abs(self._dx))), float(np.max(np.abs(self._dy))))
        max_magnitude = max(max_abs * 0.5, MIN_MAGNITUDE)
        return DisplacementField(self._dx, self._dy, max_magnitude, non_finite)

    def render(self) -> RenderResult:
        """Run one full pass: sample, normalize, pack."""
        field = self.sample()
        texture = pack_field(field)
        self.passes += 1
        logger.debug(
            "Rendered %dx%d field: scale=%.4f pointer_used=%s",
            self.width, self.height, field.max_magnitude, self.pointer_used,
        )
        return RenderResult(
            texture=texture,
            max_magnitude=field.max_magnitude,
            pointer_used=self.pointer_used,
            non_finite_count=field.non_finite_count,
        )


def render_displacement_map(width, height, effect, pointer_state: PointerState = None,
                            vectorized: bool = True) -> RenderResult:
    """One-shot render of an effect into a packed displacement texture.

    Raises:
        InvalidDimensionError: If width or height is not a positive integer.
    """
    renderer = DisplacementRenderer(width, height, effect, pointer_state,
                                    vectorized=vectorized)
    return renderer.render()
