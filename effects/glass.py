"""
Liquid Glass - Glass Effects
Effect functions that map a surface coordinate to the coordinate it samples.

Every effect is a function: (uv: Coord, pointer, **params) -> Coord
uv and the returned coordinate are in normalized surface space ([0, 1],
origin top-left). pointer is the tracked pointer accessor; an effect that
never touches it will not be re-rendered on pointer moves.
"""

from core.sdf_math import Coord, length_2d, rounded_box_sdf, smooth_step


def identity(uv: Coord, pointer=None) -> Coord:
    """Sample every pixel from itself (no distortion)."""
    return Coord(uv.x, uv.y)


def liquid_glass(uv: Coord, pointer=None, half_width: float = 0.3,
                 half_height: float = 0.2, radius: float = 0.6,
                 inset: float = 0.15, falloff: float = 0.8) -> Coord:
    """Rounded-box lens: flat in the middle, pulled inward near the rim.

    Args:
        uv: Surface coordinate.
        pointer: Ignored.
        half_width: Half width of the rounded box (surface units).
        half_height: Half height of the rounded box.
        radius: Corner radius of the box.
        inset: Distance subtracted from the SDF before the falloff.
        falloff: SDF distance over which the warp fades in.

    Returns:
        Sampled coordinate.
    """
    cx = uv.x - 0.5
    cy = uv.y - 0.5
    dist = rounded_box_sdf(cx, cy, half_width, half_height, radius)
    t = smooth_step(falloff, 0.0, dist - inset)
    scale = smooth_step(0.0, 1.0, t)
    return Coord(cx * scale + 0.5, cy * scale + 0.5)


def pointer_lens(uv: Coord, pointer, radius: float = 0.25,
                 strength: float = 0.5) -> Coord:
    """Magnifier that follows the pointer.

    Pixels within `radius` of the pointer sample closer to it, by up to
    `strength` of their distance at the pointer itself.
    """
    px = pointer.x
    py = pointer.y
    ox = uv.x - px
    oy = uv.y - py
    weight = smooth_step(radius, 0.0, length_2d(ox, oy))
    scale = 1.0 - strength * weight
    return Coord(px + ox * scale, py + oy * scale)
