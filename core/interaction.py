"""
Liquid Glass - Interaction Controller

Drag handling for a glass surface and the lazy re-render policy.

Two coordinate spaces are in play:
- viewport space: pixels, origin top-left of the host window
- normalized surface space: [0, 1] across the surface, origin top-left

States:
    idle     --pointer_down inside surface-->  dragging
    dragging --pointer_move-->                 dragging (position follows pointer)
    dragging --pointer_up (anywhere)-->        idle

Every pointer move also updates the shared PointerState. The field is
re-rendered on a move only when the previous pass reported that the effect
read the pointer.
"""

from dataclasses import dataclass
from enum import Enum

from core.displacement import PointerState


class DragState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


CURSORS = {
    DragState.IDLE: "grab",
    DragState.DRAGGING: "grabbing",
}


@dataclass
class Viewport:
    """Host window size in pixels."""
    width: float
    height: float


@dataclass
class SurfaceGeometry:
    """Surface size and viewport-space top-left position."""
    width: float
    height: float
    margin: float = 10.0
    x: float = 0.0
    y: float = 0.0

    def contains(self, vx: float, vy: float) -> bool:
        """True when a viewport point lies on the surface."""
        return (self.x <= vx <= self.x + self.width
                and self.y <= vy <= self.y + self.height)

    def to_surface(self, vx: float, vy: float) -> tuple[float, float]:
        """Convert a viewport point to normalized surface space."""
        return (vx - self.x) / self.width, (vy - self.y) / self.height


def clamp_position(x: float, y: float, geometry: SurfaceGeometry,
                   viewport: Viewport) -> tuple[float, float]:
    """Clamp a top-left position so the surface stays inside the viewport.

    Keeps `margin` pixels between the surface and every viewport edge. When
    the surface is too large for that (max < min) the position collapses
    to the margin.
    """
    min_x = geometry.margin
    max_x = viewport.width - geometry.width - geometry.margin
    min_y = geometry.margin
    max_y = viewport.height - geometry.height - geometry.margin
    return max(min_x, min(max_x, x)), max(min_y, min(max_y, y))


def centered_position(geometry: SurfaceGeometry, viewport: Viewport) -> tuple[float, float]:
    """Viewport-centred top-left position, clamped."""
    x = (viewport.width - geometry.width) / 2.0
    y = (viewport.height - geometry.height) / 2.0
    return clamp_position(x, y, geometry, viewport)


class InteractionController:
    """Tracks drag gestures and pointer position for one surface.

    Args:
        geometry: Surface geometry, mutated in place by drags and resizes.
        viewport: Current viewport size.
        pointer_state: Shared pointer state read by the effect.
        request_render: Callable run when the field must be recomputed.
            It returns whether the new pass read the pointer.
    """

    def __init__(self, geometry: SurfaceGeometry, viewport: Viewport,
                 pointer_state: PointerState, request_render=None):
        self.geometry = geometry
        self.viewport = viewport
        self.pointer_state = pointer_state
        self.request_render = request_render
        self.state = DragState.IDLE
        self.pointer_used = False
        self.render_count = 0
        self._start_pointer = (0.0, 0.0)
        self._start_position = (0.0, 0.0)

    @property
    def dragging(self) -> bool:
        return self.state is DragState.DRAGGING

    @property
    def cursor(self) -> str:
        return CURSORS[self.state]

    def render(self) -> bool:
        """Run a render pass now and remember whether it read the pointer."""
        if self.request_render is not None:
            self.pointer_used = bool(self.request_render())
            self.render_count += 1
        return self.pointer_used

    def pointer_down(self, vx: float, vy: float) -> bool:
        """Start a drag if the point is on the surface. Returns True if it did."""
        if not self.geometry.contains(vx, vy):
            return False
        self.state = DragState.DRAGGING
        self._start_pointer = (vx, vy)
        self._start_position = (self.geometry.x, self.geometry.y)
        return True

    def pointer_move(self, vx: float, vy: float) -> bool:
        """Handle a pointer move anywhere in the viewport.

        Moves the surface when dragging, updates the pointer state relative
        to the surface's (possibly new) bounds, and re-renders when the last
        pass depended on the pointer.

        Returns:
            True if a render pass ran.
        """
        if self.dragging:
            nx = self._start_position[0] + (vx - self._start_pointer[0])
            ny = self._start_position[1] + (vy - self._start_pointer[1])
            self.geometry.x, self.geometry.y = clamp_position(
                nx, ny, self.geometry, self.viewport)

        self.pointer_state.x, self.pointer_state.y = self.geometry.to_surface(vx, vy)

        if self.pointer_used:
            self.render()
            return True
        return False

    def pointer_up(self):
        """End any drag. Listens globally, not just over the surface."""
        self.state = DragState.IDLE

    def resize(self, width: float, height: float):
        """Viewport resized: re-clamp the position, keep the drag state."""
        self.viewport.width = width
        self.viewport.height = height
        self.geometry.x, self.geometry.y = clamp_position(
            self.geometry.x, self.geometry.y, self.geometry, self.viewport)
