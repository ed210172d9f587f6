"""
Liquid Glass - Surface Lifecycle

A Surface ties one displacement renderer and one interaction controller to
the host compositor. The host creates a surface on mount and must destroy it
on unmount; destroy releases every resource the surface created.

Two construction strategies:
- the compositor creates the pixel surface (owned, released on destroy)
- the host passes in an existing handle (borrowed, left alone on destroy)
"""

import logging
import uuid
from dataclasses import asdict, dataclass, fields, replace

from core.compositor import Compositor, FilterGraph, PostFilter, SoftwareCompositor
from core.displacement import DisplacementRenderer, PointerState, RenderResult
from core.interaction import (
    InteractionController, SurfaceGeometry, Viewport, centered_position,
)
from core.safety import (
    LifecycleError, scaled_dimensions, validate_dimensions, validate_pixel_ratio,
)
from effects import DEFAULT_EFFECT, get_effect

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = (1280, 800)

# Post-filter tuning (visual only, not part of the displacement contract)
POST_FILTER_PRESETS = {
    "component": {"blur": 0.3, "contrast": 1.15, "brightness": 1.05, "saturate": 1.1},
    "hook":      {"blur": 0.25, "contrast": 1.2, "brightness": 1.05, "saturate": 1.1},
    "none":      {"blur": 0.0, "contrast": 1.0, "brightness": 1.0, "saturate": 1.0},
}


@dataclass
class GlassConfig:
    """Per-surface settings.

    margin: Minimum gap to every viewport edge, in viewport pixels.
    pixel_ratio: Texture pixels per surface pixel.
    preset: Name from POST_FILTER_PRESETS.
    blur/contrast/brightness/saturate: Overrides for the preset (None = preset value).
    border_radius: Corner radius of the surface element, in pixels.
    box_shadow: CSS shadow of the surface element.
    vectorized: Evaluate the effect on whole coordinate arrays.
    """
    margin: float = 10.0
    pixel_ratio: float = 1.0
    preset: str = "component"
    blur: float | None = None
    contrast: float | None = None
    brightness: float | None = None
    saturate: float | None = None
    border_radius: float = 150.0
    box_shadow: str = "0 4px 8px rgba(0,0,0,0.25), 0 -10px 25px inset rgba(0,0,0,0.15)"
    vectorized: bool = True

    def __post_init__(self):
        if self.preset not in POST_FILTER_PRESETS:
            available = ", ".join(sorted(POST_FILTER_PRESETS))
            raise ValueError(f"Unknown preset: {self.preset}. Available: {available}")
        self.pixel_ratio = validate_pixel_ratio(self.pixel_ratio)
        if self.margin < 0:
            raise ValueError(f"margin must be >= 0, got {self.margin}")

    def post_filter(self) -> PostFilter:
        values = dict(POST_FILTER_PRESETS[self.preset])
        for key in values:
            override = getattr(self, key)
            if override is not None:
                values[key] = float(override)
        return PostFilter(**values)

    @classmethod
    def from_dict(cls, data: dict) -> "GlassConfig":
        """Build from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict:
        return asdict(self)


def make_surface_id() -> str:
    """Unique id used to namespace a surface's compositor resources."""
    return "liquid-glass-" + uuid.uuid4().hex[:12]


class Surface:
    """A mounted glass surface.

    Use create_surface() rather than constructing directly; it mounts the
    surface and performs the initial render.
    """

    def __init__(self, width, height, effect, compositor: Compositor,
                 viewport: Viewport, config: GlassConfig = None, handle=None):
        self.width, self.height = validate_dimensions(width, height)
        self.config = config or GlassConfig()
        self.effect = effect
        self.compositor = compositor
        self.surface_id = make_surface_id()
        self.filter_id = f"{self.surface_id}_filter"
        self.map_id = f"{self.surface_id}_map"

        self.handle = handle
        self.owns_handle = handle is None
        self.mounted = False
        self.destroyed = False
        self.result: RenderResult | None = None

        self.geometry = SurfaceGeometry(self.width, self.height, margin=self.config.margin)
        viewport = replace(viewport)
        self.geometry.x, self.geometry.y = centered_position(self.geometry, viewport)

        grid_w, grid_h = scaled_dimensions(self.width, self.height, self.config.pixel_ratio)
        self.pointer_state = PointerState()
        self.renderer = DisplacementRenderer(
            grid_w, grid_h, effect, self.pointer_state,
            vectorized=self.config.vectorized,
        )
        self.controller = InteractionController(
            self.geometry, viewport, self.pointer_state, request_render=self.refresh,
        )

    def _check_alive(self):
        if self.destroyed:
            raise LifecycleError(f"Surface {self.surface_id} has been destroyed")

    @property
    def scale(self) -> float:
        """Displacement scale in surface pixels."""
        if self.result is None:
            return 0.0
        return self.result.max_magnitude / self.config.pixel_ratio

    @property
    def position(self) -> tuple[float, float]:
        return self.geometry.x, self.geometry.y

    def filter_graph(self) -> FilterGraph:
        return FilterGraph(
            filter_id=self.filter_id,
            map_id=self.map_id,
            width=self.width,
            height=self.height,
            scale=self.scale,
            post=self.config.post_filter(),
        )

    def refresh(self) -> bool:
        """Re-render the field and push it to the compositor.

        Returns:
            Whether the effect read the pointer during this pass.
        """
        self._check_alive()
        result = self.renderer.render()
        self.result = result
        if self.mounted:
            self._upload(result)
            self.compositor.set_displacement_scale(self.filter_id, self.scale)
        return result.pointer_used

    def _upload(self, result: RenderResult):
        self.compositor.upload_texture(self.map_id, result.tobytes(),
                                       result.width, result.height)

    def mount(self):
        """Create compositor resources and run the initial render."""
        self._check_alive()
        if self.mounted:
            raise LifecycleError(f"Surface {self.surface_id} is already mounted")
        created_handle = False
        uploaded = False
        try:
            if self.handle is None:
                self.handle = self.compositor.create_pixel_surface(
                    self.surface_id, self.width, self.height)
                created_handle = True
            self.controller.render()
            self._upload(self.result)
            uploaded = True
            self.compositor.register_filter(self.filter_graph())
        except Exception:
            if uploaded:
                self.compositor.release_texture(self.map_id)
            if created_handle:
                self.compositor.release_pixel_surface(self.handle)
                self.handle = None
            raise
        self.mounted = True
        logger.info("Mounted %s (%dx%d, scale=%.3f)",
                    self.surface_id, self.width, self.height, self.scale)

    def destroy(self):
        """Release every compositor resource this surface created.

        Raises:
            LifecycleError: If the surface was already destroyed.
        """
        self._check_alive()
        was_mounted = self.mounted
        self.mounted = False
        self.destroyed = True
        if was_mounted:
            # Each release runs even if an earlier one raised
            try:
                self.compositor.unregister_filter(self.filter_id)
            finally:
                try:
                    self.compositor.release_texture(self.map_id)
                finally:
                    if self.owns_handle:
                        handle, self.handle = self.handle, None
                        self.compositor.release_pixel_surface(handle)
        logger.info("Destroyed %s", self.surface_id)

    # --- Host events ---

    def pointer_down(self, vx: float, vy: float) -> bool:
        self._check_alive()
        return self.controller.pointer_down(vx, vy)

    def pointer_move(self, vx: float, vy: float) -> bool:
        self._check_alive()
        return self.controller.pointer_move(vx, vy)

    def pointer_up(self):
        self._check_alive()
        self.controller.pointer_up()

    def resize_viewport(self, width: float, height: float):
        self._check_alive()
        self.controller.resize(width, height)

    def css_style(self) -> dict:
        """Style of the surface element at its current position."""
        return {
            "position": "fixed",
            "left": f"{self.geometry.x:g}px",
            "top": f"{self.geometry.y:g}px",
            "width": f"{self.width}px",
            "height": f"{self.height}px",
            "border-radius": f"{self.config.border_radius:g}px",
            "overflow": "hidden",
            "box-shadow": self.config.box_shadow,
            "cursor": self.controller.cursor,
            "z-index": "9999",
            "backdrop-filter": self.filter_graph().backdrop_filter(),
        }


def create_surface(width, height, effect=None, compositor: Compositor = None,
                   viewport: Viewport = None, config: GlassConfig = None,
                   handle=None) -> Surface:
    """Create, render and mount a glass surface.

    Args:
        width, height: Surface size in viewport pixels.
        effect: Effect callable (default: the liquid_glass effect).
        compositor: Host compositor (default: a new SoftwareCompositor).
        viewport: Host viewport (default: DEFAULT_VIEWPORT).
        config: GlassConfig.
        handle: Existing pixel surface supplied by the host. The surface
            borrows it and will not release it.

    Raises:
        InvalidDimensionError: If width/height are not positive integers.
    """
    if effect is None:
        effect = get_effect(DEFAULT_EFFECT)
    if compositor is None:
        compositor = SoftwareCompositor()
    if viewport is None:
        viewport = Viewport(*DEFAULT_VIEWPORT)
    surface = Surface(width, height, effect, compositor, viewport, config, handle)
    surface.mount()
    return surface


def destroy_surface(surface: Surface):
    """Unmount a surface. Calling twice raises LifecycleError."""
    surface.destroy()
