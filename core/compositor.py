"""
Liquid Glass - Compositor Boundary

The host compositor owns pixel surfaces, textures and filter graphs. A glass
surface talks to it only through the Compositor interface below.

SoftwareCompositor is an in-memory implementation: it keeps every resource
in a dict keyed by identifier, renders the SVG filter markup a browser host
would mount, and can apply a registered filter to a backdrop image on the
CPU (displacement map, then blur/contrast/brightness/saturate).

Displacement map semantics (SVG feDisplacementMap):

    P'(x, y) = P(x + scale * (R/255 - 0.5), y + scale * (G/255 - 0.5))
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import cv2
import numpy as np

from core.image_io import encode_png_data_url, texture_from_bytes


@dataclass
class PostFilter:
    """Post-processing applied after displacement (CSS filter functions)."""
    blur: float = 0.3
    contrast: float = 1.15
    brightness: float = 1.05
    saturate: float = 1.1

    def css(self) -> str:
        return (f"blur({self.blur:g}px) contrast({self.contrast:g}) "
                f"brightness({self.brightness:g}) saturate({self.saturate:g})")


@dataclass
class FilterGraph:
    """One displacement filter: texture node + displacement node + post chain."""
    filter_id: str
    map_id: str
    width: int
    height: int
    scale: float
    post: PostFilter = field(default_factory=PostFilter)
    x_channel: str = "R"
    y_channel: str = "G"

    def backdrop_filter(self) -> str:
        """CSS backdrop-filter value referencing this filter."""
        return f"url(#{self.filter_id}) {self.post.css()}"

    def to_svg(self, href: str = "") -> str:
        """SVG <filter> element. href is the displacement texture URL."""
        return (
            f'<filter id="{self.filter_id}" x="0" y="0" '
            f'width="{self.width}" height="{self.height}" '
            f'filterUnits="userSpaceOnUse" color-interpolation-filters="sRGB">'
            f'<feImage id="{self.map_id}" width="{self.width}" height="{self.height}" '
            f'href="{href}"/>'
            f'<feDisplacementMap in="SourceGraphic" in2="{self.map_id}" '
            f'xChannelSelector="{self.x_channel}" yChannelSelector="{self.y_channel}" '
            f'scale="{self.scale:g}"/>'
            f'</filter>'
        )


@dataclass
class PixelSurface:
    """Handle to a host pixel surface (the element the glass is drawn on)."""
    surface_id: str
    width: int
    height: int


class Compositor(ABC):
    """Host compositor operations used by a glass surface."""

    @abstractmethod
    def create_pixel_surface(self, surface_id: str, width: int, height: int) -> PixelSurface:
        ...

    @abstractmethod
    def release_pixel_surface(self, handle: PixelSurface) -> None:
        ...

    @abstractmethod
    def upload_texture(self, texture_id: str, data: bytes, width: int, height: int) -> None:
        """Create or replace a texture from width*height*4 RGBA bytes."""

    @abstractmethod
    def release_texture(self, texture_id: str) -> None:
        ...

    @abstractmethod
    def register_filter(self, graph: FilterGraph) -> None:
        ...

    @abstractmethod
    def set_displacement_scale(self, filter_id: str, scale: float) -> None:
        ...

    @abstractmethod
    def unregister_filter(self, filter_id: str) -> None:
        ...


def displace(backdrop: np.ndarray, texture: np.ndarray, scale: float,
             x0: int, y0: int, width: int, height: int) -> np.ndarray:
    """Sample the backdrop through a displacement texture.

    The texture is stretched over the (x0, y0, width, height) rectangle.
    Samples falling outside the backdrop take the nearest edge pixel.

    Returns:
        (height, width, C) float32 region.
    """
    tex = texture[:, :, :2].astype(np.float32)
    if tex.shape[:2] != (height, width):
        tex = cv2.resize(tex, (width, height), interpolation=cv2.INTER_LINEAR)
    off_x = scale * (tex[:, :, 0] / 255.0 - 0.5)
    off_y = scale * (tex[:, :, 1] / 255.0 - 0.5)

    y_coords, x_coords = np.mgrid[0:height, 0:width].astype(np.float32)
    map_x = (x_coords + x0 + off_x).astype(np.float32)
    map_y = (y_coords + y0 + off_y).astype(np.float32)
    return cv2.remap(
        backdrop.astype(np.float32), map_x, map_y,
        cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE,
    )


def apply_post_filter(region: np.ndarray, post: PostFilter) -> np.ndarray:
    """Blur, contrast, brightness and saturate, in CSS order.

    Args:
        region: (H, W, 3) float32 RGB in 0-255.

    Returns:
        (H, W, 3) uint8 RGB.
    """
    f = region.astype(np.float32)
    if post.blur > 0:
        f = cv2.GaussianBlur(f, (0, 0), sigmaX=post.blur)
    f = f / 255.0
    f = np.clip((f - 0.5) * post.contrast + 0.5, 0.0, 1.0)
    f = np.clip(f * post.brightness, 0.0, 1.0)
    out = np.rint(f * 255.0).astype(np.uint8)
    if post.saturate != 1.0:
        hsv = cv2.cvtColor(out, cv2.COLOR_RGB2HSV).astype(np.float32)
        hsv[:, :, 1] = np.clip(hsv[:, :, 1] * post.saturate, 0, 255)
        out = cv2.cvtColor(hsv.astype(np.uint8), cv2.COLOR_HSV2RGB)
    return out


class SoftwareCompositor(Compositor):
    """In-memory compositor. Every resource is tracked until released."""

    def __init__(self):
        self.surfaces: dict[str, PixelSurface] = {}
        self.textures: dict[str, np.ndarray] = {}
        self.filters: dict[str, FilterGraph] = {}
        self.uploads = 0

    def create_pixel_surface(self, surface_id, width, height):
        if surface_id in self.surfaces:
            raise KeyError(f"Pixel surface already exists: {surface_id}")
        handle = PixelSurface(surface_id, int(width), int(height))
        self.surfaces[surface_id] = handle
        return handle

    def release_pixel_surface(self, handle):
        if self.surfaces.pop(handle.surface_id, None) is None:
            raise KeyError(f"Unknown pixel surface: {handle.surface_id}")

    def upload_texture(self, texture_id, data, width, height):
        self.textures[texture_id] = texture_from_bytes(data, width, height)
        self.uploads += 1

    def release_texture(self, texture_id):
        if self.textures.pop(texture_id, None) is None:
            raise KeyError(f"Unknown texture: {texture_id}")

    def register_filter(self, graph):
        if graph.filter_id in self.filters:
            raise KeyError(f"Filter already registered: {graph.filter_id}")
        if graph.map_id not in self.textures:
            raise KeyError(f"Filter {graph.filter_id} references missing texture {graph.map_id}")
        self.filters[graph.filter_id] = graph

    def set_displacement_scale(self, filter_id, scale):
        self.filters[filter_id].scale = float(scale)

    def unregister_filter(self, filter_id):
        if self.filters.pop(filter_id, None) is None:
            raise KeyError(f"Unknown filter: {filter_id}")

    def resource_count(self) -> int:
        """Number of live resources of any kind."""
        return len(self.surfaces) + len(self.textures) + len(self.filters)

    def texture_url(self, texture_id: str) -> str:
        return encode_png_data_url(self.textures[texture_id])

    def svg_markup(self) -> str:
        """Zero-size <svg> holding every registered filter."""
        filters = "".join(
            graph.to_svg(self.texture_url(graph.map_id))
            for graph in self.filters.values()
        )
        return (
            '<svg xmlns="http://www.w3.org/2000/svg" width="0" height="0" '
            'style="position: fixed; top: 0; left: 0; pointer-events: none; z-index: 9998;">'
            f'<defs>{filters}</defs></svg>'
        )

    def composite(self, backdrop: np.ndarray, filter_id: str, x: float, y: float) -> np.ndarray:
        """Apply a registered filter to the backdrop under a surface.

        Args:
            backdrop: (H, W, 3) uint8 RGB viewport image.
            filter_id: Registered filter.
            x, y: Surface top-left in viewport pixels.

        Returns:
            Copy of the backdrop with the glass region replaced.
        """
        graph = self.filters[filter_id]
        texture = self.textures[graph.map_id]
        result = backdrop.copy()
        bh, bw = backdrop.shape[:2]
        x0, y0 = int(round(x)), int(round(y))

        region = displace(backdrop, texture, graph.scale, x0, y0, graph.width, graph.height)
        region = apply_post_filter(region[:, :, :3], graph.post)

        # Clip to the part of the surface that lies on the backdrop
        sx0, sy0 = max(0, -x0), max(0, -y0)
        dx0, dy0 = max(0, x0), max(0, y0)
        dx1 = min(bw, x0 + graph.width)
        dy1 = min(bh, y0 + graph.height)
        if dx1 <= dx0 or dy1 <= dy0:
            return result
        result[dy0:dy1, dx0:dx1, :3] = region[sy0:sy0 + (dy1 - dy0), sx0:sx0 + (dx1 - dx0)]
        return result
