"""
Conftest: shared fixtures for all Liquid Glass test modules.

1. Synthetic backdrops (gradients, not blank) for compositing tests
2. A fresh in-memory compositor and viewport per test
3. A recording compositor that logs every call, for lifecycle tests
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.compositor import SoftwareCompositor
from core.interaction import Viewport


def _make_test_frame(width=320, height=240):
    """Generate a synthetic test frame (gradient, not blank)."""
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[:, :, 0] = np.linspace(0, 255, width, dtype=np.uint8)  # R gradient
    frame[:, :, 1] = 128  # constant G
    frame[:, :, 2] = np.linspace(255, 0, width, dtype=np.uint8)  # B inverse
    return frame


class RecordingCompositor(SoftwareCompositor):
    """SoftwareCompositor that keeps an ordered log of calls."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def create_pixel_surface(self, surface_id, width, height):
        self.calls.append(("create_pixel_surface", surface_id))
        return super().create_pixel_surface(surface_id, width, height)

    def release_pixel_surface(self, handle):
        self.calls.append(("release_pixel_surface", handle.surface_id))
        super().release_pixel_surface(handle)

    def upload_texture(self, texture_id, data, width, height):
        self.calls.append(("upload_texture", texture_id))
        super().upload_texture(texture_id, data, width, height)

    def release_texture(self, texture_id):
        self.calls.append(("release_texture", texture_id))
        super().release_texture(texture_id)

    def register_filter(self, graph):
        self.calls.append(("register_filter", graph.filter_id))
        super().register_filter(graph)

    def unregister_filter(self, filter_id):
        self.calls.append(("unregister_filter", filter_id))
        super().unregister_filter(filter_id)


@pytest.fixture
def gradient_frame():
    """320x240 RGB gradient backdrop."""
    return _make_test_frame()


@pytest.fixture
def compositor():
    return RecordingCompositor()


@pytest.fixture
def viewport():
    return Viewport(1280, 800)
