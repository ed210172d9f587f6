"""Tests for core.displacement - field sampling, normalization, packing."""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np
import pytest

from core.displacement import (
    DisplacementRenderer, PointerState, TrackedPointer, render_displacement_map,
)
from core.safety import MIN_MAGNITUDE, InvalidDimensionError
from core.sdf_math import Coord
from effects import get_effect
from effects.glass import identity, liquid_glass, pointer_lens

MIDPOINT = {127, 128}


def _shift_x(amount):
    def effect(uv, pointer):
        return Coord(uv.x + amount, uv.y)
    return effect


class TestIdentityField:
    @pytest.mark.parametrize("width,height", [(1, 1), (3, 7), (64, 32), (300, 200)])
    def test_zero_displacement_everywhere(self, width, height):
        result = render_displacement_map(width, height, identity)
        assert result.texture.shape == (height, width, 4)
        assert set(np.unique(result.texture[:, :, 0])) <= MIDPOINT
        assert set(np.unique(result.texture[:, :, 1])) <= MIDPOINT

    def test_degenerate_field_uses_epsilon(self):
        result = render_displacement_map(16, 16, identity)
        assert result.max_magnitude == MIN_MAGNITUDE

    def test_blue_and_alpha(self):
        result = render_displacement_map(20, 10, identity)
        assert np.all(result.texture[:, :, 2] == 0)
        assert np.all(result.texture[:, :, 3] == 255)


class TestPacking:
    def test_byte_layout_length(self):
        result = render_displacement_map(30, 20, liquid_glass)
        data = result.tobytes()
        assert len(data) == 30 * 20 * 4
        # First pixel, channel order RGBA
        assert data[2] == 0
        assert data[3] == 255

    def test_positive_shift_saturates_red(self):
        result = render_displacement_map(100, 50, _shift_x(0.1))
        assert result.max_magnitude == pytest.approx(5.0)
        assert np.all(result.texture[:, :, 0] == 255)
        assert set(np.unique(result.texture[:, :, 1])) <= MIDPOINT

    def test_negative_shift_saturates_to_zero(self):
        result = render_displacement_map(100, 50, _shift_x(-0.1))
        assert np.all(result.texture[:, :, 0] == 0)

    def test_small_offsets_map_linearly(self):
        # Offsets of 0 and 10px in one field: max_abs=10, scale=5
        def half_shift(uv, pointer):
            return Coord(np.where(uv.x < 0.5, uv.x, uv.x + 0.1), uv.y)

        result = render_displacement_map(100, 10, half_shift)
        assert result.max_magnitude == pytest.approx(5.0)
        assert set(np.unique(result.texture[:, :50, 0])) <= MIDPOINT
        assert np.all(result.texture[:, 50:, 0] == 255)

    def test_scalar_effect_output_broadcasts(self):
        def to_center(uv, pointer):
            return Coord(0.5, 0.5)

        result = render_displacement_map(10, 10, to_center)
        # Left column moves right, right column moves left
        assert result.texture[5, 0, 0] > 128
        assert result.texture[5, 9, 0] < 128


class TestNonFiniteSamples:
    def test_nan_becomes_zero_displacement(self):
        def half_nan(uv, pointer):
            return Coord(np.where(uv.x < 0.5, np.nan, uv.x), uv.y)

        result = render_displacement_map(20, 10, half_nan)
        assert result.non_finite_count == 100
        assert set(np.unique(result.texture[:, :, 0])) <= MIDPOINT
        assert result.max_magnitude > 0

    def test_all_inf_field_is_well_formed(self):
        def blow_up(uv, pointer):
            return Coord(uv.x * np.inf, uv.y * np.inf + 1.0)

        result = render_displacement_map(8, 8, blow_up)
        assert np.isfinite(result.max_magnitude)
        assert result.max_magnitude > 0
        assert result.texture.dtype == np.uint8

    def test_nan_in_one_axis_zeroes_both(self):
        def nan_y(uv, pointer):
            return Coord(uv.x + 0.2, np.full_like(uv.y, np.nan))

        result = render_displacement_map(10, 10, nan_y)
        assert result.non_finite_count == 100
        assert set(np.unique(result.texture[:, :, 0])) <= MIDPOINT


class TestValidation:
    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 10), (2.5, 10), ("a", 3), ("5", 10), (10, b"5"), (None, 3)])
    def test_invalid_dimensions(self, width, height):
        with pytest.raises(InvalidDimensionError):
            render_displacement_map(width, height, identity)

    def test_invalid_dimension_is_value_error(self):
        with pytest.raises(ValueError):
            DisplacementRenderer(0, 0, identity)

    def test_integral_float_accepted(self):
        result = render_displacement_map(4.0, 3.0, identity)
        assert result.texture.shape == (3, 4, 4)


class TestPointerTracking:
    def test_accessor_sets_flag(self):
        tracked = TrackedPointer(PointerState(0.2, 0.7))
        assert tracked.accessed is False
        assert tracked.x == 0.2
        assert tracked.accessed is True
        tracked.reset()
        assert tracked.accessed is False
        assert tracked.y == 0.7
        assert tracked.accessed is True

    def test_pointer_independent_effect(self):
        result = render_displacement_map(20, 20, liquid_glass)
        assert result.pointer_used is False

    def test_pointer_dependent_effect(self):
        result = render_displacement_map(20, 20, pointer_lens, PointerState(0.5, 0.5))
        assert result.pointer_used is True

    def test_flag_resets_each_pass(self):
        reads = {"pointer": True}

        def sometimes(uv, pointer):
            if reads["pointer"]:
                pointer.x
            return uv

        renderer = DisplacementRenderer(8, 8, sometimes)
        assert renderer.render().pointer_used is True
        reads["pointer"] = False
        assert renderer.render().pointer_used is False
        assert renderer.pointer_used is False

    def test_pointer_state_drives_output(self):
        state = PointerState(0.25, 0.5)
        renderer = DisplacementRenderer(40, 40, pointer_lens, state)
        first = renderer.render()
        state.x = 0.75
        second = renderer.render()
        assert not np.array_equal(first.texture, second.texture)


class TestRendererBuffers:
    def test_idempotent(self):
        renderer = DisplacementRenderer(60, 40, liquid_glass)
        a = renderer.render()
        b = renderer.render()
        assert a.tobytes() == b.tobytes()
        assert renderer.passes == 2

    def test_scratch_buffers_reused(self):
        renderer = DisplacementRenderer(30, 20, liquid_glass)
        dx_before = renderer._dx
        renderer.render()
        renderer.resize(30, 20)
        renderer.render()
        assert renderer._dx is dx_before

    def test_resize_reallocates(self):
        renderer = DisplacementRenderer(30, 20, liquid_glass)
        dx_before = renderer._dx
        renderer.resize(40, 10)
        result = renderer.render()
        assert renderer._dx is not dx_before
        assert result.texture.shape == (10, 40, 4)

    def test_each_pass_returns_new_texture(self):
        state = PointerState(0.2, 0.2)
        renderer = DisplacementRenderer(20, 20, pointer_lens, state)
        first = renderer.render()
        snapshot = first.texture.copy()
        state.x, state.y = 0.8, 0.8
        second = renderer.render()
        assert second.texture is not first.texture
        np.testing.assert_array_equal(first.texture, snapshot)


class TestPerPixelMode:
    def test_matches_vectorized(self):
        vec = render_displacement_map(24, 16, liquid_glass)
        per = render_displacement_map(24, 16, liquid_glass, vectorized=False)
        assert per.max_magnitude == pytest.approx(vec.max_magnitude)
        diff = np.abs(vec.texture.astype(int) - per.texture.astype(int))
        assert diff.max() <= 1

    def test_branching_effect(self):
        def branchy(uv, pointer):
            if uv.x < 0.5:
                return Coord(uv.x, uv.y)
            return Coord(uv.x - 0.1, uv.y)

        result = render_displacement_map(20, 4, branchy, vectorized=False)
        assert set(np.unique(result.texture[:, :10, 0])) <= MIDPOINT
        assert np.all(result.texture[:, 10:, 0] == 0)

    def test_per_pixel_nan(self):
        def nan_effect(uv, pointer):
            return Coord(float("nan"), uv.y)

        result = render_displacement_map(5, 5, nan_effect, vectorized=False)
        assert result.non_finite_count == 25
        assert result.max_magnitude == MIN_MAGNITUDE


class TestDefaultEffectField:
    def test_center_near_identity_edge_warped(self):
        result = render_displacement_map(300, 200, get_effect("liquid_glass"))
        tex = result.texture.astype(int)
        center = tex[100, 150]
        assert abs(center[0] - 128) <= 1
        assert abs(center[1] - 128) <= 1
        near_top = tex[5, 150]
        assert abs(near_top[1] - 128) > 20
        # Top edge pixels sample further down: positive y offset
        assert near_top[1] > 128

    def test_max_magnitude_positive_and_finite(self):
        result = render_displacement_map(300, 200, liquid_glass)
        assert 0 < result.max_magnitude < 300
        assert np.isfinite(result.max_magnitude)
