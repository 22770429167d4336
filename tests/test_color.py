"""Unit tests for color sanitizing and tone mapping."""

import math

import numpy as np
import pytest
import taichi as ti


class TestSanitizeColor:
    """Tests for the kernel-side sanitize_color."""

    def test_nan_and_inf_become_zero(self):
        """Test non-finite channels are replaced by zero."""
        from src.pathtracer.core.color import sanitize_color, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())
        bad = ti.field(dtype=ti.math.vec3, shape=())
        bad[None] = [math.nan, math.inf, 0.25]

        @ti.kernel
        def test_kernel():
            result[None] = sanitize_color(bad[None])

        test_kernel()
        r = result[None]
        assert r[0] == 0.0
        assert r[1] == 0.0
        assert abs(r[2] - 0.25) < 1e-7

    def test_finite_colors_unchanged(self):
        """Test ordinary HDR values pass through."""
        from src.pathtracer.core.color import sanitize_color, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = sanitize_color(vec3(0.5, 3.0, 0.0))

        test_kernel()
        r = result[None]
        assert abs(r[0] - 0.5) < 1e-7
        assert abs(r[1] - 3.0) < 1e-7
        assert r[2] == 0.0


class TestToneMap:
    """Tests for the host-side tone mapping."""

    def test_clamps_and_quantizes(self):
        """Test HDR values clamp to 255 and black stays 0."""
        from src.pathtracer.core.color import tone_map_uint8

        image = np.array([[[0.0, 1.0, 5.0, 1.0], [np.nan, 0.5, -1.0, 1.0]]], dtype=np.float32)
        out = tone_map_uint8(image, gamma=1.0)

        assert out.dtype == np.uint8
        assert out.shape == image.shape
        assert out[0, 0, 0] == 0
        assert out[0, 0, 1] == 255
        assert out[0, 0, 2] == 255
        assert out[0, 1, 0] == 0
        assert out[0, 1, 1] == 128
        assert out[0, 1, 2] == 0
        assert out[0, 1, 3] == 255

    def test_gamma_brightens_midtones(self):
        """Test gamma 2.2 maps 0.5 above 128."""
        from src.pathtracer.core.color import tone_map_uint8

        image = np.full((1, 1, 3), 0.5, dtype=np.float32)
        assert tone_map_uint8(image)[0, 0, 0] > 128

    def test_rejects_non_positive_gamma(self):
        """Test that gamma must be positive."""
        from src.pathtracer.core.color import tone_map_uint8

        with pytest.raises(ValueError, match="Gamma"):
            tone_map_uint8(np.zeros((1, 1, 3), dtype=np.float32), gamma=0.0)
