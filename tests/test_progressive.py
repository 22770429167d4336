"""Unit tests for the progressive renderer.

Tests cover:
- Sample accumulation over frames
- Progressive rendering converging to a single large render
- Reset and resize
- Progress callbacks and the generator interface
- Restart when the camera resolution changes
- Render settings validation
"""

import numpy as np
import pytest


def _lit_room():
    """A bright emissive enclosure around a matte sphere over a matte floor."""
    from src.pathtracer.materials import Diffuse, Emissive
    from src.pathtracer.scene import PlaneObject, SphereObject, World

    world = World()
    world.add_object(
        SphereObject(center=(0.0, 0.0, 0.0), radius=100.0, material=Emissive(color=(1.0, 1.0, 1.0), intensity=1.0))
    )
    world.add_object(SphereObject(center=(0.0, 0.0, -3.0), radius=1.0, material=Diffuse(color=(0.5, 0.5, 0.5))))
    world.add_object(
        PlaneObject(origin=(0.0, -1.0, 0.0), normal=(0.0, 1.0, 0.0), material=Diffuse(color=(0.5, 0.5, 0.5)))
    )
    return world


def _renderer(camera, samples_per_frame=4, seed=0, world=None):
    from src.pathtracer.config import RenderSettings
    from src.pathtracer.core.progressive import ProgressiveRenderer

    return ProgressiveRenderer(
        world if world is not None else _lit_room(),
        camera,
        RenderSettings(samples_per_frame=samples_per_frame, max_depth=10, seed=seed),
    )


class TestAccumulation:
    """Tests for frame accumulation."""

    def test_initial_state(self, small_camera):
        """Test a new renderer has an empty image."""
        renderer = _renderer(small_camera)

        assert renderer.width == 8
        assert renderer.height == 6
        assert renderer.sample_count == 0
        assert renderer.frame_index == 0
        assert "samples=0" in repr(renderer)

    def test_samples_accumulate(self, small_camera):
        """Test each frame adds samples_per_frame samples."""
        renderer = _renderer(small_camera, samples_per_frame=3)

        renderer.render(2)
        assert renderer.sample_count == 6
        assert renderer.frame_index == 2

        renderer.render(1)
        assert renderer.sample_count == 9

    def test_zero_frames_is_a_no_op(self, small_camera):
        """Test rendering zero frames leaves the count unchanged."""
        renderer = _renderer(small_camera)
        renderer.render(0)
        assert renderer.sample_count == 0

    def test_progressive_matches_single_large_render(self, small_camera):
        """Test four frames of four samples agree pixel by pixel with one frame of sixteen."""
        progressive = _renderer(small_camera, samples_per_frame=4, seed=100)
        progressive.render(4)
        progressive_image = progressive.get_image_numpy()

        single = _renderer(small_camera, samples_per_frame=16, seed=5000)
        single.render(1)
        single_image = single.get_image_numpy()

        assert progressive.sample_count == single.sample_count == 16
        # Independent 16-sample estimates; per-sample radiance in this room stays within about [0.25, 1]
        difference = np.abs(progressive_image[..., :3] - single_image[..., :3])
        assert difference.max() < 0.2
        assert difference.mean() < 0.05
        np.testing.assert_array_equal(progressive_image[..., 3], single_image[..., 3])

    def test_same_seed_reproduces(self, small_camera):
        """Test two renderers with the same settings produce the same image."""
        a = _renderer(small_camera, seed=9)
        a.render(2)
        first = a.get_image_numpy()

        b = _renderer(small_camera, seed=9)
        b.render(2)
        np.testing.assert_allclose(b.get_image_numpy(), first, rtol=1e-6)

    def test_frame_seeds(self, small_camera):
        """Test frame i uses the base seed plus i."""
        renderer = _renderer(small_camera, seed=40)
        assert renderer.frame_seed(0) == 40
        assert renderer.frame_seed(3) == 43

    def test_uint8_snapshot(self, small_camera):
        """Test the tone-mapped snapshot shape and alpha."""
        renderer = _renderer(small_camera)
        renderer.render(1)

        ldr = renderer.get_image_uint8()
        assert ldr.shape == (6, 8, 4)
        assert ldr.dtype == np.uint8
        assert np.all(ldr[..., 3] == 255)


class TestResetAndResize:
    """Tests for discarding the accumulation."""

    def test_reset(self, small_camera):
        """Test reset zeroes the count and the image."""
        renderer = _renderer(small_camera)
        renderer.render(2)

        renderer.reset()

        assert renderer.sample_count == 0
        assert renderer.frame_index == 0
        assert np.all(renderer.get_image_numpy() == 0.0)

    def test_resize(self, small_camera):
        """Test resize changes the image shape and restarts accumulation."""
        renderer = _renderer(small_camera)
        renderer.render(1)

        renderer.resize(4, 2)

        assert renderer.sample_count == 0
        assert (small_camera.width, small_camera.height) == (4, 2)
        renderer.render(1)
        assert renderer.get_image_numpy().shape == (2, 4, 4)
        assert renderer.sample_count == 4

    def test_resize_rejects_oversized(self, small_camera):
        """Test dimensions above the maximum are rejected."""
        from src.pathtracer.core.integrator import MAX_IMAGE_WIDTH

        renderer = _renderer(small_camera)
        with pytest.raises(ValueError, match="exceed"):
            renderer.resize(MAX_IMAGE_WIDTH + 1, 10)

    def test_camera_resolution_change_restarts(self, small_camera):
        """Test a camera resized between frames restarts the accumulation."""
        renderer = _renderer(small_camera)
        renderer.render(2)
        assert renderer.sample_count == 8

        small_camera.width = 5
        small_camera.height = 3
        renderer.render(1)

        assert (renderer.width, renderer.height) == (5, 3)
        assert renderer.sample_count == 4
        assert renderer.get_image_numpy().shape == (3, 5, 4)


class TestProgress:
    """Tests for progress reporting."""

    def test_callback(self, small_camera):
        """Test the callback runs after every frame with current and target counts."""
        renderer = _renderer(small_camera, samples_per_frame=2)
        calls = []

        renderer.render(3, callback=lambda current, target: calls.append((current, target)))

        assert calls == [(2, 6), (4, 6), (6, 6)]

    def test_generator(self, small_camera):
        """Test render_progressive yields after each frame."""
        renderer = _renderer(small_camera, samples_per_frame=1)
        renderer.render(2)

        progress = list(renderer.render_progressive(3))

        assert progress == [(3, 5), (4, 5), (5, 5)]

    def test_unbuilt_mesh_fails_before_rendering(self, small_camera):
        """Test a mesh without acceleration structure stops the first frame."""
        from src.pathtracer.geometry import Mesh
        from src.pathtracer.materials import Diffuse
        from src.pathtracer.scene import World, octahedron

        world = World()
        vertices, faces = octahedron(center=(0.0, 0.0, -3.0), radius=1.0)
        world.add_object(Mesh.from_triangles(vertices, faces, Diffuse(color=(0.5, 0.5, 0.5))))
        renderer = _renderer(small_camera, world=world)

        with pytest.raises(RuntimeError, match="not built"):
            renderer.render(1)
        assert renderer.sample_count == 0


class TestRenderSettings:
    """Tests for RenderSettings validation."""

    def test_defaults(self):
        """Test the default samples per frame and depth bound."""
        from src.pathtracer.config import MAX_DEPTH, SINGLE_SHOT_SAMPLES, RenderSettings

        settings = RenderSettings()
        assert settings.samples_per_frame == SINGLE_SHOT_SAMPLES == 4
        assert settings.max_depth == MAX_DEPTH == 10

    @pytest.mark.parametrize(
        "kwargs, match",
        [
            ({"samples_per_frame": 0}, "samples_per_frame"),
            ({"max_depth": 0}, "max_depth"),
            ({"seed": -1}, "seed"),
        ],
    )
    def test_invalid(self, kwargs, match):
        """Test invalid settings are rejected."""
        from src.pathtracer.config import RenderSettings

        with pytest.raises(ValueError, match=match):
            RenderSettings(**kwargs)

    def test_unknown_backend(self):
        """Test unknown architectures are rejected before Taichi is touched."""
        from src.pathtracer.config import init_backend

        with pytest.raises(ValueError, match="Unknown architecture"):
            init_backend(arch="tpu")
