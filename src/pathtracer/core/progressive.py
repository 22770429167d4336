"""Progressive renderer for interactive sample accumulation.

This module wraps the integrator for interactive use:
- one frame per call, each adding ``samples_per_frame`` samples per pixel
- progress callbacks or a generator for UI updates
- reset and resize, which discard the accumulated image
- automatic restart when the camera resolution changes between frames

The renderer owns the accumulation state. The World and the Camera are
owned by the caller; the camera may be moved between frames, never during
one. Moving the camera does not reset the image by itself; call reset().

Example:
    >>> world = build_demo_scene(World())
    >>> camera = Camera(width=320, height=240)
    >>> renderer = ProgressiveRenderer(world, camera)
    >>> renderer.render(8)  # 8 frames, 32 samples per pixel
    >>> image = renderer.get_image_numpy()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt

from src.pathtracer.camera.pinhole import Camera, setup_camera
from src.pathtracer.config import RenderSettings
from src.pathtracer.core.integrator import (
    clear_render_target,
    get_image_numpy,
    get_image_uint8,
    get_total_samples,
    render_frame,
    setup_render_target,
)
from src.pathtracer.scene.world import World

logger = logging.getLogger(__name__)

# Callback receives (current_samples, target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates frames over time.

    Attributes:
        world: The scene being rendered.
        camera: The camera rays are generated from.
        settings: Samples per frame, depth bound and base seed.
    """

    def __init__(
        self,
        world: World,
        camera: Camera,
        settings: RenderSettings | None = None,
    ) -> None:
        """Initialize the renderer and its render target.

        Args:
            world: The scene to render. Uploaded before the first frame.
            camera: The camera. Its resolution sets the image size.
            settings: Render settings. Defaults to RenderSettings().

        Raises:
            ValueError: If the camera resolution exceeds the maximum.
        """
        self.world = world
        self.camera = camera
        self.settings = settings if settings is not None else RenderSettings()
        self._width = camera.width
        self._height = camera.height
        self._frame_index = 0
        setup_render_target(self._width, self._height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    @property
    def frame_index(self) -> int:
        """Number of frames rendered since the last reset."""
        return self._frame_index

    def frame_seed(self, frame_index: int) -> int:
        """Seed of a frame: the base seed plus the frame index."""
        return self.settings.seed + frame_index

    def reset(self) -> None:
        """Discard the accumulated image and restart at zero samples."""
        clear_render_target()
        self._frame_index = 0
        logger.debug("Accumulation reset")

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset the accumulation.

        The camera resolution is updated to match.

        Raises:
            ValueError: If the dimensions are invalid.
        """
        setup_render_target(width, height)
        self.camera.width = width
        self.camera.height = height
        self._width = width
        self._height = height
        self._frame_index = 0
        logger.info("Render target resized to %dx%d", width, height)

    def _render_one_frame(self) -> None:
        if (self.camera.width, self.camera.height) != (self._width, self._height):
            self.resize(self.camera.width, self.camera.height)

        self.world.ensure_committed()
        setup_camera(self.camera)
        render_frame(
            samples=self.settings.samples_per_frame,
            max_depth=self.settings.max_depth,
            seed=self.frame_seed(self._frame_index),
        )
        self._frame_index += 1

    def render(self, num_frames: int = 1, callback: ProgressCallback | None = None) -> None:
        """Render frames and accumulate them.

        Can be called repeatedly to keep refining the image.

        Args:
            num_frames: Number of frames to render.
            callback: Optional callback after each frame. Receives
                (current_total_samples, target_total_samples).

        Raises:
            RuntimeError: If the world cannot be uploaded, for example
                because a mesh has no acceleration structure.
        """
        for current, target in self.render_progressive(num_frames):
            if callback is not None:
                callback(current, target)

    def render_progressive(self, num_frames: int = 1) -> Generator[tuple[int, int], None, None]:
        """Render frames, yielding progress after each one.

        Yields:
            Tuple of (current_total_samples, target_total_samples).
        """
        if num_frames <= 0:
            return

        per_frame = self.settings.samples_per_frame
        target = self.sample_count + num_frames * per_frame
        for _ in range(num_frames):
            self._render_one_frame()
            # A resize inside the frame restarts the count
            target = max(target, self.sample_count)
            yield (self.sample_count, target)

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """HDR RGBA snapshot of shape (height, width, 4)."""
        return get_image_numpy()

    def get_image_uint8(self, gamma: float = 2.2) -> npt.NDArray[np.uint8]:
        """Tone-mapped 8-bit RGBA snapshot of shape (height, width, 4)."""
        return get_image_uint8(gamma=gamma)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
