"""Path tracing integrator with progressive accumulation.

The estimator follows a path from a surface hit until it is absorbed,
escapes to the sky or reaches the depth bound:

    ray_color(hit, depth):
        if depth >= max_depth: return color * AMBIENT_FLOOR_FACTOR
        emitted = emissivity
        if scatter absorbs: return emitted
        if the scattered ray misses: return emitted + attenuation * sky
        return emitted + attenuation * ray_color(next_hit, depth + 1)

It is evaluated as a loop carrying the path throughput. Each frame runs
``samples`` independent paths per pixel from the same (unjittered) primary
ray, averages them and blends the average into the accumulation buffer:

    new = old * (old_n / (old_n + n)) + average * (n / (old_n + n))

Every pixel draws from its own random stream seeded by its index and the
frame seed. The accumulated sample count is advanced on the host once the
frame kernel has finished.

Example:
    >>> setup_camera(camera)
    >>> setup_render_target(camera.width, camera.height)
    >>> world.ensure_committed()
    >>> render_frame(seed=0)
    >>> image = get_image_numpy()
"""

import logging

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.pathtracer.camera.pinhole import get_camera_dimensions, get_primary_ray
from src.pathtracer.config import AMBIENT_FLOOR_FACTOR, MAX_DEPTH, SINGLE_SHOT_SAMPLES
from src.pathtracer.core.color import sanitize_color, tone_map_uint8
from src.pathtracer.core.ray import make_ray
from src.pathtracer.core.rng import seed_stream
from src.pathtracer.materials.registry import (
    material_color,
    material_emissivity,
    scatter_material,
)
from src.pathtracer.scene.intersection import intersect_world
from src.pathtracer.scene.sky import background_color

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# Seeds are passed to kernels as i32
_SEED_MASK = 0x7FFFFFFF

# =============================================================================
# Render Target (Accumulation Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# RGBA running average, HDR (preallocated to max size)
_color_buffer = ti.Vector.field(4, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Samples folded into every pixel of the buffer so far
_accumulated_samples = ti.field(dtype=ti.i32, shape=())

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target and clear it.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()
    logger.debug("Render target set up: %dx%d", width, height)


def clear_render_target() -> None:
    """Discard the accumulated image and restart the sample count at zero."""
    _color_buffer.fill(0.0)
    _accumulated_samples[None] = 0


def release_render_target() -> None:
    """Clear the buffer and mark the render target as not set up."""
    clear_render_target()
    _image_width[None] = 0
    _image_height[None] = 0
    _render_target_initialized[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def _check_camera_matches_target() -> None:
    """Raise unless the camera set up has the render target's resolution."""
    camera_size = get_camera_dimensions()
    if camera_size == (0, 0):
        raise RuntimeError("Camera not set up. Call setup_camera() first.")
    target_size = get_image_dimensions()
    if camera_size != target_size:
        raise RuntimeError(
            f"Camera resolution {camera_size[0]}x{camera_size[1]} does not match "
            f"the render target {target_size[0]}x{target_size[1]}"
        )


# =============================================================================
# Path Estimator
# =============================================================================


@ti.func
def ray_color(
    point: vec3,
    normal: vec3,
    material_id: ti.i32,
    incident_direction: vec3,
    max_depth: ti.i32,
    state: ti.u32,
):
    """Estimate the radiance leaving a surface hit toward the viewer.

    Args:
        point: The hit point.
        normal: The surface normal at the hit point.
        material_id: Material of the hit object.
        incident_direction: Direction of the ray that produced the hit.
        max_depth: Depth bound; reaching it returns the ambient floor.
        state: The pixel's random stream.

    Returns:
        A tuple of (radiance, state).
    """
    s = state
    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)

    hit_point = point
    hit_normal = normal
    hit_material = material_id
    direction = incident_direction

    did_scatter = 0
    origin = point
    scattered = incident_direction
    attenuation = vec3(0.0, 0.0, 0.0)

    depth = 0
    active = 1
    while active == 1:
        if depth >= max_depth:
            radiance += throughput * material_color(hit_material) * AMBIENT_FLOOR_FACTOR
            active = 0
        else:
            radiance += throughput * material_emissivity(hit_material)
            did_scatter, origin, scattered, attenuation, s = scatter_material(
                hit_material, direction, hit_point, hit_normal, s
            )

            if did_scatter == 0:
                active = 0
            else:
                throughput *= attenuation
                rec = intersect_world(make_ray(origin, scattered))
                if rec.hit == 0:
                    radiance += throughput * background_color(scattered)
                    active = 0
                else:
                    hit_point = rec.point
                    hit_normal = rec.normal
                    hit_material = rec.material_id
                    direction = scattered
                    depth += 1

    return radiance, s


@ti.func
def estimate_pixel(
    x: ti.i32,
    y: ti.i32,
    width: ti.i32,
    samples: ti.i32,
    max_depth: ti.i32,
    frame_seed: ti.i32,
) -> vec3:
    """Average of ``samples`` path estimates through pixel (x, y).

    The primary hit is found once and shared by all paths. A primary ray
    that escapes sees the sky directly. The result is sanitized.
    """
    ray = get_primary_ray(x, y)
    rec = intersect_world(ray)

    color = vec3(0.0, 0.0, 0.0)
    if rec.hit == 0:
        color = background_color(ray.direction)
    else:
        state = seed_stream(x + y * width, frame_seed)
        total = vec3(0.0, 0.0, 0.0)
        for _ in range(samples):
            sample = vec3(0.0, 0.0, 0.0)
            sample, state = ray_color(rec.point, rec.normal, rec.material_id, ray.direction, max_depth, state)
            total += sanitize_color(sample)
        color = total / ti.cast(samples, ti.f32)

    return sanitize_color(color)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_frame_kernel(
    width: ti.i32,
    height: ti.i32,
    samples: ti.i32,
    max_depth: ti.i32,
    frame_seed: ti.i32,
    previous_samples: ti.i32,
):
    """Render one frame and blend it into the accumulation buffer."""
    old_n = ti.cast(previous_samples, ti.f32)
    new_n = ti.cast(samples, ti.f32)
    total_n = old_n + new_n

    for x, y in ti.ndrange(width, height):
        average = estimate_pixel(x, y, width, samples, max_depth, frame_seed)
        old = _color_buffer[x, y]
        rgb = vec3(old[0], old[1], old[2]) * (old_n / total_n) + average * (new_n / total_n)
        _color_buffer[x, y] = tm.vec4(rgb[0], rgb[1], rgb[2], 1.0)


@ti.kernel
def _render_single_pixel(
    x: ti.i32,
    y: ti.i32,
    width: ti.i32,
    samples: ti.i32,
    max_depth: ti.i32,
    frame_seed: ti.i32,
) -> vec3:
    """Estimate one pixel without touching the accumulation buffer."""
    return estimate_pixel(x, y, width, samples, max_depth, frame_seed)


# =============================================================================
# Public Rendering API
# =============================================================================


def _validate_frame_args(samples: int, max_depth: int) -> None:
    if samples < 1:
        raise ValueError(f"samples must be at least 1, got {samples}")
    if max_depth < 1:
        raise ValueError(f"max_depth must be at least 1, got {max_depth}")


def render_frame(
    samples: int = SINGLE_SHOT_SAMPLES,
    max_depth: int = MAX_DEPTH,
    seed: int = 0,
) -> int:
    """Render one frame of the committed world and accumulate it.

    The camera must have been set up with setup_camera() and the world
    committed. All pixels of the frame are computed before the sample count
    advances.

    Args:
        samples: Paths per pixel in this frame.
        max_depth: Depth bound of each path.
        seed: Frame seed. Use a different seed for every frame.

    Returns:
        The total number of accumulated samples per pixel.

    Raises:
        RuntimeError: If the render target or the camera has not been set up,
            or their resolutions differ.
        ValueError: If samples or max_depth are below 1.
    """
    _check_render_target_initialized()
    _validate_frame_args(samples, max_depth)
    _check_camera_matches_target()

    width, height = get_image_dimensions()
    previous = int(_accumulated_samples[None])
    _render_frame_kernel(width, height, samples, max_depth, seed & _SEED_MASK, previous)
    _accumulated_samples[None] = previous + samples
    return previous + samples


def render_sample(
    x: int,
    y: int,
    samples: int = SINGLE_SHOT_SAMPLES,
    max_depth: int = MAX_DEPTH,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Estimate a single pixel without accumulating it.

    Useful for testing and debugging individual pixels.

    Returns:
        Tuple of (R, G, B) color values.

    Raises:
        RuntimeError: If the render target or the camera has not been set up,
            or their resolutions differ.
        ValueError: If the pixel is outside the image or the arguments are invalid.
    """
    _check_render_target_initialized()
    _validate_frame_args(samples, max_depth)
    _check_camera_matches_target()

    width, height = get_image_dimensions()
    if not (0 <= x < width and 0 <= y < height):
        raise ValueError(f"Pixel ({x}, {y}) is outside the {width}x{height} image")

    color = _render_single_pixel(x, y, width, samples, max_depth, seed & _SEED_MASK)
    return (float(color[0]), float(color[1]), float(color[2]))


def get_total_samples() -> int:
    """Get the number of samples accumulated per pixel.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return int(_accumulated_samples[None])


def get_image_numpy() -> npt.NDArray[np.float32]:
    """Snapshot of the accumulation buffer.

    Values are linear and unclamped (HDR). Row 0 is the top of the image.

    Returns:
        NumPy array of shape (height, width, 4), RGBA float32.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    full_image = _color_buffer.to_numpy()

    # Buffer is indexed [x, y]; images are [row, column]
    image = np.transpose(full_image[:width, :height, :], (1, 0, 2))
    return np.ascontiguousarray(image, dtype=np.float32)


def get_image_uint8(gamma: float = 2.2) -> npt.NDArray[np.uint8]:
    """Tone-mapped 8-bit snapshot of shape (height, width, 4).

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If gamma is not positive.
    """
    return tone_map_uint8(get_image_numpy(), gamma=gamma)
