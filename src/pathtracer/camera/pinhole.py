"""Pinhole camera and primary ray generation.

The camera is owned by the caller, who may move it between render passes.
``setup_camera`` copies it into Taichi fields; kernels then build one
primary ray per pixel with ``get_primary_ray``:

    aspect = width / height
    half_tan = tan(radians(fov) / 2)
    sensor_x = (((x + 0.5) / width) * 2 - 1) * aspect * half_tan
    sensor_y = (1 - ((y + 0.5) / height) * 2) * half_tan
    direction = normalize(sensor_x, sensor_y, -1)

Pixel (0, 0) is the top-left corner. Directions are in camera space: the
camera origin translates the rays, but ``direction`` is not applied as a
rotation.

Example:
    >>> camera = Camera(origin=(0, 0, 0), direction=(0, 0, -1), fov=90.0, width=320, height=240)
    >>> setup_camera(camera)
    >>> @ti.kernel
    ... def render():
    ...     ray = get_primary_ray(0, 0)
"""

import math
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Ray

vec3 = tm.vec3

# Camera origin
_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Image size and precomputed projection terms
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())
_aspect = ti.field(dtype=ti.f32, shape=())
_half_tan = ti.field(dtype=ti.f32, shape=())


@dataclass
class Camera:
    """Camera configuration.

    Attributes:
        origin: Camera position in world space (x, y, z).
        direction: View direction. Kept for the input layer that moves the
            camera; primary rays always look down -z.
        fov: Field of view in degrees, in (0, 180).
        width: Output width in pixels.
        height: Output height in pixels.
    """

    origin: tuple[float, float, float] = (0.0, 0.0, 0.0)
    direction: tuple[float, float, float] = (0.0, 0.0, -1.0)
    fov: float = 90.0
    width: int = 640
    height: int = 480

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check the camera parameters.

        Raises:
            ValueError: If the field of view or the resolution is invalid.
        """
        if not (0.0 < self.fov < 180.0):
            raise ValueError(f"Field of view must be in (0, 180) degrees, got {self.fov}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Resolution must be positive, got {self.width}x{self.height}")
        if len(self.origin) != 3 or not all(math.isfinite(c) for c in self.origin):
            raise ValueError(f"Camera origin must be 3 finite components, got {self.origin}")

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def primary_direction(self, x: int, y: int) -> tuple[float, float, float]:
        """Host-side primary ray direction for pixel (x, y)."""
        half_tan = math.tan(math.radians(self.fov) / 2.0)
        sensor_x = (((x + 0.5) / self.width) * 2.0 - 1.0) * self.aspect_ratio * half_tan
        sensor_y = (1.0 - ((y + 0.5) / self.height) * 2.0) * half_tan
        length = math.sqrt(sensor_x * sensor_x + sensor_y * sensor_y + 1.0)
        return (sensor_x / length, sensor_y / length, -1.0 / length)


def setup_camera(camera: Camera) -> None:
    """Copy the camera into Taichi fields before a render pass.

    Args:
        camera: The camera to render from.

    Raises:
        ValueError: If the camera parameters are invalid.
    """
    camera.validate()
    _camera_origin[None] = vec3(*camera.origin)
    _image_width[None] = camera.width
    _image_height[None] = camera.height
    _aspect[None] = camera.width / camera.height
    _half_tan[None] = math.tan(math.radians(camera.fov) / 2.0)


def get_camera_dimensions() -> tuple[int, int]:
    """Resolution of the camera last set up, as (width, height). (0, 0) if none."""
    return int(_image_width[None]), int(_image_height[None])


def release_camera() -> None:
    """Forget the camera that was set up."""
    _camera_origin[None] = vec3(0.0, 0.0, 0.0)
    _image_width[None] = 0
    _image_height[None] = 0
    _aspect[None] = 0.0
    _half_tan[None] = 0.0


@ti.func
def get_primary_ray(x: ti.i32, y: ti.i32) -> Ray:
    """Primary ray through the center of pixel (x, y).

    The ray is not jittered; all sampling noise comes from scattering.

    Returns:
        The primary Ray from the camera origin.
    """
    width = ti.cast(_image_width[None], ti.f32)
    height = ti.cast(_image_height[None], ti.f32)
    half_tan = _half_tan[None]

    sensor_x = (((ti.cast(x, ti.f32) + 0.5) / width) * 2.0 - 1.0) * _aspect[None] * half_tan
    sensor_y = (1.0 - ((ti.cast(y, ti.f32) + 0.5) / height) * 2.0) * half_tan
    direction = tm.normalize(vec3(sensor_x, sensor_y, -1.0))
    return Ray(origin=_camera_origin[None], direction=direction)
