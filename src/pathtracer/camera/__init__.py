"""Camera module for primary ray generation.

Components:
    pinhole: Camera configuration and the exact per-pixel primary ray
"""

from .pinhole import Camera, get_camera_dimensions, get_primary_ray, release_camera, setup_camera

__all__ = [
    "Camera",
    "get_camera_dimensions",
    "get_primary_ray",
    "release_camera",
    "setup_camera",
]
