"""Core rendering module.

Components:
    ray: Ray data structure and vector utilities
    rng: Per-pixel random number streams
    color: Palette, color sanitizing and tone mapping
    integrator: Path estimator, accumulation buffer and frame kernel
    progressive: Interactive progressive renderer

All compute-intensive operations use Taichi kernels.
"""

from .color import BLACK, BLUE, GRAY, GREEN, ORANGE, RED, WHITE, Color, sanitize_color, tone_map_uint8
from .ray import (
    RAY_EPSILON,
    REFRACTION_EPSILON,
    Ray,
    make_ray,
    near_zero,
    offset_ray_origin,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)
from .rng import hash_u32, next_float, next_u32, random_in_unit_sphere, seed_stream

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from src.pathtracer.core.integrator or src.pathtracer.core.progressive.

__all__ = [
    "Color",
    "BLACK",
    "WHITE",
    "RED",
    "GREEN",
    "BLUE",
    "ORANGE",
    "GRAY",
    "sanitize_color",
    "tone_map_uint8",
    "RAY_EPSILON",
    "REFRACTION_EPSILON",
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "near_zero",
    "reflect",
    "refract",
    "schlick_reflectance",
    "offset_ray_origin",
    "hash_u32",
    "seed_stream",
    "next_u32",
    "next_float",
    "random_in_unit_sphere",
]
