"""Diffuse (Lambertian) material.

The scattered direction is the surface normal plus a random point in the
unit sphere, normalized. Diffuse surfaces never absorb a path; they only
tint it by their albedo.
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import RAY_EPSILON, near_zero
from src.pathtracer.core.rng import random_in_unit_sphere
from src.pathtracer.materials.base import Material, MaterialType

vec3 = tm.vec3


@dataclass(frozen=True)
class Diffuse(Material):
    """Ideal matte material."""

    @property
    def material_type(self) -> MaterialType:
        return MaterialType.DIFFUSE


@ti.func
def scatter_diffuse(
    albedo: vec3,
    point: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Scatter a ray off a diffuse surface.

    Args:
        albedo: The surface color.
        point: The hit point.
        normal: The unit surface normal at the hit point.
        state: The pixel's random stream.

    Returns:
        A tuple of (did_scatter, origin, direction, attenuation, state).
        did_scatter is always 1.
    """
    offset, s = random_in_unit_sphere(state)
    target = normal + offset

    # Offset cancelled the normal out
    direction = normal
    if not near_zero(target):
        direction = tm.normalize(target)

    origin = point + normal * RAY_EPSILON
    return 1, origin, direction, albedo, s
