"""Dielectric (glass/water) material.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when ratio * sin(theta) > 1

The material randomly chooses between reflection and refraction based on
the Fresnel reflectance, which increases at grazing angles. Dielectrics
never absorb a path.

Common refraction indices: air 1.0, water 1.33, glass 1.5, diamond 2.4.
"""

import math
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import (
    REFRACTION_EPSILON,
    offset_ray_origin,
    reflect,
    refract,
    schlick_reflectance,
)
from src.pathtracer.core.rng import next_float, random_in_unit_sphere
from src.pathtracer.materials.base import Material, MaterialType

vec3 = tm.vec3


@dataclass(frozen=True)
class Dielectric(Material):
    """Transparent refractive material.

    Attributes:
        color: Transmission tint, each component in [0, 1].
        fuzz: Perturbation radius of the chosen direction, >= 0.
        refraction_index: Index of refraction, > 0.
    """

    fuzz: float = 0.0
    refraction_index: float = 1.5

    @property
    def material_type(self) -> MaterialType:
        return MaterialType.DIELECTRIC

    def __post_init__(self) -> None:
        super().__post_init__()
        if not math.isfinite(self.fuzz) or self.fuzz < 0.0:
            raise ValueError(f"Fuzz = {self.fuzz} must be finite and non-negative")
        if not math.isfinite(self.refraction_index) or self.refraction_index <= 0.0:
            raise ValueError(f"Refraction index = {self.refraction_index} must be positive")


@ti.func
def scatter_dielectric(
    albedo: vec3,
    fuzz: ti.f32,
    refraction_index: ti.f32,
    incident_direction: vec3,
    point: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Reflect or refract a ray at a dielectric boundary.

    The side of the surface is taken from the sign of
    dot(incident_direction, normal): a positive sign means the ray leaves
    the material, so the ratio is the index itself and the normal is flipped
    to face the ray.

    Args:
        albedo: The transmission tint.
        fuzz: The perturbation radius.
        refraction_index: Index of refraction of the material.
        incident_direction: The incoming ray direction (normalized).
        point: The hit point.
        normal: The outward unit surface normal.
        state: The pixel's random stream.

    Returns:
        A tuple of (did_scatter, origin, direction, attenuation, state).
        did_scatter is always 1.
    """
    facing_normal = normal
    ratio = 1.0 / refraction_index
    if tm.dot(incident_direction, normal) > 0.0:
        facing_normal = -normal
        ratio = refraction_index

    cos_theta = tm.min(tm.dot(-incident_direction, facing_normal), 1.0)
    sin_theta = ti.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))

    u, s = next_float(state)

    direction = vec3(0.0, 0.0, 0.0)
    if ratio * sin_theta > 1.0 or schlick_reflectance(cos_theta, ratio) > u:
        direction = reflect(incident_direction, facing_normal)
    else:
        direction = refract(incident_direction, facing_normal, ratio)

    offset, s = random_in_unit_sphere(s)
    direction = tm.normalize(direction + fuzz * offset)

    origin = offset_ray_origin(point, facing_normal, direction, REFRACTION_EPSILON)
    return 1, origin, direction, albedo, s
