"""Metal (specular reflective) material.

Perfect metals (fuzz = 0) are mirrors. Rougher metals perturb the mirror
direction by a random point in a sphere of radius ``fuzz``. A perturbed
direction that ends up below the surface is absorbed.

The reflection formula is:
    R = I - 2(I . N)N
"""

import math
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import RAY_EPSILON, reflect
from src.pathtracer.core.rng import random_in_unit_sphere
from src.pathtracer.materials.base import Material, MaterialType

vec3 = tm.vec3


@dataclass(frozen=True)
class Metal(Material):
    """Specular reflective material.

    Attributes:
        color: The reflective tint, each component in [0, 1].
        fuzz: Perturbation radius, >= 0. 0 is a perfect mirror.
    """

    fuzz: float = 0.0

    @property
    def material_type(self) -> MaterialType:
        return MaterialType.METAL

    def __post_init__(self) -> None:
        super().__post_init__()
        if not math.isfinite(self.fuzz) or self.fuzz < 0.0:
            raise ValueError(f"Fuzz = {self.fuzz} must be finite and non-negative")


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f32,
    incident_direction: vec3,
    point: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Reflect a ray off a metal surface.

    Args:
        albedo: The reflective color.
        fuzz: The perturbation radius.
        incident_direction: The incoming ray direction (normalized).
        point: The hit point.
        normal: The unit surface normal at the hit point.
        state: The pixel's random stream.

    Returns:
        A tuple of (did_scatter, origin, direction, attenuation, state).
        did_scatter is 0 when the perturbed direction points into the surface.
    """
    reflected = reflect(incident_direction, normal)
    offset, s = random_in_unit_sphere(state)
    direction = tm.normalize(reflected + fuzz * offset)

    did_scatter = 1
    if tm.dot(direction, normal) <= 0.0:
        did_scatter = 0

    origin = point + normal * RAY_EPSILON
    return did_scatter, origin, direction, albedo, s
