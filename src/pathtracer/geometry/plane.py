"""Infinite plane primitive.

A plane is defined by a point on it and a unit normal. The normal is the
same everywhere, on both sides of the plane.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.dataclass
class Plane:
    """An infinite plane.

    Attributes:
        origin: Any point on the plane.
        normal: The unit plane normal.
    """

    origin: vec3
    normal: vec3


@ti.func
def intersect_plane(ray_origin: vec3, ray_direction: vec3, plane: Plane):
    """Test for ray-plane intersection.

    A ray parallel to the plane (zero denominator) is a miss, not an error.
    Hits behind the ray origin are rejected.

    Returns:
        A tuple of (hit, t).
    """
    denom = tm.dot(plane.normal, ray_direction)

    did_hit = 0
    hit_t = 0.0

    if denom != 0.0:
        t = tm.dot(plane.origin - ray_origin, plane.normal) / denom
        if t >= 0.0:
            did_hit = 1
            hit_t = t

    return did_hit, hit_t


@ti.func
def plane_normal(plane: Plane) -> vec3:
    """The constant plane normal."""
    return plane.normal
