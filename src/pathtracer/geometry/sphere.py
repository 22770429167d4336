"""Sphere primitive with ray-sphere intersection.

The intersection solves the line-sphere quadratic and picks the nearest
root in front of the ray origin:

    - negative discriminant: no hit
    - both roots negative: no hit
    - exactly one root negative: the positive root (origin inside the sphere)
    - otherwise: the smaller root

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.geometry.sphere import Sphere, intersect_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -5), radius=1.0)
    >>> # Use intersect_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.func
def intersect_sphere(ray_origin: vec3, ray_direction: vec3, sphere: Sphere):
    """Test for ray-sphere intersection.

    The ray-sphere intersection is found by solving:
        |ray_origin + t * ray_direction - center|^2 = radius^2

    which expands to the quadratic a*t^2 + b*t + c = 0 with
        a = dot(direction, direction)
        b = 2 * dot(direction, oc)
        c = dot(oc, oc) - radius^2
        oc = origin - center

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (unit length).
        sphere: The sphere to test intersection against.

    Returns:
        A tuple of (hit, t) where hit is 1 on intersection and t is the
        distance to the nearest root in front of the origin.
    """
    oc = ray_origin - sphere.center
    a = tm.dot(ray_direction, ray_direction)
    b = 2.0 * tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = b * b - 4.0 * a * c

    did_hit = 0
    hit_t = 0.0

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0 = (-b - sqrt_d) / (2.0 * a)
        t1 = (-b + sqrt_d) / (2.0 * a)

        if t0 > 0.0 and t1 > 0.0:
            did_hit = 1
            hit_t = tm.min(t0, t1)
        elif t0 > 0.0:
            did_hit = 1
            hit_t = t0
        elif t1 > 0.0:
            did_hit = 1
            hit_t = t1

    return did_hit, hit_t


@ti.func
def sphere_normal(sphere: Sphere, point: vec3) -> vec3:
    """Outward unit normal of the sphere at a surface point."""
    return tm.normalize(point - sphere.center)
