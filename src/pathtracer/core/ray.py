"""Ray data structure and vector utilities for the path tracer.

This module provides the Ray dataclass and the small set of vector helpers
shared by geometry and materials. All functions are Taichi functions and are
meant to be called from inside kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Offset applied along the normal for diffuse and metal bounces
RAY_EPSILON = 1e-4

# Larger offset for dielectric bounces, refraction is more precision sensitive
REFRACTION_EPSILON = 1e-3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Intersection
            routines expect it to be unit length; normalizing is the
            caller's job.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a kernel."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Used to catch degenerate scatter directions.

    Args:
        v: The vector to check.

    Returns:
        1 if all components are near zero, 0 otherwise.
    """
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes d - 2 * dot(d, n) * n. The normal should be unit length.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal.

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract a unit incident vector through a surface with Snell's law.

    Args:
        incident: The incoming direction vector (unit length).
        normal: The surface normal facing the incident ray (unit length).
        eta: The ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        The refracted direction, or a zero vector on total internal
        reflection.
    """
    cos_i = tm.min(-tm.dot(incident, normal), 1.0)
    sin2_t = eta * eta * (1.0 - cos_i * cos_i)
    result = vec3(0.0, 0.0, 0.0)
    if sin2_t <= 1.0:
        cos_t = ti.sqrt(1.0 - sin2_t)
        result = eta * incident + (eta * cos_i - cos_t) * normal
    return result


@ti.func
def schlick_reflectance(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Compute Fresnel reflectance using Schlick's approximation.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ref_idx: Ratio of refractive indices.

    Returns:
        The approximate Fresnel reflectance coefficient.
    """
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def offset_ray_origin(point: vec3, normal: vec3, direction: vec3, epsilon: ti.f32) -> vec3:
    """Offset a ray origin off the surface to avoid self-intersection.

    Pushes the point along the normal toward the side the new ray travels
    into (above the surface for reflection, below for refraction).

    Args:
        point: The intersection point.
        normal: The surface normal.
        direction: The scattered ray direction.
        epsilon: Offset distance.

    Returns:
        The offset origin point.
    """
    offset_dir = normal
    if tm.dot(direction, normal) < 0.0:
        offset_dir = -normal
    return point + epsilon * offset_dir
