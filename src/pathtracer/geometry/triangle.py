"""Triangle primitive with Moller-Trumbore intersection.

Triangles are flat shaded: the normal comes from the cross product of the
two edges sharing vertex ``a`` and is never interpolated.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Rejects near-parallel rays and hits too close to the ray origin
TRIANGLE_EPSILON = 1e-4


@ti.dataclass
class Triangle:
    """A triangle defined by three vertices.

    Attributes:
        a: First vertex.
        b: Second vertex.
        c: Third vertex.
    """

    a: vec3
    b: vec3
    c: vec3


@ti.func
def intersect_triangle_barycentric(ray_origin: vec3, ray_direction: vec3, triangle: Triangle):
    """Moller-Trumbore ray-triangle intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        triangle: The triangle to test.

    Returns:
        A tuple of (hit, t, u, v) where u and v are the barycentric weights
        of vertices b and c. Only meaningful when hit == 1.
    """
    edge1 = triangle.b - triangle.a
    edge2 = triangle.c - triangle.a
    h = tm.cross(ray_direction, edge2)
    det = tm.dot(edge1, h)

    did_hit = 0
    hit_t = 0.0
    u = 0.0
    v = 0.0

    # Ray parallel to the triangle plane (or degenerate triangle)
    if ti.abs(det) >= TRIANGLE_EPSILON:
        inv_det = 1.0 / det
        s = ray_origin - triangle.a
        u = inv_det * tm.dot(s, h)

        if u >= 0.0 and u <= 1.0:
            q = tm.cross(s, edge1)
            v = inv_det * tm.dot(ray_direction, q)

            if v >= 0.0 and u + v <= 1.0:
                t = inv_det * tm.dot(edge2, q)
                if t > TRIANGLE_EPSILON:
                    did_hit = 1
                    hit_t = t

    return did_hit, hit_t, u, v


@ti.func
def intersect_triangle(ray_origin: vec3, ray_direction: vec3, triangle: Triangle):
    """Ray-triangle intersection returning (hit, t)."""
    did_hit, hit_t, _, _ = intersect_triangle_barycentric(ray_origin, ray_direction, triangle)
    return did_hit, hit_t


@ti.func
def triangle_normal(triangle: Triangle) -> vec3:
    """Flat unit normal normalize(cross(b - a, c - a))."""
    return tm.normalize(tm.cross(triangle.b - triangle.a, triangle.c - triangle.a))
