"""Geometry module for ray-primitive intersections.

Components:
    sphere: Line-sphere quadratic intersection
    plane: Infinite plane intersection
    triangle: Moller-Trumbore triangle intersection, flat normals
    aabb: Axis-aligned bounding boxes and the slab test
    bvh: Bounding volume hierarchy over a triangle arena
    mesh: Triangle meshes with an explicitly built BVH
    intersection: The nearest-hit record

Degenerate cases (parallel rays, negative discriminants, zero-area
triangles) are misses, never errors.
"""

from .aabb import AABB, MIN_EXTENT, hit_aabb
from .bvh import BVH, MAX_LEAF_TRIANGLES
from .intersection import Intersection, make_miss
from .mesh import UP, Mesh
from .plane import Plane, intersect_plane, plane_normal
from .sphere import Sphere, intersect_sphere, sphere_normal
from .triangle import (
    TRIANGLE_EPSILON,
    Triangle,
    intersect_triangle,
    intersect_triangle_barycentric,
    triangle_normal,
)

__all__ = [
    "AABB",
    "MIN_EXTENT",
    "hit_aabb",
    "BVH",
    "MAX_LEAF_TRIANGLES",
    "Intersection",
    "make_miss",
    "Mesh",
    "UP",
    "Plane",
    "intersect_plane",
    "plane_normal",
    "Sphere",
    "intersect_sphere",
    "sphere_normal",
    "TRIANGLE_EPSILON",
    "Triangle",
    "intersect_triangle",
    "intersect_triangle_barycentric",
    "triangle_normal",
]
