"""Axis-aligned bounding boxes.

The host-side ``AABB`` dataclass is used while building the BVH; the
``hit_aabb`` Taichi function is the slab test used while traversing it.
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Thin boxes (flat triangles) are padded to this minimum extent per axis
MIN_EXTENT = 1e-4


@dataclass
class AABB:
    """Axis-aligned bounding box.

    Attributes:
        min: Minimum corner [x, y, z].
        max: Maximum corner [x, y, z].
    """

    min: npt.NDArray[np.float32]
    max: npt.NDArray[np.float32]

    @staticmethod
    def empty() -> "AABB":
        """Create an empty (inverted) box that any union overrides."""
        return AABB(
            min=np.full(3, np.inf, dtype=np.float32),
            max=np.full(3, -np.inf, dtype=np.float32),
        )

    @staticmethod
    def from_points(points: npt.ArrayLike) -> "AABB":
        """Tightest box around a set of points of shape (n, 3)."""
        pts = np.asarray(points, dtype=np.float32).reshape(-1, 3)
        return AABB(min=pts.min(axis=0), max=pts.max(axis=0))

    def union(self, other: "AABB") -> "AABB":
        """Box containing both boxes."""
        return AABB(min=np.minimum(self.min, other.min), max=np.maximum(self.max, other.max))

    def padded(self) -> "AABB":
        """Copy of the box with every axis at least MIN_EXTENT wide."""
        lo = self.min.copy()
        hi = self.max.copy()
        for axis in range(3):
            if hi[axis] - lo[axis] < MIN_EXTENT:
                mid = (lo[axis] + hi[axis]) * 0.5
                lo[axis] = mid - MIN_EXTENT * 0.5
                hi[axis] = mid + MIN_EXTENT * 0.5
        return AABB(min=lo, max=hi)

    def surface_area(self) -> float:
        """Surface area of the box (0 for an empty box)."""
        extent = np.maximum(self.max - self.min, 0.0)
        return float(2.0 * (extent[0] * extent[1] + extent[1] * extent[2] + extent[2] * extent[0]))

    def hit(self, origin: npt.ArrayLike, direction: npt.ArrayLike, t_max: float = np.inf) -> bool:
        """Host-side slab test, matching ``hit_aabb``."""
        o = np.asarray(origin, dtype=np.float64)
        d = np.asarray(direction, dtype=np.float64)
        t_near = 0.0
        t_far = float(t_max)
        for axis in range(3):
            if d[axis] == 0.0:
                if o[axis] < self.min[axis] or o[axis] > self.max[axis]:
                    return False
                continue
            t0 = (self.min[axis] - o[axis]) / d[axis]
            t1 = (self.max[axis] - o[axis]) / d[axis]
            t_near = max(t_near, min(t0, t1))
            t_far = min(t_far, max(t0, t1))
        return t_near <= t_far


@ti.func
def hit_aabb(
    box_min: vec3,
    box_max: vec3,
    ray_origin: vec3,
    ray_direction: vec3,
    t_max: ti.f32,
) -> ti.i32:
    """Slab test of a ray against a box over the interval [0, t_max].

    An axis the ray runs parallel to only checks that the origin lies
    within that slab; dividing would give 0 * inf on the slab's faces.
    """
    t_near = 0.0
    t_far = t_max
    hit = 1

    for axis in ti.static(range(3)):
        if ray_direction[axis] == 0.0:
            if ray_origin[axis] < box_min[axis] or ray_origin[axis] > box_max[axis]:
                hit = 0
        else:
            inv_d = 1.0 / ray_direction[axis]
            t0 = (box_min[axis] - ray_origin[axis]) * inv_d
            t1 = (box_max[axis] - ray_origin[axis]) * inv_d
            t_near = tm.max(tm.min(t0, t1), t_near)
            t_far = tm.min(tm.max(t0, t1), t_far)
            if t_far < t_near:
                hit = 0

    return hit
