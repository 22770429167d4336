"""Intersection record shared by the world query and the materials.

An Intersection is produced per query and consumed within one integration
step. It carries the object reference (``object_id``) and the material of
the hit object so that scattering can be dispatched without a second lookup.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.dataclass
class Intersection:
    """Record of the nearest ray-scene intersection.

    Attributes:
        hit: 1 if the ray hit an object, 0 on a miss.
        distance: Ray parameter of the hit (> 0). Only valid if hit == 1.
        point: The hit point. Only valid if hit == 1.
        normal: The unit surface normal of the hit object at the hit point.
            Not flipped toward the ray; materials decide sidedness.
        object_id: Index of the hit object in the world, -1 on a miss.
        material_id: Material of the hit object, -1 on a miss.
    """

    hit: ti.i32
    distance: ti.f32
    point: vec3
    normal: vec3
    object_id: ti.i32
    material_id: ti.i32


@ti.func
def make_miss() -> Intersection:
    """Create an Intersection indicating no hit."""
    return Intersection(
        hit=0,
        distance=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        object_id=-1,
        material_id=-1,
    )
