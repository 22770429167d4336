"""The World: owner of all scene objects.

Scene objects are added on the host. Before the first query or render the
world uploads its materials and geometry into the Taichi scene storage
(``commit``). Only one world is uploaded at a time; committing another world
replaces the storage contents, and the previous world re-uploads itself on
its next use.

Example:
    >>> world = World()
    >>> world.add_object(SphereObject((0, 0, -5), 1.0, Diffuse(color=(0.8, 0.2, 0.2))))
    0
    >>> hit = world.intersect((0, 0, 0), (0, 0, -1))
    >>> hit.distance
    4.0
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import make_ray
from src.pathtracer.geometry.mesh import Mesh
from src.pathtracer.materials.registry import add_material, clear_materials
from src.pathtracer.scene.intersection import (
    add_mesh,
    add_plane,
    add_sphere,
    add_triangle,
    clear_scene,
    intersect_world,
)
from src.pathtracer.scene.objects import (
    PlaneObject,
    SceneObject,
    SphereObject,
    TriangleObject,
    object_type_of,
)
from src.pathtracer.scene.sky import background_color

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# World currently uploaded into the scene storage
_active_world: World | None = None

# Host query inputs and outputs
_query_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_direction = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_hit = ti.field(dtype=ti.i32, shape=())
_query_distance = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_object = ti.field(dtype=ti.i32, shape=())
_query_material = ti.field(dtype=ti.i32, shape=())
_query_color = ti.Vector.field(3, dtype=ti.f32, shape=())


@dataclass(frozen=True)
class HitInfo:
    """Host-side result of a world intersection query.

    Attributes:
        distance: Ray parameter of the nearest hit (> 0).
        point: The hit point.
        normal: The unit surface normal at the hit point.
        object_id: Index of the hit object in the world.
        material_id: Material table id of the hit object.
    """

    distance: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    object_id: int
    material_id: int


@ti.kernel
def _intersect_kernel():
    rec = intersect_world(make_ray(_query_origin[None], _query_direction[None]))
    _query_hit[None] = rec.hit
    _query_distance[None] = rec.distance
    _query_point[None] = rec.point
    _query_normal[None] = rec.normal
    _query_object[None] = rec.object_id
    _query_material[None] = rec.material_id


@ti.kernel
def _background_kernel():
    _query_color[None] = background_color(_query_direction[None])


def release_scene() -> None:
    """Clear the scene storage and forget which world was uploaded."""
    global _active_world
    _active_world = None
    clear_scene()
    clear_materials()


def _vector_tuple(v) -> tuple[float, float, float]:
    return (float(v[0]), float(v[1]), float(v[2]))


class World:
    """Owns the scene objects for the lifetime of the renderer.

    Objects are read-only while rendering. Adding or clearing objects marks
    the world dirty; the next query or render re-uploads it.
    """

    def __init__(self) -> None:
        self._objects: list[SceneObject] = []
        self._dirty = True

    @property
    def objects(self) -> tuple[SceneObject, ...]:
        """The scene objects, in insertion order (object ids)."""
        return tuple(self._objects)

    @property
    def object_count(self) -> int:
        return len(self._objects)

    def add_object(self, obj: SceneObject) -> int:
        """Add a scene object.

        Args:
            obj: A SphereObject, PlaneObject, TriangleObject or Mesh.

        Returns:
            The object id.

        Raises:
            TypeError: If the object is not a scene object.
        """
        object_type_of(obj)
        self._objects.append(obj)
        self._dirty = True
        return len(self._objects) - 1

    def clear(self) -> None:
        """Remove all objects."""
        self._objects.clear()
        self._dirty = True

    @property
    def is_active(self) -> bool:
        """Whether this world's data is currently in the scene storage."""
        return _active_world is self and not self._dirty

    def commit(self) -> None:
        """Upload materials and geometry into the scene storage.

        Materials shared by several objects are uploaded once.

        Raises:
            RuntimeError: If a mesh has no built acceleration structure or a
                storage capacity is exceeded. Nothing is left uploaded then.
        """
        global _active_world

        for obj in self._objects:
            if isinstance(obj, Mesh):
                obj.require_acceleration_structure()

        _active_world = None
        clear_scene()
        clear_materials()

        material_ids: dict[int, int] = {}
        try:
            for obj in self._objects:
                key = id(obj.material)
                if key not in material_ids:
                    material_ids[key] = add_material(obj.material)
                material_id = material_ids[key]

                if isinstance(obj, SphereObject):
                    add_sphere(obj.center, obj.radius, material_id)
                elif isinstance(obj, PlaneObject):
                    add_plane(obj.origin, obj.normal, material_id)
                elif isinstance(obj, TriangleObject):
                    add_triangle(obj.a, obj.b, obj.c, material_id)
                elif isinstance(obj, Mesh):
                    add_mesh(obj.triangles, obj.bvh, material_id)
        except RuntimeError:
            clear_scene()
            clear_materials()
            raise

        _active_world = self
        self._dirty = False
        logger.info(
            "World uploaded: %d objects, %d materials",
            len(self._objects),
            len(material_ids),
        )

    def ensure_committed(self) -> None:
        """Commit unless this world is already the uploaded one."""
        if not self.is_active:
            self.commit()

    def intersect(self, origin, direction) -> HitInfo | None:
        """Nearest intersection of a ray with the world.

        Args:
            origin: Ray origin (x, y, z).
            direction: Ray direction (x, y, z), unit length.

        Returns:
            The nearest hit, or None on a miss.
        """
        self.ensure_committed()
        _query_origin[None] = vec3(*origin)
        _query_direction[None] = vec3(*direction)
        _intersect_kernel()

        if _query_hit[None] == 0:
            return None
        return HitInfo(
            distance=float(_query_distance[None]),
            point=_vector_tuple(_query_point[None]),
            normal=_vector_tuple(_query_normal[None]),
            object_id=int(_query_object[None]),
            material_id=int(_query_material[None]),
        )

    def background_color(self, direction) -> tuple[float, float, float]:
        """Sky color seen along a direction. Black below the horizon."""
        if not all(math.isfinite(c) for c in direction):
            raise ValueError(f"Direction must be finite, got {tuple(direction)}")
        _query_direction[None] = vec3(*direction)
        _background_kernel()
        return _vector_tuple(_query_color[None])

    def __repr__(self) -> str:
        return f"World(objects={len(self._objects)})"
