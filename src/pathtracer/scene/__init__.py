"""Scene module: objects, world storage, nearest-hit queries and sky.

Components:
    objects: Scene object variants (geometry bound to a material)
    intersection: Taichi scene storage and nearest-hit resolution
    world: The World that owns objects and uploads them for rendering
    sky: Procedural Rayleigh + Mie sky for escaping rays
    demo: The default interactive scene
"""

from .demo import build_demo_scene, octahedron
from .intersection import (
    MAX_OBJECTS,
    clear_scene,
    get_object_count,
    intersect_mesh,
    intersect_world,
)
from .objects import ObjectType, PlaneObject, SceneObject, SphereObject, TriangleObject
from .sky import SUN_INTENSITY, background_color
from .world import HitInfo, World, release_scene

__all__ = [
    # Objects
    "ObjectType",
    "SceneObject",
    "SphereObject",
    "PlaneObject",
    "TriangleObject",
    # Storage and queries
    "MAX_OBJECTS",
    "clear_scene",
    "get_object_count",
    "intersect_mesh",
    "intersect_world",
    # World
    "HitInfo",
    "World",
    "release_scene",
    # Sky
    "SUN_INTENSITY",
    "background_color",
    # Demo
    "build_demo_scene",
    "octahedron",
]
