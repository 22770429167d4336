"""Default interactive scene.

The scene has a diamond-like glass floor, a small bright orange light, a
glass octahedron mesh, a blue matte sphere and a mirror sphere. Meshes are
normally loaded by an external parser; the octahedron is generated here so
the scene needs no asset files.
"""

import logging

from src.pathtracer.core.color import BLUE, ORANGE, WHITE
from src.pathtracer.geometry.mesh import Mesh
from src.pathtracer.materials import Dielectric, Diffuse, Emissive, Metal
from src.pathtracer.scene.objects import PlaneObject, SphereObject
from src.pathtracer.scene.world import World

logger = logging.getLogger(__name__)


def octahedron(
    center: tuple[float, float, float], radius: float
) -> tuple[list[tuple[float, float, float]], list[tuple[int, int, int]]]:
    """Vertex and face lists of a regular octahedron, faces wound outward."""
    cx, cy, cz = center
    vertices = [
        (cx + radius, cy, cz),
        (cx - radius, cy, cz),
        (cx, cy + radius, cz),
        (cx, cy - radius, cz),
        (cx, cy, cz + radius),
        (cx, cy, cz - radius),
    ]
    faces = [
        (0, 2, 4),
        (2, 1, 4),
        (1, 3, 4),
        (3, 0, 4),
        (2, 0, 5),
        (1, 2, 5),
        (3, 1, 5),
        (0, 3, 5),
    ]
    return vertices, faces


def build_demo_scene(world: World) -> World:
    """Populate a world with the default scene.

    Args:
        world: The world to add objects to.

    Returns:
        The same world, for chaining.
    """
    world.add_object(
        PlaneObject(
            origin=(0.0, -1.0, 0.0),
            normal=(0.0, 1.0, 0.0),
            material=Dielectric(color=WHITE, fuzz=0.05, refraction_index=2.417),
        )
    )
    world.add_object(
        SphereObject(center=(-3.0, 2.0, -5.0), radius=0.2, material=Emissive(color=ORANGE, intensity=2.3))
    )
    world.add_object(
        SphereObject(center=(0.0, 2.0, -4.0), radius=1.5, material=Diffuse(color=BLUE))
    )
    world.add_object(
        SphereObject(center=(3.0, 0.0, -5.0), radius=1.0, material=Metal(color=WHITE, fuzz=0.0))
    )

    vertices, faces = octahedron(center=(-1.5, 0.0, -3.0), radius=0.8)
    mesh = Mesh.from_triangles(
        vertices, faces, Dielectric(color=WHITE, fuzz=0.05, refraction_index=2.1)
    )
    mesh.build_acceleration_structure()
    world.add_object(mesh)

    logger.debug("Demo scene built with %d objects", world.object_count)
    return world
