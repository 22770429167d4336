"""Scene storage and nearest-hit resolution.

Scene geometry lives in module-level Taichi fields using a Structure of
Arrays layout. One object table maps each world object to its type tag, its
slot in the per-type storage and its material id:

    object_types[i], object_indices[i], object_materials[i]

Standalone triangles and mesh triangles share one triangle arena. Each mesh
owns a contiguous range of the arena, of the BVH node arena and of the BVH
index arena; BVH leaf entries are local indices into the mesh's triangle
range, so triangles are never moved.

``intersect_world`` scans every object, keeps the globally nearest positive
distance and builds the normal only for the winning object.
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Ray, ray_at
from src.pathtracer.geometry.aabb import hit_aabb
from src.pathtracer.geometry.bvh import BVH
from src.pathtracer.geometry.intersection import Intersection, make_miss
from src.pathtracer.geometry.plane import Plane, intersect_plane
from src.pathtracer.geometry.sphere import Sphere, intersect_sphere, sphere_normal
from src.pathtracer.geometry.triangle import Triangle, intersect_triangle, triangle_normal
from src.pathtracer.scene.objects import ObjectType

vec3 = tm.vec3

# Capacity of the scene storage
MAX_OBJECTS = 1024
MAX_SPHERES = 1024
MAX_PLANES = 64
MAX_MESHES = 64
MAX_TRIANGLES = 1 << 18
MAX_BVH_NODES = 1 << 18

# Upper bound for ray distances, larger than any scene
FAR_DISTANCE = 1e30

_SPHERE = int(ObjectType.SPHERE)
_PLANE = int(ObjectType.PLANE)
_TRIANGLE = int(ObjectType.TRIANGLE)
_MESH = int(ObjectType.MESH)

# Object table
object_types = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_indices = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_materials = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
num_objects = ti.field(dtype=ti.i32, shape=())

# Sphere storage
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Plane storage
plane_origins = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())

# Triangle arena
triangle_v0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())

# BVH node arena
bvh_bounds_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_bounds_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_first = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_count = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_skip = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
num_bvh_nodes = ti.field(dtype=ti.i32, shape=())

# BVH leaf index arena, one entry per mesh triangle
bvh_triangle_indices = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
num_bvh_indices = ti.field(dtype=ti.i32, shape=())

# Mesh table
mesh_triangle_offsets = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_node_offsets = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_node_counts = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_index_offsets = ti.field(dtype=ti.i32, shape=MAX_MESHES)
num_meshes = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all objects from the scene storage.

    Resets the counts to zero. Field data is overwritten by later uploads.
    """
    num_objects[None] = 0
    num_spheres[None] = 0
    num_planes[None] = 0
    num_triangles[None] = 0
    num_bvh_nodes[None] = 0
    num_bvh_indices[None] = 0
    num_meshes[None] = 0


def _add_object(object_type: int, index: int, material_id: int) -> int:
    idx = num_objects[None]
    if idx >= MAX_OBJECTS:
        raise RuntimeError(f"Maximum number of objects ({MAX_OBJECTS}) exceeded")
    object_types[idx] = object_type
    object_indices[idx] = index
    object_materials[idx] = material_id
    num_objects[None] = idx + 1
    return idx


def add_sphere(center: tuple[float, float, float], radius: float, material_id: int) -> int:
    """Add a sphere to the scene.

    Returns:
        The object index of the sphere.

    Raises:
        RuntimeError: If the maximum number of spheres or objects is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = vec3(*center)
    sphere_radii[idx] = radius
    num_spheres[None] = idx + 1
    return _add_object(_SPHERE, idx, material_id)


def add_plane(
    origin: tuple[float, float, float],
    normal: tuple[float, float, float],
    material_id: int,
) -> int:
    """Add an infinite plane to the scene. The normal must be unit length.

    Returns:
        The object index of the plane.

    Raises:
        RuntimeError: If the maximum number of planes or objects is exceeded.
    """
    idx = num_planes[None]
    if idx >= MAX_PLANES:
        raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")
    plane_origins[idx] = vec3(*origin)
    plane_normals[idx] = vec3(*normal)
    num_planes[None] = idx + 1
    return _add_object(_PLANE, idx, material_id)


def _reserve_triangles(count: int) -> int:
    start = num_triangles[None]
    if start + count > MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")
    num_triangles[None] = start + count
    return start


def add_triangle(
    a: tuple[float, float, float],
    b: tuple[float, float, float],
    c: tuple[float, float, float],
    material_id: int,
) -> int:
    """Add a standalone triangle to the scene.

    Returns:
        The object index of the triangle.

    Raises:
        RuntimeError: If the triangle arena or object table is full.
    """
    idx = _reserve_triangles(1)
    triangle_v0[idx] = vec3(*a)
    triangle_v1[idx] = vec3(*b)
    triangle_v2[idx] = vec3(*c)
    return _add_object(_TRIANGLE, idx, material_id)


def add_mesh(triangles: np.ndarray, bvh: BVH, material_id: int) -> int:
    """Upload a mesh's triangles and its built BVH.

    Args:
        triangles: Vertex array of shape (n, 3, 3).
        bvh: The hierarchy built over exactly these triangles.
        material_id: Material shared by the mesh.

    Returns:
        The object index of the mesh.

    Raises:
        RuntimeError: If any arena or table capacity is exceeded.
    """
    mesh_idx = num_meshes[None]
    if mesh_idx >= MAX_MESHES:
        raise RuntimeError(f"Maximum number of meshes ({MAX_MESHES}) exceeded")

    n_tris = triangles.shape[0]
    n_nodes = bvh.node_count
    node_start = num_bvh_nodes[None]
    if node_start + n_nodes > MAX_BVH_NODES:
        raise RuntimeError(f"Maximum number of BVH nodes ({MAX_BVH_NODES}) exceeded")
    index_start = num_bvh_indices[None]
    if index_start + n_tris > MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of BVH indices ({MAX_TRIANGLES}) exceeded")
    tri_start = _reserve_triangles(n_tris)

    # Slice-wise upload through numpy, element-wise writes are too slow for meshes
    _upload_slice(triangle_v0, tri_start, triangles[:, 0])
    _upload_slice(triangle_v1, tri_start, triangles[:, 1])
    _upload_slice(triangle_v2, tri_start, triangles[:, 2])

    _upload_slice(bvh_bounds_min, node_start, bvh.bounds_min)
    _upload_slice(bvh_bounds_max, node_start, bvh.bounds_max)
    _upload_slice(bvh_first, node_start, bvh.first)
    _upload_slice(bvh_count, node_start, bvh.count)
    _upload_slice(bvh_skip, node_start, bvh.skip)
    _upload_slice(bvh_triangle_indices, index_start, bvh.triangle_indices)

    num_bvh_nodes[None] = node_start + n_nodes
    num_bvh_indices[None] = index_start + n_tris

    mesh_triangle_offsets[mesh_idx] = tri_start
    mesh_node_offsets[mesh_idx] = node_start
    mesh_node_counts[mesh_idx] = n_nodes
    mesh_index_offsets[mesh_idx] = index_start
    num_meshes[None] = mesh_idx + 1
    return _add_object(_MESH, mesh_idx, material_id)


def _upload_slice(field, start: int, values: np.ndarray) -> None:
    """Write values into field[start:start + len(values)]."""
    data = field.to_numpy()
    data[start : start + values.shape[0]] = values
    field.from_numpy(data)


def get_object_count() -> int:
    """Get the number of objects in the scene."""
    return int(num_objects[None])


@ti.func
def _load_triangle(index: ti.i32) -> Triangle:
    return Triangle(a=triangle_v0[index], b=triangle_v1[index], c=triangle_v2[index])


@ti.func
def intersect_mesh(mesh_index: ti.i32, ray_origin: vec3, ray_direction: vec3, t_max: ti.f32):
    """Nearest triangle hit of a mesh through stackless BVH traversal.

    Boxes are only tested over [0, t_max], and t_max shrinks with every hit,
    so subtrees behind the current nearest hit are skipped.

    Returns:
        A tuple of (hit, t, triangle_index) where triangle_index is the
        arena index of the hit triangle.
    """
    tri_offset = mesh_triangle_offsets[mesh_index]
    node_offset = mesh_node_offsets[mesh_index]
    node_total = mesh_node_counts[mesh_index]
    index_offset = mesh_index_offsets[mesh_index]

    did_hit = 0
    best_t = t_max
    best_triangle = -1

    i = 0
    while i < node_total:
        node = node_offset + i
        if hit_aabb(bvh_bounds_min[node], bvh_bounds_max[node], ray_origin, ray_direction, best_t):
            count = bvh_count[node]
            if count > 0:
                first = bvh_first[node]
                for k in range(count):
                    tri = tri_offset + bvh_triangle_indices[index_offset + first + k]
                    hit, t = intersect_triangle(ray_origin, ray_direction, _load_triangle(tri))
                    if hit == 1 and t < best_t:
                        did_hit = 1
                        best_t = t
                        best_triangle = tri
                i = bvh_skip[node]
            else:
                i += 1
        else:
            i = bvh_skip[node]

    return did_hit, best_t, best_triangle


@ti.func
def intersect_world(ray: Ray) -> Intersection:
    """Find the nearest intersection of a ray with every scene object.

    Only positive distances count. Ties keep the object found first.

    Args:
        ray: The ray to trace. Its direction must be unit length.

    Returns:
        The nearest Intersection, or a miss record.
    """
    ray_origin = ray.origin
    ray_direction = ray.direction
    best_t = FAR_DISTANCE
    best_object = -1
    best_triangle = -1

    for i in range(num_objects[None]):
        obj_type = object_types[i]
        idx = object_indices[i]

        hit = 0
        t = 0.0
        tri = -1
        if obj_type == _SPHERE:
            hit, t = intersect_sphere(
                ray_origin,
                ray_direction,
                Sphere(center=sphere_centers[idx], radius=sphere_radii[idx]),
            )
        elif obj_type == _PLANE:
            hit, t = intersect_plane(
                ray_origin,
                ray_direction,
                Plane(origin=plane_origins[idx], normal=plane_normals[idx]),
            )
        elif obj_type == _TRIANGLE:
            hit, t = intersect_triangle(ray_origin, ray_direction, _load_triangle(idx))
            tri = idx
        elif obj_type == _MESH:
            hit, t, tri = intersect_mesh(idx, ray_origin, ray_direction, best_t)

        if hit == 1 and t > 0.0 and t < best_t:
            best_t = t
            best_object = i
            best_triangle = tri

    result = make_miss()
    if best_object >= 0:
        point = ray_at(ray, best_t)
        obj_type = object_types[best_object]
        idx = object_indices[best_object]

        normal = vec3(0.0, 1.0, 0.0)
        if obj_type == _SPHERE:
            normal = sphere_normal(Sphere(center=sphere_centers[idx], radius=sphere_radii[idx]), point)
        elif obj_type == _PLANE:
            normal = plane_normals[idx]
        else:
            normal = triangle_normal(_load_triangle(best_triangle))

        result = Intersection(
            hit=1,
            distance=best_t,
            point=point,
            normal=normal,
            object_id=best_object,
            material_id=object_materials[best_object],
        )

    return result
