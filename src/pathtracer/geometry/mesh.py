"""Triangle mesh primitive.

A Mesh owns a triangle arena (an (n, 3, 3) vertex array), the material shared
by all of its triangles, and an optional BVH. The BVH must be built
explicitly with ``build_acceleration_structure()`` after the mesh is loaded
and before it is queried or rendered; querying an unbuilt mesh raises.

Example:
    >>> vertices = [(0, 0, -5), (1, 0, -5), (0, 1, -5), (1, 1, -5)]
    >>> faces = [(0, 1, 2), (1, 3, 2)]
    >>> mesh = Mesh.from_triangles(vertices, faces, Diffuse(color=(0.8, 0.8, 0.8)))
    >>> mesh.build_acceleration_structure()
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from src.pathtracer.geometry.aabb import AABB
from src.pathtracer.geometry.bvh import BVH

if TYPE_CHECKING:
    from src.pathtracer.materials.base import Material

logger = logging.getLogger(__name__)

# Normal returned when no triangle contains the queried point
UP = (0.0, 1.0, 0.0)

# Tolerance of the brute-force containment test
CONTAINMENT_TOLERANCE = 1e-4


class Mesh:
    """A collection of triangles sharing one material.

    Attributes:
        triangles: Vertex array of shape (n, 3, 3), float32. Never reordered.
        material: The material shared by every triangle.
    """

    def __init__(self, triangles: npt.ArrayLike, material: Material) -> None:
        """Create a mesh from a triangle vertex array.

        Args:
            triangles: Array-like of shape (n, 3, 3).
            material: The material of the mesh.

        Raises:
            ValueError: If the array is empty, has the wrong shape or holds
                non-finite coordinates.
        """
        tris = np.asarray(triangles, dtype=np.float32)
        if tris.ndim != 3 or tris.shape[1:] != (3, 3):
            raise ValueError(f"Expected triangles of shape (n, 3, 3), got {tris.shape}")
        if tris.shape[0] == 0:
            raise ValueError("A mesh needs at least one triangle")
        if not np.all(np.isfinite(tris)):
            raise ValueError("Mesh vertices must be finite")

        self.triangles = tris
        self.material = material
        self._bvh: BVH | None = None

    @classmethod
    def from_triangles(
        cls,
        vertices: npt.ArrayLike,
        faces: Sequence[Sequence[int]],
        material: Material,
    ) -> Mesh:
        """Build a mesh from a parsed vertex list and face list.

        Faces with more than three vertex indices are fan triangulated
        around their first vertex.

        Args:
            vertices: Array-like of shape (n_vertices, 3).
            faces: Sequence of vertex index lists, zero-based.
            material: The material of the mesh.

        Returns:
            A new, unbuilt Mesh.

        Raises:
            ValueError: If the vertex array is malformed, a face has fewer
                than three indices or an index is out of range.
        """
        verts = np.asarray(vertices, dtype=np.float32)
        if verts.ndim != 2 or verts.shape[1] != 3:
            raise ValueError(f"Expected vertices of shape (n, 3), got {verts.shape}")

        triangle_indices: list[tuple[int, int, int]] = []
        for face_number, face in enumerate(faces):
            indices = [int(i) for i in face]
            if len(indices) < 3:
                raise ValueError(f"Face {face_number} has {len(indices)} vertices, need at least 3")
            for index in indices:
                if index < 0 or index >= verts.shape[0]:
                    raise ValueError(
                        f"Face {face_number} references vertex {index}, "
                        f"but only {verts.shape[0]} vertices exist"
                    )
            for k in range(1, len(indices) - 1):
                triangle_indices.append((indices[0], indices[k], indices[k + 1]))

        if not triangle_indices:
            raise ValueError("A mesh needs at least one face")

        tris = verts[np.array(triangle_indices, dtype=np.int64)]
        return cls(tris, material)

    @property
    def triangle_count(self) -> int:
        """Number of triangles in the mesh."""
        return int(self.triangles.shape[0])

    @property
    def is_built(self) -> bool:
        """Whether the acceleration structure has been built."""
        return self._bvh is not None

    @property
    def bvh(self) -> BVH:
        """The acceleration structure.

        Raises:
            RuntimeError: If build_acceleration_structure() was not called.
        """
        return self.require_acceleration_structure()

    def build_acceleration_structure(self) -> BVH:
        """Build the BVH over the mesh triangles.

        Must be called exactly once, after loading and before rendering.

        Returns:
            The built hierarchy.

        Raises:
            RuntimeError: If the structure was already built.
        """
        if self._bvh is not None:
            raise RuntimeError("Mesh acceleration structure is already built")
        self._bvh = BVH.build(self.triangles)
        logger.info(
            "Mesh acceleration structure built: %d triangles, %d nodes",
            self.triangle_count,
            self._bvh.node_count,
        )
        return self._bvh

    def require_acceleration_structure(self) -> BVH:
        """Return the acceleration structure, raising if it was never built.

        Raises:
            RuntimeError: If build_acceleration_structure() was not called.
        """
        if self._bvh is None:
            raise RuntimeError(
                "Mesh acceleration structure not built. "
                "Call build_acceleration_structure() before intersecting the mesh."
            )
        return self._bvh

    def bounding_box(self) -> AABB:
        """Bounding box of all mesh vertices."""
        return AABB.from_points(self.triangles.reshape(-1, 3))

    def candidates(self, origin: npt.ArrayLike, direction: npt.ArrayLike) -> list[int]:
        """Broad-phase triangle candidates for a ray.

        Raises:
            RuntimeError: If the acceleration structure is not built.
        """
        return self.bvh.candidates(origin, direction)

    def triangle_normals(self) -> npt.NDArray[np.float32]:
        """Flat unit normals of all triangles, shape (n, 3).

        Degenerate triangles get a zero normal.
        """
        edge1 = self.triangles[:, 1] - self.triangles[:, 0]
        edge2 = self.triangles[:, 2] - self.triangles[:, 0]
        normals = np.cross(edge1, edge2)
        lengths = np.linalg.norm(normals, axis=1, keepdims=True)
        with np.errstate(divide="ignore", invalid="ignore"):
            unit = np.where(lengths > 0.0, normals / lengths, 0.0)
        return unit.astype(np.float32)

    def surface_normal(self, point: npt.ArrayLike) -> tuple[float, float, float]:
        """Brute-force normal lookup without the acceleration structure.

        Scans every triangle for one containing the point (within a small
        tolerance) and returns its flat normal. Floating-point containment
        tests cannot classify every point, so a point no triangle contains
        gets the ``UP`` vector.
        """
        p = np.asarray(point, dtype=np.float64)
        a = self.triangles[:, 0].astype(np.float64)
        edge1 = self.triangles[:, 1].astype(np.float64) - a
        edge2 = self.triangles[:, 2].astype(np.float64) - a
        w = p - a

        d00 = np.einsum("ij,ij->i", edge1, edge1)
        d01 = np.einsum("ij,ij->i", edge1, edge2)
        d11 = np.einsum("ij,ij->i", edge2, edge2)
        d20 = np.einsum("ij,ij->i", w, edge1)
        d21 = np.einsum("ij,ij->i", w, edge2)
        denom = d00 * d11 - d01 * d01

        normals = np.cross(edge1, edge2)
        normal_len = np.linalg.norm(normals, axis=1)

        with np.errstate(divide="ignore", invalid="ignore"):
            v = (d11 * d20 - d01 * d21) / denom
            u = (d00 * d21 - d01 * d20) / denom
            plane_distance = np.abs(np.einsum("ij,ij->i", w, normals)) / normal_len

        tol = CONTAINMENT_TOLERANCE
        inside = (
            (normal_len > 0.0)
            & (v >= -tol)
            & (u >= -tol)
            & (u + v <= 1.0 + tol)
            & (plane_distance <= tol)
        )
        hits = np.flatnonzero(inside)
        if hits.size == 0:
            return UP

        n = normals[hits[0]] / normal_len[hits[0]]
        return (float(n[0]), float(n[1]), float(n[2]))

    def __repr__(self) -> str:
        return f"Mesh(triangles={self.triangle_count}, built={self.is_built})"
