"""Bounding volume hierarchy over mesh triangles.

The BVH is built once on the host from a triangle arena and flattened into
plain arrays ready for upload to Taichi fields:

    bounds_min, bounds_max: (n_nodes, 3) node boxes
    first, count:           leaf ranges into ``triangle_indices`` (count 0 = interior)
    skip:                   index of the next node once this subtree is done

Nodes are stored in depth-first order, so an interior node's left child is
the next node and ``skip`` links give stackless traversal: on a box hit at an
interior node go to ``i + 1``, otherwise go to ``skip[i]``. Traversal ends
when the index reaches ``n_nodes``.

Triangles are never moved. ``triangle_indices`` is a permutation of the
original triangle indices, so a leaf entry always maps back to the triangle
the caller loaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from src.pathtracer.geometry.aabb import AABB

logger = logging.getLogger(__name__)

# Maximum number of triangles stored in one leaf
MAX_LEAF_TRIANGLES = 4


@dataclass
class _BuildNode:
    """Intermediate node used while building, before skip links are known."""

    box: AABB
    first: int
    count: int


@dataclass
class BVH:
    """Flattened bounding volume hierarchy.

    Attributes:
        bounds_min: Node box minimum corners, shape (n_nodes, 3).
        bounds_max: Node box maximum corners, shape (n_nodes, 3).
        first: Start of each leaf's range in triangle_indices.
        count: Triangles in each leaf; 0 marks an interior node.
        skip: Index of the node to visit after this node's subtree.
        triangle_indices: Original triangle index for each leaf slot.
    """

    bounds_min: npt.NDArray[np.float32]
    bounds_max: npt.NDArray[np.float32]
    first: npt.NDArray[np.int32]
    count: npt.NDArray[np.int32]
    skip: npt.NDArray[np.int32]
    triangle_indices: npt.NDArray[np.int32]

    @property
    def node_count(self) -> int:
        """Number of nodes in the hierarchy."""
        return int(self.first.shape[0])

    @property
    def leaf_count(self) -> int:
        """Number of leaf nodes."""
        return int(np.count_nonzero(self.count))

    @classmethod
    def build(cls, triangles: npt.NDArray[np.float32]) -> BVH:
        """Build a BVH over a triangle arena.

        Interior nodes split at the median centroid along the axis where the
        centroids spread the most. Splitting by position in the sorted order
        always makes progress, even when centroids coincide.

        Args:
            triangles: Array of shape (n, 3, 3) holding the vertices of each
                triangle.

        Returns:
            The flattened hierarchy.

        Raises:
            ValueError: If the triangle array is empty or malformed.
        """
        tris = np.asarray(triangles, dtype=np.float32)
        if tris.ndim != 3 or tris.shape[1:] != (3, 3):
            raise ValueError(f"Expected triangles of shape (n, 3, 3), got {tris.shape}")
        if tris.shape[0] == 0:
            raise ValueError("Cannot build a BVH over zero triangles")

        tri_min = tris.min(axis=1)
        tri_max = tris.max(axis=1)
        centroids = tris.mean(axis=1)
        order = np.arange(tris.shape[0], dtype=np.int32)

        nodes: list[_BuildNode] = []
        skips: list[int] = []

        def build_range(start: int, end: int) -> None:
            box = AABB(
                min=tri_min[order[start:end]].min(axis=0),
                max=tri_max[order[start:end]].max(axis=0),
            ).padded()
            node_index = len(nodes)
            span = end - start

            if span <= MAX_LEAF_TRIANGLES:
                nodes.append(_BuildNode(box=box, first=start, count=span))
                skips.append(node_index + 1)
                return

            nodes.append(_BuildNode(box=box, first=0, count=0))
            skips.append(-1)

            sub = order[start:end]
            spread = centroids[sub].max(axis=0) - centroids[sub].min(axis=0)
            axis = int(np.argmax(spread))
            order[start:end] = sub[np.argsort(centroids[sub, axis], kind="stable")]

            mid = start + span // 2
            build_range(start, mid)
            build_range(mid, end)
            skips[node_index] = len(nodes)

        build_range(0, tris.shape[0])

        bvh = cls(
            bounds_min=np.array([n.box.min for n in nodes], dtype=np.float32),
            bounds_max=np.array([n.box.max for n in nodes], dtype=np.float32),
            first=np.array([n.first for n in nodes], dtype=np.int32),
            count=np.array([n.count for n in nodes], dtype=np.int32),
            skip=np.array(skips, dtype=np.int32),
            triangle_indices=order,
        )
        logger.debug(
            "Built BVH: %d triangles, %d nodes, %d leaves",
            tris.shape[0],
            bvh.node_count,
            bvh.leaf_count,
        )
        return bvh

    def node_box(self, index: int) -> AABB:
        """Bounding box of a node."""
        return AABB(min=self.bounds_min[index], max=self.bounds_max[index])

    def candidates(
        self,
        origin: npt.ArrayLike,
        direction: npt.ArrayLike,
        t_max: float = np.inf,
    ) -> list[int]:
        """Broad-phase query: triangles whose leaf boxes the ray may hit.

        Callers still run exact triangle tests on the result.

        Args:
            origin: Ray origin (x, y, z).
            direction: Ray direction (x, y, z).
            t_max: Upper bound on the ray parameter.

        Returns:
            Original triangle indices, in traversal order.
        """
        result: list[int] = []
        i = 0
        n = self.node_count
        while i < n:
            if self.node_box(i).hit(origin, direction, t_max):
                count = int(self.count[i])
                if count > 0:
                    first = int(self.first[i])
                    result.extend(int(t) for t in self.triangle_indices[first : first + count])
                    i = int(self.skip[i])
                else:
                    i += 1
            else:
                i = int(self.skip[i])
        return result
