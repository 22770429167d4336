"""Unit tests for the BVH and axis-aligned boxes.

Tests cover:
- Build validation and node layout
- Triangle identity preserved through the index permutation
- Skip links forming a valid depth-first traversal
- Broad phase candidates containing every truly hit triangle
- Kernel slab test
"""

import numpy as np
import pytest
import taichi as ti


def _ray_triangle(origin, direction, tri, eps=1e-4):
    """Reference Moller-Trumbore in float64. Returns t or None."""
    a, b, c = (np.asarray(v, dtype=np.float64) for v in tri)
    edge1 = b - a
    edge2 = c - a
    h = np.cross(direction, edge2)
    det = np.dot(edge1, h)
    if abs(det) < eps:
        return None
    inv = 1.0 / det
    s = origin - a
    u = inv * np.dot(s, h)
    if u < 0.0 or u > 1.0:
        return None
    q = np.cross(s, edge1)
    v = inv * np.dot(direction, q)
    if v < 0.0 or u + v > 1.0:
        return None
    t = inv * np.dot(edge2, q)
    return t if t > eps else None


def _random_triangles(n, seed=0):
    rng = np.random.default_rng(seed)
    centers = rng.uniform(-5.0, 5.0, size=(n, 1, 3))
    offsets = rng.uniform(-0.5, 0.5, size=(n, 3, 3))
    return (centers + offsets).astype(np.float32)


class TestAABB:
    """Tests for the host AABB helpers."""

    def test_from_points_and_union(self):
        """Test tight bounds and their union."""
        from src.pathtracer.geometry.aabb import AABB

        a = AABB.from_points([[0, 0, 0], [1, 2, 3]])
        b = AABB.from_points([[-1, 5, 1]])
        u = a.union(b)
        np.testing.assert_allclose(u.min, [-1, 0, 0])
        np.testing.assert_allclose(u.max, [1, 5, 3])

    def test_surface_area(self):
        """Test the area of a unit cube and of an empty box."""
        from src.pathtracer.geometry.aabb import AABB

        assert AABB.from_points([[0, 0, 0], [1, 1, 1]]).surface_area() == pytest.approx(6.0)
        assert AABB.empty().surface_area() == 0.0

    def test_padded_flat_box(self):
        """Test a flat box gets a minimum thickness so rays can hit it."""
        from src.pathtracer.geometry.aabb import AABB, MIN_EXTENT

        box = AABB.from_points([[0, 0, -5], [1, 1, -5]]).padded()
        assert box.max[2] - box.min[2] >= MIN_EXTENT * 0.99
        assert box.hit(np.array([0.5, 0.5, 0.0]), np.array([0.0, 0.0, -1.0]))

    def test_kernel_slab_test(self):
        """Test hit_aabb for a hit, a miss and a box beyond t_max."""
        from src.pathtracer.geometry.aabb import hit_aabb, vec3

        result = ti.field(dtype=ti.i32, shape=3)

        @ti.kernel
        def test_kernel():
            lo = vec3(-1.0, -1.0, -6.0)
            hi = vec3(1.0, 1.0, -4.0)
            o = vec3(0.0, 0.0, 0.0)
            result[0] = hit_aabb(lo, hi, o, vec3(0.0, 0.0, -1.0), 1e30)
            result[1] = hit_aabb(lo, hi, o, vec3(0.0, 1.0, 0.0), 1e30)
            result[2] = hit_aabb(lo, hi, o, vec3(0.0, 0.0, -1.0), 3.0)

        test_kernel()
        assert result[0] == 1
        assert result[1] == 0
        assert result[2] == 0

    def test_parallel_ray_on_box_face(self):
        """Test rays parallel to an axis starting on, inside and outside the slab."""
        from src.pathtracer.geometry.aabb import AABB, hit_aabb, vec3

        result = ti.field(dtype=ti.i32, shape=3)

        @ti.kernel
        def test_kernel():
            lo = vec3(0.0, 0.0, -6.0)
            hi = vec3(1.0, 1.0, -4.0)
            d = vec3(0.0, 0.0, -1.0)
            result[0] = hit_aabb(lo, hi, vec3(0.0, 0.3, 0.0), d, 1e30)
            result[1] = hit_aabb(lo, hi, vec3(1.0, 1.0, 0.0), d, 1e30)
            result[2] = hit_aabb(lo, hi, vec3(1.5, 0.3, 0.0), d, 1e30)

        test_kernel()
        assert result[0] == 1
        assert result[1] == 1
        assert result[2] == 0

        box = AABB.from_points([[0, 0, -6], [1, 1, -4]])
        direction = np.array([0.0, 0.0, -1.0])
        assert box.hit(np.array([0.0, 0.3, 0.0]), direction)
        assert box.hit(np.array([1.0, 1.0, 0.0]), direction)
        assert not box.hit(np.array([1.5, 0.3, 0.0]), direction)


class TestBVHBuild:
    """Tests for BVH construction."""

    def test_rejects_empty_and_malformed(self):
        """Test that build validates its input."""
        from src.pathtracer.geometry.bvh import BVH

        with pytest.raises(ValueError, match="zero triangles"):
            BVH.build(np.zeros((0, 3, 3), dtype=np.float32))
        with pytest.raises(ValueError, match="shape"):
            BVH.build(np.zeros((4, 3), dtype=np.float32))

    def test_single_leaf(self):
        """Test a small mesh becomes one leaf."""
        from src.pathtracer.geometry.bvh import BVH

        bvh = BVH.build(_random_triangles(3))
        assert bvh.node_count == 1
        assert bvh.count[0] == 3
        assert bvh.skip[0] == 1

    def test_indices_are_a_permutation(self):
        """Test every original triangle appears exactly once in the leaves."""
        from src.pathtracer.geometry.bvh import BVH, MAX_LEAF_TRIANGLES

        n = 200
        bvh = BVH.build(_random_triangles(n))

        assert sorted(bvh.triangle_indices.tolist()) == list(range(n))
        leaf_counts = bvh.count[bvh.count > 0]
        assert leaf_counts.sum() == n
        assert leaf_counts.max() <= MAX_LEAF_TRIANGLES

    def test_leaf_boxes_contain_their_triangles(self):
        """Test the back-references point at triangles inside the leaf box."""
        from src.pathtracer.geometry.bvh import BVH

        tris = _random_triangles(100, seed=3)
        bvh = BVH.build(tris)

        for i in range(bvh.node_count):
            count = int(bvh.count[i])
            first = int(bvh.first[i])
            for idx in bvh.triangle_indices[first : first + count]:
                assert np.all(tris[idx] >= bvh.bounds_min[i] - 1e-6)
                assert np.all(tris[idx] <= bvh.bounds_max[i] + 1e-6)

    def test_skip_links_are_forward(self):
        """Test skip links always move forward and end at node_count."""
        from src.pathtracer.geometry.bvh import BVH

        bvh = BVH.build(_random_triangles(64, seed=5))
        for i in range(bvh.node_count):
            assert i < bvh.skip[i] <= bvh.node_count
        assert bvh.skip[0] == bvh.node_count

    def test_coincident_centroids_still_split(self):
        """Test the build terminates when every centroid is the same."""
        from src.pathtracer.geometry.bvh import BVH

        tri = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=np.float32)
        bvh = BVH.build(np.repeat(tri[None], 17, axis=0))
        assert bvh.leaf_count >= 5


class TestBVHCandidates:
    """Tests for the host broad phase."""

    def test_candidates_contain_every_hit_triangle(self):
        """Test no truly hit triangle is culled."""
        from src.pathtracer.geometry.bvh import BVH

        tris = _random_triangles(300, seed=11)
        bvh = BVH.build(tris)
        origin = np.array([0.0, 0.0, 20.0])

        for target in range(0, 300, 7):
            centroid = tris[target].astype(np.float64).mean(axis=0)
            direction = centroid - origin
            direction /= np.linalg.norm(direction)

            hits = [
                (t, i)
                for i in range(len(tris))
                if (t := _ray_triangle(origin, direction, tris[i])) is not None
            ]
            nearest = min(hits)[1]

            candidates = set(bvh.candidates(origin, direction))
            assert target in candidates
            assert nearest in candidates

    def test_candidates_prune(self):
        """Test a ray far from all geometry gets no candidates."""
        from src.pathtracer.geometry.bvh import BVH

        bvh = BVH.build(_random_triangles(100, seed=2))
        assert bvh.candidates(np.array([100.0, 100.0, 100.0]), np.array([0.0, 1.0, 0.0])) == []
