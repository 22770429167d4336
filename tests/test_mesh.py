"""Unit tests for triangle meshes.

Tests cover:
- Building meshes from vertex and face lists (fan triangulation)
- Rejecting malformed input
- The explicit acceleration structure lifecycle
- Brute-force normal lookup and its fallback
"""

import numpy as np
import pytest


def _material():
    from src.pathtracer.materials import Diffuse

    return Diffuse(color=(0.8, 0.8, 0.8))


QUAD_VERTICES = [(0, 0, -5), (1, 0, -5), (1, 1, -5), (0, 1, -5)]


class TestFromTriangles:
    """Tests for Mesh.from_triangles."""

    def test_triangles_copied_in_face_order(self):
        """Test triangle vertices come from the face indices."""
        from src.pathtracer.geometry.mesh import Mesh

        mesh = Mesh.from_triangles(QUAD_VERTICES, [(0, 1, 2), (0, 2, 3)], _material())

        assert mesh.triangle_count == 2
        assert mesh.triangles.dtype == np.float32
        np.testing.assert_allclose(mesh.triangles[1], [(0, 0, -5), (1, 1, -5), (0, 1, -5)])

    def test_polygon_is_fan_triangulated(self):
        """Test a quad face becomes two triangles sharing its first vertex."""
        from src.pathtracer.geometry.mesh import Mesh

        mesh = Mesh.from_triangles(QUAD_VERTICES, [(0, 1, 2, 3)], _material())

        assert mesh.triangle_count == 2
        np.testing.assert_allclose(mesh.triangles[0][0], mesh.triangles[1][0])

    def test_rejects_out_of_range_index(self):
        """Test faces referencing missing vertices abort construction."""
        from src.pathtracer.geometry.mesh import Mesh

        with pytest.raises(ValueError, match="references vertex 9"):
            Mesh.from_triangles(QUAD_VERTICES, [(0, 1, 9)], _material())
        with pytest.raises(ValueError, match="references vertex -1"):
            Mesh.from_triangles(QUAD_VERTICES, [(0, 1, -1)], _material())

    def test_rejects_short_face(self):
        """Test faces with fewer than three vertices."""
        from src.pathtracer.geometry.mesh import Mesh

        with pytest.raises(ValueError, match="need at least 3"):
            Mesh.from_triangles(QUAD_VERTICES, [(0, 1)], _material())

    def test_rejects_bad_vertices(self):
        """Test malformed and non-finite vertex arrays."""
        from src.pathtracer.geometry.mesh import Mesh

        with pytest.raises(ValueError, match="shape"):
            Mesh.from_triangles([(0, 0), (1, 1), (2, 2)], [(0, 1, 2)], _material())
        with pytest.raises(ValueError, match="finite"):
            Mesh.from_triangles([(0, 0, 0), (1, 0, 0), (0, np.nan, 0)], [(0, 1, 2)], _material())

    def test_rejects_empty_face_list(self):
        """Test a mesh without faces."""
        from src.pathtracer.geometry.mesh import Mesh

        with pytest.raises(ValueError, match="at least one face"):
            Mesh.from_triangles(QUAD_VERTICES, [], _material())


class TestAccelerationStructure:
    """Tests for the build-once acceleration structure."""

    def test_unbuilt_mesh_cannot_be_queried(self):
        """Test querying before build_acceleration_structure() raises."""
        from src.pathtracer.geometry.mesh import Mesh

        mesh = Mesh.from_triangles(QUAD_VERTICES, [(0, 1, 2, 3)], _material())

        assert not mesh.is_built
        with pytest.raises(RuntimeError, match="not built"):
            mesh.candidates((0.5, 0.5, 0.0), (0.0, 0.0, -1.0))

    def test_build_then_query(self):
        """Test candidates after building."""
        from src.pathtracer.geometry.mesh import Mesh

        mesh = Mesh.from_triangles(QUAD_VERTICES, [(0, 1, 2, 3)], _material())
        mesh.build_acceleration_structure()

        assert mesh.is_built
        assert sorted(mesh.candidates((0.5, 0.5, 0.0), (0.0, 0.0, -1.0))) == [0, 1]

    def test_bvh_property(self):
        """Test the bvh property raises before the build and returns the built hierarchy after."""
        from src.pathtracer.geometry.mesh import Mesh

        mesh = Mesh.from_triangles(QUAD_VERTICES, [(0, 1, 2, 3)], _material())
        with pytest.raises(RuntimeError, match="not built"):
            mesh.bvh

        built = mesh.build_acceleration_structure()
        assert mesh.bvh is built
        assert mesh.require_acceleration_structure() is built

    def test_second_build_raises(self):
        """Test the structure is built exactly once."""
        from src.pathtracer.geometry.mesh import Mesh

        mesh = Mesh.from_triangles(QUAD_VERTICES, [(0, 1, 2, 3)], _material())
        mesh.build_acceleration_structure()
        with pytest.raises(RuntimeError, match="already built"):
            mesh.build_acceleration_structure()

    def test_bounding_box(self):
        """Test the mesh bounds cover all vertices."""
        from src.pathtracer.geometry.mesh import Mesh

        mesh = Mesh.from_triangles(QUAD_VERTICES, [(0, 1, 2, 3)], _material())
        box = mesh.bounding_box()
        np.testing.assert_allclose(box.min, [0, 0, -5])
        np.testing.assert_allclose(box.max, [1, 1, -5])


class TestSurfaceNormal:
    """Tests for the brute-force normal lookup."""

    def test_normal_of_containing_triangle(self):
        """Test a point on the quad gets the quad's flat normal."""
        from src.pathtracer.geometry.mesh import Mesh

        mesh = Mesh.from_triangles(QUAD_VERTICES, [(0, 1, 2, 3)], _material())
        n = mesh.surface_normal((0.25, 0.75, -5.0))
        assert n == pytest.approx((0.0, 0.0, 1.0))

    def test_fallback_to_up(self):
        """Test a point off the mesh gets the canonical up vector."""
        from src.pathtracer.geometry.mesh import UP, Mesh

        mesh = Mesh.from_triangles(QUAD_VERTICES, [(0, 1, 2, 3)], _material())
        assert mesh.surface_normal((5.0, 5.0, 5.0)) == UP

    def test_triangle_normals(self):
        """Test per-triangle flat normals."""
        from src.pathtracer.geometry.mesh import Mesh

        mesh = Mesh.from_triangles(QUAD_VERTICES, [(0, 1, 2), (0, 2, 1)], _material())
        normals = mesh.triangle_normals()
        np.testing.assert_allclose(normals[0], [0, 0, 1], atol=1e-6)
        np.testing.assert_allclose(normals[1], [0, 0, -1], atol=1e-6)
