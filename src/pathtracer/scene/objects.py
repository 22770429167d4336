"""Scene objects: geometry bound to a material.

Scene objects form a closed set of variants tagged by ``ObjectType``:
SphereObject, PlaneObject, TriangleObject and Mesh. Each variant exposes its
``material`` and a host-side ``surface_normal(point)``; ray queries run in
kernels after the world is uploaded.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

import numpy as np

from src.pathtracer.geometry.mesh import Mesh
from src.pathtracer.materials.base import Material

Point = tuple[float, float, float]
Direction = tuple[float, float, float]


class ObjectType(IntEnum):
    """Object type identifiers used for kernel dispatch."""

    SPHERE = 0
    PLANE = 1
    TRIANGLE = 2
    MESH = 3


def _as_point(value, name: str) -> Point:
    """Convert to a finite 3-tuple of floats.

    Raises:
        ValueError: If the value does not have three finite components.
    """
    components = tuple(float(c) for c in value)
    if len(components) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(components)}")
    if not all(math.isfinite(c) for c in components):
        raise ValueError(f"{name} must be finite, got {components}")
    return components  # type: ignore[return-value]


@dataclass(frozen=True)
class SphereObject:
    """A sphere with a material.

    Attributes:
        center: Center point.
        radius: Radius, > 0.
        material: Surface material.
    """

    center: Point
    radius: float
    material: Material

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", _as_point(self.center, "Sphere center"))
        if not math.isfinite(self.radius) or self.radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {self.radius}")

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.SPHERE

    def surface_normal(self, point: Point) -> Direction:
        """Outward unit normal normalize(point - center)."""
        n = np.subtract(point, self.center)
        n = n / np.linalg.norm(n)
        return (float(n[0]), float(n[1]), float(n[2]))


@dataclass(frozen=True)
class PlaneObject:
    """An infinite plane with a material.

    The normal is normalized on construction.

    Attributes:
        origin: Any point on the plane.
        normal: Plane normal.
        material: Surface material.
    """

    origin: Point
    normal: Direction
    material: Material

    def __post_init__(self) -> None:
        object.__setattr__(self, "origin", _as_point(self.origin, "Plane origin"))
        normal = _as_point(self.normal, "Plane normal")
        length = math.sqrt(sum(c * c for c in normal))
        if length == 0.0:
            raise ValueError("Plane normal must be non-zero")
        object.__setattr__(self, "normal", tuple(c / length for c in normal))

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.PLANE

    def surface_normal(self, point: Point) -> Direction:
        """The constant plane normal."""
        return self.normal


@dataclass(frozen=True)
class TriangleObject:
    """A single flat-shaded triangle with a material.

    Attributes:
        a: First vertex.
        b: Second vertex.
        c: Third vertex.
        material: Surface material.
    """

    a: Point
    b: Point
    c: Point
    material: Material

    def __post_init__(self) -> None:
        object.__setattr__(self, "a", _as_point(self.a, "Triangle vertex a"))
        object.__setattr__(self, "b", _as_point(self.b, "Triangle vertex b"))
        object.__setattr__(self, "c", _as_point(self.c, "Triangle vertex c"))

    @property
    def object_type(self) -> ObjectType:
        return ObjectType.TRIANGLE

    def surface_normal(self, point: Point) -> Direction:
        """Flat normal normalize(cross(b - a, c - a)). Zero if degenerate."""
        n = np.cross(np.subtract(self.b, self.a), np.subtract(self.c, self.a))
        length = np.linalg.norm(n)
        if length > 0.0:
            n = n / length
        return (float(n[0]), float(n[1]), float(n[2]))


SceneObject = Union[SphereObject, PlaneObject, TriangleObject, Mesh]


def object_type_of(obj: SceneObject) -> ObjectType:
    """Tag of a scene object.

    Raises:
        TypeError: If the object is not one of the scene object variants.
    """
    if isinstance(obj, Mesh):
        return ObjectType.MESH
    if isinstance(obj, (SphereObject, PlaneObject, TriangleObject)):
        return obj.object_type
    raise TypeError(f"Unsupported scene object: {type(obj).__name__}")
