"""Material base class and type tags.

Materials are immutable host-side descriptions. Every material has a base
``color`` (albedo) and an ``emissivity()`` that defaults to black. Scattering
happens in Taichi functions (one module per material) dispatched on the
``MaterialType`` tag stored in the material table.
"""

import math
from dataclasses import dataclass
from enum import IntEnum

from src.pathtracer.core.color import BLACK, Color


class MaterialType(IntEnum):
    """Material type identifiers used for kernel dispatch."""

    DIFFUSE = 0
    METAL = 1
    DIELECTRIC = 2
    EMISSIVE = 3


def validate_color(color: Color, require_albedo: bool = True) -> None:
    """Check that a color is three finite, non-negative components.

    Args:
        color: The (R, G, B) color to check.
        require_albedo: If True, components must also be at most 1 so that
            scattering never adds energy.

    Raises:
        ValueError: If the color is malformed or out of range.
    """
    if len(color) != 3:
        raise ValueError(f"Color must have 3 components, got {len(color)}")

    for i, component in enumerate(color):
        if not math.isfinite(component) or component < 0.0:
            raise ValueError(f"Color component {i} = {component} must be finite and non-negative")
        if require_albedo and component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )


@dataclass(frozen=True)
class Material:
    """Base material.

    Attributes:
        color: Base albedo as (R, G, B).
    """

    color: Color

    @property
    def material_type(self) -> MaterialType:
        raise NotImplementedError

    def emissivity(self) -> Color:
        """Light emitted by the surface. Black unless overridden."""
        return BLACK

    def __post_init__(self) -> None:
        validate_color(self.color)
