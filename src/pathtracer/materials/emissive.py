"""Emissive (light source) material.

Emissive surfaces terminate every path that reaches them. They contribute
light only through ``emissivity()``, never through scattering.
"""

import math
from dataclasses import dataclass

from src.pathtracer.core.color import Color
from src.pathtracer.materials.base import Material, MaterialType, validate_color


@dataclass(frozen=True)
class Emissive(Material):
    """Light emitting material.

    Attributes:
        color: Emission color. Not limited to [0, 1].
        intensity: Scale of the emitted light, >= 0.
    """

    intensity: float = 1.0

    @property
    def material_type(self) -> MaterialType:
        return MaterialType.EMISSIVE

    def emissivity(self) -> Color:
        return (
            self.color[0] * self.intensity,
            self.color[1] * self.intensity,
            self.color[2] * self.intensity,
        )

    def __post_init__(self) -> None:
        validate_color(self.color, require_albedo=False)
        if not math.isfinite(self.intensity) or self.intensity < 0.0:
            raise ValueError(f"Intensity = {self.intensity} must be finite and non-negative")
