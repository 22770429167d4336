"""Materials module.

Components:
    base: Material base class, MaterialType tags and color validation
    diffuse: Ideal matte reflection
    metal: Specular reflection with optional fuzz
    dielectric: Glass-like reflection and refraction (Schlick Fresnel)
    emissive: Light sources, which never scatter
    registry: Material table uploaded for kernels and type dispatch

Each material has a base color and an emissivity (black unless emissive).
Scattering is implemented as Taichi functions that take and return the
pixel's random stream state.
"""

from .base import Material, MaterialType, validate_color
from .dielectric import Dielectric, scatter_dielectric
from .diffuse import Diffuse, scatter_diffuse
from .emissive import Emissive
from .metal import Metal, scatter_metal
from .registry import (
    MAX_MATERIALS,
    add_material,
    clear_materials,
    get_material_count,
    material_color,
    material_emissivity,
    scatter_material,
)

__all__ = [
    # Base
    "Material",
    "MaterialType",
    "validate_color",
    # Variants
    "Diffuse",
    "Metal",
    "Dielectric",
    "Emissive",
    "scatter_diffuse",
    "scatter_metal",
    "scatter_dielectric",
    # Table
    "MAX_MATERIALS",
    "add_material",
    "clear_materials",
    "get_material_count",
    "material_color",
    "material_emissivity",
    "scatter_material",
]
