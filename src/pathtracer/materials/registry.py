"""Material table and kernel-side dispatch.

All materials of the active world are uploaded into one Structure-of-Arrays
table indexed by material id. Kernels call ``scatter_material``,
``material_color`` and ``material_emissivity`` with that id; dispatch is an
if/elif chain on the stored ``MaterialType`` tag.
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.materials.base import Material, MaterialType
from src.pathtracer.materials.dielectric import Dielectric, scatter_dielectric
from src.pathtracer.materials.diffuse import scatter_diffuse
from src.pathtracer.materials.metal import Metal, scatter_metal

vec3 = tm.vec3

# Maximum number of distinct materials in the scene
MAX_MATERIALS = 1024

_DIFFUSE = int(MaterialType.DIFFUSE)
_METAL = int(MaterialType.METAL)
_DIELECTRIC = int(MaterialType.DIELECTRIC)

material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_emissions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_fuzz = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_refraction_indices = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear the material table."""
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Append a material to the table.

    Args:
        material: Any of Diffuse, Metal, Dielectric or Emissive.

    Returns:
        The material id.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    fuzz = 0.0
    refraction_index = 1.0
    if isinstance(material, Metal):
        fuzz = material.fuzz
    elif isinstance(material, Dielectric):
        fuzz = material.fuzz
        refraction_index = material.refraction_index

    emission = material.emissivity()
    material_types[idx] = int(material.material_type)
    material_colors[idx] = vec3(*material.color)
    material_emissions[idx] = vec3(*emission)
    material_fuzz[idx] = fuzz
    material_refraction_indices[idx] = refraction_index
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the table."""
    return int(num_materials[None])


@ti.func
def material_color(material_id: ti.i32) -> vec3:
    """Base albedo of a material."""
    return material_colors[material_id]


@ti.func
def material_emissivity(material_id: ti.i32) -> vec3:
    """Emitted light of a material. Zero for all but emissive materials."""
    return material_emissions[material_id]


@ti.func
def scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    point: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Scatter a ray according to the material at material_id.

    Emissive materials and unknown tags absorb the path.

    Returns:
        A tuple of (did_scatter, origin, direction, attenuation, state).
        origin, direction and attenuation are only meaningful when
        did_scatter == 1.
    """
    mat_type = material_types[material_id]
    albedo = material_colors[material_id]

    did_scatter = 0
    origin = point
    direction = incident_direction
    attenuation = vec3(0.0, 0.0, 0.0)
    s = state

    if mat_type == _DIFFUSE:
        did_scatter, origin, direction, attenuation, s = scatter_diffuse(albedo, point, normal, s)
    elif mat_type == _METAL:
        did_scatter, origin, direction, attenuation, s = scatter_metal(
            albedo, material_fuzz[material_id], incident_direction, point, normal, s
        )
    elif mat_type == _DIELECTRIC:
        did_scatter, origin, direction, attenuation, s = scatter_dielectric(
            albedo,
            material_fuzz[material_id],
            material_refraction_indices[material_id],
            incident_direction,
            point,
            normal,
            s,
        )

    return did_scatter, origin, direction, attenuation, s
