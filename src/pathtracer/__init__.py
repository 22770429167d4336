"""Taichi-based progressive Monte Carlo path tracer.

Subpackages:
    core: Rays, random streams, colors, the integrator and progressive rendering
    geometry: Spheres, planes, triangles, meshes and their BVH
    materials: Diffuse, metal, dielectric and emissive materials
    scene: Scene objects, the World, the procedural sky and a demo scene
    camera: Primary ray generation

Taichi must be initialized (see ``config.init_backend``) before importing
the subpackages, since they allocate their fields at import time.
"""

__version__ = "0.1.0"
