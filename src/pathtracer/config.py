"""Render configuration and Taichi backend selection."""

import logging
from dataclasses import dataclass

import taichi as ti

logger = logging.getLogger(__name__)

# Recursion bound of the path estimator
MAX_DEPTH = 10

# Stochastic path evaluations per pixel per frame
SINGLE_SHOT_SAMPLES = 4

# Fraction of the surface color returned when the depth bound is reached
AMBIENT_FLOOR_FACTOR = 0.1

_ARCHS = {
    "cpu": ti.cpu,
    "gpu": ti.gpu,
    "cuda": ti.cuda,
    "vulkan": ti.vulkan,
    "metal": ti.metal,
}


@dataclass
class RenderSettings:
    """Per-renderer settings.

    Attributes:
        samples_per_frame: Paths traced per pixel in each frame.
        max_depth: Bounces before the ambient floor ends a path.
        seed: Base seed. Frame i uses seed + i, so a renderer started with
            the same seed reproduces the same frames.
    """

    samples_per_frame: int = SINGLE_SHOT_SAMPLES
    max_depth: int = MAX_DEPTH
    seed: int = 0

    def __post_init__(self) -> None:
        if self.samples_per_frame < 1:
            raise ValueError(f"samples_per_frame must be at least 1, got {self.samples_per_frame}")
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")
        if self.seed < 0:
            raise ValueError(f"seed must be non-negative, got {self.seed}")


def init_backend(arch: str = "gpu", debug: bool = False, random_seed: int = 0) -> None:
    """Initialize Taichi. Must run before any pathtracer module is imported.

    Args:
        arch: One of "cpu", "gpu", "cuda", "vulkan" or "metal". "gpu" picks
            any available GPU backend and falls back to the CPU.
        debug: Enable Taichi's debug mode (bounds checks).
        random_seed: Seed of Taichi's built-in generator.

    Raises:
        ValueError: If the architecture name is unknown.
    """
    if arch not in _ARCHS:
        raise ValueError(f"Unknown architecture {arch!r}, expected one of {sorted(_ARCHS)}")
    ti.init(arch=_ARCHS[arch], debug=debug, random_seed=random_seed)
    logger.info("Taichi initialized: arch=%s debug=%s", arch, debug)
