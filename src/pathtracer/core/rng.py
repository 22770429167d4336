"""Per-pixel random number streams for Monte Carlo sampling.

Every parallel unit of work owns its random state explicitly. A stream is a
single 32-bit integer threaded through the sampling functions: each call takes
the current state and returns the drawn value together with the advanced
state. No generator is shared between pixels, so rendering never contends on
random state and a pixel's samples depend only on its seed.

The generator is a PCG-style LCG step followed by an output permutation
(RXS-M-XS), seeded by hashing the pixel index with the frame seed.

Example:
    >>> @ti.kernel
    ... def sample() -> ti.f32:
    ...     state = seed_stream(0, 42)
    ...     u, state = next_float(state)
    ...     return u
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# LCG multiplier and increment (increment must be odd for a full period)
_PCG_MULTIPLIER = 747796405
_PCG_INCREMENT = 1442695041

# Output permutation multiplier
_PCG_OUTPUT_MULTIPLIER = 277803737

# 2^-24, maps the top 24 bits of a draw to [0, 1)
_INV_2_24 = 1.0 / 16777216.0

# Upper bound on rejection sampling attempts
_MAX_REJECTION_ATTEMPTS = 64


@ti.func
def _permute(state: ti.u32) -> ti.u32:
    """Apply the PCG RXS-M-XS output permutation to a state word."""
    shift = (state >> ti.cast(28, ti.u32)) + ti.cast(4, ti.u32)
    word = ((state >> shift) ^ state) * ti.cast(_PCG_OUTPUT_MULTIPLIER, ti.u32)
    return (word >> ti.cast(22, ti.u32)) ^ word


@ti.func
def _advance(state: ti.u32) -> ti.u32:
    """Advance the LCG state by one step."""
    return state * ti.cast(_PCG_MULTIPLIER, ti.u32) + ti.cast(_PCG_INCREMENT, ti.u32)


@ti.func
def hash_u32(value: ti.u32) -> ti.u32:
    """Hash a 32-bit value into a well mixed 32-bit value."""
    return _permute(_advance(value))


@ti.func
def seed_stream(pixel_index: ti.i32, frame_seed: ti.i32) -> ti.u32:
    """Derive the initial random state for one pixel in one frame.

    Args:
        pixel_index: Linear index of the pixel (x + y * width).
        frame_seed: Seed of the current frame. Different frames must use
            different seeds to draw fresh samples.

    Returns:
        The initial stream state.
    """
    seed_hash = hash_u32(ti.cast(frame_seed, ti.u32))
    return hash_u32(ti.cast(pixel_index, ti.u32) ^ seed_hash)


@ti.func
def next_u32(state: ti.u32):
    """Draw a 32-bit random integer.

    Returns:
        A tuple of (value, new_state).
    """
    new_state = _advance(state)
    return _permute(new_state), new_state


@ti.func
def next_float(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Returns:
        A tuple of (value, new_state).
    """
    value, new_state = next_u32(state)
    u = ti.cast(value >> ti.cast(8, ti.u32), ti.f32) * _INV_2_24
    return u, new_state


@ti.func
def random_in_unit_sphere(state: ti.u32):
    """Generate a uniformly distributed point inside the unit sphere.

    Uses rejection sampling on the enclosing cube.

    Returns:
        A tuple of (point, new_state). The point has length < 1.
    """
    s = state
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(_MAX_REJECTION_ATTEMPTS):
        if not found:
            x, s = next_float(s)
            y, s = next_float(s)
            z, s = next_float(s)
            candidate = vec3(x * 2.0 - 1.0, y * 2.0 - 1.0, z * 2.0 - 1.0)
            if tm.dot(candidate, candidate) < 1.0:
                p = candidate
                found = True
    return p, s
