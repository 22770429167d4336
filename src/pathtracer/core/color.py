"""Color palette, sanitizing and tone mapping.

Colors are linear RGB triples. Kernels work with ``vec3`` values; host code
uses plain ``(r, g, b)`` tuples such as the named palette below.
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

Color = tuple[float, float, float]

BLACK: Color = (0.0, 0.0, 0.0)
WHITE: Color = (1.0, 1.0, 1.0)
RED: Color = (1.0, 0.0, 0.0)
GREEN: Color = (0.0, 1.0, 0.0)
BLUE: Color = (0.0, 0.0, 1.0)
ORANGE: Color = (1.0, 0.5, 0.0)
GRAY: Color = (0.5, 0.5, 0.5)

# Smallest positive normal f32
_F32_MIN_NORMAL = 1.17549435e-38


@ti.func
def sanitize_color(color: vec3) -> vec3:
    """Replace non-finite and subnormal channels with zero.

    Degenerate scattering math can produce NaN or Inf. A single such value
    folded into the running average would corrupt the pixel permanently.
    """
    result = color
    for c in ti.static(range(3)):
        value = result[c]
        if tm.isnan(value) or tm.isinf(value):
            result[c] = 0.0
        elif value != 0.0 and ti.abs(value) < _F32_MIN_NORMAL:
            result[c] = 0.0
    return result


def tone_map_uint8(image: npt.NDArray[np.float32], gamma: float = 2.2) -> npt.NDArray[np.uint8]:
    """Convert a linear HDR image to 8-bit for display.

    Clamps to [0, 1], applies gamma correction and quantizes. Extra channels
    (alpha) are quantized without gamma.

    Args:
        image: Float array of shape (..., 3) or (..., 4).
        gamma: Gamma correction value. Default 2.2 for sRGB.

    Returns:
        A uint8 array of the same shape.
    """
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")

    clean = np.nan_to_num(image.astype(np.float32), nan=0.0, posinf=0.0, neginf=0.0)
    clamped = np.clip(clean, 0.0, 1.0)
    clamped[..., :3] = np.power(clamped[..., :3], 1.0 / gamma)
    return (clamped * 255.0 + 0.5).astype(np.uint8)
