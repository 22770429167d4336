"""Procedural sky used as the environment term for escaping rays.

The sky is a single-scattering Rayleigh + Mie approximation with a fixed
sun. Rays pointing below the horizon (direction.y < 0) see black. The
function is pure: the same direction always gives the same color.

Wavelengths are in micrometers (red 0.650, green 0.570, blue 0.475).
"""

import math

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Rayleigh and Mie scattering coefficients
RAYLEIGH_BRIGHTNESS = 0.0025
MIE_BRIGHTNESS = 0.0003

# Mie asymmetry factor, close to 1 for a strong forward lobe around the sun
MIE_ASYMMETRY = 0.98

WAVELENGTHS = (0.650, 0.570, 0.475)

# Fixed sun, slightly above the horizon in front of the default camera
SUN_DIRECTION = (0.0, 0.3, -1.0)
SUN_INTENSITY = 0.8

_sun_norm = math.sqrt(sum(c * c for c in SUN_DIRECTION))
_SUN = tuple(c / _sun_norm for c in SUN_DIRECTION)

_KR = tuple(RAYLEIGH_BRIGHTNESS / w**4.0 for w in WAVELENGTHS)
_KM = tuple(MIE_BRIGHTNESS / w**0.84 for w in WAVELENGTHS)


@ti.func
def background_color(direction: vec3) -> vec3:
    """Sky radiance seen along a ray direction.

    Blends a night extinction curve into a day curve (from the view
    elevation and the sun elevation) by the vertical factor
    t = 0.5 * (y + 1), then applies the Rayleigh and Mie phase terms and the
    sun intensity.

    Args:
        direction: The ray direction. Need not be unit length.

    Returns:
        The non-negative sky color, black below the horizon.
    """
    d = tm.normalize(direction)
    sun = vec3(_SUN[0], _SUN[1], _SUN[2])
    result = vec3(0.0, 0.0, 0.0)

    if d.y >= 0.0:
        kr = vec3(_KR[0], _KR[1], _KR[2])
        km = vec3(_KM[0], _KM[1], _KM[2])
        g = MIE_ASYMMETRY
        br = RAYLEIGH_BRIGHTNESS
        bm = MIE_BRIGHTNESS

        mu = tm.dot(d, sun)
        rayleigh_phase = 3.0 / (8.0 * tm.pi) * (1.0 + mu * mu)
        mie_phase = (
            kr + km * (1.0 - g * g) / (2.0 + g * g) / ti.pow(1.0 + g * g - 2.0 * g * mu, 1.5)
        ) / (br + bm)

        y = d.y
        horizon = ti.exp(-y * 16.0) + 0.1
        day_extinction = (
            ti.exp(-ti.exp(-((y + sun.y * 4.0) * horizon / 80.0) / br) * horizon * kr / br)
            * ti.exp(-y * ti.exp(-y * 8.0) * 4.0)
            * ti.exp(-y * 2.0)
            * 4.0
        )
        night_extinction = vec3(1.0, 1.0, 1.0) * (1.0 - ti.exp(sun.y)) * 0.2

        t = 0.5 * (y + 1.0)
        extinction = night_extinction * (1.0 - t) + day_extinction * t

        result = tm.max(rayleigh_phase * mie_phase * extinction * SUN_INTENSITY, 0.0)

    return result
