"""Sinusoidal luminance grating rendered as a greyscale raster.

The grating varies along the vertical axis of an unrotated stimulus and is
constant along the horizontal axis. Its profile is sampled in equal bands::

    theta_i = 360 / resolution * i,  i = 1 .. resolution
    L_i = round((sin(pi / 180 * (theta_i * density + phase_offset)) + 1)
          / 2 * 255)

so ``density`` multiplies the angular argument (more stripes per stimulus)
and ``phase_offset`` shifts it in degrees. A phase offset of 90 puts the
first band at peak brightness.

"""
import numpy as np

from ..config import BLEND_MODES


def sine_luminance(theta, density, phase_offset):
    """Greyscale luminance (0-255) of the grating at angular position(s)."""
    theta = np.asarray(theta, float)
    arg = np.pi / 180 * (theta * density + phase_offset)
    return np.round((np.sin(arg) + 1) / 2 * 255).astype(np.uint8)


def band_luminance(resolution, density, phase_offset):
    """Luminance of each of ``resolution`` equal bands, first band first."""
    i = np.arange(1, int(resolution) + 1)
    return sine_luminance(360 / resolution * i, density, phase_offset)


def grating(size, density, phase_offset, rotation=0, resolution=None):
    """Generate a ``size x size`` luminance raster of the grating.

    Parameters
    ----------
    size : int
        Width and height of the raster in pixels.
    density : float
        Spatial frequency multiplier.
    phase_offset : float
        Phase of the sinusoid in degrees.
    rotation : float
        Clockwise rotation of the pattern about its center, in degrees.
    resolution : int, optional
        Number of bands the stimulus height is divided into. Defaults to one
        band per pixel row.

    Returns
    -------
    lum : uint8 array, shape (size, size)
        Luminance values, row 0 at the top.

    """
    size = int(round(size))
    if resolution is None:
        resolution = size
    bands = band_luminance(resolution, density, phase_offset)

    # Pixel centers relative to the stimulus center
    half = size / 2
    coords = np.arange(size) + .5 - half
    x, y = np.meshgrid(coords, coords)

    # Position along the grating axis after rotating the pattern
    theta = np.deg2rad(rotation)
    axis_pos = -x * np.sin(theta) + y * np.cos(theta) + half

    idx = np.floor(axis_pos / size * resolution).astype(int)
    idx = np.clip(idx, 0, resolution - 1)
    return bands[idx]


class Grating:
    """Luminance grating with opacity, rotation and a compositing mode."""
    def __init__(self, size, density=5, phase_offset=0, opacity=1,
                 rotation=0, blend_mode="normal", resolution=None):

        if blend_mode not in BLEND_MODES:
            raise ValueError("Unknown blend mode {!r}".format(blend_mode))

        self.size = int(round(size))
        self.density = density
        self.phase_offset = phase_offset
        self.opacity = opacity
        self.rotation = rotation
        self.blend_mode = blend_mode
        self.resolution = resolution

    @classmethod
    def from_config(cls, params, resolution=None):
        """Build from resolved ``StimulusParams``."""
        return cls(size=params.size,
                   density=params.density,
                   phase_offset=params.phase_offset,
                   opacity=params.opacity,
                   rotation=params.rotation,
                   blend_mode=params.blend_mode,
                   resolution=resolution)

    def luminance(self):
        """Greyscale raster of the rotated pattern."""
        return grating(self.size, self.density, self.phase_offset,
                       self.rotation, self.resolution)

    def rgba(self):
        """RGBA float raster with the opacity in the alpha channel."""
        lum = self.luminance() / 255
        out = np.empty(lum.shape + (4,))
        out[..., :3] = lum[..., None]
        out[..., 3] = self.opacity
        return out

    def gradient_stops(self, resolution=100):
        """Vector rendition: (offset fraction, luminance) for each stop."""
        lum = band_luminance(resolution, self.density, self.phase_offset)
        offsets = np.arange(1, resolution + 1) / resolution
        return list(zip(offsets.tolist(), lum.tolist()))
