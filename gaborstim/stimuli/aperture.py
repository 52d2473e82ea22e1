import numpy as np
from scipy import ndimage

from ..config import UNSET


def resolve_aperture(size, radius=UNSET, blur=UNSET):
    """Replace unset aperture values with defaults relative to ``size``."""
    if radius is None or radius == UNSET:
        radius = size / 4
    if blur is None or blur == UNSET:
        blur = size / 8
    return radius, blur


def aperture_mask(size, radius=UNSET, blur=UNSET):
    """Soft-edged circular transparency mask.

    A solid disk of ``radius`` centered on a ``size x size`` grid is blurred
    with an isotropic Gaussian whose standard deviation is ``blur``. The
    result falls from ~1 in the center to ~0 outside ``radius + 2 * blur``.

    Parameters
    ----------
    size : int
        Width and height of the mask in pixels.
    radius, blur : float
        Disk radius and blur strength in pixels. ``-1`` means size / 4 and
        size / 8 respectively.

    Returns
    -------
    mask : float array, shape (size, size)
        Opacity values in [0, 1].

    """
    size = int(round(size))
    radius, blur = resolve_aperture(size, radius, blur)

    coords = np.arange(size) + .5 - size / 2
    x, y = np.meshgrid(coords, coords)
    disk = (np.hypot(x, y) <= radius).astype(float)

    if blur > 0:
        disk = ndimage.gaussian_filter(disk, sigma=blur,
                                       mode="constant", cval=0)
    return np.clip(disk, 0, 1)


def apply_aperture(pattern, radius=UNSET, blur=UNSET):
    """Multiply the alpha channel of an RGBA pattern by the aperture mask.

    Unset values are resolved against the actual size of ``pattern``.

    """
    size = pattern.shape[0]
    out = pattern.copy()
    out[..., 3] *= aperture_mask(size, radius, blur)
    return out
