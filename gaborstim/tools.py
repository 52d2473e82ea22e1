import re

import numpy as np
from scipy import stats
from matplotlib import colors as mcolors


def parse_color(color):
    """Convert a CSS-style color specification to an RGBA tuple in [0, 1].

    Accepts color names, hex strings, ``rgb(r, g, b)`` / ``rgba(r, g, b, a)``
    strings with 0-255 channels, ``"transparent"``, or a sequence of
    three or four floats in [0, 1].

    """
    if isinstance(color, str):
        text = color.strip().lower()
        if text in ("transparent", "none"):
            return (0., 0., 0., 0.)
        match = re.match(r"rgba?\(([^)]*)\)$", text)
        if match:
            parts = [float(p) for p in match.group(1).split(",")]
            if len(parts) not in (3, 4):
                raise ValueError("Bad color {!r}".format(color))
            rgb = [p / 255 for p in parts[:3]]
            alpha = parts[3] if len(parts) == 4 else 1.
            return tuple(np.clip(rgb + [alpha], 0, 1).tolist())
    return tuple(float(v) for v in mcolors.to_rgba(color))


def solid_layer(size, color):
    """A ``size x size`` RGBA float layer filled with one color."""
    size = int(round(size))
    layer = np.empty((size, size, 4))
    layer[...] = parse_color(color)
    return layer


def _blend_normal(b, s):
    return s


def _blend_overlay(b, s):
    return np.where(b <= .5, 2 * b * s, 1 - 2 * (1 - b) * (1 - s))


blend_functions = dict(
    normal=_blend_normal,
    multiply=lambda b, s: b * s,
    screen=lambda b, s: b + s - b * s,
    overlay=_blend_overlay,
    darken=np.minimum,
    lighten=np.maximum,
    add=lambda b, s: np.minimum(b + s, 1),
    difference=lambda b, s: np.abs(b - s),
)


def composite(backdrop, source, blend_mode="normal"):
    """Composite an RGBA source layer over an RGBA backdrop.

    Follows the W3C compositing model: the blend function mixes colors where
    both layers are present and simple source-over alpha compositing is used
    elsewhere.

    Parameters
    ----------
    backdrop, source : arrays, shape (h, w, 4)
        Straight (non-premultiplied) RGBA values in [0, 1].
    blend_mode : string
        Key into ``blend_functions``.

    Returns
    -------
    out : array, shape (h, w, 4)
        Straight RGBA result.

    """
    try:
        blend = blend_functions[blend_mode]
    except KeyError:
        raise ValueError("Unknown blend mode {!r}".format(blend_mode))

    cb, ab = backdrop[..., :3], backdrop[..., 3:]
    cs, as_ = source[..., :3], source[..., 3:]

    # Source color as modified by the backdrop where the backdrop exists
    mixed = (1 - ab) * cs + ab * blend(cb, cs)

    ao = as_ + ab * (1 - as_)
    premult = as_ * mixed + ab * cb * (1 - as_)
    with np.errstate(invalid="ignore", divide="ignore"):
        co = np.where(ao > 0, premult / ao, 0)

    return np.concatenate([np.clip(co, 0, 1), ao], axis=-1)


def to_uint8(rgba):
    """Quantize a float RGBA image to 8 bits per channel."""
    return np.round(np.clip(rgba, 0, 1) * 255).astype(np.uint8)


def flexible_values(val, size=None, random_state=None,
                    min=-np.inf, max=np.inf):
    """Flexibly determine a number of values.

    Input format can be:
        - A numeric value, which will be used exactly.
        - A list of possible values, which will be randomly chosen from.
        - A tuple of (dist, arg0[, arg1, ...]), which will be used to generate
          random observations from a scipy random variable.

    Parameters
    ----------
    val : float, list, or tuple
        Flexibile specification of value, set of values, or distribution
        parameters. See above for more information.
    size : int or tuple, optional
        Output shape. A ``size`` of None implies a scalar result.
    random_state : numpy.random.RandomState object, optional
        Object to allow reproducible random values.
    min, max : float
        Exclusive limits on the return values that are enforced using rejection
        sampling.

    Returns
    -------
    out : scalar or array
        Output values with shape ``size``, or a scalar if ``size`` is None.

    """
    if random_state is None:
        random_state = np.random.RandomState()

    if np.isscalar(val):
        if size is None:
            return val
        out = np.ones(size, np.array(val).dtype) * val
    elif isinstance(val, list):
        idx = random_state.choice(len(val), size=size)
        if size is None:
            out = val[idx]
        else:
            out = np.array([val[i] for i in np.ravel(idx)]).reshape(size)
    elif isinstance(val, tuple):
        rv = getattr(stats, val[0])(*val[1:])
        out = truncated_sample(rv, 1 if size is None else size, min, max,
                               random_state=random_state)
        if size is None:
            out = out.item()
    else:
        raise TypeError("`val` must be scalar, list, or tuple")

    return out


def truncated_sample(rv, size=1, min=-np.inf, max=np.inf, **kwargs):
    """Sample from a random variate, rejecting values outside the limits.

    Parameters
    ----------
    rv : random variate object
        Must have a ``.rvs`` method for generating random samples.
    size : int or tuple, optional
        Output shape.
    min, max : float
        Exclusive limits on the distribution values.
    kwargs : key, value mappings
        Other keyword arguments are passed to ``rv.rvs()``.

    Returns
    -------
    out : array
        Samples from ``rv`` that are within (min, max).

    """
    out = np.empty(np.prod(size))
    replace = np.ones(np.prod(size), bool)
    while replace.any():
        out[replace] = rv.rvs(replace.sum(), **kwargs)
        replace = (out < min) | (out > max)
    return out.reshape(size)
