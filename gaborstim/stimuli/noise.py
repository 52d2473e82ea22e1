"""Visual noise frames for cycling animation backgrounds."""
import numpy as np
from scipy import stats


class Noise:
    """Base for greyscale noise fields on a luminance pedestal.

    Values are handled on the [-1, 1] scale (0 is mean grey) and returned as
    8-bit greyscale frames.

    """
    def __init__(self, size, contrast=1, background=0):

        self.size = int(round(size))
        self.background = background
        self.mean = background
        self.contrast = contrast

    @property
    def contrast(self):
        """Control on 0-1 scale, approximately matched to a grating."""
        return self._contrast

    @contrast.setter
    def contrast(self, val):
        self._set_rv(val)
        self._contrast = val

    def frame(self, rng=None):
        """Generate one new frame of random values."""
        if rng is None:
            rng = np.random.RandomState()

        vals = self.rv.rvs(size=(self.size, self.size), random_state=rng)
        vals = np.clip(vals, -1, 1)
        return np.floor((vals + 1) / 2 * 255).astype(np.uint8)

    def _set_rv(self, contrast):
        raise NotImplementedError


class GaussianNoise(Noise):
    """Noise field with Gaussian statistics parameterized by contrast."""
    def __init__(self, size, contrast=1, background=0):

        self._constant = .7  # Approximately matches RMS contrast of grating
        super().__init__(size, contrast, background)

    def _set_rv(self, contrast):

        # Scale "Michelson contrast" by background
        scaling_factor = self.background + 1

        # Convert from "Michelson" contrast to gaussian RMS
        self.sd = scaling_factor * self._constant * contrast

        self.rv = stats.norm(self.mean, self.sd)


class UniformNoise(Noise):
    """Noise field with uniform statistics parameterized by contrast."""
    def _set_rv(self, contrast):

        # Scale Michelson contrast by background
        scaling_factor = self.background + 1

        # Determine width and the lower bound of the interval
        # (This is the scipy parameterization not [low, high])
        width = scaling_factor * contrast
        low = self.mean - width / 2

        # Multiply by 2 as values are in [-1, 1]
        low, width = low * 2, width * 2

        self.rv = stats.uniform(low, width)


noise_kinds = dict(uniform=UniformNoise, gaussian=GaussianNoise)


def generate_noise_frames(size, n_frames, kind="uniform", contrast=1,
                          background=0, random_state=None):
    """Generate a list of noise frames usable as animation frames.

    Parameters
    ----------
    size : int
        Width and height of each frame in pixels.
    n_frames : int
        Number of independent frames.
    kind : "uniform" | "gaussian"
        Distribution of the pixel values.
    contrast : float
        Contrast on a 0-1 scale.
    background : float
        Mean luminance on the [-1, 1] scale.
    random_state : numpy.random.RandomState or int, optional
        Source of randomness, or a seed for one.

    Returns
    -------
    frames : list of uint8 arrays, shape (size, size)

    """
    try:
        noise = noise_kinds[kind](size, contrast, background)
    except KeyError:
        raise ValueError("Unknown noise kind {!r}".format(kind))
    if not isinstance(random_state, np.random.RandomState):
        random_state = np.random.RandomState(random_state)
    return [noise.frame(random_state) for _ in range(n_frames)]


def generate_noise(size, **kwargs):
    """Generate a single noise frame."""
    return generate_noise_frames(size, 1, **kwargs)[0]
