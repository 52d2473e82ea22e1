"""Assembly of the grating, aperture, fixation cross and background."""
import numpy as np

from ..config import AnimationBackground, ImageBackground, resolve
from ..tools import composite
from .aperture import apply_aperture
from .background import set_up_background
from .fixation import FixationCross
from .grating import Grating


class GaborStimulus:
    """Fully built visual tree for one trial.

    The pattern and fixation layers are fixed; the background layer may
    change over time (animation frames, late image decode). ``render``
    composes all layers into a single straight-alpha RGBA frame.

    """
    def __init__(self, pattern, blend_mode, background, fixation=None):

        self.pattern = pattern
        self.blend_mode = blend_mode
        self.background = background
        self.fixation = fixation
        self._first = True

    @property
    def size(self):
        return self.pattern.shape[0]

    def needs_redraw(self):
        """True if the composed frame differs from the last ``render``."""
        changed = self.background.poll()
        return changed or self._first

    def render(self):
        self._first = False
        frame = composite(self.background.render(), self.pattern,
                          self.blend_mode)
        if self.fixation is not None:
            frame = composite(frame, self.fixation)
        return frame


class PreparedStimulus:
    """Stimulus assets computed once and reused across trials.

    Building the pattern raster, the blurred aperture and decoding the
    background frames is the expensive part of a trial. Doing it ahead of
    time keeps the trial onset free of that work. The object is read-only
    while a trial is running.

    """
    def __init__(self, config, random_state=None):

        self.config = config = resolve(config)

        size = int(round(config.stimulus.size))
        self.grating = Grating.from_config(config.stimulus)
        self.pattern = apply_aperture(self.grating.rgba(),
                                      config.aperture.radius,
                                      config.aperture.blur)

        if config.fixation_cross.display:
            self.fixation = FixationCross.from_config(size,
                                                      config.fixation_cross)
            self.fixation_layer = self.fixation.rasterize()
        else:
            self.fixation = None
            self.fixation_layer = None

        self.background = set_up_background(config.background, size,
                                            random_state)

    def matches(self, config):
        """True if ``config`` would render the same stimulus."""
        mine = self.config
        if (mine.stimulus, mine.aperture, mine.fixation_cross) != (
                config.stimulus, config.aperture, config.fixation_cross):
            return False
        return _same_background(mine.background, config.background)

    def view(self):
        """A new visual tree sharing the prepared layers."""
        return GaborStimulus(self.pattern,
                             self.config.stimulus.blend_mode,
                             self.background,
                             self.fixation_layer)


def _same_source(a, b):
    """Compare image sources, which may be paths, URIs or arrays."""
    if a is b:
        return True
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        return np.array_equal(a, b)
    return a == b


def _same_background(a, b):

    if type(a) is not type(b):
        return False
    if isinstance(a, AnimationBackground):
        return (a.fps == b.fps
                and len(a.frames) == len(b.frames)
                and all(_same_source(x, y)
                        for x, y in zip(a.frames, b.frames)))
    if isinstance(a, ImageBackground):
        return _same_source(a.source, b.source)
    return a == b


def prepare_stimulus(config, random_state=None):
    """Resolve ``config`` and pre-compute its stimulus assets."""
    return PreparedStimulus(config, random_state)


def snapshot(config, random_state=None):
    """Render a single composed frame as an RGBA float array.

    Animation backgrounds are advanced once so that a frame is shown; image
    sources are waited for.

    """
    prepared = prepare_stimulus(config, random_state)
    background = prepared.background
    if background.fps is not None:
        background.advance()
    background.wait()
    return np.asarray(prepared.view().render())
