"""Background layers shown behind the grating.

Three variants exist: a flat color, a static image, and an animation that
cycles through a list of frames at a fixed rate. Image data is decoded off
the main thread; layers report through ``poll`` when a redraw is needed.

"""
import base64
import io
import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from PIL import Image
from psychopy import logging

from ..config import AnimationBackground, ColorBackground, ImageBackground
from ..pacer import FramePacer
from ..tools import solid_layer, to_uint8


def load_image(source, size):
    """Decode an image source into a ``size x size`` RGBA float array.

    ``source`` may be a file path, a ``data:`` URI, or a numpy array
    (greyscale, RGB or RGBA; uint8 or floats in [0, 1]). Images are resized
    to fill the stimulus area.

    """
    size = int(round(size))

    if isinstance(source, np.ndarray):
        arr = source
        if arr.dtype != np.uint8:
            arr = to_uint8(arr)
        img = Image.fromarray(arr)
    elif isinstance(source, str) and source.startswith("data:"):
        _, _, payload = source.partition(",")
        img = Image.open(io.BytesIO(base64.b64decode(payload)))
    else:
        img = Image.open(source)

    img = img.convert("RGBA")
    if img.size != (size, size):
        img = img.resize((size, size), Image.BILINEAR)
    return np.asarray(img, float) / 255


class ImageSource:
    """Image that is decoded asynchronously on a worker pool.

    Arrays, and any source given without an ``executor``, are decoded
    synchronously.

    """
    def __init__(self, source, size, executor=None):

        self.source = source
        self.size = size
        self.image = None
        self.error = None
        self._done = threading.Event()

        if executor is None or isinstance(source, np.ndarray):
            self._decode()
        else:
            executor.submit(self._decode)

    def _decode(self):
        try:
            self.image = load_image(self.source, self.size)
        except (OSError, ValueError) as err:
            self.error = err
        finally:
            self._done.set()

    @property
    def done(self):
        return self._done.is_set()

    @property
    def ready(self):
        return self.done and self.image is not None

    def wait(self, timeout=None):
        """Block until decoding finishes; return True if it did."""
        return self._done.wait(timeout)


def decode_sources(sources, size, max_workers=4):
    """Start decoding all ``sources`` on one shared pool of threads."""
    executor = ThreadPoolExecutor(max_workers=max_workers,
                                  thread_name_prefix="gaborstim-decode")
    try:
        return [ImageSource(s, size, executor) for s in sources]
    finally:
        # Submitted decodes still run; the threads exit once they finish
        executor.shutdown(wait=False)


class ColorLayer:

    fps = None

    def __init__(self, color, size):

        self.color = color
        self._layer = solid_layer(size, color)

    def render(self):
        return self._layer

    def poll(self):
        return False

    def advance(self):
        pass

    def start(self, refresh_source):
        return None

    def wait(self, timeout=None):
        return True


class ImageLayer:

    fps = None

    def __init__(self, source, size):

        self.image, = decode_sources([source], size, max_workers=1)
        self._blank = np.zeros((int(round(size)),) * 2 + (4,))
        self._pending = True

    def render(self):
        if self.image.ready:
            return self.image.image
        return self._blank

    def poll(self):
        """Return True once, when the decoded image becomes available."""
        if not (self._pending and self.image.done):
            return False
        self._pending = False
        if self.image.error is not None:
            logging.warning("Could not load background image {!r}: {}".format(
                self.image.source, self.image.error))
            return False
        return True

    def advance(self):
        pass

    def start(self, refresh_source):
        return None

    def wait(self, timeout=None):
        return self.image.wait(timeout)


class AnimationLayer:
    """Frames shown in random order, never the same frame twice in a row."""
    def __init__(self, frames, fps, size, random_state=None):

        if not frames:
            raise ValueError("Animation needs at least one frame")

        if not isinstance(random_state, np.random.RandomState):
            random_state = np.random.RandomState(random_state)
        self.rng = random_state

        self.fps = fps
        self.frames = decode_sources(frames, size)
        self.index = None
        self._blank = np.zeros((int(round(size)),) * 2 + (4,))
        self._dirty = False
        self._pending = False

    def choose_frame(self):
        """Pick a random frame index different from the current one."""
        n = len(self.frames)
        if n == 1:
            return 0
        while True:
            idx = self.rng.randint(n)
            if idx != self.index:
                return idx

    def advance(self):
        """Switch to a new frame (called on each pacer tick)."""
        self.index = self.choose_frame()
        self._dirty = True
        self._pending = not self.frames[self.index].done

    def render(self):
        if self.index is None:
            return self._blank
        frame = self.frames[self.index]
        return frame.image if frame.ready else self._blank

    def poll(self):
        """Return True when the displayed frame has changed."""
        if self._pending and self.frames[self.index].done:
            self._pending = False
            self._dirty = True
        dirty, self._dirty = self._dirty, False
        return dirty

    def start(self, refresh_source):
        """Begin cycling frames; returns the running pacer."""
        pacer = FramePacer(refresh_source)
        pacer.start(self.fps, self.advance)
        return pacer

    def wait(self, timeout=None):
        """Block until every frame has been decoded."""
        return all(f.wait(timeout) for f in self.frames)


def set_up_background(background, size, random_state=None):
    """Create the layer for a resolved background variant."""
    if isinstance(background, ColorBackground):
        return ColorLayer(background.color, size)
    elif isinstance(background, ImageBackground):
        return ImageLayer(background.source, size)
    elif isinstance(background, AnimationBackground):
        return AnimationLayer(background.frames, background.fps, size,
                              random_state)
    raise TypeError("Unknown background {!r}".format(background))
