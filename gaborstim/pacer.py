"""Fixed-rate animation on top of a variable-rate display refresh."""
from psychopy import logging


class FramePacer:
    """Call a function at a target rate, driven by display refresh callbacks.

    The refresh source must provide ``request_refresh(callback)``, which
    schedules ``callback(timestamp_ms)`` for the next display refresh and
    returns a handle, and ``cancel_refresh(handle)``.

    A tick fires on the first refresh after ``start`` and then on every
    refresh at least one frame period after the previous tick. The reference
    time only advances by whole periods (the remainder is carried over), so
    jitter does not accumulate into drift.

    """
    def __init__(self, refresh_source):

        self.refresh_source = refresh_source
        self.fps = None
        self.period = None
        self.on_tick = None
        self.ticks = 0

        self._stopped = True
        self._handle = None
        self._last_tick = None

    @property
    def running(self):
        return not self._stopped

    def start(self, fps, on_tick):
        """Begin calling ``on_tick`` at ``fps`` ticks per second."""
        if fps <= 0:
            raise ValueError("fps must be positive")
        if self.running:
            self.stop()

        self.fps = fps
        self.period = 1000 / fps
        self.on_tick = on_tick
        self.ticks = 0
        self._last_tick = None
        self._stopped = False
        self._handle = self.refresh_source.request_refresh(self._on_refresh)

    def stop(self):
        """Stop ticking; safe to call repeatedly."""
        if self._stopped:
            return
        self._stopped = True
        if self._handle is not None:
            self.refresh_source.cancel_refresh(self._handle)
            self._handle = None
        logging.debug("Frame pacer stopped after {} ticks".format(self.ticks))

    def _on_refresh(self, timestamp):

        # A refresh already in flight when stop() was called
        if self._stopped:
            return

        self._handle = self.refresh_source.request_refresh(self._on_refresh)

        if self._last_tick is None:
            self._last_tick = timestamp
        else:
            elapsed = timestamp - self._last_tick
            if elapsed < self.period:
                return
            self._last_tick = timestamp - (elapsed % self.period)

        self.ticks += 1
        self.on_tick()
