"""PsychoPy implementation of the trial host.

The composed stimulus frame is produced with numpy and shown through a
single ImageStim. Each pass of the frame loop draws, flips the window, polls
the keyboard, and then dispatches timers and refresh callbacks.

"""
import numpy as np

from psychopy import core, event, logging, visual

from .loop import EventLoop
from .trial import KeyEvent, run_trial


class WindowSurface:
    """Display area on a PsychoPy window, centered at ``pos``."""
    def __init__(self, win, pos=(0, 0)):

        self.win = win
        self.pos = pos
        self.view = None
        self.stim = None
        self.opacity = 1

    def mount(self, view):
        """Attach a fully built stimulus view."""
        self.view = view
        image, mask = self._to_psychopy(view.render())
        self.stim = visual.ImageStim(self.win,
                                     image=image,
                                     mask=mask,
                                     size=(view.size, view.size),
                                     pos=self.pos,
                                     units="pix",
                                     opacity=self.opacity,
                                     autoLog=False)

    def set_opacity(self, value):
        self.opacity = value
        if self.stim is not None:
            self.stim.opacity = value

    def clear(self):
        self.view = None
        self.stim = None

    def draw(self):
        """Update the image if the view changed and draw it."""
        if self.view is None:
            return
        if self.view.needs_redraw():
            image, mask = self._to_psychopy(self.view.render())
            self.stim.image = image
            self.stim.mask = mask
        self.stim.draw()

    @staticmethod
    def _to_psychopy(rgba):
        """Split RGBA into PsychoPy image and mask arrays."""
        # PsychoPy arrays are bottom-up and use a [-1, 1] scale
        signed = np.flipud(rgba) * 2 - 1
        return signed[..., :3], signed[..., 3]


class KeySubscription:

    def __init__(self, on_key, valid_keys, persist):

        self.on_key = on_key
        self.valid_keys = list(valid_keys)
        self.persist = persist
        self.active = True
        self.clock = core.Clock()
        event.clearEvents()

    def cancel(self):
        self.active = False

    def poll(self):
        """Deliver keys pressed since the last poll."""
        if not self.active or not self.valid_keys:
            return
        keys = event.getKeys(keyList=self.valid_keys, timeStamped=self.clock)
        for key, timestamp in keys:
            if not self.active:
                break
            if not self.persist:
                self.active = False
            self.on_key(KeyEvent(key=key, rt=timestamp * 1000))


class PsychopyHost:
    """Runs trials on a PsychoPy window.

    Parameters
    ----------
    win : psychopy.visual.Window
        Open window; it is flipped once per loop iteration.
    clock : psychopy.core.Clock, optional
        Clock for timers and refresh timestamps.
    abort_keys : list of strings
        Pressing any of these quits the experiment.
    on_abort : callable, optional
        Called instead of ``core.quit`` when an abort key is pressed.

    """
    def __init__(self, win, clock=None, abort_keys=("escape",),
                 on_abort=None):

        self.win = win
        self.clock = core.Clock() if clock is None else clock
        self.abort_keys = list(abort_keys)
        self.on_abort = on_abort
        self.loop = EventLoop(self.now)
        self.surface = WindowSurface(win)
        self.subscriptions = []
        self.results = []

    def now(self):
        return self.clock.getTime() * 1000

    def subscribe_keys(self, on_key, valid_keys, persist=False):
        sub = KeySubscription(on_key, valid_keys, persist)
        self.subscriptions.append(sub)
        return sub

    def finish_trial(self, data):
        self.results.append(data)

    def check_abort(self):
        """Check whether the quit key has been pressed and exit if so."""
        if self.abort_keys and event.getKeys(self.abort_keys):
            logging.warning("Experiment aborted by keypress")
            if self.on_abort is None:
                core.quit()
            else:
                self.on_abort()

    def run_trial(self, config, choices=None, prepared=None,
                  max_duration=None):
        """Run one trial to completion and return its result.

        ``max_duration`` (seconds) bounds trials that would never end on
        their own; None is returned if it elapses first.

        """
        n_results = len(self.results)
        run_trial(config, self, choices=choices, prepared=prepared)

        start = self.clock.getTime()
        while len(self.results) == n_results:
            if (max_duration is not None
                    and self.clock.getTime() - start > max_duration):
                return None
            self.step()

        self.win.flip()
        return self.results[-1]

    def step(self):
        """Draw, flip, and dispatch input, timers and refresh callbacks."""
        self.check_abort()
        self.surface.draw()
        self.win.flip()
        timestamp = self.now()

        for sub in self.subscriptions:
            sub.poll()
        self.subscriptions = [s for s in self.subscriptions if s.active]

        self.loop.refresh(timestamp)
