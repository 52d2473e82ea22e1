"""Lifecycle of a single stimulus presentation and key response.

A trial talks to its environment only through a host object, which must
provide:

``loop``
    An ``EventLoop`` (or compatible object) for one-shot timers and display
    refresh callbacks.
``surface``
    The display area, with ``mount(view)``, ``set_opacity(value)`` and
    ``clear()``.
``subscribe_keys(on_key, valid_keys, persist=False)``
    Start delivering ``KeyEvent`` objects for presses of ``valid_keys`` to
    ``on_key``. Returns a subscription with a ``cancel()`` method. Without
    ``persist`` the subscription ends after the first delivered key.
``finish_trial(data)``
    Receives the result mapping, once per trial.

"""
import enum
from dataclasses import dataclass
from typing import Any, Optional

from psychopy import logging

from .config import ConfigurationError, resolve
from .stimuli.stimulus import prepare_stimulus


class TrialState(enum.Enum):
    IDLE = "idle"
    PRESENTING = "presenting"
    STIMULUS_HIDDEN = "stimulus_hidden"
    ENDED = "ended"


@dataclass
class KeyEvent:
    key: str
    rt: float


@dataclass
class TrialRuntimeState:
    responded: bool = False
    rt: Optional[float] = None
    response: Optional[str] = None
    stimulus_timer: Any = None
    trial_timer: Any = None
    pacer: Any = None
    subscription: Any = None


class TrialController:
    """State machine coordinating one presentation and response.

    Parameters
    ----------
    config : StimulusConfig
        Resolved configuration.
    host : object
        Capability object described in the module docstring.
    prepared : PreparedStimulus
        Pre-computed stimulus assets for ``config``.

    """
    def __init__(self, config, host, prepared):

        self.config = config
        self.host = host
        self.prepared = prepared
        self.state = TrialState.IDLE
        self.runtime = None
        self.result = None

    def start(self):
        """Present the stimulus and arm timers and response capture."""
        if self.state is not TrialState.IDLE:
            raise RuntimeError("Trial has already been started")
        if self.prepared is None:
            raise ConfigurationError("Trial started without prepared assets")

        timing = self.config.timing
        loop = self.host.loop
        self.runtime = rt = TrialRuntimeState()

        # Build the full tree first, then attach it in a single step
        view = self.prepared.view()
        self.host.surface.mount(view)
        self.state = TrialState.PRESENTING

        rt.pacer = self.prepared.background.start(loop)

        if timing.stimulus_duration > 0:
            rt.stimulus_timer = loop.call_later(timing.stimulus_duration,
                                                self.hide_stimulus)
        if timing.trial_duration > 0:
            rt.trial_timer = loop.call_later(timing.trial_duration,
                                             self.end_trial)

        if self.config.choices:
            rt.subscription = self.host.subscribe_keys(
                self.handle_key, valid_keys=list(self.config.choices),
                persist=False)

        logging.exp("Trial started: choices={}, stimulus_duration={}, "
                    "trial_duration={}".format(list(self.config.choices),
                                               timing.stimulus_duration,
                                               timing.trial_duration))

    def hide_stimulus(self):
        """Make the stimulus invisible without ending the trial."""
        if self.state is not TrialState.PRESENTING:
            return
        self.host.surface.set_opacity(0)
        self._stop_pacer()
        self.state = TrialState.STIMULUS_HIDDEN
        logging.exp("Stimulus hidden")

    def handle_key(self, event):
        """Record the first qualifying key press."""
        if self.state not in (TrialState.PRESENTING,
                              TrialState.STIMULUS_HIDDEN):
            return
        if event.key not in self.config.choices:
            return

        rt = self.runtime
        if not rt.responded:
            rt.responded = True
            rt.rt = event.rt
            rt.response = event.key
            logging.exp("Response {!r} after {:.1f} ms".format(event.key,
                                                               event.rt))

        if self.config.timing.response_ends_trial:
            self.end_trial()

    def end_trial(self):
        """Tear down and report the result; only the first call counts."""
        if self.state in (TrialState.IDLE, TrialState.ENDED):
            return
        rt = self.runtime
        self.state = TrialState.ENDED

        self.host.loop.cancel(rt.stimulus_timer)
        self.host.loop.cancel(rt.trial_timer)
        self._stop_pacer()
        if rt.subscription is not None:
            rt.subscription.cancel()

        self.host.surface.clear()
        self.host.surface.set_opacity(1)

        self.result = dict(rt=rt.rt, response=rt.response)
        logging.data("Trial result: {}".format(self.result))
        self.host.finish_trial(self.result)

    def _stop_pacer(self):
        if self.runtime.pacer is not None:
            self.runtime.pacer.stop()


def run_trial(config, host, choices=None, prepared=None):
    """Resolve ``config`` and start a trial on ``host``.

    Returns immediately after the stimulus is mounted and the timers and key
    capture are armed; the result reaches ``host.finish_trial`` later.

    Parameters
    ----------
    config : mapping or StimulusConfig
        Partial or resolved configuration.
    host : object
        Capability object described in the module docstring.
    choices : list of strings or "NO_KEYS", optional
        Acceptable keys, overriding the config.
    prepared : PreparedStimulus, optional
        Assets computed ahead of time with ``prepare_stimulus``. They must
        have been built for the same stimulus configuration.

    Raises
    ------
    ConfigurationError
        Before anything is drawn, if the configuration is invalid or does
        not match ``prepared``.

    """
    config = resolve(config, choices)
    if prepared is None:
        prepared = prepare_stimulus(config)
    elif not prepared.matches(config):
        raise ConfigurationError(
            "Prepared stimulus was built for a different configuration")

    TrialController(config, host, prepared).start()
