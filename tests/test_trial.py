import copy

import numpy as np
import pytest

from gaborstim.config import ConfigurationError, resolve
from gaborstim.loop import EventLoop
from gaborstim.stimuli.stimulus import prepare_stimulus
from gaborstim.trial import (TrialController, TrialState, KeyEvent,
                             run_trial)


# ────────────────────────────────────────────────────────────────────────────
# Fake host
# ────────────────────────────────────────────────────────────────────────────


class FakeSurface:

    def __init__(self):
        self.view = None
        self.opacity = 1
        self.mounts = 0
        self.history = []

    def mount(self, view):
        self.view = view
        self.mounts += 1
        self.history.append("mount")

    def set_opacity(self, value):
        self.opacity = value
        self.history.append(("opacity", value))

    def clear(self):
        self.view = None
        self.history.append("clear")


class FakeSubscription:

    def __init__(self, on_key, valid_keys, persist):
        self.on_key = on_key
        self.valid_keys = valid_keys
        self.persist = persist
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def press(self, key, rt):
        if not self.cancelled:
            self.on_key(KeyEvent(key, rt))


class FakeHost:

    def __init__(self):
        self.now = 0
        self.loop = EventLoop(lambda: self.now)
        self.surface = FakeSurface()
        self.subscriptions = []
        self.results = []

    def subscribe_keys(self, on_key, valid_keys, persist=False):
        sub = FakeSubscription(on_key, valid_keys, persist)
        self.subscriptions.append(sub)
        return sub

    def finish_trial(self, data):
        self.results.append(data)

    def advance(self, duration, hz=60):
        """Run display refreshes for ``duration`` ms."""
        period = 1000 / hz
        end = self.now + duration
        while self.now + period <= end + 1e-9:
            self.now += period
            self.loop.refresh(self.now)


def make_controller(partial, host=None, choices=None):

    host = FakeHost() if host is None else host
    config = resolve(partial, choices)
    controller = TrialController(config, host, prepare_stimulus(config))
    return controller, host


small = dict(size=32)
frames = [np.full((4, 4), v, np.uint8) for v in (0, 100, 200)]


# ────────────────────────────────────────────────────────────────────────────
# State machine
# ────────────────────────────────────────────────────────────────────────────


class TestStart:

    def test_presenting(self):

        trial, host = make_controller({"stimulus": small})
        trial.start()

        assert trial.state is TrialState.PRESENTING
        assert host.surface.mounts == 1
        assert host.surface.view.size == 32
        assert host.subscriptions[0].valid_keys == ["space"]
        assert not host.subscriptions[0].persist
        assert host.loop.pending_timers == 0
        assert trial.runtime.pacer is None

    def test_timers_armed(self):

        trial, host = make_controller({
            "stimulus": small,
            "timing": {"stimulusDuration": 100, "trialDuration": 500},
        })
        trial.start()
        assert host.loop.pending_timers == 2

    def test_no_subscription_without_choices(self):

        trial, host = make_controller({
            "stimulus": small, "choices": "NO_KEYS",
            "timing": {"trialDuration": 200},
        })
        trial.start()
        assert host.subscriptions == []

    def test_animation_starts_pacer(self):

        trial, host = make_controller({
            "stimulus": small,
            "background": {"type": "animation", "frames": frames,
                           "fps": 20},
        })
        trial.start()
        assert trial.runtime.pacer.running
        host.advance(1000)
        assert 19 <= trial.runtime.pacer.ticks <= 21

    def test_needs_prepared(self):

        host = FakeHost()
        trial = TrialController(resolve({}), host, None)
        with pytest.raises(ConfigurationError):
            trial.start()
        assert host.surface.mounts == 0
        assert host.subscriptions == []
        assert trial.state is TrialState.IDLE

    def test_start_twice(self):

        trial, _ = make_controller({"stimulus": small})
        trial.start()
        with pytest.raises(RuntimeError):
            trial.start()


class TestHide:

    def test_hidden_without_finish(self):

        trial, host = make_controller({
            "stimulus": small,
            "timing": {"stimulusDuration": 100, "trialDuration": 0,
                       "responseEndsTrial": False},
        })
        trial.start()

        host.advance(90)
        assert trial.state is TrialState.PRESENTING
        assert host.surface.opacity == 1

        host.advance(30)
        assert trial.state is TrialState.STIMULUS_HIDDEN
        assert host.surface.opacity == 0

        host.advance(5000)
        assert host.results == []
        assert not host.subscriptions[0].cancelled

    def test_hide_stops_pacer(self):

        trial, host = make_controller({
            "stimulus": small,
            "background": {"type": "animation", "frames": frames},
            "timing": {"stimulusDuration": 100, "trialDuration": 300},
        })
        trial.start()
        host.advance(150)
        ticks = trial.runtime.pacer.ticks
        assert not trial.runtime.pacer.running
        host.advance(100)
        assert trial.runtime.pacer.ticks == ticks

    def test_response_after_hide(self):

        trial, host = make_controller({
            "stimulus": small,
            "timing": {"stimulusDuration": 50},
        })
        trial.start()
        host.advance(100)
        host.subscriptions[0].press("space", 400)
        assert host.results == [{"rt": 400, "response": "space"}]


class TestResponse:

    def test_first_response_wins(self):

        trial, host = make_controller({
            "stimulus": small,
            "timing": {"responseEndsTrial": False, "trialDuration": 1000},
        }, choices=["f", "j"])
        trial.start()

        trial.handle_key(KeyEvent("f", 320.5))
        trial.handle_key(KeyEvent("j", 321.0))
        assert trial.state is TrialState.PRESENTING

        host.advance(1100)
        assert host.results == [{"rt": 320.5, "response": "f"}]

    def test_response_ends_trial(self):

        trial, host = make_controller({"stimulus": small})
        trial.start()
        host.subscriptions[0].press("space", 250)

        assert trial.state is TrialState.ENDED
        assert host.results == [{"rt": 250, "response": "space"}]
        assert host.subscriptions[0].cancelled

    def test_invalid_key_ignored(self):

        trial, host = make_controller({"stimulus": small})
        trial.start()
        trial.handle_key(KeyEvent("q", 100))
        assert trial.state is TrialState.PRESENTING
        assert not trial.runtime.responded

    def test_key_after_end(self):

        trial, host = make_controller({
            "stimulus": small, "timing": {"trialDuration": 100},
        })
        trial.start()
        host.advance(200)
        trial.handle_key(KeyEvent("space", 300))
        assert host.results == [{"rt": None, "response": None}]


class TestEnd:

    def test_timeout(self):

        trial, host = make_controller({
            "stimulus": small,
            "timing": {"stimulusDuration": 100, "trialDuration": 500},
        })
        trial.start()
        host.advance(490)
        assert host.results == []
        host.advance(30)

        assert trial.state is TrialState.ENDED
        assert host.results == [{"rt": None, "response": None}]
        assert host.surface.view is None
        assert host.surface.opacity == 1
        assert host.loop.pending_timers == 0
        assert host.subscriptions[0].cancelled

    def test_cleanup_cancels_hide(self):

        trial, host = make_controller({
            "stimulus": small,
            "timing": {"stimulusDuration": 400, "trialDuration": 1000},
        })
        trial.start()
        host.subscriptions[0].press("space", 100)
        host.advance(2000)
        assert ("opacity", 0) not in host.surface.history
        assert len(host.results) == 1

    def test_idempotent(self):

        trial, host = make_controller({
            "stimulus": small,
            "background": {"type": "animation", "frames": frames},
        })
        trial.start()
        trial.end_trial()
        trial.end_trial()
        trial.hide_stimulus()
        host.advance(500)

        assert host.results == [{"rt": None, "response": None}]
        assert not trial.runtime.pacer.running
        assert host.loop.pending_refreshes == 0

    def test_end_before_start(self):

        trial, host = make_controller({"stimulus": small})
        trial.end_trial()
        assert host.results == []
        assert trial.state is TrialState.IDLE


# ────────────────────────────────────────────────────────────────────────────
# Entry point
# ────────────────────────────────────────────────────────────────────────────


class TestRunTrial:

    def test_builds_prepared(self):

        host = FakeHost()
        run_trial({"stimulus": small}, host)
        assert host.surface.mounts == 1

    def test_choices_override(self):

        host = FakeHost()
        run_trial({"stimulus": small}, host, choices=["a", "b"])
        assert host.subscriptions[0].valid_keys == ["a", "b"]

    def test_reuses_prepared(self):

        prepared = prepare_stimulus({"stimulus": small})
        host = FakeHost()
        for _ in range(3):
            run_trial({"stimulus": small, "timing": {"trialDuration": 10}},
                      host, prepared=prepared)
            host.advance(20)
        assert len(host.results) == 3

    def test_reuses_prepared_array_frames(self):

        partial = {"stimulus": small,
                   "background": {"type": "animation", "frames": frames},
                   "timing": {"trialDuration": 10}}
        prepared = prepare_stimulus(partial)
        host = FakeHost()
        for _ in range(2):
            run_trial(copy.deepcopy(partial), host, prepared=prepared)
            host.advance(20)
        assert len(host.results) == 2

    def test_prepared_mismatch(self):

        prepared = prepare_stimulus({"stimulus": small})
        host = FakeHost()
        with pytest.raises(ConfigurationError):
            run_trial({"stimulus": dict(size=64)}, host, prepared=prepared)
        assert host.surface.mounts == 0

    def test_invalid_config(self):

        host = FakeHost()
        with pytest.raises(ConfigurationError):
            run_trial({"stimulus": {"size": -3}}, host)
        assert host.surface.mounts == 0

    def test_unendable(self):

        host = FakeHost()
        with pytest.raises(ConfigurationError):
            run_trial({"stimulus": small}, host, choices="NO_KEYS")
