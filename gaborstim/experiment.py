"""Definition of the Experiment object that runs a block of trials."""
import copy
import importlib.util
import os
import re
import time

import yaml
import numpy as np
import pandas as pd

from psychopy import core, event, logging, monitors, visual

from . import commandline
from .config import fixation_cross_config, resolve
from .display import PsychopyHost
from .stimuli.stimulus import prepare_stimulus
from .tools import flexible_values


class Experiment:

    abort_keys = ["escape"]

    def __init__(self, arglist=None):

        self.arglist = [] if arglist is None else arglist

        self.p = None
        self.win = None
        self.host = None
        self.prepared = None

        self._aborted = False
        self._clean_exit = True

        self.clock = core.Clock()
        logging.defaultClock = self.clock

        self.trial = 0
        self.trial_data = []

    def run(self):

        # The window is closed even when a trial raises
        try:

            self.initialize_params()
            self.initialize_display()
            self.initialize_stimuli()

            self.clock.reset()

            for trial_info in self.generate_trials():

                trial_info = self.run_trial(trial_info)
                self.trial_data.append(trial_info)

                self.wait_iti()

        except BaseException:

            # Aborting raises an exception but isn't considered an error
            self._clean_exit = self._aborted
            raise

        finally:

            if self._clean_exit and self.win is not None:
                self.show_performance(*self.compute_performance())
                self.wait_for_exit()

            self.shutdown_display()

    # ==== Study-specific functions ====

    def generate_trials(self):
        """Generator that yields a pandas Series for each trial.

        The ``config`` entry holds the partial stimulus configuration, with
        the fields listed in the ``vary`` param sampled anew for the trial.

        """
        rng = np.random.RandomState(self.p.get("seed"))
        for _ in self.trial_count(self.p["n_trials"]):
            config, sampled = sample_config(self.p["config"],
                                            self.p["vary"], rng)
            yield self.trial_info(config=config, **sampled)

    def run_trial(self, trial_info):
        """Present an optional fixation cross, then the stimulus."""
        p = self.p

        if p["fixation_duration"]:
            size = resolve(trial_info["config"], p["choices"]).stimulus.size
            fix = fixation_cross_config(size, duration=p["fixation_duration"],
                                        **p["fixation_cross"])
            self.host.run_trial(fix)

        result = self.host.run_trial(trial_info["config"],
                                     choices=p["choices"],
                                     prepared=self.prepared,
                                     max_duration=p["max_trial_duration"])

        if result is None:
            trial_info["result"] = "timeout"
            return trial_info

        responded = result["response"] is not None
        trial_info["responded"] = responded
        trial_info["response"] = result["response"]
        trial_info["rt"] = result["rt"]
        trial_info["result"] = "response" if responded else "noresp"
        logging.exp("Trial {} finished: {}".format(self.trial,
                                                   trial_info["result"]))
        return trial_info

    def compute_performance(self):
        """Extract response rate and mean RT (seconds) from the trial log."""
        resp_rate, mean_rt = None, None
        if self.trial_data:
            data = pd.DataFrame(self.trial_data)
            resp_rate = data["responded"].astype(float).mean()
            mean_rt = data["rt"].astype(float).mean() / 1000
        return resp_rate, mean_rt

    def show_performance(self, resp_rate, mean_rt):
        """Show end-of-run feedback to the subject about performance."""
        lines = ["End of the run!"]

        if resp_rate is not None and not np.isnan(resp_rate):
            lines.append("")
            lines.append(
                "You responded on {:.0%} of trials".format(resp_rate)
                )

        target_rt = self.p["perform_rt_target"]
        if mean_rt is not None and not np.isnan(mean_rt):
            lines.append("")
            lines.append(
                "You took {:.2f} seconds to respond on average".format(mean_rt)
                )
            if target_rt is not None:
                if mean_rt <= target_rt:
                    lines.append("Great job!")
                else:
                    lines.append("Please try to respond faster!")

        n = len(lines)
        height = 30
        heights = (np.arange(n)[::-1] - (n / 2 - .5)) * height
        for line, y in zip(lines, heights):
            visual.TextStim(self.win, line, pos=(0, y), height=height,
                            units="pix", autoLog=False).draw()
        self.win.flip()

    # ==== Initialization functions ====

    def initialize_params(self):
        """Determine parameters for this run of the experiment."""
        parser = commandline.define_parser("gaborstim")
        args = parser.parse_args(self.arglist)

        # Start with the set of default parameters
        p = copy.deepcopy(default_params)
        p.update(load_params(args.study_dir, args.paramset))

        # Command line values supersede the params module when given
        p.update({k: v for k, v in vars(args).items() if v is not None})

        timestamp = time.localtime()
        p["date"] = time.strftime("%Y-%m-%d", timestamp)
        p["time"] = time.strftime("%H-%M-%S", timestamp)
        if p.get("session") is None:
            p["session"] = p["date"]

        # Catch configuration errors before anything is drawn
        resolve(p["config"], p["choices"])

        logging.console.setLevel(logging.DEBUG if p["debug"]
                                 else logging.WARNING)

        self.p = p
        self.debug = p["debug"]

    def initialize_display(self):
        """Open the PsychoPy window to begin the experiment."""
        p = self.p
        info = load_display_info(p["study_dir"], p["display_name"])

        if info is None:
            monitor = None
            res = (800, 600)
            fullscr = False
        else:
            monitor = monitors.Monitor(name=p["display_name"],
                                       width=info["width"],
                                       distance=info["distance"],
                                       gamma=info.get("gamma"),
                                       autoLog=False)
            monitor.setSizePix(info["resolution"])
            res = (800, 600) if self.debug else info["resolution"]
            fullscr = not self.debug

        self.win = visual.Window(units="pix",
                                 screen=0,
                                 fullscr=fullscr,
                                 allowGUI=self.debug,
                                 color=p["display_color"],
                                 size=res,
                                 monitor=monitor,
                                 autoLog=False)

        self.host = PsychopyHost(self.win, abort_keys=self.abort_keys,
                                 on_abort=self.abort)
        return self.win

    def initialize_stimuli(self):
        """Pre-compute stimulus assets when they are the same every trial."""
        if not self.p["vary"]:
            self.prepared = prepare_stimulus(resolve(self.p["config"],
                                                     self.p["choices"]))

    # ==== Shutdown functions ====

    def shutdown_display(self):
        """Cleanly exit out of the psychopy window."""
        if self.win is not None:
            self.win.close()

    def wait_for_exit(self):
        """Wait until the experimenter quits."""
        event.waitKeys(["enter", "return"])

    # === Execution functions ===

    def trial_count(self, max=None):
        """Generator of trial index."""
        while max is None or self.trial < max:
            self.trial += 1
            yield self.trial

    def trial_info(self, **kwargs):
        """Series describing one trial, with response fields unset.

        Keyword arguments add the stimulus config and sampled values.

        """
        t_info = dict(

            subject=self.p["subject"],
            session=self.p["session"],
            trial=self.trial,

            responded=False,
            result=np.nan,
            response=np.nan,
            rt=np.nan,

            )

        t_info.update(kwargs)

        return pd.Series(t_info, dtype=object)

    def wait_iti(self):
        """Keep flipping the blank window between trials."""
        clock = core.Clock()
        while clock.getTime() < self.p["wait_iti"]:
            self.check_abort()
            self.win.flip()

    def check_abort(self):
        """Quit if the experimenter pressed an abort key."""
        self.host.check_abort()

    def abort(self):
        """Quit the experiment without treating it as an error."""
        self._aborted = True
        core.quit()


def load_params(study_dir, paramset=None):
    """Load a parameter dictionary from ``params.py`` in ``study_dir``."""
    fname = os.path.join(study_dir, "params.py")
    spec = importlib.util.spec_from_file_location("params", fname)
    params = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(params)

    dicts = {k: v for k, v in vars(params).items()
             if isinstance(v, dict) and not re.match(r"__\w+__", k)}

    if paramset is not None:
        return dict(dicts[paramset])
    if len(dicts) == 1:
        return dict(dicts.popitem()[1])
    raise RuntimeError("Must specify `--paramset` when multiple are defined")


def load_display_info(study_dir, display_name):
    """Read calibration info for a display from ``displays.yaml``."""
    if display_name is None:
        return None
    fname = os.path.join(study_dir, "displays.yaml")
    with open(fname) as fid:
        display_info = yaml.safe_load(fid)
    return display_info[display_name]


def sample_config(config, vary, random_state=None):
    """Draw per-trial values for the dotted config fields in ``vary``.

    Returns a new partial config and a dict of the sampled values.

    """
    config = copy.deepcopy(config)
    sampled = {}
    for path, values in vary.items():
        val = flexible_values(values, random_state=random_state)
        if isinstance(val, np.generic):
            val = val.item()
        section, _, name = path.rpartition(".")
        node = config
        for key in filter(None, section.split(".")):
            node = node.setdefault(key, {})
        node[name] = val
        sampled[path] = val
    return config, sampled


default_params = dict(

    display_name=None,
    display_color=0,

    seed=None,
    n_trials=10,

    config={},
    vary={},
    choices=None,

    fixation_duration=0,
    fixation_cross={},

    max_trial_duration=None,
    wait_iti=.5,

    perform_rt_target=None,

)


def main(arglist):

    Experiment(arglist).run()
