from .version import __version__  # noqa: F401

from .config import (ConfigurationError, StimulusConfig,  # noqa: F401
                     resolve, fixation_cross_config, NO_KEYS, UNSET)
from .loop import EventLoop  # noqa: F401
from .pacer import FramePacer  # noqa: F401
from .stimuli import prepare_stimulus, snapshot  # noqa: F401
from .tools import flexible_values  # noqa: F401
from .trial import (TrialController, TrialState,  # noqa: F401
                    KeyEvent, run_trial)
