from .grating import Grating, grating  # noqa: F401
from .aperture import aperture_mask, apply_aperture  # noqa: F401
from .fixation import FixationCross  # noqa: F401
from .noise import (GaussianNoise, UniformNoise,  # noqa: F401
                    generate_noise_frames)
from .background import (ColorLayer, ImageLayer,  # noqa: F401
                         AnimationLayer, set_up_background)
from .stimulus import (GaborStimulus, prepare_stimulus,  # noqa: F401
                       snapshot)
