"""Resolution of partial stimulus configurations into complete ones.

Callers describe a trial with a plain nested mapping (the same structure
that a JSON or YAML params file would hold). Every omitted field is filled
with a documented default. Omission is decided by key presence, so a
supplied ``0``, ``False`` or ``""`` is always kept.

"""
from dataclasses import dataclass, field, asdict
from typing import Any

from psychopy import logging

# Sentinel for aperture values that should track the rendered size
UNSET = -1

NO_KEYS = "NO_KEYS"

BLEND_MODES = ("normal", "multiply", "screen", "overlay",
               "darken", "lighten", "add", "difference")

BACKGROUND_TYPES = ("animation", "css-color", "image")

default_stimulus = dict(
    size=200,
    density=5,
    phaseOffset=0,
    opacity=1,
    rotation=0,
    blendMode="normal",
)

default_fixation = dict(
    size=30,
    weight=5,
    color="white",
)

default_timing = dict(
    stimulusDuration=0,
    trialDuration=0,
    responseEndsTrial=True,
)

default_choices = ("space",)

default_background_color = "transparent"
default_animation_fps = 60


class ConfigurationError(ValueError):
    """Stimulus configuration that cannot be presented."""


@dataclass(frozen=True)
class StimulusParams:
    size: float
    density: float
    phase_offset: float
    opacity: float
    rotation: float
    blend_mode: str


@dataclass(frozen=True)
class ApertureParams:
    radius: float
    blur: float


@dataclass(frozen=True)
class ColorBackground:
    color: str = default_background_color
    type: str = field(default="css-color", init=False)


@dataclass(frozen=True)
class ImageBackground:
    source: Any
    type: str = field(default="image", init=False)


@dataclass(frozen=True)
class AnimationBackground:
    frames: tuple
    fps: float = default_animation_fps
    type: str = field(default="animation", init=False)


@dataclass(frozen=True)
class FixationParams:
    display: bool
    size: float
    weight: float
    color: str


@dataclass(frozen=True)
class TimingParams:
    stimulus_duration: float
    trial_duration: float
    response_ends_trial: bool


@dataclass(frozen=True)
class StimulusConfig:
    """Complete, immutable description of one trial."""
    stimulus: StimulusParams
    aperture: ApertureParams
    background: Any
    fixation_cross: FixationParams
    choices: tuple
    timing: TimingParams

    def to_dict(self):
        """Return the caller-facing nested mapping for this config."""
        s, a, f, t = (self.stimulus, self.aperture,
                      self.fixation_cross, self.timing)
        background = {k: v for k, v in asdict(self.background).items()}
        if "frames" in background:
            background["frames"] = list(background["frames"])
        out = dict(
            stimulus=dict(size=s.size, density=s.density,
                          phaseOffset=s.phase_offset, opacity=s.opacity,
                          rotation=s.rotation, blendMode=s.blend_mode),
            aperture=dict(radius=a.radius, blur=a.blur),
            background=background,
            choices=list(self.choices),
            timing=dict(stimulusDuration=t.stimulus_duration,
                        trialDuration=t.trial_duration,
                        responseEndsTrial=t.response_ends_trial),
        )
        if f.display:
            out["fixationCross"] = dict(size=f.size, weight=f.weight,
                                        color=f.color)
        return out


def resolve(partial=None, choices=None):
    """Fill in defaults and validate a partial stimulus configuration.

    Parameters
    ----------
    partial : mapping or StimulusConfig, optional
        Nested mapping with any of the sections ``stimulus``, ``aperture``,
        ``background``, ``fixationCross``, ``choices`` and ``timing``. An
        already resolved config is returned unchanged (unless ``choices``
        overrides it).
    choices : list of strings or "NO_KEYS", optional
        Acceptable response keys supplied by the host's trial parameters.
        Takes precedence over the ``choices`` entry of ``partial``.

    Returns
    -------
    config : StimulusConfig
        Fully specified, immutable configuration.

    Raises
    ------
    ConfigurationError
        If the configuration has an unknown section, field or background
        type, misses a required field, has out-of-range values, or describes
        a trial that could never end.

    """
    if isinstance(partial, StimulusConfig):
        if choices is None:
            return partial
        partial = partial.to_dict()
    partial = {} if partial is None else partial

    unknown = set(partial) - {"stimulus", "aperture", "background",
                              "fixationCross", "choices", "timing"}
    if unknown:
        raise ConfigurationError(
            "Unknown config sections: {}".format(sorted(unknown)))

    stim = _merge("stimulus", partial.get("stimulus"), default_stimulus)
    stimulus = StimulusParams(
        size=stim["size"],
        density=stim["density"],
        phase_offset=stim["phaseOffset"],
        opacity=stim["opacity"],
        rotation=stim["rotation"],
        blend_mode=stim["blendMode"],
    )

    # Aperture defaults are relative to the resolved size
    aperture_defaults = dict(radius=stimulus.size / 4,
                             blur=stimulus.size / 8)
    ap = _merge("aperture", partial.get("aperture"), aperture_defaults)
    aperture = ApertureParams(radius=ap["radius"], blur=ap["blur"])

    background = _resolve_background(partial.get("background"))

    # The cross is shown whenever the section is present, whatever it holds
    display = "fixationCross" in partial
    fix_in = dict(partial.get("fixationCross") or {})
    fix_in.pop("display", None)
    fix = _merge("fixationCross", fix_in, default_fixation)
    fixation_cross = FixationParams(display=display, **fix)

    if choices is None:
        choices = partial.get("choices")
    if choices is None:
        choices = default_choices
    choices = _resolve_choices(choices)

    tim = _merge("timing", partial.get("timing"), default_timing)
    timing = TimingParams(
        stimulus_duration=tim["stimulusDuration"],
        trial_duration=tim["trialDuration"],
        response_ends_trial=bool(tim["responseEndsTrial"]),
    )

    config = StimulusConfig(stimulus=stimulus,
                            aperture=aperture,
                            background=background,
                            fixation_cross=fixation_cross,
                            choices=choices,
                            timing=timing)
    validate(config)

    logging.debug("Resolved stimulus config: {}".format(config))
    return config


def validate(config):
    """Raise ConfigurationError if a resolved config is not presentable."""
    s = config.stimulus
    if not s.size > 0:
        raise ConfigurationError("stimulus.size must be positive")
    if not s.density > 0:
        raise ConfigurationError("stimulus.density must be positive")
    if not 0 <= s.opacity <= 1:
        raise ConfigurationError("stimulus.opacity must be in [0, 1]")
    if s.blend_mode not in BLEND_MODES:
        raise ConfigurationError(
            "Unknown blend mode {!r}".format(s.blend_mode))

    for name in ["radius", "blur"]:
        val = getattr(config.aperture, name)
        if val != UNSET and val < 0:
            raise ConfigurationError(
                "aperture.{} must be non-negative or -1".format(name))

    t = config.timing
    if t.stimulus_duration < 0 or t.trial_duration < 0:
        raise ConfigurationError("Durations must be non-negative")

    # A trial that waits for a response it can never receive
    if not config.choices and t.response_ends_trial and not t.trial_duration:
        raise ConfigurationError(
            "Trial can never end: no valid response keys, "
            "responseEndsTrial is true and trialDuration is 0")


def fixation_cross_config(size, cross_size=default_fixation["size"],
                          weight=default_fixation["weight"],
                          color=default_fixation["color"], duration=500):
    """Partial config for a trial that shows only a fixation cross.

    The grating is fully transparent, no key is accepted, and the trial ends
    after ``duration`` ms.

    """
    return dict(
        stimulus=dict(size=size, opacity=0),
        fixationCross=dict(size=cross_size, weight=weight, color=color),
        choices=NO_KEYS,
        timing=dict(trialDuration=duration, responseEndsTrial=False),
    )


def _merge(section, provided, defaults):
    """Overlay provided keys on defaults using a presence check."""
    provided = {} if provided is None else provided
    unknown = set(provided) - set(defaults)
    if unknown:
        raise ConfigurationError("Unknown {} fields: {}".format(
            section, sorted(unknown)))
    out = dict(defaults)
    for key in defaults:
        if key in provided:
            out[key] = provided[key]
    return out


def _resolve_background(provided):

    if provided is None:
        return ColorBackground()
    if isinstance(provided, (ColorBackground, ImageBackground,
                             AnimationBackground)):
        return provided

    kind = provided.get("type")
    if kind not in BACKGROUND_TYPES:
        raise ConfigurationError(
            "Unknown background type {!r}; expected one of {}".format(
                kind, BACKGROUND_TYPES))

    if kind == "animation":
        frames = tuple(provided.get("frames") or ())
        fps = provided["fps"] if "fps" in provided else default_animation_fps
        if not frames:
            raise ConfigurationError("Animation background needs frames")
        if not fps > 0:
            raise ConfigurationError("Animation fps must be positive")
        return AnimationBackground(frames=frames, fps=fps)

    elif kind == "css-color":
        if "color" in provided:
            return ColorBackground(color=provided["color"])
        return ColorBackground()

    else:
        if "source" not in provided:
            raise ConfigurationError("Image background needs a source")
        return ImageBackground(source=provided["source"])


def _resolve_choices(choices):

    if isinstance(choices, str):
        if choices == NO_KEYS:
            return ()
        choices = [choices]
    return tuple(choices)
