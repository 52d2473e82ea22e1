from gaborstim.stimuli import generate_noise_frames


size = 256

base = dict(

    n_trials=10,

    config=dict(
        stimulus=dict(size=size, density=4, opacity=.6,
                      blendMode="overlay"),
        background=dict(
            type="animation",
            frames=generate_noise_frames(size, 12, kind="gaussian",
                                         contrast=.4, random_state=0),
            fps=20,
        ),
        fixationCross=dict(),
        timing=dict(stimulusDuration=1000, trialDuration=3000,
                    responseEndsTrial=True),
    ),
    choices=["space"],

    vary={"stimulus.rotation": ("norm", 0, 20)},

    max_trial_duration=5,
    wait_iti=.5,

)
