base = dict(

    display_name=None,
    display_color=0,

    n_trials=20,

    config=dict(
        stimulus=dict(size=300, density=6, blendMode="normal"),
        aperture=dict(radius=100, blur=25),
        fixationCross=dict(size=20, weight=4, color="red"),
        timing=dict(stimulusDuration=200, trialDuration=2000),
    ),
    choices=["f", "j"],

    fixation_duration=500,
    fixation_cross=dict(cross_size=20, weight=4, color="white"),

    wait_iti=1,

    perform_rt_target=.8,

)


tilted = dict(base)
tilted.update(

    vary={
        "stimulus.rotation": [-45, 45],
        "stimulus.phaseOffset": ("uniform", 0, 360),
    },

)
