import argparse


def define_parser(script="gaborstim"):

    if script == "gaborstim":
        return define_experiment_parser()
    raise ValueError("Unknown script {!r}".format(script))


def define_experiment_parser():

    parser = argparse.ArgumentParser()

    parser.add_argument(
        "study_dir", default=".", nargs="?",
        help="path to directory containing the params module",
    )
    parser.add_argument(
        "-p", "--paramset", help="name of params dictionary to load",
    )
    parser.add_argument(
        "-s", "--subject", default="test", help="identifier for subject",
    )
    parser.add_argument(
        "--session", help="identifier for experimental session",
    )
    parser.add_argument(
        "-n", "--n_trials", type=int,
        help="number of trials, overriding params module",
    )
    parser.add_argument(
        "--seed", type=int, help="seed for per-trial parameter sampling",
    )
    parser.add_argument(
        "--display_name",
        help="load parameters for this display, overriding params module",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="windowed display and verbose logging",
    )

    return parser
