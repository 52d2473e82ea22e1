import numpy as np
import numpy.testing as npt

from gaborstim.config import resolve
from gaborstim.stimuli.fixation import FixationCross


def test_segments_centered():

    cross = FixationCross(200, size=30, weight=5)
    horizontal, vertical = cross.segments()

    assert horizontal == ((85, 100), (115, 100))
    assert vertical == ((100, 85), (100, 115))


def test_rects():

    cross = FixationCross(100, size=20, weight=4)
    (hl, ht, hw, hh), (vl, vt, vw, vh) = cross.rects()

    assert (hl, ht, hw, hh) == (40, 48, 20, 4)
    assert (vl, vt, vw, vh) == (48, 40, 4, 20)


def test_rasterize():

    cross = FixationCross(100, size=20, weight=4, color="red")
    layer = cross.rasterize()

    assert layer.shape == (100, 100, 4)
    npt.assert_array_equal(layer[50, 50], [1, 0, 0, 1])
    npt.assert_array_equal(layer[50, 41], [1, 0, 0, 1])
    npt.assert_array_equal(layer[41, 50], [1, 0, 0, 1])
    assert layer[0, 0, 3] == 0
    assert layer[45, 45, 3] == 0

    # Cross covers two overlapping bars
    assert layer[..., 3].sum() == 20 * 4 * 2 - 4 * 4

    # Symmetric about the center
    alpha = layer[..., 3]
    npt.assert_array_equal(alpha, alpha[::-1, ::-1])
    npt.assert_array_equal(alpha, alpha.T)


def test_from_config():

    config = resolve({"stimulus": {"size": 80},
                      "fixationCross": {"size": 12, "color": "#00ff00"}})
    cross = FixationCross.from_config(80, config.fixation_cross)
    assert cross.size == 12
    assert cross.weight == 5
    assert cross.center == (40, 40)
    assert np.array_equal(cross.rasterize()[40, 40], [0, 1, 0, 1])
