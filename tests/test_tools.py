import numpy as np
import numpy.testing as npt
import pytest

from gaborstim.tools import (parse_color, solid_layer, composite, to_uint8,
                             flexible_values, truncated_sample)
from scipy import stats


class TestParseColor:

    def test_names(self):

        assert parse_color("white") == (1, 1, 1, 1)
        assert parse_color("red") == (1, 0, 0, 1)

    def test_hex(self):

        assert parse_color("#0000ff") == (0, 0, 1, 1)

    def test_transparent(self):

        assert parse_color("transparent") == (0, 0, 0, 0)

    def test_rgb_functions(self):

        assert parse_color("rgb(255, 0, 0)") == (1, 0, 0, 1)
        r, g, b, a = parse_color("rgba(0, 51, 255, .5)")
        assert (r, g, a) == (0, .2, .5)

    def test_invalid(self):

        with pytest.raises(ValueError):
            parse_color("notacolor")


def test_solid_layer():

    layer = solid_layer(10, "blue")
    assert layer.shape == (10, 10, 4)
    npt.assert_array_equal(layer[3, 4], [0, 0, 1, 1])


class TestComposite:

    def layer(self, color, alpha):
        out = np.empty((2, 2, 4))
        out[..., :3] = color
        out[..., 3] = alpha
        return out

    def test_normal_opaque(self):

        back = self.layer(.2, 1)
        src = self.layer(.8, 1)
        npt.assert_allclose(composite(back, src), src)

    def test_normal_translucent(self):

        back = self.layer(0, 1)
        src = self.layer(1, .25)
        out = composite(back, src)
        npt.assert_allclose(out[..., :3], .25)
        npt.assert_allclose(out[..., 3], 1)

    def test_transparent_backdrop(self):

        back = self.layer(0, 0)
        src = self.layer(.6, .5)
        for mode in ["normal", "multiply", "difference"]:
            npt.assert_allclose(composite(back, src, mode), src)

    def test_empty_result(self):

        out = composite(self.layer(.3, 0), self.layer(.7, 0))
        npt.assert_array_equal(out, 0)

    @pytest.mark.parametrize("mode,expected", [
        ("multiply", .5 * .4),
        ("screen", .5 + .4 - .5 * .4),
        ("darken", .4),
        ("lighten", .5),
        ("add", .9),
        ("difference", .1),
        ("overlay", 2 * .5 * .4),
    ])
    def test_blend_modes(self, mode, expected):

        out = composite(self.layer(.5, 1), self.layer(.4, 1), mode)
        npt.assert_allclose(out[..., :3], expected)
        npt.assert_allclose(out[..., 3], 1)

    def test_unknown_mode(self):

        with pytest.raises(ValueError):
            composite(self.layer(0, 1), self.layer(0, 1), "burn")


def test_to_uint8():

    rgba = np.array([[[0, .5, 1, 2]]])
    npt.assert_array_equal(to_uint8(rgba), [[[0, 128, 255, 255]]])


class TestFlexibleValues:

    def test_scalar(self):

        assert flexible_values(4) == 4
        npt.assert_array_equal(flexible_values(4, 3), [4, 4, 4])

    def test_list(self):

        rng = np.random.RandomState(0)
        vals = [flexible_values([1, 2, 3], random_state=rng)
                for _ in range(50)]
        assert set(vals) == {1, 2, 3}

        out = flexible_values(["a", "b"], (2, 3), rng)
        assert out.shape == (2, 3)

    def test_distribution(self):

        rng = np.random.RandomState(0)
        out = flexible_values(("norm", 0, 1), 1000, rng, min=-1, max=1)
        assert out.shape == (1000,)
        assert out.min() >= -1
        assert out.max() <= 1

        val = flexible_values(("uniform", 10, 5), random_state=rng)
        assert np.isscalar(val)
        assert 10 <= val <= 15

    def test_bad_type(self):

        with pytest.raises(TypeError):
            flexible_values({"a": 1})


def test_truncated_sample():

    rng = np.random.RandomState(0)
    out = truncated_sample(stats.norm(0, 1), (10, 10), 0, np.inf,
                           random_state=rng)
    assert out.shape == (10, 10)
    assert (out >= 0).all()
