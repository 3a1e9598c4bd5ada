import numpy as np
import pytest

from spectro_cam.engine.linearization import Linearize


@pytest.mark.parametrize("mode", [Linearize.REC601, Linearize.REC709, Linearize.SRGB])
def test_curves_are_monotonic_and_fix_endpoints(mode):
    samples = np.linspace(0.0, 1.0, 2001)
    linear = mode.apply(samples)

    assert np.all(np.diff(linear) > 0)
    assert linear[0] == 0.0
    assert linear[-1] == pytest.approx(1.0, abs=1e-3)


def test_rec_curves_match_reference_points():
    values = np.array([0.0405, 0.5, 1.0])
    expected = np.array([0.0405 / 4.5, ((0.5 + 0.099) / 1.099) ** (1 / 0.45), 1.0])

    assert np.allclose(Linearize.REC601.apply(values), expected)
    assert np.array_equal(Linearize.REC601.apply(values), Linearize.REC709.apply(values))


def test_srgb_breakpoint_is_continuous():
    below = Linearize.SRGB.apply(np.array([0.04045]))[0]
    above = Linearize.SRGB.apply(np.array([np.nextafter(0.04045, 1.0)]))[0]

    assert below == pytest.approx(0.04045 / 12.92)
    assert above == pytest.approx(below, rel=1e-3)


def test_off_is_identity_and_copies():
    values = np.array([[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]])
    out = Linearize.OFF.apply(values)

    assert np.array_equal(out, values)
    assert out is not values


def test_parse_accepts_names_and_values():
    assert Linearize.parse("srgb") is Linearize.SRGB
    assert Linearize.parse("Rec709") is Linearize.REC709
    assert Linearize.parse(Linearize.OFF) is Linearize.OFF
    with pytest.raises(ValueError):
        Linearize.parse("gamma22")
