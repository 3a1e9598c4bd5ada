import numpy as np
import pytest

from spectro_cam.engine.calibration import (
    GAIN_PRESETS,
    CalibrationPoint,
    GainPreset,
    SpectrumCalibration,
)
from spectro_cam.engine.linearization import Linearize


def _calibration(**kwargs) -> SpectrumCalibration:
    return SpectrumCalibration(
        low=CalibrationPoint(0, 400.0),
        high=CalibrationPoint(99, 700.0),
        **kwargs,
    )


def test_wavelength_hits_anchors_exactly_and_extrapolates():
    cal = _calibration()

    assert cal.wavelength_of(0) == 400.0
    assert cal.wavelength_of(99) == 700.0
    assert cal.wavelength_of(-1) < 400.0
    assert cal.wavelength_of(150) > 700.0


def test_wavelength_map_is_affine_and_increasing():
    cal = SpectrumCalibration(low=CalibrationPoint(12, 436.0), high=CalibrationPoint(480, 546.0))
    idx = np.arange(-50, 700)
    wl = cal.wavelength_of(idx)

    assert np.all(np.diff(wl) > 0)
    assert np.allclose(np.diff(wl, n=2), 0.0, atol=1e-9)
    assert cal.wavelength_of(12) == 436.0
    assert cal.wavelength_of(480) == 546.0
    assert wl[0] == pytest.approx(cal.wavelength_of(-50))


def test_scaling_factor_defaults_to_identity():
    cal = _calibration()
    assert cal.scaling_factor_of(3) == 1.0

    cal.scaling = np.array([2.0, 0.5, 4.0])
    assert cal.scaling_factor_of(1) == 0.5
    assert cal.scaling_factor_of(10) == 1.0
    assert np.array_equal(cal.scaling_factors(5), [2.0, 0.5, 4.0, 1.0, 1.0])


def test_gain_presets_set_all_three_channels():
    cal = _calibration()
    cal.set_gain_preset(GainPreset.REC601)
    assert (cal.gain_r, cal.gain_g, cal.gain_b) == GAIN_PRESETS[GainPreset.REC601]

    cal.set_gain_preset("Unity")
    assert np.array_equal(cal.gains, [1.0, 1.0, 1.0])


def test_validate_rejects_degenerate_anchors():
    cal = SpectrumCalibration(low=CalibrationPoint(50, 600.0), high=CalibrationPoint(50, 500.0))
    errs = cal.validate()

    assert any("low index" in err for err in errs)
    assert any("low wavelength" in err for err in errs)
    assert _calibration().validate() == []


def test_dict_round_trip_keeps_scaling_and_mode():
    cal = _calibration(linearize=Linearize.SRGB, gain_r=0.5, scaling=[1.0, 2.0])
    restored = SpectrumCalibration.from_dict(cal.to_dict())

    assert restored.low == cal.low and restored.high == cal.high
    assert restored.linearize is Linearize.SRGB
    assert restored.gain_r == 0.5
    assert np.array_equal(restored.scaling, [1.0, 2.0])


def test_non_round_anchors_map_back_exactly():
    cal = SpectrumCalibration(low=CalibrationPoint(423, 284.43), high=CalibrationPoint(956, 903.85))

    assert cal.wavelength_of(423) == 284.43
    assert cal.wavelength_of(956) == 903.85
    assert cal.wavelength_of(np.array([423, 956])).tolist() == [284.43, 903.85]


def test_random_anchor_pairs_map_back_exactly():
    rng = np.random.default_rng(11)
    for _ in range(2000):
        lo_idx, hi_idx = sorted(rng.choice(2000, size=2, replace=False).tolist())
        lo_wl, hi_wl = sorted(np.round(rng.uniform(200.0, 2000.0, size=2), 2).tolist())
        cal = SpectrumCalibration(
            low=CalibrationPoint(lo_idx, lo_wl), high=CalibrationPoint(hi_idx, hi_wl)
        )

        assert cal.wavelength_of(lo_idx) == lo_wl
        assert cal.wavelength_of(hi_idx) == hi_wl
