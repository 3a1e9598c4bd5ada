import numpy as np
import pytest

from spectro_cam.engine.calibration import CalibrationPoint
from spectro_cam.engine.linearization import Linearize
from spectro_cam.engine.reference import ReferenceCurve
from spectro_cam.engine.settings_model import (
    PostprocessingSettings,
    SettingsError,
    SpectrometerSettings,
    ViewSettings,
    load_settings,
    save_settings,
)


def test_defaults_are_valid():
    assert SpectrometerSettings().validate() == []


def test_missing_file_returns_defaults(tmp_path):
    settings = load_settings(tmp_path / "none.yaml")

    assert settings.postprocessing == PostprocessingSettings()
    assert settings.reference is None


def test_yaml_round_trip(tmp_path):
    settings = SpectrometerSettings(
        camera_id=2,
        postprocessing=PostprocessingSettings(buffer_size=4, filter_enabled=True, filter_cutoff=0.25),
        view=ViewSettings(find_window=7, unique_window=12.5, show_dips=True),
        reference_scale=0.5,
        reference=ReferenceCurve.from_points([(400.0, 1.0), (700.0, 2.0)]),
        export_path="out/spectrum.csv",
    )
    settings.calibration.low = CalibrationPoint(10, 436.0)
    settings.calibration.high = CalibrationPoint(600, 611.0)
    settings.calibration.linearize = Linearize.REC709
    settings.calibration.scaling = np.array([1.0, 0.5])

    path = save_settings(settings, tmp_path / "nested" / "settings.yaml")
    restored = load_settings(path)

    assert restored.camera_id == 2
    assert restored.postprocessing == settings.postprocessing
    assert restored.view == settings.view
    assert restored.calibration.high == CalibrationPoint(600, 611.0)
    assert restored.calibration.linearize is Linearize.REC709
    assert restored.calibration.scaling.tolist() == [1.0, 0.5]
    assert restored.reference.domain == (400.0, 700.0)
    assert restored.reference_scale == 0.5
    assert restored.export_path == "out/spectrum.csv"


def test_validation_collects_every_problem():
    settings = SpectrometerSettings(
        postprocessing=PostprocessingSettings(buffer_size=0, filter_cutoff=0.0),
        view=ViewSettings(find_window=500, unique_window=-1.0),
        reference_scale=1000.0,
    )
    settings.calibration.gain_g = 20.0

    errs = settings.validate()

    assert "Averaging buffer size must lie within 1-100" in errs
    assert "Low-pass cutoff must be positive" in errs
    assert "Peak/dip find window must lie within 1-200" in errs
    assert "Peak/dip unique window must be positive" in errs
    assert "Reference scale must lie within 0.001-100" in errs
    assert "Gain G must lie within 0-10" in errs


@pytest.mark.parametrize(
    "content",
    [
        "camera_id: [unclosed\n",
        "- just\n- a list\n",
        "postprocessing:\n  buffer_size: 0\n",
        "calibration:\n  linearize: gamma\n",
    ],
)
def test_bad_files_raise_settings_error(tmp_path, content):
    path = tmp_path / "settings.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(SettingsError):
        load_settings(path)


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("", encoding="utf-8")

    assert load_settings(path).view == ViewSettings()
