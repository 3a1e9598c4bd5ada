import numpy as np
import pandas as pd
import pytest

from spectro_cam.engine.calibration import CalibrationPoint, SpectrumCalibration
from spectro_cam.engine.io_common import sniff_locale
from spectro_cam.engine.spectrum_api import Spectrum
from spectro_cam.io.spectrum_csv import (
    ReferenceImportError,
    SpectrumExportError,
    read_reference_csv,
    write_spectrum_csv,
)


def test_reads_headered_table_by_column_name(tmp_path):
    path = tmp_path / "lamp.csv"
    path.write_text("Value,Wavelength,Comment\n1.5,400,a\n2.5,500,b\n3.5,600,c\n", encoding="utf-8")

    curve = read_reference_csv(path)

    assert curve.wavelengths.tolist() == [400.0, 500.0, 600.0]
    assert curve.values.tolist() == [1.5, 2.5, 3.5]


def test_reads_headerless_table_from_first_two_columns(tmp_path):
    path = tmp_path / "lamp.csv"
    path.write_text("600,0.3\n400,0.1\n500,0.2\n", encoding="utf-8")

    curve = read_reference_csv(path)

    assert curve.wavelengths.tolist() == [400.0, 500.0, 600.0]
    assert curve.values == pytest.approx([0.1, 0.2, 0.3])


def test_reads_semicolon_table_with_decimal_comma(tmp_path):
    path = tmp_path / "lamp.csv"
    path.write_text("wavelength;value\n400,5;0,25\n500,5;0,75\n", encoding="utf-8")

    curve = read_reference_csv(path)

    assert curve.wavelengths.tolist() == [400.5, 500.5]
    assert curve.values.tolist() == [0.25, 0.75]


def test_sniff_locale_keeps_integer_comma_tables():
    assert sniff_locale("400,1\n500,2\n") == {"decimal": ".", "delimiter": ","}
    assert sniff_locale("")["delimiter"] == ","


@pytest.mark.parametrize(
    "content",
    [
        "",
        "wavelength,value\n",
        "wavelength,value\n400,abc\n500,1\n",
        "400,1\n",
        "400,1\n400,2\n",
    ],
)
def test_malformed_tables_raise_import_error(tmp_path, content):
    path = tmp_path / "bad.csv"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ReferenceImportError):
        read_reference_csv(path)


def test_missing_file_raises_import_error(tmp_path):
    with pytest.raises(ReferenceImportError):
        read_reference_csv(tmp_path / "absent.csv")


def test_export_writes_one_row_per_bin(tmp_path):
    cal = SpectrumCalibration(low=CalibrationPoint(0, 400.0), high=CalibrationPoint(2, 500.0))
    spectrum = Spectrum.from_rows([[1, 2, 3], [4, 5, 6], [7, 8, 9], [12, 15, 18]])
    path = write_spectrum_csv(tmp_path / "out.csv", spectrum, cal)

    table = pd.read_csv(path)

    assert list(table.columns) == ["wavelength", "r", "g", "b", "sum"]
    assert table["wavelength"].tolist() == [400.0, 450.0, 500.0]
    assert table["sum"].tolist() == [12.0, 15.0, 18.0]
    assert np.array_equal(table[["r", "g", "b"]].to_numpy(), spectrum.values[:3].T)


def test_export_to_missing_directory_raises(tmp_path):
    with pytest.raises(SpectrumExportError):
        write_spectrum_csv(tmp_path / "nope" / "out.csv", Spectrum.zeros(3), SpectrumCalibration())
