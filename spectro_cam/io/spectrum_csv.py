"""CSV import of reference curves and export of spectra."""

from __future__ import annotations

import io
import logging
from pathlib import Path

import numpy as np
import pandas as pd

from spectro_cam.engine.calibration import SpectrumCalibration
from spectro_cam.engine.io_common import looks_numeric, sniff_locale
from spectro_cam.engine.reference import ReferenceCurve
from spectro_cam.engine.spectrum_api import ROWS, Spectrum

__all__ = [
    "ReferenceImportError",
    "SpectrumExportError",
    "read_reference_csv",
    "spectrum_to_frame",
    "write_spectrum_csv",
]

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ("wavelength",) + ROWS


class ReferenceImportError(ValueError):
    """Raised when a reference table cannot be parsed."""


class SpectrumExportError(OSError):
    """Raised when a spectrum cannot be written."""


def _pick_columns(frame: pd.DataFrame) -> pd.DataFrame:
    first = frame.iloc[0].tolist()
    if looks_numeric(first):
        body = frame
        names = [str(i) for i in range(frame.shape[1])]
    else:
        body = frame.iloc[1:]
        names = [str(cell).strip().lower() for cell in first]
    body = body.set_axis(names, axis=1)

    if "wavelength" in names and "value" in names:
        return body[["wavelength", "value"]]
    if body.shape[1] < 2:
        raise ReferenceImportError("Reference table needs a wavelength and a value column")
    return body.iloc[:, :2].set_axis(["wavelength", "value"], axis=1)


def read_reference_csv(path: Path | str) -> ReferenceCurve:
    """Parse a (wavelength, value) table into a :class:`ReferenceCurve`.

    Headers are optional; when present, ``wavelength`` and ``value`` columns
    are matched case-insensitively, otherwise the first two columns are used.
    """

    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as exc:
        raise ReferenceImportError(f"Failed to read {path}: {exc}") from exc

    locale = sniff_locale(text[:4000])
    try:
        raw = pd.read_csv(
            io.StringIO(text),
            sep=locale["delimiter"],
            header=None,
            dtype=str,
            skipinitialspace=True,
            skip_blank_lines=True,
        )
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise ReferenceImportError(f"Failed to parse {path}: {exc}") from exc

    raw = raw.dropna(how="all")
    if raw.empty:
        raise ReferenceImportError(f"No rows found in {path}")

    table = _pick_columns(raw)
    if locale["decimal"] == ",":
        table = table.apply(lambda col: col.str.replace(",", ".", regex=False))
    numeric = table.apply(pd.to_numeric, errors="coerce")
    if numeric.isna().any().any():
        raise ReferenceImportError(f"Non-numeric entries in {path}")

    try:
        curve = ReferenceCurve(
            wavelengths=numeric["wavelength"].to_numpy(dtype=float),
            values=numeric["value"].to_numpy(dtype=float),
        )
    except ValueError as exc:
        raise ReferenceImportError(str(exc)) from exc
    logger.info("Loaded %d reference points from %s", curve.wavelengths.size, path)
    return curve


def spectrum_to_frame(spectrum: Spectrum, calibration: SpectrumCalibration) -> pd.DataFrame:
    data = {"wavelength": calibration.wavelengths(spectrum.n_bins)}
    for name in ROWS:
        data[name] = np.asarray(spectrum.row(name), dtype=float)
    return pd.DataFrame(data, columns=list(EXPORT_COLUMNS))


def write_spectrum_csv(path: Path | str, spectrum: Spectrum, calibration: SpectrumCalibration) -> Path:
    """Write one ``wavelength,r,g,b,sum`` row per bin."""

    path = Path(path)
    try:
        spectrum_to_frame(spectrum, calibration).to_csv(path, index=False)
    except OSError as exc:
        raise SpectrumExportError(f"Failed to write {path}: {exc}") from exc
    return path
