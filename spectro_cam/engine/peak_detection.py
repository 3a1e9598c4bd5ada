"""Peak and dip detection on the summed spectrum.

Candidates are strict local extrema within a ``2 * find_window + 1`` sample
window. Candidates are then thinned by value inside a wavelength
neighbourhood of width ``unique_window``: a candidate is kept only if no
other candidate within ``unique_window / 2`` of it is more extreme.
"""

from __future__ import annotations

import logging
from typing import List

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from spectro_cam.engine.calibration import SpectrumCalibration
from spectro_cam.engine.spectrum_api import FeaturePoint

__all__ = [
    "LABEL_OFFSET_FRACTION",
    "find_extremum_candidates",
    "suppress_non_extrema",
    "detect_peaks_and_dips",
]

logger = logging.getLogger(__name__)

LABEL_OFFSET_FRACTION = 0.01


def find_extremum_candidates(values: np.ndarray, find_window: int, *, peaks: bool = True) -> np.ndarray:
    """Indices whose sample is strictly above (or below) every other window sample.

    Only centres whose full window lies inside the sequence are considered;
    equal neighbours disqualify a centre.
    """

    half = int(find_window)
    if half < 1:
        raise ValueError("Find window must be at least 1")
    y = np.asarray(values, dtype=float)
    size = 2 * half + 1
    if y.size < size:
        return np.empty(0, dtype=int)

    windows = sliding_window_view(y, size)
    centres = windows[:, half]
    others = np.delete(windows, half, axis=1)
    if peaks:
        mask = np.all(others < centres[:, np.newaxis], axis=1)
    else:
        mask = np.all(others > centres[:, np.newaxis], axis=1)
    return np.flatnonzero(mask) + half


def suppress_non_extrema(
    wavelengths: np.ndarray,
    values: np.ndarray,
    unique_window: float,
    *,
    peaks: bool = True,
) -> np.ndarray:
    """Boolean mask of candidates that are the extreme value of their neighbourhood.

    The neighbourhood of a candidate holds every candidate (itself included)
    whose wavelength lies strictly within ``unique_window / 2``. Exact ties
    all survive.
    """

    if not unique_window > 0:
        raise ValueError("Unique window must be positive")
    wl = np.asarray(wavelengths, dtype=float)
    vals = np.asarray(values, dtype=float)
    if wl.size == 0:
        return np.zeros(0, dtype=bool)

    half = unique_window / 2.0
    neighbours = (wl[np.newaxis, :] > wl[:, np.newaxis] - half) & (
        wl[np.newaxis, :] < wl[:, np.newaxis] + half
    )
    fill = -np.inf if peaks else np.inf
    masked = np.where(neighbours, vals[np.newaxis, :], fill)
    best = masked.max(axis=1) if peaks else masked.min(axis=1)
    return vals == best


def detect_peaks_and_dips(
    sum_row: np.ndarray,
    calibration: SpectrumCalibration,
    *,
    find_window: int,
    unique_window: float,
    peaks: bool = True,
) -> List[FeaturePoint]:
    """Return deduplicated peaks (or dips) ordered by bin index."""

    y = np.asarray(sum_row, dtype=float)
    candidates = find_extremum_candidates(y, find_window, peaks=peaks)
    if candidates.size == 0:
        return []

    wavelengths = calibration.wavelength_of(candidates.astype(float))
    values = y[candidates]
    keep = suppress_non_extrema(wavelengths, values, unique_window, peaks=peaks)

    finite = y[np.isfinite(y)]
    max_value = float(finite.max()) if finite.size else 0.0
    offset = max_value * LABEL_OFFSET_FRACTION
    if not peaks:
        offset = -offset

    points = [
        FeaturePoint(wavelength=float(w), value=float(v), label_value=float(v + offset))
        for w, v in zip(wavelengths[keep], values[keep])
    ]
    logger.debug(
        "Found %d %s from %d candidates", len(points), "peaks" if peaks else "dips", candidates.size
    )
    return points
