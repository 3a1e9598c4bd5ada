from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy import constants

from spectro_cam.engine.calibration import SpectrumCalibration

__all__ = [
    "ReferenceCurve",
    "compute_scaling",
    "reference_from_filament_temp",
    "FILAMENT_TEMP_LIMITS",
]

logger = logging.getLogger(__name__)

FILAMENT_TEMP_LIMITS = (1000, 3500)
DEFAULT_FILAMENT_TEMP = 2800
REFERENCE_SCALE_LIMITS = (0.001, 100.0)


@dataclass(frozen=True)
class ReferenceCurve:
    """Known spectral response, sampled as ascending (wavelength, value) pairs."""

    wavelengths: np.ndarray
    values: np.ndarray

    def __post_init__(self):
        wl = np.asarray(self.wavelengths, dtype=float).ravel()
        vals = np.asarray(self.values, dtype=float).ravel()
        if wl.size != vals.size:
            raise ValueError("Reference wavelengths and values differ in length")
        if wl.size < 2:
            raise ValueError("Reference curves need at least two points")
        if not (np.all(np.isfinite(wl)) and np.all(np.isfinite(vals))):
            raise ValueError("Reference curves must be finite")
        order = np.argsort(wl, kind="stable")
        wl, vals = wl[order], vals[order]
        if np.any(np.diff(wl) == 0):
            raise ValueError("Reference wavelengths must be unique")
        wl.setflags(write=False)
        vals.setflags(write=False)
        object.__setattr__(self, "wavelengths", wl)
        object.__setattr__(self, "values", vals)

    @classmethod
    def from_points(cls, points: Iterable[Tuple[float, float]]) -> "ReferenceCurve":
        pairs = [(float(w), float(v)) for w, v in points]
        return cls(
            wavelengths=np.array([w for w, _ in pairs], dtype=float),
            values=np.array([v for _, v in pairs], dtype=float),
        )

    @property
    def domain(self) -> Tuple[float, float]:
        return float(self.wavelengths[0]), float(self.wavelengths[-1])

    def value_at(self, wavelength: float) -> Optional[float]:
        """Linearly interpolated value, or ``None`` outside the sampled domain."""

        lo, hi = self.domain
        if not lo <= wavelength <= hi:
            return None
        return float(np.interp(wavelength, self.wavelengths, self.values))

    def values_at(self, wavelengths: Sequence[float]) -> Optional[np.ndarray]:
        """Vectorised :meth:`value_at`; ``None`` if any wavelength misses."""

        wl = np.asarray(wavelengths, dtype=float)
        lo, hi = self.domain
        if wl.size and (np.min(wl) < lo or np.max(wl) > hi or not np.all(np.isfinite(wl))):
            return None
        return np.interp(wl, self.wavelengths, self.values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wavelength": self.wavelengths.tolist(),
            "value": self.values.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReferenceCurve":
        return cls(
            wavelengths=np.asarray(data.get("wavelength") or [], dtype=float),
            values=np.asarray(data.get("value") or [], dtype=float),
        )


def compute_scaling(
    sum_row: np.ndarray,
    calibration: SpectrumCalibration,
    reference: ReferenceCurve,
    *,
    scale: float = 1.0,
) -> Optional[np.ndarray]:
    """Per-bin flat-field factors ``reference(wavelength(i)) * scale / sum[i]``.

    Returns ``None`` when any bin maps outside the reference domain. Bins with
    a zero sum get a neutral factor of 1.0.
    """

    measured = np.asarray(sum_row, dtype=float)
    expected = reference.values_at(calibration.wavelengths(measured.size))
    if expected is None:
        lo, hi = reference.domain
        logger.warning(
            "Spectrum spans wavelengths outside the reference domain %.1f-%.1f nm", lo, hi
        )
        return None

    factors = np.ones_like(measured)
    usable = measured != 0
    factors[usable] = expected[usable] * float(scale) / measured[usable]
    if not np.all(usable):
        logger.warning("%d bins have zero intensity; left unscaled", int(np.count_nonzero(~usable)))
    return factors


def _planck(wavelength_nm: np.ndarray, temp_k: float) -> np.ndarray:
    wl = np.asarray(wavelength_nm, dtype=float) * 1e-9
    h, c, k = constants.h, constants.c, constants.k
    return (2.0 * h * c**2 / wl**5) / np.expm1(h * c / (wl * k * temp_k))


def reference_from_filament_temp(
    temp_k: float = DEFAULT_FILAMENT_TEMP,
    *,
    start_nm: float = 200.0,
    stop_nm: float = 2000.0,
    step_nm: float = 1.0,
) -> ReferenceCurve:
    """Blackbody reference for a tungsten-halogen lamp, peak normalised to 1."""

    lo, hi = FILAMENT_TEMP_LIMITS
    if not lo <= temp_k <= hi:
        raise ValueError(f"Filament temperature must lie within {lo}-{hi} K")
    wavelengths = np.arange(start_nm, stop_nm + step_nm / 2.0, step_nm, dtype=float)
    radiance = _planck(wavelengths, float(temp_k))
    return ReferenceCurve(wavelengths=wavelengths, values=radiance / np.max(radiance))
