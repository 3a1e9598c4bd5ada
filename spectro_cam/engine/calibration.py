"""Index/wavelength mapping and channel calibration."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from spectro_cam.engine.linearization import Linearize

__all__ = [
    "CalibrationPoint",
    "GainPreset",
    "GAIN_PRESETS",
    "SpectrumCalibration",
]

GAIN_LIMITS = (0.0, 10.0)
WAVELENGTH_LIMITS = (200.0, 2000.0)


class GainPreset(str, Enum):
    UNITY = "Unity"
    SRGB = "SRgb"
    REC601 = "Rec601"
    REC709 = "Rec709"

    def __str__(self) -> str:
        return self.value


# Luma weights of the respective standards
GAIN_PRESETS: Dict[GainPreset, tuple[float, float, float]] = {
    GainPreset.UNITY: (1.0, 1.0, 1.0),
    GainPreset.SRGB: (0.2126, 0.7152, 0.0722),
    GainPreset.REC601: (0.299, 0.587, 0.114),
    GainPreset.REC709: (0.2126, 0.7152, 0.0722),
}


@dataclass(frozen=True)
class CalibrationPoint:
    index: int
    wavelength: float

    def to_dict(self) -> Dict[str, Any]:
        return {"index": int(self.index), "wavelength": float(self.wavelength)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CalibrationPoint":
        return cls(index=int(data["index"]), wavelength=float(data["wavelength"]))


@dataclass(eq=False)
class SpectrumCalibration:
    low: CalibrationPoint = field(default_factory=lambda: CalibrationPoint(0, 400.0))
    high: CalibrationPoint = field(default_factory=lambda: CalibrationPoint(1000, 700.0))
    linearize: Linearize = Linearize.OFF
    gain_r: float = 1.0
    gain_g: float = 1.0
    gain_b: float = 1.0
    scaling: Optional[np.ndarray] = None

    def __post_init__(self):
        self.linearize = Linearize.parse(self.linearize)
        if self.scaling is not None:
            self.scaling = np.asarray(self.scaling, dtype=float).copy()

    def wavelength_of(self, index):
        """Map bin ``index`` (scalar or array) to wavelength.

        The map is the affine line through ``low`` and ``high``; indices
        outside the anchors extrapolate. Callers keep ``low.index`` below
        ``high.index``.
        """

        # Exact at both anchors
        steps = float(self.high.index - self.low.index)
        if np.ndim(index):
            t = (np.asarray(index, dtype=float) - self.low.index) / steps
        else:
            t = (float(index) - self.low.index) / steps
        return (1.0 - t) * self.low.wavelength + t * self.high.wavelength

    def wavelengths(self, n_bins: int) -> np.ndarray:
        return self.wavelength_of(np.arange(int(n_bins), dtype=float))

    def scaling_factor_of(self, index: int) -> float:
        if self.scaling is None or not 0 <= index < self.scaling.size:
            return 1.0
        return float(self.scaling[index])

    def scaling_factors(self, n_bins: int) -> np.ndarray:
        factors = np.ones(int(n_bins), dtype=float)
        if self.scaling is not None:
            count = min(factors.size, self.scaling.size)
            factors[:count] = self.scaling[:count]
        return factors

    @property
    def gains(self) -> np.ndarray:
        return np.array([self.gain_r, self.gain_g, self.gain_b], dtype=float)

    def set_gain_preset(self, preset: GainPreset | str) -> None:
        self.gain_r, self.gain_g, self.gain_b = GAIN_PRESETS[GainPreset(preset)]

    def same_anchors(self, other: "SpectrumCalibration") -> bool:
        return self.low == other.low and self.high == other.high

    def without_scaling(self) -> "SpectrumCalibration":
        return replace(self, scaling=None)

    def validate(self) -> List[str]:
        errs = []
        if self.low.index < 0:
            errs.append("Calibration low index must not be negative")
        if self.low.index >= self.high.index:
            errs.append("Calibration low index must be below high index")
        if self.low.wavelength >= self.high.wavelength:
            errs.append("Calibration low wavelength must be below high wavelength")
        w_min, w_max = WAVELENGTH_LIMITS
        for label, point in (("low", self.low), ("high", self.high)):
            if not w_min <= point.wavelength <= w_max:
                errs.append(
                    f"Calibration {label} wavelength must lie within {w_min:g}-{w_max:g} nm"
                )
        g_min, g_max = GAIN_LIMITS
        for label, gain in (("R", self.gain_r), ("G", self.gain_g), ("B", self.gain_b)):
            if not g_min <= gain <= g_max:
                errs.append(f"Gain {label} must lie within {g_min:g}-{g_max:g}")
        return errs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "low": self.low.to_dict(),
            "high": self.high.to_dict(),
            "linearize": self.linearize.value,
            "gain_r": float(self.gain_r),
            "gain_g": float(self.gain_g),
            "gain_b": float(self.gain_b),
            "scaling": None if self.scaling is None else self.scaling.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SpectrumCalibration":
        defaults = cls()
        low = data.get("low")
        high = data.get("high")
        return cls(
            low=CalibrationPoint.from_dict(low) if low else defaults.low,
            high=CalibrationPoint.from_dict(high) if high else defaults.high,
            linearize=Linearize.parse(data.get("linearize", defaults.linearize)),
            gain_r=float(data.get("gain_r", defaults.gain_r)),
            gain_g=float(data.get("gain_g", defaults.gain_g)),
            gain_b=float(data.get("gain_b", defaults.gain_b)),
            scaling=data.get("scaling"),
        )
