"""Inverse transfer functions for gamma-encoded sensor samples."""

from __future__ import annotations

from enum import Enum

import numpy as np

__all__ = ["Linearize", "linearize_rec_bt", "linearize_srgb"]


def linearize_rec_bt(values: np.ndarray) -> np.ndarray:
    """Inverse ITU-R BT.601 / BT.709 transfer (both share the same curve)."""

    arr = np.asarray(values, dtype=float)
    out = np.empty_like(arr)
    low = arr < 0.081
    out[low] = arr[low] / 4.5
    out[~low] = ((arr[~low] + 0.099) / 1.099) ** (1.0 / 0.45)
    return out


def linearize_srgb(values: np.ndarray) -> np.ndarray:
    """Inverse IEC 61966-2-1 sRGB transfer."""

    arr = np.asarray(values, dtype=float)
    out = np.empty_like(arr)
    low = arr <= 0.04045
    out[low] = arr[low] / 12.92
    out[~low] = ((arr[~low] + 0.055) / 1.055) ** 2.4
    return out


class Linearize(str, Enum):
    OFF = "Off"
    REC601 = "Rec601"
    REC709 = "Rec709"
    SRGB = "SRgb"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: object) -> "Linearize":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for mode in cls:
            if mode.value.lower() == text or mode.name.lower() == text:
                return mode
        raise ValueError(f"Unknown linearization mode: {value!r}")

    def apply(self, values: np.ndarray) -> np.ndarray:
        """Map normalised samples back toward linear light intensity."""

        if self is Linearize.OFF:
            return np.array(values, dtype=float, copy=True)
        if self is Linearize.SRGB:
            return linearize_srgb(values)
        return linearize_rec_bt(values)
