"""Zero-phase low-pass smoothing along the bin axis.

The filter is a second-order Butterworth section designed with the RBJ
cookbook formulas. Cutoffs are expressed against ``NOMINAL_SAMPLE_RATE``
rather than the physical bin spacing, so a cutoff of 1.0 sits exactly at the
Nyquist limit and smaller values smooth harder. The absolute mapping is a
tuning constant, not a physical frequency.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np
from scipy.signal import lfilter, lfilter_zi

__all__ = [
    "NOMINAL_SAMPLE_RATE",
    "BUTTERWORTH_Q",
    "CUTOFF_LIMITS",
    "clamp_cutoff",
    "lowpass_coefficients",
    "zero_phase_lowpass",
    "filter_rows",
]

NOMINAL_SAMPLE_RATE = 2.0
BUTTERWORTH_Q = 1.0 / math.sqrt(2.0)
CUTOFF_LIMITS = (0.001, 1.0)


def clamp_cutoff(cutoff: float) -> float:
    lo, hi = CUTOFF_LIMITS
    return float(min(max(float(cutoff), lo), hi))


def lowpass_coefficients(
    cutoff: float,
    *,
    sample_rate: float = NOMINAL_SAMPLE_RATE,
    q: float = BUTTERWORTH_Q,
) -> Tuple[np.ndarray, np.ndarray]:
    """Return normalised ``(b, a)`` for a biquad low-pass at ``cutoff``."""

    if q <= 0:
        raise ValueError("Filter Q must be positive")
    if not 0 < cutoff <= sample_rate / 2.0:
        raise ValueError("Cutoff must lie within (0, sample_rate / 2]")

    omega = 2.0 * math.pi * cutoff / sample_rate
    cos_w = math.cos(omega)
    alpha = math.sin(omega) / (2.0 * q)

    b = np.array([(1.0 - cos_w) / 2.0, 1.0 - cos_w, (1.0 - cos_w) / 2.0])
    a = np.array([1.0 + alpha, -2.0 * cos_w, 1.0 - alpha])
    return b / a[0], a / a[0]


def _single_pass(b: np.ndarray, a: np.ndarray, x: np.ndarray) -> np.ndarray:
    # Start from the steady state for the first sample so edges do not ring.
    zi = lfilter_zi(b, a) * x[0]
    y, _ = lfilter(b, a, x, zi=zi)
    return y


def zero_phase_lowpass(values: np.ndarray, cutoff: float) -> np.ndarray:
    """Run the low-pass forward, then a fresh instance over the result reversed.

    The reverse pass cancels the phase delay of the forward pass. ``cutoff``
    is clamped into ``CUTOFF_LIMITS``.
    """

    x = np.asarray(values, dtype=float)
    if x.size == 0:
        return x.copy()

    b, a = lowpass_coefficients(clamp_cutoff(cutoff))
    forward = _single_pass(b, a, x)
    backward = _single_pass(b, a, forward[::-1])
    return backward[::-1].copy()


def filter_rows(rows: np.ndarray, cutoff: float) -> np.ndarray:
    """Apply :func:`zero_phase_lowpass` to every row of a 2-D block."""

    block = np.asarray(rows, dtype=float)
    return np.vstack([zero_phase_lowpass(row, cutoff) for row in block]) if block.size else block.copy()
