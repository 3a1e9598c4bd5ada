"""Frame-to-spectrum pipeline.

Each accepted frame is linearised, pushed into the averaging buffer and
reduced to a mean frame. Channel gains, the optional flat-field scaling of
the sum row, the zero-phase low-pass and the zero reference are then applied
in that order to produce the published :class:`Spectrum`.
"""

from __future__ import annotations

from dataclasses import replace
import logging
from typing import Optional

import numpy as np

from spectro_cam.engine.averaging import AveragingBuffer
from spectro_cam.engine.calibration import SpectrumCalibration
from spectro_cam.engine.filtering import filter_rows
from spectro_cam.engine.linearization import Linearize
from spectro_cam.engine.reference import ReferenceCurve, compute_scaling
from spectro_cam.engine.settings_model import PostprocessingSettings
from spectro_cam.engine.spectrum_api import Spectrum, as_raw_frame

__all__ = ["SpectrumBuilder"]

logger = logging.getLogger(__name__)


class SpectrumBuilder:
    def __init__(
        self,
        calibration: SpectrumCalibration | None = None,
        postprocessing: PostprocessingSettings | None = None,
    ) -> None:
        self.calibration = calibration or SpectrumCalibration()
        self.postprocessing = postprocessing or PostprocessingSettings()
        self.buffer = AveragingBuffer(self.postprocessing.buffer_size)
        self.spectrum = Spectrum.zeros(0)
        self.zero_reference: Optional[Spectrum] = None

    # -- configuration -------------------------------------------------

    def set_linearize(self, mode: Linearize | str) -> None:
        mode = Linearize.parse(mode)
        if mode is not self.calibration.linearize:
            self.buffer.clear()
        self.calibration.linearize = mode

    def set_calibration(self, calibration: SpectrumCalibration) -> None:
        """Adopt anchors, gains and linearisation from ``calibration``.

        The scaling vector stays pipeline-owned: it is carried over while the
        anchors are unchanged and dropped otherwise.
        """

        scaling = self.calibration.scaling
        if not calibration.same_anchors(self.calibration):
            if scaling is not None:
                logger.info("Calibration anchors moved; dropping flat-field scaling")
            scaling = None
        if calibration.linearize is not self.calibration.linearize:
            self.buffer.clear()
        self.calibration = replace(calibration, scaling=scaling)

    def set_postprocessing(self, postprocessing: PostprocessingSettings) -> None:
        self.buffer.resize(postprocessing.buffer_size)
        self.postprocessing = postprocessing

    def update_settings(
        self, calibration: SpectrumCalibration, postprocessing: PostprocessingSettings
    ) -> None:
        self.set_calibration(calibration)
        self.set_postprocessing(postprocessing)

    def clear_buffer(self) -> None:
        self.buffer.clear()

    # -- zero reference and flat field ---------------------------------

    def set_zero_reference(self) -> bool:
        """Snapshot the published spectrum as the zero reference."""

        if self.zero_reference is not None or not self.spectrum.n_bins:
            return False
        self.zero_reference = self.spectrum
        return True

    def clear_zero_reference(self) -> None:
        self.zero_reference = None

    def calibrate_from_reference(self, reference: ReferenceCurve, *, scale: float = 1.0) -> bool:
        """Derive flat-field factors from the current sum row.

        Only allowed while no scaling is active, since the published sum row
        would already carry the old factors.
        """

        if self.calibration.scaling is not None or not self.spectrum.n_bins:
            return False
        scaling = compute_scaling(self.spectrum.sum, self.calibration, reference, scale=scale)
        if scaling is None:
            return False
        self.calibration.scaling = scaling
        return True

    def clear_calibration(self) -> None:
        self.calibration.scaling = None

    # -- build ----------------------------------------------------------

    def update(self, frame) -> Spectrum:
        frame = as_raw_frame(frame)
        if self.calibration.linearize is not Linearize.OFF:
            frame = as_raw_frame(self.calibration.linearize.apply(frame))

        dimension_changed = self.buffer.push(frame)
        n_bins = frame.shape[1]
        stale = self.zero_reference is not None and self.zero_reference.n_bins != n_bins
        if dimension_changed or stale:
            self.zero_reference = None
        scaling = self.calibration.scaling
        if scaling is not None and scaling.size != n_bins:
            logger.info(
                "Flat-field scaling covers %d bins but frames have %d; dropping it", scaling.size, n_bins
            )
            self.calibration.scaling = None
        return self._build()

    def rebuild(self) -> Spectrum:
        """Recompute the published spectrum from the buffered frames.

        Nothing is pushed, so the averaging window is left as it is. Raises
        ``ValueError`` when the buffer is empty.
        """

        return self._build()

    def _build(self) -> Spectrum:
        combined = self.buffer.mean_frame() * self.calibration.gains[:, np.newaxis]
        total = combined.sum(axis=0)
        if self.calibration.scaling is not None:
            total = total * self.calibration.scaling_factors(total.size)

        rows = np.vstack([combined, total])
        if self.postprocessing.filter_enabled:
            rows = filter_rows(rows, self.postprocessing.filter_cutoff)

        current = Spectrum(rows)
        if self.zero_reference is not None:
            current = current - self.zero_reference

        self.spectrum = current
        return current
