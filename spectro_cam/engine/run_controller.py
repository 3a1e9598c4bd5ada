"""Single-owner consumer loop around the spectrum pipeline.

Producers (the acquisition thread, the settings UI, worker threads) only put
immutable snapshots on the controller's queues. :meth:`tick` is the only
place that mutates pipeline state and must be called from one thread.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
import logging
import queue
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from spectro_cam.engine.camera_controls import CameraControl, changed_controls, reset_all
from spectro_cam.engine.peak_detection import detect_peaks_and_dips
from spectro_cam.engine.pipeline import SpectrumBuilder
from spectro_cam.engine.reference import (
    DEFAULT_FILAMENT_TEMP,
    ReferenceCurve,
    reference_from_filament_temp,
)
from spectro_cam.engine.settings_model import SpectrometerSettings
from spectro_cam.engine.spectrum_api import FeaturePoint, Spectrum, ThreadResult
from spectro_cam.io.spectrum_csv import (
    ReferenceImportError,
    SpectrumExportError,
    read_reference_csv,
    write_spectrum_csv,
)

__all__ = [
    "CameraEvent",
    "StartStream",
    "StopStream",
    "ControlsChanged",
    "SpectrometerController",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StartStream:
    camera_id: int


@dataclass(frozen=True)
class StopStream:
    pass


@dataclass(frozen=True)
class ControlsChanged:
    controls: Tuple[CameraControl, ...]


CameraEvent = Union[StartStream, StopStream, ControlsChanged]


class SpectrometerController:
    def __init__(self, settings: SpectrometerSettings | None = None) -> None:
        settings = copy.deepcopy(settings) if settings is not None else SpectrometerSettings()
        self.frames: "queue.Queue[np.ndarray]" = queue.Queue()
        self.settings_inbox: "queue.Queue[SpectrometerSettings]" = queue.Queue()
        self.results: "queue.Queue[ThreadResult]" = queue.Queue()
        self.camera_events: "queue.Queue[CameraEvent]" = queue.Queue()

        self.settings = settings
        self.builder = SpectrumBuilder(settings.calibration, settings.postprocessing)
        self.reference: Optional[ReferenceCurve] = settings.reference
        self.camera_controls: List[CameraControl] = []
        self.last_result: Optional[ThreadResult] = None
        self.running = False

    # -- producer side ---------------------------------------------------

    def submit_frame(self, frame) -> None:
        self.frames.put(np.array(frame, dtype=float, copy=True))

    def submit_settings(self, settings: SpectrometerSettings) -> None:
        self.settings_inbox.put(copy.deepcopy(settings))

    def report(self, result: ThreadResult) -> None:
        self.results.put(result)

    # -- consumer side ---------------------------------------------------

    def tick(self) -> bool:
        """Drain pending settings, one frame and one worker result.

        Returns ``True`` when a new spectrum was published.
        """

        latest = None
        while True:
            try:
                latest = self.settings_inbox.get_nowait()
            except queue.Empty:
                break
        if latest is not None:
            self.apply_settings(latest)

        built = False
        try:
            frame = self.frames.get_nowait()
        except queue.Empty:
            frame = None
        if frame is not None:
            try:
                self.builder.update(frame)
                built = True
            except ValueError as exc:
                logger.warning("Dropped malformed frame: %s", exc)

        try:
            result = self.results.get_nowait()
        except queue.Empty:
            result = None
        if result is not None:
            self._handle_thread_result(result)
        return built

    def _handle_thread_result(self, result: ThreadResult) -> None:
        if result.source == "camera" and not result.ok:
            logger.error("Camera reported: %s", result.message)
            self.running = False
        self.last_result = result

    def apply_settings(self, settings: SpectrometerSettings) -> None:
        """Adopt a configuration snapshot.

        The flat-field scaling and the reference curve are owned by the
        controller and only change through explicit actions.
        """

        errs = settings.validate()
        if errs:
            self.last_result = ThreadResult.failure("main", "; ".join(errs))
            logger.warning("Rejected settings: %s", "; ".join(errs))
            return
        self.builder.update_settings(settings.calibration, settings.postprocessing)
        settings.calibration = self.builder.calibration
        settings.reference = self.reference
        self.settings = settings

    def rebuild_spectrum(self) -> bool:
        """Re-run the build on the buffered frames after a calibration action."""

        if not len(self.builder.buffer):
            return False
        self.builder.rebuild()
        return True

    # -- read accessors --------------------------------------------------

    @property
    def spectrum(self) -> Spectrum:
        return self.builder.spectrum

    def feature_points(self, *, peaks: bool = True) -> List[FeaturePoint]:
        view = self.settings.view
        return detect_peaks_and_dips(
            self.builder.spectrum.sum,
            self.builder.calibration,
            find_window=view.find_window,
            unique_window=view.unique_window,
            peaks=peaks,
        )

    def snapshot_settings(self) -> SpectrometerSettings:
        settings = copy.deepcopy(self.settings)
        settings.calibration = copy.deepcopy(self.builder.calibration)
        settings.reference = self.reference
        return settings

    # -- stream and device control ---------------------------------------

    def start(self, camera_id: int | None = None) -> None:
        if camera_id is not None:
            self.settings.camera_id = int(camera_id)
        self.builder.clear_buffer()
        self.running = True
        self.camera_events.put(StartStream(self.settings.camera_id))

    def stop(self) -> None:
        self.running = False
        self.camera_events.put(StopStream())

    def apply_camera_controls(self, controls: Sequence[CameraControl]) -> None:
        """Forward changed controls to the camera; frames before the change are dropped."""

        controls = tuple(changed_controls(self.camera_controls, controls))
        if not controls:
            return
        by_id = {ctrl.id: ctrl for ctrl in self.camera_controls}
        by_id.update({ctrl.id: ctrl for ctrl in controls})
        self.camera_controls = list(by_id.values())
        self.builder.clear_buffer()
        self.camera_events.put(ControlsChanged(controls))

    def reset_camera_controls(self) -> None:
        self.apply_camera_controls(reset_all(self.camera_controls))

    # -- calibration actions ---------------------------------------------

    def set_zero_reference(self) -> bool:
        return self.builder.set_zero_reference()

    def clear_zero_reference(self) -> None:
        self.builder.clear_zero_reference()

    def calibrate_from_reference(self) -> ThreadResult:
        if self.reference is None:
            result = ThreadResult.failure("main", "No reference loaded")
        elif self.builder.calibrate_from_reference(self.reference, scale=self.settings.reference_scale):
            result = ThreadResult.success("main", "Reference set as calibration")
        else:
            result = ThreadResult.failure(
                "main", "Reference does not cover the spectrum, or a calibration is already active"
            )
        self.last_result = result
        return result

    def clear_calibration(self) -> None:
        self.builder.clear_calibration()

    # -- reference and export --------------------------------------------

    def import_reference(self, path: Path | str) -> ThreadResult:
        try:
            self.reference = read_reference_csv(path)
        except ReferenceImportError as exc:
            logger.exception("Reference import from %s failed", path)
            result = ThreadResult.failure("main", str(exc))
        else:
            result = ThreadResult.success("main")
        self.last_result = result
        return result

    def generate_reference(self, temp_k: float = DEFAULT_FILAMENT_TEMP) -> ThreadResult:
        try:
            self.reference = reference_from_filament_temp(temp_k)
        except ValueError as exc:
            result = ThreadResult.failure("main", str(exc))
        else:
            result = ThreadResult.success("main")
        self.last_result = result
        return result

    def delete_reference(self) -> None:
        self.reference = None

    def export_spectrum(self, path: Path | str | None = None) -> ThreadResult:
        target = Path(path) if path is not None else Path(self.settings.export_path)
        try:
            write_spectrum_csv(target, self.builder.spectrum, self.builder.calibration)
        except SpectrumExportError as exc:
            logger.exception("Spectrum export to %s failed", target)
            result = ThreadResult.failure("main", str(exc))
        else:
            result = ThreadResult.success("main", f"Exported {target}")
        self.last_result = result
        return result
