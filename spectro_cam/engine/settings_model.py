from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from spectro_cam.engine.averaging import BUFFER_SIZE_LIMITS
from spectro_cam.engine.calibration import SpectrumCalibration
from spectro_cam.engine.reference import REFERENCE_SCALE_LIMITS, ReferenceCurve

DEFAULT_SETTINGS_PATH = Path.home() / "SpectroCam" / "settings.yaml"

FIND_WINDOW_LIMITS = (1, 200)

logger = logging.getLogger(__name__)


class SettingsError(ValueError):
    """Raised when a settings file cannot be read or fails validation."""


@dataclass(frozen=True)
class PostprocessingSettings:
    buffer_size: int = 10
    filter_enabled: bool = False
    filter_cutoff: float = 0.5

    def validate(self) -> list[str]:
        errs = []
        lo, hi = BUFFER_SIZE_LIMITS
        if not lo <= int(self.buffer_size) <= hi:
            errs.append(f"Averaging buffer size must lie within {lo}-{hi}")
        if not float(self.filter_cutoff) > 0:
            errs.append("Low-pass cutoff must be positive")
        return errs

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PostprocessingSettings":
        defaults = cls()
        return cls(
            buffer_size=int(data.get("buffer_size", defaults.buffer_size)),
            filter_enabled=bool(data.get("filter_enabled", defaults.filter_enabled)),
            filter_cutoff=float(data.get("filter_cutoff", defaults.filter_cutoff)),
        )


@dataclass(frozen=True)
class ViewSettings:
    find_window: int = 10
    unique_window: float = 20.0
    show_peaks: bool = True
    show_dips: bool = False

    def validate(self) -> list[str]:
        errs = []
        lo, hi = FIND_WINDOW_LIMITS
        if not lo <= int(self.find_window) <= hi:
            errs.append(f"Peak/dip find window must lie within {lo}-{hi}")
        if not float(self.unique_window) > 0:
            errs.append("Peak/dip unique window must be positive")
        return errs

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ViewSettings":
        defaults = cls()
        return cls(
            find_window=int(data.get("find_window", defaults.find_window)),
            unique_window=float(data.get("unique_window", defaults.unique_window)),
            show_peaks=bool(data.get("show_peaks", defaults.show_peaks)),
            show_dips=bool(data.get("show_dips", defaults.show_dips)),
        )


@dataclass(eq=False)
class SpectrometerSettings:
    camera_id: int = 0
    calibration: SpectrumCalibration = field(default_factory=SpectrumCalibration)
    postprocessing: PostprocessingSettings = field(default_factory=PostprocessingSettings)
    view: ViewSettings = field(default_factory=ViewSettings)
    reference_scale: float = 1.0
    reference: Optional[ReferenceCurve] = None
    export_path: str = "spectrum.csv"

    def validate(self) -> List[str]:
        errs = []
        errs.extend(self.calibration.validate())
        errs.extend(self.postprocessing.validate())
        errs.extend(self.view.validate())
        lo, hi = REFERENCE_SCALE_LIMITS
        if not lo <= float(self.reference_scale) <= hi:
            errs.append(f"Reference scale must lie within {lo:g}-{hi:g}")
        if int(self.camera_id) < 0:
            errs.append("Camera id must not be negative")
        return errs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "camera_id": int(self.camera_id),
            "calibration": self.calibration.to_dict(),
            "postprocessing": {
                "buffer_size": int(self.postprocessing.buffer_size),
                "filter_enabled": bool(self.postprocessing.filter_enabled),
                "filter_cutoff": float(self.postprocessing.filter_cutoff),
            },
            "view": {
                "find_window": int(self.view.find_window),
                "unique_window": float(self.view.unique_window),
                "show_peaks": bool(self.view.show_peaks),
                "show_dips": bool(self.view.show_dips),
            },
            "reference_scale": float(self.reference_scale),
            "reference": None if self.reference is None else self.reference.to_dict(),
            "export_path": str(self.export_path),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SpectrometerSettings":
        defaults = cls()
        reference = data.get("reference")
        return cls(
            camera_id=int(data.get("camera_id", defaults.camera_id)),
            calibration=SpectrumCalibration.from_dict(data.get("calibration") or {}),
            postprocessing=PostprocessingSettings.from_dict(data.get("postprocessing") or {}),
            view=ViewSettings.from_dict(data.get("view") or {}),
            reference_scale=float(data.get("reference_scale", defaults.reference_scale)),
            reference=ReferenceCurve.from_dict(reference) if isinstance(reference, Mapping) else None,
            export_path=str(data.get("export_path") or defaults.export_path),
        )


def load_settings(path: Path | str | None = None) -> SpectrometerSettings:
    """Read settings from YAML, falling back to defaults if the file is missing."""

    path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    if not path.exists():
        logger.info("No settings at %s; using defaults", path)
        return SpectrometerSettings()
    try:
        with path.open("r", encoding="utf-8") as handle:
            content = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise SettingsError(f"Failed to load settings: {exc}") from exc

    if not isinstance(content, dict):
        raise SettingsError("Settings file must contain a mapping at the top level.")
    try:
        settings = SpectrometerSettings.from_dict(content)
    except (KeyError, TypeError, ValueError) as exc:
        raise SettingsError(f"Malformed settings: {exc}") from exc

    errs = settings.validate()
    if errs:
        raise SettingsError("; ".join(errs))
    return settings


def save_settings(settings: SpectrometerSettings, path: Path | str | None = None) -> Path:
    path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(settings.to_dict(), handle, sort_keys=False)
    return path
