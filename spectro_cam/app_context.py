from __future__ import annotations

import logging
from pathlib import Path

from spectro_cam.engine.run_controller import SpectrometerController
from spectro_cam.engine.settings_model import DEFAULT_SETTINGS_PATH, load_settings, save_settings

logger = logging.getLogger(__name__)


class AppContext:
    def __init__(self, settings_path: Path | str | None = None):
        # Settings live next to the user's other SpectroCam data unless overridden
        self.settings_path = Path(settings_path) if settings_path else DEFAULT_SETTINGS_PATH
        self.controller = SpectrometerController(load_settings(self.settings_path))
        self._dirty = False

    def set_dirty(self, dirty: bool):
        self._dirty = dirty

    def is_dirty(self) -> bool:
        return self._dirty

    def persist(self) -> Path:
        path = save_settings(self.controller.snapshot_settings(), self.settings_path)
        self._dirty = False
        return path

    def maybe_close(self) -> bool:
        if self._dirty:
            try:
                self.persist()
            except OSError as exc:
                logger.error("Could not persist settings: %s", exc)
                return False
        if self.controller.running:
            self.controller.stop()
        return True
