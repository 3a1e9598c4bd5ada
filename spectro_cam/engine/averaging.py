"""Sliding window of recent raw frames."""

from __future__ import annotations

from collections import deque
import logging
from typing import Deque, Optional, Tuple

import numpy as np

from spectro_cam.engine.spectrum_api import as_raw_frame

__all__ = ["AveragingBuffer", "BUFFER_SIZE_LIMITS"]

logger = logging.getLogger(__name__)

BUFFER_SIZE_LIMITS = (1, 100)


def _check_buffer_size(buffer_size: int) -> int:
    size = int(buffer_size)
    lo, hi = BUFFER_SIZE_LIMITS
    if not lo <= size <= hi:
        raise ValueError(f"Buffer size must lie within {lo}-{hi}, got {size}")
    return size


class AveragingBuffer:
    """Newest-first window of frames that all share one bin count."""

    def __init__(self, buffer_size: int = 10) -> None:
        self._buffer_size = _check_buffer_size(buffer_size)
        self._frames: Deque[np.ndarray] = deque()

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    @buffer_size.setter
    def buffer_size(self, value: int) -> None:
        self._buffer_size = _check_buffer_size(value)
        self._truncate()

    def resize(self, buffer_size: int) -> None:
        self.buffer_size = buffer_size

    @property
    def n_bins(self) -> Optional[int]:
        if not self._frames:
            return None
        return int(self._frames[0].shape[1])

    @property
    def frames(self) -> Tuple[np.ndarray, ...]:
        return tuple(self._frames)

    def clear(self) -> None:
        self._frames.clear()

    def push(self, frame) -> bool:
        """Insert ``frame`` as the newest entry.

        Returns ``True`` when the frame's bin count differs from the buffered
        frames; the buffer is emptied before the insert in that case.
        """

        frame = as_raw_frame(frame)
        dimension_changed = False
        current = self.n_bins
        if current is not None and frame.shape[1] != current:
            logger.info("Bin count changed from %d to %d; clearing buffer", current, frame.shape[1])
            self._frames.clear()
            dimension_changed = True
        self._frames.appendleft(frame)
        self._truncate()
        return dimension_changed

    def mean_frame(self) -> np.ndarray:
        """Elementwise mean over the buffered frames (3×N)."""

        if not self._frames:
            raise ValueError("Cannot average an empty buffer")
        return np.stack(self._frames).sum(axis=0) / len(self._frames)

    def _truncate(self) -> None:
        while len(self._frames) > self._buffer_size:
            self._frames.pop()
