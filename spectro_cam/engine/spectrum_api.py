from dataclasses import dataclass
from typing import Iterable, Sequence, Union

import numpy as np

CHANNELS = ("r", "g", "b")
ROWS = CHANNELS + ("sum",)

ArrayLike = Union[np.ndarray, Sequence[Sequence[float]]]


def as_raw_frame(values: ArrayLike) -> np.ndarray:
    """Return ``values`` as a read-only 3×N float frame.

    Raises ``ValueError`` when the input is not a two dimensional block with
    exactly three channel rows.
    """

    frame = np.array(values, dtype=float, copy=True)
    if frame.ndim != 2 or frame.shape[0] != len(CHANNELS):
        raise ValueError(f"Raw frames must have shape (3, N), got {frame.shape}")
    frame.setflags(write=False)
    return frame


@dataclass(frozen=True)
class Spectrum:
    values: np.ndarray              # rows r, g, b, sum

    def __post_init__(self):
        arr = np.array(self.values, dtype=float, copy=True)
        if arr.ndim != 2 or arr.shape[0] != len(ROWS):
            raise ValueError(f"Spectra must have shape (4, N), got {arr.shape}")
        arr.setflags(write=False)
        object.__setattr__(self, "values", arr)

    @classmethod
    def zeros(cls, n_bins: int) -> "Spectrum":
        return cls(np.zeros((len(ROWS), int(n_bins)), dtype=float))

    @classmethod
    def from_rows(cls, rows: Iterable[np.ndarray]) -> "Spectrum":
        return cls(np.vstack([np.asarray(row, dtype=float) for row in rows]))

    @property
    def n_bins(self) -> int:
        return int(self.values.shape[1])

    @property
    def r(self) -> np.ndarray:
        return self.values[0]

    @property
    def g(self) -> np.ndarray:
        return self.values[1]

    @property
    def b(self) -> np.ndarray:
        return self.values[2]

    @property
    def sum(self) -> np.ndarray:
        return self.values[3]

    def row(self, name: str) -> np.ndarray:
        return self.values[ROWS.index(name)]

    def __sub__(self, other: "Spectrum") -> "Spectrum":
        if other.n_bins != self.n_bins:
            raise ValueError(
                f"Cannot subtract spectra with {other.n_bins} and {self.n_bins} bins"
            )
        return Spectrum(self.values - other.values)


@dataclass(frozen=True)
class FeaturePoint:
    wavelength: float
    value: float
    label_value: float              # y position of the rendered label

    @property
    def label(self) -> str:
        return f"{int(self.wavelength)}"


@dataclass(frozen=True)
class ThreadResult:
    source: str                     # "main", "camera", ...
    ok: bool = True
    message: str = ""

    @classmethod
    def success(cls, source: str = "main", message: str = "") -> "ThreadResult":
        return cls(source=source, ok=True, message=message)

    @classmethod
    def failure(cls, source: str, message: str) -> "ThreadResult":
        return cls(source=source, ok=False, message=message)

    def describe(self) -> str:
        if self.ok:
            return "OK" if not self.message else f"OK: {self.message}"
        return f"Error: {self.message}"
