"""Device controls exposed by the acquisition side.

Each control carries its kind explicitly so that callers never need to
inspect driver objects to decide how a value may be set.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple


class ControlKind(Enum):
    INTEGER = "integer"
    BOOLEAN = "boolean"
    MENU = "menu"


@dataclass(frozen=True)
class MenuItem:
    index: int
    name: str


@dataclass(frozen=True)
class CameraControl:
    id: int
    name: str
    kind: ControlKind
    value: int
    default: int
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    step: int = 1
    items: Tuple[MenuItem, ...] = ()

    @classmethod
    def integer(
        cls,
        id: int,
        name: str,
        *,
        value: int,
        default: int,
        minimum: int,
        maximum: int,
        step: int = 1,
    ) -> "CameraControl":
        if minimum > maximum:
            raise ValueError(f"Control {name!r} has minimum above maximum")
        return cls(id, name, ControlKind.INTEGER, value, default, minimum, maximum, max(int(step), 1))

    @classmethod
    def boolean(cls, id: int, name: str, *, value: bool, default: bool) -> "CameraControl":
        return cls(id, name, ControlKind.BOOLEAN, int(bool(value)), int(bool(default)))

    @classmethod
    def menu(
        cls, id: int, name: str, *, value: int, default: int, items: Iterable[MenuItem]
    ) -> "CameraControl":
        items = tuple(items)
        if not items:
            raise ValueError(f"Menu control {name!r} has no items")
        return cls(id, name, ControlKind.MENU, value, default, items=items)

    def coerce(self, value) -> int:
        """Return ``value`` as a legal setting for this control."""

        if self.kind is ControlKind.BOOLEAN:
            return int(bool(value))
        if self.kind is ControlKind.MENU:
            index = int(value)
            if index not in {item.index for item in self.items}:
                raise ValueError(f"{index} is not a menu entry of {self.name!r}")
            return index
        number = int(round(float(value)))
        lo, hi = self.minimum, self.maximum
        if lo is not None:
            number = lo + ((number - lo) // self.step) * self.step
        if lo is not None and number < lo:
            number = lo
        if hi is not None and number > hi:
            number = hi
        return number

    def with_value(self, value) -> "CameraControl":
        return replace(self, value=self.coerce(value))

    def reset(self) -> "CameraControl":
        return replace(self, value=self.default)

    def item_name(self) -> Optional[str]:
        for item in self.items:
            if item.index == self.value:
                return item.name
        return None


def changed_controls(old: Sequence[CameraControl], new: Sequence[CameraControl]) -> List[CameraControl]:
    """Controls in ``new`` whose value differs from the same id in ``old``."""

    before = {ctrl.id: ctrl.value for ctrl in old}
    return [ctrl for ctrl in new if before.get(ctrl.id) != ctrl.value]


def reset_all(controls: Sequence[CameraControl]) -> List[CameraControl]:
    return [ctrl.reset() for ctrl in controls]
