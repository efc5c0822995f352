"""Normalized pointer events fed to the stroke controller."""
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict


class EventKind(Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    LEAVE = "leave"
    ENTER = "enter"


class DeviceKind(Enum):
    MOUSE = "mouse"
    TOUCH = "touch"
    PEN = "pen"


@dataclass(frozen=True)
class PointerEvent:
    kind: EventKind
    x: float
    y: float
    buttons_held: bool = False
    device: DeviceKind = DeviceKind.MOUSE
    timestamp: float = field(default_factory=time.monotonic)


class EventNormalizer:
    """Drops the second copy of a contact reported through two input channels.

    A pen on a touch screen can arrive as both a touch and a mouse event. An
    event is a duplicate when the previous event of the same kind came from a
    different device within ``debounce_seconds`` and ``debounce_distance``.
    """

    def __init__(self, debounce_seconds: float = 0.05, debounce_distance: float = 4.0):
        self.debounce_seconds = debounce_seconds
        self.debounce_distance = debounce_distance
        self._last: Dict[EventKind, PointerEvent] = {}

    def accept(self, event: PointerEvent) -> bool:
        last = self._last.get(event.kind)
        if (
            last is not None
            and last.device != event.device
            and 0 <= event.timestamp - last.timestamp <= self.debounce_seconds
            and math.hypot(event.x - last.x, event.y - last.y) <= self.debounce_distance
        ):
            return False
        self._last[event.kind] = event
        return True

