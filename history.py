"""Stroke-level undo/redo over all region surfaces."""
import logging
from typing import Dict, List

import numpy as np

from layers import RegionLayer

logger = logging.getLogger(__name__)

Snapshot = Dict[int, np.ndarray]


class HistoryManager:
    """
    Keeps full copies of every layer surface taken at stroke boundaries.
    """
    def __init__(self, layers: List[RegionLayer], limit: int = 50):
        self.layers = layers
        self.limit = limit
        self.undo_stack: List[Snapshot] = []
        self.redo_stack: List[Snapshot] = []
        self._captured = False

    def snapshot(self) -> Snapshot:
        """Copies (never aliases) every surface, keyed by region id."""
        return {layer.id: layer.surface.copy() for layer in self.layers}

    def _restore(self, snap: Snapshot):
        for layer in self.layers:
            pixels = snap.get(layer.id)
            if pixels is not None:
                np.copyto(layer.surface, pixels)

    def _push_undo(self, snap: Snapshot):
        self.undo_stack.append(snap)
        if len(self.undo_stack) > self.limit:
            del self.undo_stack[0]

    def begin_stroke(self) -> bool:
        """Saves the pre-stroke state once per gesture. Returns True if it did."""
        if self._captured:
            return False
        self._push_undo(self.snapshot())
        self.redo_stack.clear()
        self._captured = True
        return True

    def end_stroke(self):
        self._captured = False

    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    def undo(self) -> bool:
        """Restores the previous state."""
        if not self.undo_stack:
            return False
        self.redo_stack.append(self.snapshot())
        self._restore(self.undo_stack.pop())
        self._captured = False
        logger.debug("Undo (%d left, %d redoable)", len(self.undo_stack), len(self.redo_stack))
        return True

    def redo(self) -> bool:
        """Restores a previously undone state."""
        if not self.redo_stack:
            return False
        self._push_undo(self.snapshot())
        self._restore(self.redo_stack.pop())
        self._captured = False
        logger.debug("Redo (%d undoable, %d left)", len(self.undo_stack), len(self.redo_stack))
        return True

    def clear(self):
        """Resets every surface to its blank appearance, as one undoable step."""
        self._push_undo(self.snapshot())
        self.redo_stack.clear()
        for layer in self.layers:
            layer.reset()
        self._captured = False
