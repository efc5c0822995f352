import logging
from typing import Optional, Tuple

import numpy as np

from brush import BrushSpec, StrokeOp
from config import ColoringConfig
from history import HistoryManager
from layers import RegionLayer, build_layers, build_lookup_table, find_layer_at
from loader import flatten_on_paper, open_rgba
from regions import RegionStats, region_at, region_stats, segment
from render import ScratchPool, composite_layers, draw_clipped, draw_free
from sampling import RasterBuffer, boundary_mask

logger = logging.getLogger(__name__)


def outline_overlay(pixels: np.ndarray, threshold: int = 128) -> np.ndarray:
    """Keeps only the dark line pixels of an RGBA image; everything else goes clear."""
    buffer = RasterBuffer.from_array(pixels)
    lines = boundary_mask(buffer, threshold)
    overlay = np.zeros_like(buffer.data)
    overlay[lines] = buffer.data[lines]
    return overlay


class Canvas:
    """
    One colouring session: the outline, its regions, per-region layers and history.
    """
    def __init__(self, buffer: RasterBuffer, config: Optional[ColoringConfig] = None,
                 outline: Optional[np.ndarray] = None):
        self.config = (config or ColoringConfig()).validate()
        self.buffer = buffer
        self.width = buffer.width
        self.height = buffer.height

        cfg = self.config
        self.region_map = segment(buffer, cfg.boundary_threshold, cfg.min_region_size)
        self.layers = build_layers(self.region_map, cfg.clip_strategy)
        self.lookup = build_lookup_table(self.layers, self.width, self.height)
        self.history = HistoryManager(self.layers, cfg.history_limit)
        self.pool = ScratchPool(self.width, self.height)
        if outline is None:
            outline = outline_overlay(buffer.data, cfg.boundary_threshold)
        self.outline = outline

    @classmethod
    def from_image(cls, source, config: Optional[ColoringConfig] = None,
                   size: Optional[Tuple[int, int]] = None) -> "Canvas":
        """Loads an outline image and segments it. Raises ImageLoadError on bad input."""
        config = (config or ColoringConfig()).validate()
        image = open_rgba(source, size=size, max_dimension=config.max_dimension)
        overlay = outline_overlay(np.asarray(image, dtype=np.uint8), config.boundary_threshold)
        return cls(flatten_on_paper(image), config, outline=overlay)

    @property
    def background(self):
        return self.config.background

    def layer_at(self, x: float, y: float) -> Optional[RegionLayer]:
        return find_layer_at(self.layers, x, y, self.lookup)

    def region_at(self, x: float, y: float) -> int:
        return region_at(self.region_map, x, y)

    def describe_point(self, x: float, y: float) -> str:
        """Short human readable description of what lies under (x, y)."""
        rid = self.region_at(x, y)
        if rid > 0:
            return f"region #{rid}"
        if rid < 0:
            return "boundary"
        return "outside"

    def stats(self) -> RegionStats:
        return region_stats(self.region_map, self.buffer)

    def draw_clipped(self, layer: RegionLayer, op: StrokeOp, brush: BrushSpec) -> bool:
        return draw_clipped(layer, op, brush, self.pool)

    def draw_free(self, op: StrokeOp, brush: BrushSpec) -> bool:
        return draw_free(self.layers, op, brush)

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def clear(self):
        self.history.clear()

    def flatten(self, include_outline: bool = True) -> np.ndarray:
        """Composites paper, every layer in id order and optionally the outline."""
        outline = self.outline if include_outline else None
        return composite_layers(self.layers, self.width, self.height, self.background, outline)
