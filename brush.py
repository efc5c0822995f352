"""Brush description and stroke rasterization.

Strokes are rasterized to an alpha footprint limited to the stroke's bounding
box. Compositing that footprint onto a surface is render.py's job.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageFilter

RGBA = Tuple[int, int, int, int]

SOFT_GLOW_FACTOR = 0.5
MIN_BRUSH_SIZE = 1
MAX_BRUSH_SIZE = 200


class BrushKind(Enum):
    SOLID = "solid"
    SOFT = "soft"


@dataclass(frozen=True)
class BrushSpec:
    """Everything a single stroke operation needs to know about the brush.

    ``size`` is the stroke width; round caps and dots use half of it as radius.
    """

    kind: BrushKind
    color: RGBA
    size: float

    @property
    def radius(self) -> float:
        return self.size / 2

    @property
    def glow(self) -> float:
        if self.kind is BrushKind.SOFT:
            return self.size * SOFT_GLOW_FACTOR
        return 0.0


@dataclass
class BrushSettings:
    """Live drawing parameters owned by the UI and read at every stroke op."""

    color: RGBA = (255, 0, 0, 255)
    size: float = 25
    style: BrushKind = BrushKind.SOLID
    eraser: bool = False
    stay_in_lines: bool = True

    def resolve(self, background: RGBA) -> BrushSpec:
        """Turns the current settings into a BrushSpec; the eraser paints background."""
        size = max(MIN_BRUSH_SIZE, min(MAX_BRUSH_SIZE, self.size))
        if self.eraser:
            return BrushSpec(BrushKind.SOLID, tuple(background), size)
        return BrushSpec(self.style, tuple(self.color), size)

    def change_size(self, delta: float):
        self.size = max(MIN_BRUSH_SIZE, min(MAX_BRUSH_SIZE, self.size + delta))


@dataclass(frozen=True)
class Segment:
    """Straight stroke from (x0, y0) to (x1, y1) with round caps."""

    x0: float
    y0: float
    x1: float
    y1: float
    radius: Optional[float] = None

    def extent(self):
        return min(self.x0, self.x1), min(self.y0, self.y1), max(self.x0, self.x1), max(self.y0, self.y1)

    def distance(self, xx: np.ndarray, yy: np.ndarray) -> np.ndarray:
        dx = self.x1 - self.x0
        dy = self.y1 - self.y0
        length2 = dx * dx + dy * dy
        if length2 == 0:
            return np.hypot(xx - self.x0, yy - self.y0)
        t = ((xx - self.x0) * dx + (yy - self.y0) * dy) / length2
        t = np.clip(t, 0.0, 1.0)
        return np.hypot(xx - (self.x0 + t * dx), yy - (self.y0 + t * dy))


@dataclass(frozen=True)
class Dot:
    """Filled circle. Without an explicit radius the brush radius is used."""

    x: float
    y: float
    radius: Optional[float] = None

    def extent(self):
        return self.x, self.y, self.x, self.y

    def distance(self, xx: np.ndarray, yy: np.ndarray) -> np.ndarray:
        return np.hypot(xx - self.x, yy - self.y)


StrokeOp = Union[Segment, Dot]


def footprint(op: StrokeOp, brush: BrushSpec, width: int, height: int):
    """Rasterizes ``op`` to ``(region, alpha)`` or None when nothing is on-image.

    ``region`` is a ``(rows, cols)`` slice pair into a ``(height, width)``
    image; ``alpha`` is a float32 coverage array in 0..1 for that window.
    """
    radius = brush.radius if op.radius is None else op.radius
    glow = brush.glow
    margin = int(math.ceil(glow * 3)) + 1 if glow else 1

    min_x, min_y, max_x, max_y = op.extent()
    if not all(math.isfinite(v) for v in (min_x, min_y, max_x, max_y)):
        return None
    x0 = max(int(math.floor(min_x - radius)) - margin, 0)
    y0 = max(int(math.floor(min_y - radius)) - margin, 0)
    x1 = min(int(math.ceil(max_x + radius)) + margin + 1, width)
    y1 = min(int(math.ceil(max_y + radius)) + margin + 1, height)
    if x0 >= x1 or y0 >= y1:
        return None

    yy, xx = np.mgrid[y0:y1, x0:x1].astype(np.float32)
    core = op.distance(xx, yy) <= radius
    alpha = core.astype(np.float32)

    if glow:
        halo = Image.fromarray((core * 255).astype(np.uint8), "L")
        halo = halo.filter(ImageFilter.GaussianBlur(glow))
        alpha = np.maximum(alpha, np.asarray(halo, dtype=np.float32) / 255.0)

    if not alpha.any():
        return None
    return (slice(y0, y1), slice(x0, x1)), alpha
