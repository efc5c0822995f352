"""Clipped stroke rendering and layer compositing.

Two clip strategies give the same visible result:

* PRESTAMP: the layer surface already carries the mask's opaque pixels, so a
  stroke is composited "atop" them; it recolours opaque pixels and leaves
  transparent ones alone.
* SCRATCH: the surface starts blank. The stroke is drawn onto a scratch
  buffer, reduced to its overlap with the mask on a second scratch buffer,
  and the result is composited over the surface.
"""
from contextlib import contextmanager
from typing import Iterable, List, Optional

import numpy as np

from brush import BrushSpec, StrokeOp, footprint
from config import ClipStrategy
from layers import RegionLayer


class ScratchPool:
    """Reusable float RGBA buffers sized to the image, one per concurrent borrow."""

    def __init__(self, width: int, height: int):
        self.shape = (height, width, 4)
        self._free: List[np.ndarray] = []

    @contextmanager
    def borrow(self):
        buf = self._free.pop() if self._free else np.zeros(self.shape, dtype=np.float32)
        try:
            yield buf
        finally:
            self._free.append(buf)


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def composite_atop(dst: np.ndarray, color, alpha: np.ndarray):
    """Source-atop of a flat colour with per-pixel ``alpha`` onto ``dst`` in place.

    Destination alpha is preserved, so transparent pixels stay transparent.
    """
    src_alpha = alpha * (color[3] / 255.0)
    hit = (src_alpha > 0) & (dst[..., 3] > 0)
    if not hit.any():
        return
    a = src_alpha[hit][:, None]
    rgb = dst[..., :3][hit].astype(np.float32)
    src = np.asarray(color[:3], dtype=np.float32)
    dst[..., :3][hit] = _to_uint8(src * a + rgb * (1.0 - a))


def composite_over(dst: np.ndarray, src: np.ndarray):
    """Source-over of a float RGBA window (colour 0..255, alpha 0..1) onto uint8 ``dst``."""
    src_alpha = src[..., 3]
    hit = src_alpha > 0
    if not hit.any():
        return
    sa = src_alpha[hit][:, None]
    sc = src[..., :3][hit]
    d = dst[hit].astype(np.float32)
    da = d[:, 3:4] / 255.0
    out_a = sa + da * (1.0 - sa)
    out_c = (sc * sa + d[:, :3] * da * (1.0 - sa)) / np.maximum(out_a, 1e-6)
    dst[hit] = _to_uint8(np.concatenate([out_c, out_a * 255.0], axis=1))


def _paint(buf: np.ndarray, color, alpha: np.ndarray):
    buf[..., :3] = color[:3]
    buf[..., 3] = alpha * (color[3] / 255.0)


def draw_clipped(layer: RegionLayer, op: StrokeOp, brush: BrushSpec,
                 pool: Optional[ScratchPool] = None) -> bool:
    """Draws ``op`` on ``layer`` so that ink only lands inside the layer's mask.

    Returns False when the stroke falls entirely off the image.
    """
    fp = footprint(op, brush, layer.width, layer.height)
    if fp is None:
        return False
    window, alpha = fp

    if layer.strategy is ClipStrategy.PRESTAMP:
        # Free strokes can make the surface opaque outside the region.
        composite_atop(layer.surface[window], brush.color, alpha * layer.inside[window])
        return True

    if pool is None:
        pool = ScratchPool(layer.width, layer.height)
    with pool.borrow() as stroke_buf, pool.borrow() as masked_buf:
        stroke = stroke_buf[window]
        masked = masked_buf[window]
        _paint(stroke, brush.color, alpha)
        # The second buffer holds only the mask, then keeps the overlap.
        masked[...] = layer.mask[window]
        masked[..., 3] = (masked[..., 3] / 255.0) * stroke[..., 3]
        masked[..., :3] = stroke[..., :3]
        composite_over(layer.surface[window], masked)
        stroke[...] = 0
        masked[...] = 0
    return True


def draw_free(layers: Iterable[RegionLayer], op: StrokeOp, brush: BrushSpec) -> bool:
    """Draws ``op`` on every layer without any mask, as if on one shared canvas."""
    layers = list(layers)
    if not layers:
        return False
    fp = footprint(op, brush, layers[0].width, layers[0].height)
    if fp is None:
        return False
    window, alpha = fp
    src = np.empty(alpha.shape + (4,), dtype=np.float32)
    _paint(src, brush.color, alpha)
    for layer in layers:
        composite_over(layer.surface[window], src)
    return True


def composite_layers(layers: Iterable[RegionLayer], width: int, height: int,
                     background=None, outline: Optional[np.ndarray] = None) -> np.ndarray:
    """Stacks layer surfaces in order onto one RGBA image.

    ``background`` fills the image first when given. ``outline``, an RGBA
    array, goes on top of everything.
    """
    out = np.zeros((height, width, 4), dtype=np.uint8)
    if background is not None:
        out[...] = background
    for layer in layers:
        src = layer.surface.astype(np.float32)
        src[..., 3] /= 255.0
        composite_over(out, src)
    if outline is not None:
        src = outline.astype(np.float32)
        src[..., 3] /= 255.0
        composite_over(out, src)
    return out
