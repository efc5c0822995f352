"""Pixel access and boundary classification for outline images."""
import re
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from errors import ImageLoadError

RGBA = Tuple[int, int, int, int]

HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


@dataclass(frozen=True)
class RasterBuffer:
    """An RGBA image stored row-major as a ``(height, width, 4)`` uint8 array."""

    width: int
    height: int
    data: np.ndarray

    @classmethod
    def from_array(cls, array) -> "RasterBuffer":
        """Wraps an RGB or RGBA uint8 array, adding an opaque alpha if needed."""
        arr = np.asarray(array)
        if arr.dtype != np.uint8:
            raise ImageLoadError(f"expected uint8 pixels, got {arr.dtype}")
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise ImageLoadError(f"expected (h, w, 3|4) pixels, got shape {arr.shape}")
        height, width = arr.shape[:2]
        if width == 0 or height == 0:
            raise ImageLoadError("image has no pixels")
        if arr.shape[2] == 3:
            alpha = np.full((height, width, 1), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=2)
        data = np.ascontiguousarray(arr).copy()
        data.flags.writeable = False
        return cls(width=width, height=height, data=data)

    @property
    def pixels(self) -> np.ndarray:
        """Flat view of the samples, four channels per pixel."""
        return self.data.reshape(-1)


def sample_color(buffer: RasterBuffer, x: int, y: int) -> RGBA:
    """Reads the RGBA color at (x, y). Bounds are the caller's problem."""
    idx = (y * buffer.width + x) * 4
    px = buffer.pixels
    return int(px[idx]), int(px[idx + 1]), int(px[idx + 2]), int(px[idx + 3])


def is_boundary(color, threshold: int = 128) -> bool:
    """A pixel is a boundary when the plain mean of R, G and B is below threshold."""
    brightness = (int(color[0]) + int(color[1]) + int(color[2])) / 3
    return brightness < threshold


def boundary_mask(buffer: RasterBuffer, threshold: int = 128) -> np.ndarray:
    """Vectorized is_boundary over a whole buffer; returns a (h, w) bool array."""
    rgb = buffer.data[..., :3].astype(np.uint16)
    # sum/3 < t  <=>  sum < 3t, which keeps the comparison exact in integers
    return rgb.sum(axis=2) < 3 * threshold


def hex_to_rgb(value: str) -> RGBA:
    """Parses ``#rrggbb``. Anything unparseable becomes opaque black."""
    match = HEX_RE.match(value.strip())
    if match is None:
        return 0, 0, 0, 255
    r, g, b = (int(part, 16) for part in match.groups())
    return r, g, b, 255


def rgb_to_hex(color) -> str:
    return "#" + "".join(f"{int(c):02x}" for c in color[:3])
