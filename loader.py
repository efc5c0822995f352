"""Decoding outline images into raster buffers."""
import logging
from typing import Optional, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from errors import ImageLoadError
from sampling import RasterBuffer

logger = logging.getLogger(__name__)

PAPER = (255, 255, 255, 255)


def open_rgba(source, size: Optional[Tuple[int, int]] = None, max_dimension: int = 4096) -> Image.Image:
    """Opens ``source`` (path or binary file) as an RGBA image.

    ``size`` resizes with nearest-neighbour sampling so line pixels keep
    their original values.
    """
    try:
        with Image.open(source) as img:
            img.load()
            rgba = img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(f"could not decode outline image {source!r}: {e}") from e

    if size is not None:
        width, height = size
        if width <= 0 or height <= 0:
            raise ImageLoadError(f"invalid target size {size}")
        rgba = rgba.resize((width, height), Image.Resampling.NEAREST)

    width, height = rgba.size
    if width == 0 or height == 0:
        raise ImageLoadError("outline image has no pixels")
    if width > max_dimension or height > max_dimension:
        raise ImageLoadError(f"outline image {width}x{height} exceeds {max_dimension}px limit")
    logger.debug("Opened outline %r as %dx%d", source, width, height)
    return rgba


def flatten_on_paper(image: Image.Image) -> RasterBuffer:
    """Composites an RGBA image over opaque white, so transparency reads as paper."""
    paper = Image.new("RGBA", image.size, PAPER)
    paper.alpha_composite(image)
    return RasterBuffer.from_array(np.asarray(paper, dtype=np.uint8))


def load_outline(source, size: Optional[Tuple[int, int]] = None, max_dimension: int = 4096) -> RasterBuffer:
    """Decodes an outline image into a buffer ready for segmentation."""
    return flatten_on_paper(open_rgba(source, size=size, max_dimension=max_dimension))
