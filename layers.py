"""Per-region masks, drawing surfaces and point-to-layer lookup."""
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from config import ClipStrategy
from errors import RegionIntegrityError
from regions import RegionMap

logger = logging.getLogger(__name__)

OPAQUE_ALPHA = 255
TRANSPARENT_ALPHA = 0

# One past the largest layer index a uint16 table can hold.
NO_LAYER_SENTINEL = 65535


@dataclass(eq=False)
class RegionLayer:
    """Drawing surface plus clip mask for one region.

    ``mask`` is RGBA, opaque white inside the region and fully transparent
    elsewhere. ``surface`` is what strokes are painted on.
    """

    id: int
    mask: np.ndarray
    surface: np.ndarray
    strategy: ClipStrategy = ClipStrategy.PRESTAMP
    inside: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        self.inside = self.mask[..., 3] == OPAQUE_ALPHA
        self.inside.flags.writeable = False

    @property
    def width(self) -> int:
        return self.mask.shape[1]

    @property
    def height(self) -> int:
        return self.mask.shape[0]

    def initial_surface(self) -> np.ndarray:
        """What the surface looks like before anything is drawn."""
        if self.strategy is ClipStrategy.PRESTAMP:
            return self.mask.copy()
        return np.zeros_like(self.mask)

    def reset(self):
        np.copyto(self.surface, self.initial_surface())


@dataclass(frozen=True)
class LookupTable:
    """Flat ``width * height`` table of layer indices; NO_LAYER_SENTINEL means none."""

    width: int
    height: int
    table: np.ndarray
    sentinel: int = NO_LAYER_SENTINEL

    def index_at(self, x: int, y: int) -> Optional[int]:
        value = int(self.table[y * self.width + x])
        if value == self.sentinel:
            return None
        return value


def build_layers(region_map: RegionMap, strategy: ClipStrategy = ClipStrategy.PRESTAMP) -> List[RegionLayer]:
    """Creates one RegionLayer per region id, in id order.

    A region whose buffers cannot be allocated is skipped with a warning; it
    simply becomes uncolourable.
    """
    labels = region_map.pixel_to_region
    if __debug__:
        _check_dense(region_map)

    layers = []
    for region_id in range(1, region_map.region_count + 1):
        try:
            mask = np.zeros((region_map.height, region_map.width, 4), dtype=np.uint8)
            mask[labels == region_id] = (255, 255, 255, OPAQUE_ALPHA)
            layer = RegionLayer(id=region_id, mask=mask, surface=np.empty_like(mask), strategy=strategy)
        except MemoryError:
            logger.warning("Could not allocate surface for region %d; it will not be colourable", region_id)
            continue
        layer.reset()
        layers.append(layer)

    logger.debug("Built %d layers (%s strategy)", len(layers), strategy.value)
    return layers


def _check_dense(region_map: RegionMap):
    labels = region_map.pixel_to_region
    present = np.unique(labels[labels > 0])
    expected = np.arange(1, region_map.region_count + 1)
    if present.shape != expected.shape or not (present == expected).all():
        raise RegionIntegrityError(
            f"region ids are not dense in 1..{region_map.region_count}: found {present.tolist()[:10]}"
        )


def build_lookup_table(layers: List[RegionLayer], width: int, height: int) -> LookupTable:
    """Maps every pixel to the index (into ``layers``) of the layer whose mask covers it."""
    if len(layers) >= NO_LAYER_SENTINEL:
        raise RegionIntegrityError(f"{len(layers)} layers do not fit a uint16 lookup table")

    table = np.full(width * height, NO_LAYER_SENTINEL, dtype=np.uint16)
    for index, layer in enumerate(layers):
        covered = layer.inside.reshape(-1)
        if __debug__:
            clash = covered & (table != NO_LAYER_SENTINEL)
            if clash.any():
                pos = int(np.flatnonzero(clash)[0])
                raise RegionIntegrityError(
                    f"layer {layer.id} overlaps layer {layers[int(table[pos])].id} "
                    f"at ({pos % width}, {pos // width})"
                )
        table[covered] = index

    table.flags.writeable = False
    return LookupTable(width=width, height=height, table=table)


def find_layer_at(layers: List[RegionLayer], x: float, y: float,
                  lookup: Optional[LookupTable] = None) -> Optional[RegionLayer]:
    """Layer under (x, y), or None for background, boundary or bad coordinates."""
    if not layers:
        return None
    try:
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
    except TypeError:
        return None
    xi = int(math.floor(x + 0.5))
    yi = int(math.floor(y + 0.5))
    width, height = layers[0].width, layers[0].height
    if xi < 0 or xi >= width or yi < 0 or yi >= height:
        return None

    if lookup is not None:
        index = lookup.index_at(xi, yi)
        return None if index is None else layers[index]

    # Slow path for callers that skip the lookup table.
    for layer in layers:
        if layer.inside[yi, xi]:
            return layer
    return None
