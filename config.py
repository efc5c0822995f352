from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple


class ClipStrategy(Enum):
    """How strokes are confined to a region's mask."""

    # Surface starts with the mask's opaque pixels; strokes composite atop them.
    PRESTAMP = "prestamp"
    # Surface starts blank; each stroke is filtered through the mask on a scratch buffer.
    SCRATCH = "scratch"


@dataclass
class ColoringConfig:
    boundary_threshold: int = 128
    min_region_size: int = 100
    boundary_tolerance: int = 2
    segment_step: float = 8.0
    significant_movement: float = 2.0
    refine_crossings: bool = True
    crossing_iterations: int = 6
    clip_strategy: ClipStrategy = ClipStrategy.PRESTAMP
    background: Tuple[int, int, int, int] = (255, 255, 255, 255)
    brush_sizes: Dict[str, int] = field(
        default_factory=lambda: {"small": 10, "medium": 25, "large": 50}
    )
    debounce_seconds: float = 0.05
    debounce_distance: float = 4.0
    history_limit: int = 50
    max_dimension: int = 4096
    palette: List[Tuple[str, Tuple[int, int, int, int]]] = field(
        default_factory=lambda: [
            ("Red", (255, 0, 0, 255)),
            ("Orange", (255, 140, 0, 255)),
            ("Yellow", (255, 215, 0, 255)),
            ("Green", (50, 205, 50, 255)),
            ("Sky", (0, 170, 255, 255)),
            ("Blue", (30, 60, 220, 255)),
            ("Purple", (150, 70, 200, 255)),
            ("Pink", (255, 64, 129, 255)),
            ("Brown", (139, 90, 43, 255)),
            ("Black", (0, 0, 0, 255)),
        ]
    )

    def validate(self) -> "ColoringConfig":
        """Raises ValueError for settings the engine cannot work with."""
        if not 0 <= self.boundary_threshold <= 256:
            raise ValueError(f"boundary_threshold out of range: {self.boundary_threshold}")
        if self.min_region_size < 1:
            raise ValueError(f"min_region_size must be positive: {self.min_region_size}")
        if not 2 <= self.boundary_tolerance <= 4:
            raise ValueError(f"boundary_tolerance must be 2..4: {self.boundary_tolerance}")
        if self.segment_step <= 0:
            raise ValueError(f"segment_step must be positive: {self.segment_step}")
        if self.significant_movement < 0:
            raise ValueError("significant_movement cannot be negative")
        if self.crossing_iterations < 0:
            raise ValueError("crossing_iterations cannot be negative")
        if self.history_limit < 1:
            raise ValueError(f"history_limit must be at least 1: {self.history_limit}")
        if self.max_dimension < 1:
            raise ValueError(f"max_dimension must be positive: {self.max_dimension}")
        if len(self.background) != 4:
            raise ValueError("background must be an RGBA tuple")
        if not self.brush_sizes:
            raise ValueError("brush_sizes cannot be empty")
        return self
