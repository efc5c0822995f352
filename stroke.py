"""Stroke continuity: turns pointer events into gap-free, region-locked strokes.

A gesture runs from pointer-down to pointer-up. In stay-in-lines mode it is
locked to the region it started in and never re-resolves membership, not even
after leaving and re-entering the drawing surface. Long pointer jumps are
subdivided so ink stops where the path crosses out of the locked region and
starts again where it comes back in.
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from brush import BrushSettings, BrushSpec, Dot, Segment, StrokeOp
from canvas import Canvas
from config import ColoringConfig
from events import EventKind, EventNormalizer, PointerEvent
from layers import RegionLayer
from regions import region_at_with_tolerance

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class StrokeState(Enum):
    IDLE = "idle"
    LOCKED = "locked"
    FREE = "free"


@dataclass
class StrokeSession:
    """State of one gesture. ``layer`` is None in free-draw mode."""

    layer: Optional[RegionLayer]
    start: Point
    last: Point
    moved: bool = False
    suspended: bool = False
    # Last position seen while the button was held over the surface.
    trail: Optional[Point] = None

    @property
    def locked_region_id(self) -> Optional[int]:
        return None if self.layer is None else self.layer.id


def _lerp(a: Point, b: Point, t: float) -> Point:
    return a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t


class StrokeController:
    def __init__(self, canvas: Canvas, settings: BrushSettings, config: Optional[ColoringConfig] = None,
                 normalizer: Optional[EventNormalizer] = None):
        self.canvas = canvas
        self.settings = settings
        self.config = config or canvas.config
        self.normalizer = normalizer or EventNormalizer(self.config.debounce_seconds,
                                                        self.config.debounce_distance)
        self.session: Optional[StrokeSession] = None

    @property
    def state(self) -> StrokeState:
        if self.session is None:
            return StrokeState.IDLE
        if self.session.layer is None:
            return StrokeState.FREE
        return StrokeState.LOCKED

    @property
    def suspended(self) -> bool:
        return self.session is not None and self.session.suspended

    def handle(self, event: PointerEvent) -> bool:
        """Routes a normalized event. Returns False if it was dropped as a duplicate."""
        if not self.normalizer.accept(event):
            logger.debug("Dropped duplicate %s from %s", event.kind.value, event.device.value)
            return False
        if event.kind is EventKind.DOWN:
            self.pointer_down(event.x, event.y)
        elif event.kind is EventKind.MOVE:
            self.pointer_move(event.x, event.y)
        elif event.kind is EventKind.UP:
            self.pointer_up(event.x, event.y)
        elif event.kind is EventKind.LEAVE:
            self.pointer_leave(event.x, event.y)
        elif event.kind is EventKind.ENTER:
            self.pointer_enter(event.x, event.y, event.buttons_held)
        return True

    # -- transitions -------------------------------------------------------

    def pointer_down(self, x: float, y: float) -> bool:
        """Starts a gesture. A locked-mode press outside every region is ignored."""
        if self.session is not None:
            self._finish()

        layer = None
        if self.settings.stay_in_lines:
            layer = self.canvas.layer_at(x, y)
            if layer is None:
                logger.debug("Press at (%.1f, %.1f) is not inside any region", x, y)
                return False

        self.session = StrokeSession(layer=layer, start=(x, y), last=(x, y), trail=(x, y))
        return True

    def pointer_move(self, x: float, y: float):
        s = self.session
        if s is None or s.suspended:
            return
        self._note_movement(x, y)
        self._stroke_to(x, y)
        s.trail = (x, y)

    def pointer_up(self, x: Optional[float] = None, y: Optional[float] = None):
        s = self.session
        if s is None:
            return
        if x is not None and y is not None and not s.suspended and (x, y) != s.last:
            self.pointer_move(x, y)
        if not s.moved and not s.suspended:
            # A tap must leave a visible mark.
            self._draw(Dot(*s.last), self._brush())
        self._finish()

    def pointer_leave(self, x: float, y: float):
        """Draws up to the exit point and stops listening until the pointer returns."""
        s = self.session
        if s is None or s.suspended:
            return
        if (x, y) != s.last:
            self.pointer_move(x, y)
        s.suspended = True

    def pointer_enter(self, x: float, y: float, buttons_held: bool):
        """Resumes a suspended gesture, bridging the gap from the last known position."""
        s = self.session
        if not buttons_held:
            if s is not None:
                # Released somewhere off the surface.
                self._finish()
            return
        if s is None:
            # Gesture began off the surface; start fresh at the entry point.
            self.pointer_down(x, y)
            return
        if not s.suspended:
            return

        s.suspended = False
        if s.trail is not None and s.trail != (x, y):
            s.last = s.trail
            self._note_movement(x, y)
            self._stroke_to(x, y)
        s.last = (x, y)
        s.trail = (x, y)

    # -- drawing -----------------------------------------------------------

    def _brush(self) -> BrushSpec:
        # Polled per operation so mid-stroke setting changes apply at once.
        return self.settings.resolve(self.canvas.background)

    def _draw(self, op: StrokeOp, brush: BrushSpec):
        self.canvas.history.begin_stroke()
        layer = self.session.layer
        if layer is None:
            self.canvas.draw_free(op, brush)
        else:
            self.canvas.draw_clipped(layer, op, brush)

    def _note_movement(self, x: float, y: float):
        s = self.session
        if not s.moved and math.hypot(x - s.start[0], y - s.start[1]) > self.config.significant_movement:
            s.moved = True

    def _stroke_to(self, x: float, y: float):
        s = self.session
        brush = self._brush()
        end = (x, y)
        if s.layer is None:
            self._draw(Segment(s.last[0], s.last[1], x, y), brush)
        else:
            for a, b in self.inside_runs(s.layer.id, s.last, end):
                self._draw(Segment(a[0], a[1], b[0], b[1]), brush)
        s.last = end

    def _inside(self, region_id: int, p: Point) -> bool:
        found = region_at_with_tolerance(self.canvas.region_map, p[0], p[1], region_id,
                                         self.config.boundary_tolerance)
        return found == region_id

    def inside_runs(self, region_id: int, p0: Point, p1: Point) -> List[Tuple[Point, Point]]:
        """Splits p0 -> p1 into the sub-segments that stay inside ``region_id``."""
        step = self.config.segment_step
        distance = math.hypot(p1[0] - p0[0], p1[1] - p0[1])
        if distance <= step:
            return [(p0, p1)] if self._inside(region_id, p1) else []

        n = int(math.ceil(distance / step))
        runs = []
        run_start = None
        prev_t = 0.0
        for i in range(n + 1):
            t = i / n
            inside = self._inside(region_id, _lerp(p0, p1, t))
            if inside and run_start is None:
                run_start = t if i == 0 else self._crossing(region_id, p0, p1, t, prev_t)
            elif not inside and run_start is not None:
                runs.append((run_start, self._crossing(region_id, p0, p1, prev_t, t)))
                run_start = None
            prev_t = t
        if run_start is not None:
            runs.append((run_start, 1.0))
        return [(_lerp(p0, p1, a), _lerp(p0, p1, b)) for a, b in runs]

    def _crossing(self, region_id: int, p0: Point, p1: Point, t_in: float, t_out: float) -> float:
        """Bisects towards the boundary; returns a parameter still inside the region."""
        if not self.config.refine_crossings:
            return t_in
        for _ in range(self.config.crossing_iterations):
            mid = (t_in + t_out) / 2
            if self._inside(region_id, _lerp(p0, p1, mid)):
                t_in = mid
            else:
                t_out = mid
        return t_in

    def _finish(self):
        self.canvas.history.end_stroke()
        self.session = None
