import argparse
import logging
import sys
import time
from typing import List, Optional

import numpy as np
from asciimatics.screen import Screen
from asciimatics.event import KeyboardEvent, MouseEvent
from asciimatics.exceptions import ResizeScreenError
from asciimatics.scene import Scene
from asciimatics.effects import Effect
from PIL import Image

from brush import BrushKind, BrushSettings
from canvas import Canvas
from config import ClipStrategy, ColoringConfig
from errors import ImageLoadError
from events import EventKind, PointerEvent
from stroke import StrokeController
from ui import UIFrame

logger = logging.getLogger(__name__)

# Each character cell shows two canvas pixel rows via the upper half block.
ROWS_PER_CELL = 2

# Terminal pixels are far coarser than image pixels, so presets are smaller.
TERMINAL_BRUSH_SIZES = {"small": 2, "medium": 4, "large": 8}


# Simple 8-colour mapping from RGBA to nearest basic terminal colour index.
def _rgb_to_colour_index(r: int, g: int, b: int) -> int:
    # Threshold values chosen for basic distinction.
    if r > 200 and g > 200 and b > 200:
        return Screen.COLOUR_WHITE
    if r > 200 and g < 100 and b < 100:
        return Screen.COLOUR_RED
    if g > 200 and r < 100 and b < 100:
        return Screen.COLOUR_GREEN
    if b > 200 and r < 100 and g < 100:
        return Screen.COLOUR_BLUE
    if r > 200 and g > 200 and b < 100:
        return Screen.COLOUR_YELLOW
    if r > 200 and b > 200 and g < 100:
        return Screen.COLOUR_MAGENTA
    if g > 200 and b > 200 and r < 100:
        return Screen.COLOUR_CYAN
    return Screen.COLOUR_BLACK


def xterm256_indices(pixels: np.ndarray) -> np.ndarray:
    """Maps an (h, w, 3+) array to indices in the xterm 6x6x6 colour cube."""
    levels = np.rint(pixels[..., :3].astype(np.float32) / 255.0 * 5).astype(np.int32)
    return 16 + 36 * levels[..., 0] + 6 * levels[..., 1] + levels[..., 2]


def colour_indices(pixels: np.ndarray, colours: int) -> np.ndarray:
    if colours >= 256:
        return xterm256_indices(pixels)
    out = np.empty(pixels.shape[:2], dtype=np.int32)
    for y in range(pixels.shape[0]):
        for x in range(pixels.shape[1]):
            p = pixels[y, x]
            out[y, x] = _rgb_to_colour_index(int(p[0]), int(p[1]), int(p[2]))
    return out


def half_block_render(screen, pixels: np.ndarray):
    """Renders a flattened canvas to the screen using half-blocks."""
    height, width = pixels.shape[:2]
    indices = colour_indices(pixels, screen.colours)
    for y in range(0, min(height - 1, screen.height * ROWS_PER_CELL), ROWS_PER_CELL):
        row = y // ROWS_PER_CELL
        for x in range(min(width, screen.width)):
            fg = int(indices[y, x])
            bg = int(indices[y + 1, x])
            # If both halves share the same colour, draw a full-block for crisper output.
            if fg == bg:
                screen.print_at('█', x, row, colour=fg, bg=bg)
            else:
                screen.print_at('▀', x, row, colour=fg, bg=bg)


class CanvasEffect(Effect):
    """Asciimatics Effect that shows the composited colouring page."""

    def __init__(self, screen: Screen, canvas: Canvas):
        super().__init__(screen)
        self._canvas = canvas
        self._frame: Optional[np.ndarray] = None
        self.dirty = True

    def reset(self):
        self.dirty = True

    def stop_frame(self):
        # Run indefinitely; Scene duration is -1.
        return 0

    def _update(self, frame_no):
        if self.dirty or self._frame is None:
            self._frame = self._canvas.flatten()
            self.dirty = False
        half_block_render(self._screen, self._frame)


class MouseTranslator:
    """
    Turns asciimatics mouse reports into normalized pointer events.

    Asciimatics only reports positions and button state, so presses, releases
    and crossings between the canvas and the side panel are derived here.
    A drag that starts on the side panel belongs to the panel and produces
    no pointer events, even when it wanders over the canvas.
    """
    def __init__(self, canvas_width: int, canvas_height: int):
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.held = False
        self.inside = False
        self.pressed_on_canvas = False

    def over_canvas(self, x: int, y: int) -> bool:
        return 0 <= x < self.canvas_width and 0 <= y < self.canvas_height

    def translate(self, col: int, row: int, buttons: int) -> List[PointerEvent]:
        x, y = col, row * ROWS_PER_CELL
        over = self.over_canvas(x, y)
        pressed = bool(buttons & MouseEvent.LEFT_CLICK)
        events = []
        if pressed and not self.held:
            self.held = True
            self.pressed_on_canvas = over
            if over:
                events.append(PointerEvent(EventKind.DOWN, x, y, buttons_held=True))
        elif not self.pressed_on_canvas:
            if not pressed:
                self.held = False
        elif pressed:
            if over and not self.inside:
                events.append(PointerEvent(EventKind.ENTER, x, y, buttons_held=True))
            elif not over and self.inside:
                ex = min(max(x, 0), self.canvas_width - 1)
                ey = min(max(y, 0), self.canvas_height - 1)
                events.append(PointerEvent(EventKind.LEAVE, ex, ey, buttons_held=True))
            elif over:
                events.append(PointerEvent(EventKind.MOVE, x, y, buttons_held=True))
        elif self.held:
            self.held = False
            self.pressed_on_canvas = False
            events.append(PointerEvent(EventKind.UP, x, y))
        self.inside = over
        return events


def save_to_png(canvas: Canvas, filename: str = "coloring.png"):
    """Saves the flattened page to a PNG file."""
    Image.fromarray(canvas.flatten(), "RGBA").save(filename)


def main(screen, args):
    canvas_width = screen.width - screen.width // 4
    canvas_height = screen.height * ROWS_PER_CELL  # Two pixel rows per character row
    config = ColoringConfig(
        min_region_size=args.min_region_size,
        boundary_threshold=args.threshold,
        clip_strategy=ClipStrategy(args.strategy),
        brush_sizes=dict(TERMINAL_BRUSH_SIZES),
    )
    canvas = Canvas.from_image(args.image, config, size=(canvas_width, canvas_height))
    logger.info("Colouring %s at %dx%d", args.image, canvas_width, canvas_height)
    settings = BrushSettings(color=config.palette[0][1], size=TERMINAL_BRUSH_SIZES["medium"])
    controller = StrokeController(canvas, settings)
    translator = MouseTranslator(canvas_width, canvas_height)
    canvas_effect = CanvasEffect(screen, canvas)

    def _history(action):
        def run():
            action()
            canvas_effect.dirty = True
        return run

    ui = UIFrame(
        screen, settings, config.palette, config.brush_sizes,
        {"undo": _history(canvas.undo), "redo": _history(canvas.redo), "clear": _history(canvas.clear)},
    )
    ui.set_status(f"{canvas.region_map.region_count} regions")

    # Build a Scene containing both the canvas effect and the UI frame.
    screen.set_scenes([Scene([canvas_effect, ui], duration=-1)])

    while True:
        event = screen.get_event()

        # Let the UI consume the event first (e.g., button clicks).
        event = ui.process_event(event)

        if isinstance(event, KeyboardEvent):
            key = event.key_code
            if key in (ord('q'), ord('Q')):
                return
            elif key == Screen.ctrl("s"):
                save_to_png(canvas, args.output)
                ui.set_status(f"Saved {args.output}")
            elif key == Screen.ctrl("z"):
                _history(canvas.undo)()
            elif key == Screen.ctrl("y"):
                _history(canvas.redo)()
            elif key in (ord('x'), ord('X')):
                _history(canvas.clear)()
            elif key == ord('e'):
                settings.eraser = not settings.eraser
            elif key == ord('l'):
                settings.stay_in_lines = not settings.stay_in_lines
            elif key == ord('b'):
                settings.style = BrushKind.SOLID if settings.style is BrushKind.SOFT else BrushKind.SOFT
            elif key == ord('['):
                settings.change_size(-1)
            elif key == ord(']'):
                settings.change_size(1)
            ui.refresh_toggles()
        elif isinstance(event, MouseEvent):
            ui.has_focus = event.x >= canvas_width
            for pointer in translator.translate(event.x, event.y, event.buttons):
                controller.handle(pointer)
                canvas_effect.dirty = True
            if translator.over_canvas(event.x, event.y * ROWS_PER_CELL):
                where = canvas.describe_point(event.x, event.y * ROWS_PER_CELL)
                ui.set_status(f"{where}  size {settings.size:g}")

        # Draw the next frame for the Scene (canvas effect + UI).
        screen.draw_next_frame()

        # Cap the frame-rate to ~30 FPS to reduce flicker and CPU usage.
        time.sleep(1 / 30)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Colour a line-art image in the terminal.")
    parser.add_argument("image", help="outline image (PNG, JPEG, ...)")
    parser.add_argument("--output", default="coloring.png", help="PNG written by Ctrl-S")
    parser.add_argument("--threshold", type=int, default=128, help="boundary brightness threshold")
    parser.add_argument("--min-region-size", type=int, default=20, help="smallest colourable region in pixels")
    parser.add_argument("--strategy", choices=[s.value for s in ClipStrategy], default=ClipStrategy.PRESTAMP.value)
    parser.add_argument("--log-file", help="write debug logs here (stdout belongs to the UI)")
    return parser.parse_args(argv)


def cli():
    args = parse_args()
    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )
    while True:
        try:
            Screen.wrapper(main, arguments=[args])
            sys.exit(0)
        except ResizeScreenError:
            pass
        except ImageLoadError as e:
            print(f"error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    cli()
