"""Tests for the terminal front end helpers."""

import numpy as np
import pytest
from asciimatics.event import MouseEvent
from asciimatics.screen import Screen
from PIL import Image

from events import EventKind
from main import (
    MouseTranslator,
    colour_indices,
    half_block_render,
    parse_args,
    save_to_png,
    xterm256_indices,
)
from stroke import StrokeController

LEFT = MouseEvent.LEFT_CLICK


class FakeScreen:
    def __init__(self, width, height, colours=256):
        self.width = width
        self.height = height
        self.colours = colours
        self.calls = []

    def print_at(self, text, x, y, colour=7, bg=0):
        self.calls.append((text, x, y, colour, bg))


class TestMouseTranslator:
    @pytest.fixture
    def translator(self):
        return MouseTranslator(100, 40)

    def kinds(self, events):
        return [e.kind for e in events]

    def test_press_drag_release(self, translator):
        down = translator.translate(10, 5, LEFT)
        assert self.kinds(down) == [EventKind.DOWN]
        assert (down[0].x, down[0].y) == (10, 10)
        move = translator.translate(12, 5, LEFT)
        assert self.kinds(move) == [EventKind.MOVE]
        up = translator.translate(12, 5, 0)
        assert self.kinds(up) == [EventKind.UP]
        assert translator.translate(12, 5, 0) == []

    def test_leave_and_enter(self, translator):
        translator.translate(10, 5, LEFT)
        leave = translator.translate(120, 5, LEFT)
        assert self.kinds(leave) == [EventKind.LEAVE]
        assert (leave[0].x, leave[0].y) == (99, 10)
        assert translator.translate(125, 5, LEFT) == []
        enter = translator.translate(50, 6, LEFT)
        assert self.kinds(enter) == [EventKind.ENTER]
        assert enter[0].buttons_held
        assert self.kinds(translator.translate(50, 6, 0)) == [EventKind.UP]

    def test_drag_from_panel_is_ignored(self, translator):
        assert translator.translate(120, 5, LEFT) == []
        assert translator.translate(50, 5, LEFT) == []
        assert translator.translate(52, 5, LEFT) == []
        assert translator.translate(52, 5, 0) == []

    def test_press_after_panel_drag_works(self, translator):
        translator.translate(120, 5, LEFT)
        translator.translate(50, 5, 0)
        assert self.kinds(translator.translate(50, 5, LEFT)) == [EventKind.DOWN]

    def test_drag_from_panel_does_not_paint(self, two_rooms, settings):
        translator = MouseTranslator(200, 100)
        controller = StrokeController(two_rooms, settings)
        blank = two_rooms.flatten()
        for col, row, buttons in [(220, 25, LEFT), (205, 25, LEFT), (190, 25, LEFT), (150, 25, LEFT), (150, 25, 0)]:
            for event in translator.translate(col, row, buttons):
                controller.handle(event)
        assert np.array_equal(two_rooms.flatten(), blank)
        assert not two_rooms.can_undo()

    def test_hover_without_button_is_silent(self, translator):
        assert translator.translate(10, 5, 0) == []
        assert translator.translate(120, 5, 0) == []


class TestColours:
    def test_xterm_cube_corners(self):
        pixels = np.array([[[255, 255, 255, 255], [0, 0, 0, 255], [255, 0, 0, 255]]], dtype=np.uint8)
        assert xterm256_indices(pixels).tolist() == [[231, 16, 196]]

    def test_basic_palette(self):
        pixels = np.array([[[255, 255, 255, 255], [250, 10, 10, 255], [20, 20, 20, 255]]], dtype=np.uint8)
        assert colour_indices(pixels, 8).tolist() == [[Screen.COLOUR_WHITE, Screen.COLOUR_RED, Screen.COLOUR_BLACK]]

    def test_half_blocks(self):
        pixels = np.zeros((4, 3, 4), dtype=np.uint8)
        pixels[1, 0] = (255, 255, 255, 255)
        screen = FakeScreen(10, 10)
        half_block_render(screen, pixels)
        assert len(screen.calls) == 6
        assert screen.calls[0] == ('▀', 0, 0, 16, 231)
        assert screen.calls[1] == ('█', 1, 0, 16, 16)


class TestCli:
    def test_defaults(self):
        args = parse_args(["page.png"])
        assert args.image == "page.png"
        assert args.strategy == "prestamp"
        assert args.min_region_size == 20

    def test_unknown_strategy_rejected(self):
        with pytest.raises(SystemExit):
            parse_args(["page.png", "--strategy", "magic"])


def test_save_to_png(two_rooms, tmp_path):
    path = tmp_path / "out.png"
    save_to_png(two_rooms, str(path))
    with Image.open(path) as img:
        assert np.array_equal(np.asarray(img.convert("RGBA")), two_rooms.flatten())
