"""Shared test fixtures: small synthetic outline images."""

import numpy as np
import pytest

from brush import BrushSettings
from canvas import Canvas
from config import ClipStrategy, ColoringConfig
from sampling import RasterBuffer

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)
RED = (255, 0, 0, 255)


def blank(width, height, color=WHITE):
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[...] = color
    return img


def rect_outline(img, x0, y0, x1, y1, thickness, color=BLACK):
    """Hollow rectangle with outer bounds [x0, x1) x [y0, y1)."""
    img[y0:y0 + thickness, x0:x1] = color
    img[y1 - thickness:y1, x0:x1] = color
    img[y0:y1, x0:x0 + thickness] = color
    img[y0:y1, x1 - thickness:x1] = color
    return img


def square_outline_image():
    """100x100 paper with a 20x20, 5px thick square outline in the middle.

    The square's interior is x, y in 45..54 (100 pixels).
    """
    return rect_outline(blank(100, 100), 40, 40, 60, 60, 5)


def two_rooms_image():
    """240x100, 5px frame, 5px wall at x 120..124.

    Left room: x 5..119, y 5..94 (region 1). Right room: x 125..234 (region 2).
    """
    img = rect_outline(blank(240, 100), 0, 0, 240, 100, 5)
    img[:, 120:125] = BLACK
    return img


def u_room_image():
    """One U-shaped region: a 20px wall at x 110..129 that stops short of the floor."""
    img = rect_outline(blank(240, 100), 0, 0, 240, 100, 5)
    img[0:70, 110:130] = BLACK
    return img


def make_config(**overrides):
    values = dict(min_region_size=10)
    values.update(overrides)
    return ColoringConfig(**values)


@pytest.fixture
def square_buffer():
    return RasterBuffer.from_array(square_outline_image())


@pytest.fixture
def two_rooms_buffer():
    return RasterBuffer.from_array(two_rooms_image())


@pytest.fixture
def u_room_buffer():
    return RasterBuffer.from_array(u_room_image())


@pytest.fixture(params=[ClipStrategy.PRESTAMP, ClipStrategy.SCRATCH], ids=lambda s: s.value)
def strategy(request):
    return request.param


@pytest.fixture
def two_rooms(two_rooms_buffer, strategy):
    return Canvas(two_rooms_buffer, make_config(clip_strategy=strategy))


@pytest.fixture
def settings():
    return BrushSettings(color=RED, size=10)
