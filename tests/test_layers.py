"""Tests for layer masks, lookup table and point-to-layer resolution."""

import math

import numpy as np
import pytest

from config import ClipStrategy
from errors import RegionIntegrityError
from layers import (
    NO_LAYER_SENTINEL,
    RegionLayer,
    build_layers,
    build_lookup_table,
    find_layer_at,
)
from regions import RegionMap, segment


@pytest.fixture
def rmap(two_rooms_buffer):
    return segment(two_rooms_buffer, 128, 10)


class TestBuildLayers:
    def test_one_layer_per_region(self, rmap):
        layers = build_layers(rmap)
        assert [layer.id for layer in layers] == [1, 2]

    def test_mask_marks_exactly_the_region(self, rmap):
        for layer in build_layers(rmap):
            inside = rmap.pixel_to_region == layer.id
            assert (layer.mask[inside] == 255).all()
            assert (layer.mask[~inside] == 0).all()

    def test_masks_disjoint(self, rmap):
        layers = build_layers(rmap)
        coverage = sum((layer.mask[..., 3] == 255).astype(int) for layer in layers)
        assert coverage.max() <= 1

    def test_prestamp_surface_starts_as_mask(self, rmap):
        for layer in build_layers(rmap, ClipStrategy.PRESTAMP):
            assert np.array_equal(layer.surface, layer.mask)
            assert layer.surface is not layer.mask

    def test_scratch_surface_starts_blank(self, rmap):
        for layer in build_layers(rmap, ClipStrategy.SCRATCH):
            assert not layer.surface.any()

    def test_reset_restores_initial(self, rmap):
        layer = build_layers(rmap)[0]
        layer.surface[50, 50] = (1, 2, 3, 255)
        layer.reset()
        assert np.array_equal(layer.surface, layer.mask)

    def test_non_dense_ids_rejected(self):
        labels = np.full((4, 4), -1, dtype=np.int32)
        labels[0, 0] = 1
        labels[3, 3] = 3
        with pytest.raises(RegionIntegrityError):
            build_layers(RegionMap(4, 4, 2, labels))

    def test_allocation_failure_skips_region(self, rmap, monkeypatch):
        real_zeros = np.zeros
        calls = []

        def flaky_zeros(shape, *args, **kwargs):
            # Fail the first full-size RGBA allocation only.
            if shape == (rmap.height, rmap.width, 4):
                calls.append(shape)
                if len(calls) == 1:
                    raise MemoryError
            return real_zeros(shape, *args, **kwargs)

        monkeypatch.setattr(np, "zeros", flaky_zeros)
        layers = build_layers(rmap)
        monkeypatch.undo()
        assert [layer.id for layer in layers] == [2]


class TestLookupTable:
    def test_agrees_with_masks(self, rmap):
        layers = build_layers(rmap)
        lookup = build_lookup_table(layers, rmap.width, rmap.height)
        table = lookup.table.reshape(rmap.height, rmap.width)
        owners = np.full((rmap.height, rmap.width), NO_LAYER_SENTINEL)
        for index, layer in enumerate(layers):
            owners[layer.mask[..., 3] == 255] = index
        assert np.array_equal(table, owners)

    def test_sentinel_on_boundary(self, rmap):
        lookup = build_lookup_table(build_layers(rmap), rmap.width, rmap.height)
        assert lookup.index_at(122, 50) is None
        assert lookup.index_at(50, 50) == 0
        assert lookup.index_at(200, 50) == 1

    def test_overlap_is_an_integrity_error(self):
        mask = np.zeros((3, 3, 4), dtype=np.uint8)
        mask[1, 1] = 255
        a = RegionLayer(id=1, mask=mask.copy(), surface=mask.copy())
        b = RegionLayer(id=2, mask=mask.copy(), surface=mask.copy())
        with pytest.raises(RegionIntegrityError):
            build_lookup_table([a, b], 3, 3)


class TestFindLayerAt:
    @pytest.fixture
    def layers(self, rmap):
        return build_layers(rmap)

    @pytest.fixture
    def lookup(self, rmap, layers):
        return build_lookup_table(layers, rmap.width, rmap.height)

    def test_with_lookup(self, layers, lookup):
        assert find_layer_at(layers, 50, 50, lookup).id == 1
        assert find_layer_at(layers, 200.4, 50, lookup).id == 2
        assert find_layer_at(layers, 122, 50, lookup) is None

    def test_without_lookup_matches(self, layers, lookup):
        for y in range(0, 100, 7):
            for x in range(0, 240, 7):
                assert find_layer_at(layers, x, y) is find_layer_at(layers, x, y, lookup)

    @pytest.mark.parametrize("x, y", [(-1, 0), (240, 0), (0, 100), (math.nan, 3), (3, math.inf)])
    def test_out_of_range_is_none(self, layers, lookup, x, y):
        assert find_layer_at(layers, x, y, lookup) is None
        assert find_layer_at(layers, x, y) is None

    def test_no_layers(self):
        assert find_layer_at([], 1, 1) is None
