"""Tests for the tile compositor.

Uses synthetic gradient images (every pixel distinct) so a tile copied
from the wrong place is always detectable.
"""

import pickle

import numpy as np
import pytest
from PIL import Image

from ptimg.compositor import (
    CompositeBoundsError,
    composite,
    coverage,
    validate_placements,
)
from ptimg.manifest import GeometryDescriptor, TilePlacement, parse_manifest
from conftest import gradient_image, manifest_json


def _geometry(width, height, *placements):
    return GeometryDescriptor(width, height, tuple(TilePlacement(*p) for p in placements))


class TestComposite:
    def test_round_trip_identity(self):
        src = gradient_image(6, 5)
        result = composite(src, _geometry(6, 5, (0, 0, 6, 5, 0, 0)))
        assert result.size == (6, 5)
        assert np.array_equal(np.asarray(result), np.asarray(src))

    def test_concrete_scenario_side_by_side(self):
        src = gradient_image(4, 2)
        geometry = parse_manifest(
            '{"views":[{"width":4,"height":2,'
            '"coords":["i:0,0+2,2>0,0","i:2,0+2,2>2,0"]}]}'
        )
        result = composite(src, geometry)
        assert np.array_equal(np.asarray(result), np.asarray(src))

    def test_swapped_tiles_are_moved(self):
        src = np.asarray(gradient_image(4, 2))
        result = np.asarray(composite(
            Image.fromarray(src), _geometry(4, 2, (2, 0, 2, 2, 0, 0), (0, 0, 2, 2, 2, 0)),
        ))
        assert np.array_equal(result[:, :2], src[:, 2:])
        assert np.array_equal(result[:, 2:], src[:, :2])

    def test_later_placement_wins(self):
        src = np.asarray(gradient_image(4, 4))
        result = np.asarray(composite(
            Image.fromarray(src),
            _geometry(2, 2, (0, 0, 2, 2, 0, 0), (2, 2, 2, 2, 0, 0)),
        ))
        assert np.array_equal(result, src[2:4, 2:4])

    def test_partial_overlap_later_wins(self):
        src = np.asarray(gradient_image(4, 4))
        result = np.asarray(composite(
            Image.fromarray(src),
            _geometry(3, 2, (0, 0, 2, 2, 0, 0), (2, 2, 2, 2, 1, 0)),
        ))
        assert np.array_equal(result[:, 0], src[0:2, 0])
        assert np.array_equal(result[:, 1:3], src[2:4, 2:4])

    def test_uncovered_region_is_transparent(self):
        src = gradient_image(2, 2)
        result = np.asarray(composite(src, _geometry(4, 2, (0, 0, 2, 2, 0, 0))))
        assert result.shape == (2, 4, 4)
        assert not result[:, 2:].any()
        assert (result[:, :2, 3] == 255).all()

    def test_no_placements_gives_blank_canvas(self):
        result = composite(gradient_image(2, 2), _geometry(3, 3))
        assert result.mode == "RGBA"
        assert result.size == (3, 3)
        assert not np.asarray(result).any()

    def test_zero_area_canvas(self):
        result = composite(gradient_image(2, 2), _geometry(0, 5))
        assert result.size == (0, 5)

    def test_rgb_source_gets_opaque_alpha(self):
        src = Image.new("RGB", (2, 2), (10, 20, 30))
        result = composite(src, _geometry(2, 2, (0, 0, 2, 2, 0, 0)))
        assert result.mode == "RGBA"
        assert result.getpixel((1, 1)) == (10, 20, 30, 255)

    def test_output_is_deterministic(self):
        src = gradient_image(8, 8)
        geometry = _geometry(
            8, 8, (4, 4, 4, 4, 0, 0), (0, 0, 4, 4, 4, 4), (4, 0, 4, 4, 0, 4),
        )
        assert composite(src, geometry).tobytes() == composite(src, geometry).tobytes()

    def test_source_is_not_modified(self):
        src = gradient_image(4, 2)
        before = src.tobytes()
        composite(src, _geometry(4, 2, (2, 0, 2, 2, 0, 0)))
        assert src.tobytes() == before


class TestBoundsRejection:
    def test_source_overflow_x(self):
        geometry = _geometry(4, 2, (0, 0, 2, 2, 0, 0), (3, 0, 2, 2, 2, 0))
        with pytest.raises(CompositeBoundsError, match="Placement 1: source") as exc_info:
            composite(gradient_image(4, 2), geometry)
        err = exc_info.value
        assert err.index == 1
        assert err.kind == "source"
        assert err.box == (3, 0, 5, 2)
        assert err.limit == (4, 2)

    def test_source_overflow_y(self):
        with pytest.raises(CompositeBoundsError, match="source"):
            composite(gradient_image(4, 2), _geometry(4, 2, (0, 1, 2, 2, 0, 0)))

    def test_destination_overflow(self):
        geometry = _geometry(4, 2, (0, 0, 2, 2, 3, 0))
        with pytest.raises(CompositeBoundsError, match="destination") as exc_info:
            composite(gradient_image(4, 2), geometry)
        assert exc_info.value.box == (3, 0, 5, 2)
        assert exc_info.value.limit == (4, 2)

    def test_destination_fully_outside(self):
        with pytest.raises(CompositeBoundsError, match="canvas"):
            composite(gradient_image(4, 2), _geometry(4, 2, (0, 0, 1, 1, 10, 10)))

    def test_message_includes_rectangle(self):
        with pytest.raises(CompositeBoundsError, match="left=3, top=0, right=5, bottom=2"):
            composite(gradient_image(4, 2), _geometry(4, 2, (3, 0, 2, 2, 0, 0)))

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            composite(gradient_image(1, 1), _geometry(1, 1, (0, 0, 2, 2, 0, 0)))

    def test_error_survives_pickling(self):
        with pytest.raises(CompositeBoundsError) as exc_info:
            composite(gradient_image(1, 1), _geometry(1, 1, (0, 0, 2, 2, 0, 0)))
        clone = pickle.loads(pickle.dumps(exc_info.value))
        assert str(clone) == str(exc_info.value)
        assert clone.index == 0


class TestValidatePlacements:
    def test_valid_passes(self):
        geometry = parse_manifest(manifest_json(4, 2, ["i:0,0+4,2>0,0"]))
        validate_placements(geometry, (4, 2))  # should not raise

    def test_edge_aligned_tile_fits(self):
        validate_placements(_geometry(4, 2, (2, 1, 2, 1, 2, 1)), (4, 2))

    def test_source_checked_before_destination(self):
        with pytest.raises(CompositeBoundsError) as exc_info:
            validate_placements(_geometry(1, 1, (5, 5, 2, 2, 5, 5)), (4, 4))
        assert exc_info.value.kind == "source"


class TestCoverage:
    def test_full(self):
        assert coverage(_geometry(4, 2, (0, 0, 2, 2, 0, 0), (2, 0, 2, 2, 2, 0))) == 1.0

    def test_half(self):
        assert coverage(_geometry(4, 2, (0, 0, 2, 2, 0, 0))) == 0.5

    def test_overlap_counted_once(self):
        geometry = _geometry(4, 2, (0, 0, 2, 2, 0, 0), (0, 0, 2, 2, 0, 0))
        assert coverage(geometry) == 0.5

    def test_zero_area_canvas(self):
        assert coverage(_geometry(0, 0)) == 1.0
