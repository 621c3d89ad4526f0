"""Region string parsing and fraction -> pixel rectangle mapping."""
from __future__ import annotations

import itertools

import pytest

from region_ocr_prep.errors import DegenerateCropError, RegionValidationError
from region_ocr_prep.region_mapper import ScreenRegionSpec, map_region


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def test_parse_literal_form():
    spec = ScreenRegionSpec.parse("(0, 0.166, 0.75, 0.967)")
    assert (spec.x0, spec.x1, spec.y0, spec.y1) == (0.0, 0.166, 0.75, 0.967)


def test_parse_without_parentheses():
    spec = ScreenRegionSpec.parse(" 0.1,0.9,0.2,0.8 ")
    assert spec == ScreenRegionSpec(0.1, 0.9, 0.2, 0.8)


@pytest.mark.parametrize("text", ["(0,1,0)", "(0,1,0,1,1)", "", "(a,b,c,d)", "(0,1,,1)"])
def test_parse_rejects_malformed(text):
    with pytest.raises(RegionValidationError):
        ScreenRegionSpec.parse(text)


@pytest.mark.parametrize("values", [
    (-0.1, 0.5, 0, 1),
    (0, 1.2, 0, 1),
    (0, 1, 0, float("nan")),
    (0.6, 0.5, 0, 1),
    (0, 1, 0.9, 0.1),
])
def test_out_of_range_or_reversed(values):
    with pytest.raises(RegionValidationError):
        ScreenRegionSpec(*values)


def test_str_round_trips_through_parse():
    spec = ScreenRegionSpec(0.25, 0.5, 0.0, 1.0)
    assert ScreenRegionSpec.parse(str(spec)) == spec


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------

def test_map_half_screen():
    assert map_region((1920, 1080), "(0,0.5,0.5,1)") == (0, 540, 960, 540)


def test_map_full_screen():
    assert map_region((800, 600), ScreenRegionSpec(0, 1, 0, 1)) == (0, 0, 800, 600)


def test_both_ends_round_half_up():
    # 12.5 -> 13 and 37.5 -> 38: same rule at both edges.
    assert map_region((100, 100), "(0.125,0.375,0,1)") == (13, 0, 25, 100)


def test_zero_width_region_is_degenerate():
    with pytest.raises(DegenerateCropError):
        map_region((100, 100), "(0.5,0.5,0,1)")


def test_region_collapsing_after_rounding_is_degenerate():
    with pytest.raises(DegenerateCropError):
        map_region((100, 100), "(0.001,0.002,0,1)")


def test_malformed_string_rejected_before_mapping():
    with pytest.raises(RegionValidationError):
        map_region((100, 100), "(0,1,0)")


def test_mapped_rect_stays_on_screen():
    fractions = [0.0, 0.1, 0.333, 0.5, 0.777, 0.999, 1.0]
    screen_w, screen_h = 1366, 768
    for x0, x1 in itertools.combinations_with_replacement(fractions, 2):
        for y0, y1 in itertools.combinations_with_replacement(fractions, 2):
            try:
                x, y, w, h = map_region((screen_w, screen_h), ScreenRegionSpec(x0, x1, y0, y1))
            except DegenerateCropError:
                assert screen_w * (x1 - x0) < 1 or screen_h * (y1 - y0) < 1
                continue
            assert 0 <= x and x + w <= screen_w
            assert 0 <= y and y + h <= screen_h
            assert abs(w - screen_w * (x1 - x0)) <= 1
            assert abs(h - screen_h * (y1 - y0)) <= 1
