"""Tolerance-bucketed colour frequency ranking."""
from __future__ import annotations

import numpy as np
import pytest

from region_ocr_prep.dominant_colors import dominant_colors, keep_dominant_mask
from region_ocr_prep.errors import InvalidToleranceError


def two_tone(w: int, h: int, top, bottom, split_row: int) -> np.ndarray:
    img = np.empty((h, w, 4), dtype=np.uint8)
    img[:split_row] = top
    img[split_row:] = bottom
    return img


COLOR_A = (200, 30, 30, 255)
COLOR_B = (20, 20, 220, 255)


def test_majority_colour_first():
    img = two_tone(10, 10, COLOR_B, COLOR_A, split_row=4)  # 40% B, 60% A
    ranked = dominant_colors(img, count=5, tolerance=64)
    assert ranked == [((192, 0, 0, 255), 60), ((0, 0, 192, 255), 40)]


def test_ties_keep_first_seen_order():
    img = two_tone(4, 4, COLOR_B, COLOR_A, split_row=2)
    ranked = dominant_colors(img, count=2, tolerance=16)
    assert [bucket for bucket, _ in ranked] == [(16, 16, 208, 255), (192, 16, 16, 255)]


def test_similar_colours_share_a_bucket():
    img = np.zeros((1, 2, 4), dtype=np.uint8)
    img[0, 0] = (100, 100, 100, 255)
    img[0, 1] = (110, 105, 120, 0)
    assert dominant_colors(img, count=3, tolerance=32) == [((96, 96, 96, 255), 2)]


def test_count_limits_result():
    rng = np.random.default_rng(3)
    img = rng.integers(0, 256, size=(20, 20, 4), dtype=np.uint8)
    ranked = dominant_colors(img, count=4, tolerance=8)
    assert len(ranked) == 4
    counts = [c for _, c in ranked]
    assert counts == sorted(counts, reverse=True)


def test_empty_input_and_zero_count():
    assert dominant_colors(np.zeros((0, 4), np.uint8), count=3, tolerance=8) == []
    assert dominant_colors(np.zeros((2, 2, 4), np.uint8), count=0, tolerance=8) == []


def test_flat_pixel_list_accepted():
    pixels = np.array([COLOR_A, COLOR_A, COLOR_B], dtype=np.uint8)
    assert dominant_colors(pixels, count=1, tolerance=1) == [((200, 30, 30, 255), 2)]


@pytest.mark.parametrize("tolerance", [0, -4])
def test_non_positive_tolerance_rejected(tolerance):
    with pytest.raises(InvalidToleranceError):
        dominant_colors(np.zeros((2, 2, 4), np.uint8), count=1, tolerance=tolerance)


def test_keep_mask_selects_bucket_members():
    img = two_tone(3, 2, COLOR_A, COLOR_B, split_row=1)
    mask = keep_dominant_mask(img, [(192, 0, 0, 255)], tolerance=64)
    assert mask.tolist() == [[True, True, True], [False, False, False]]


def test_keep_mask_with_no_buckets_is_empty():
    img = two_tone(3, 2, COLOR_A, COLOR_B, split_row=1)
    assert not keep_dominant_mask(img, [], tolerance=64).any()
