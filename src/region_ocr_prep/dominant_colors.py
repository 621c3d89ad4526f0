"""Rank the colours of an image by frequency, grouping near colours.

Colours are bucketed by integer-dividing each RGB channel by a tolerance and
multiplying back, so ``tolerance=32`` maps 0..31 to 0, 32..63 to 32, and so
on. Bucket alpha is always 255.
"""

from __future__ import annotations

import numpy as np

from region_ocr_prep.errors import InvalidToleranceError

ColorBucket = tuple[int, int, int, int]


def _check_tolerance(tolerance: int) -> None:
    if tolerance <= 0:
        raise InvalidToleranceError(f"tolerance must be positive, got {tolerance}")


def _bucket_keys(image: np.ndarray, tolerance: int) -> np.ndarray:
    """Pack each pixel's bucketed RGB into one int per pixel (raster order)."""
    rgb = image[..., :3].reshape(-1, 3).astype(np.int64)
    q = (rgb // tolerance) * tolerance
    return (q[:, 0] << 16) | (q[:, 1] << 8) | q[:, 2]


def _unpack(key: int) -> ColorBucket:
    return (key >> 16) & 0xFF, (key >> 8) & 0xFF, key & 0xFF, 255


def dominant_colors(image: np.ndarray, count: int, tolerance: int) -> list[tuple[ColorBucket, int]]:
    """Return up to ``count`` (bucket, pixel_count) pairs, most frequent first.

    Buckets with equal counts keep the order in which they first appear in a
    row-major scan.
    """
    _check_tolerance(tolerance)
    if count <= 0 or image.size == 0:
        return []

    keys = _bucket_keys(image, tolerance)
    unique, first_seen, counts = np.unique(keys, return_index=True, return_counts=True)
    order = np.lexsort((first_seen, -counts))[:count]
    return [(_unpack(int(unique[i])), int(counts[i])) for i in order]


def keep_dominant_mask(image: np.ndarray, buckets: list[ColorBucket], tolerance: int) -> np.ndarray:
    """Boolean (H, W) mask of pixels whose bucket is one of ``buckets``."""
    _check_tolerance(tolerance)
    h, w = image.shape[:2]
    wanted = np.array([(r << 16) | (g << 8) | b for r, g, b, _ in buckets], dtype=np.int64)
    return np.isin(_bucket_keys(image, tolerance), wanted).reshape(h, w)
