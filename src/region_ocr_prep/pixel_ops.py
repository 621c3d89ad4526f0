"""Per-pixel transforms on RGBA buffers.

All images are ``uint8`` numpy arrays of shape (H, W, 4). Masks are (H, W)
``uint8`` arrays. Functions never modify their inputs.
"""

from __future__ import annotations

import cv2
import numpy as np

from region_ocr_prep.errors import DegenerateCropError, DimensionMismatch

# Mask value marking a selected pixel. 255 so masks are viewable as images.
MASK_BIT = 255

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)

# Border-ring mean luma above this means a light background.
_LIGHT_BACKGROUND_LUMA = 127

_FULL_WHITE_SUM = 3 * 255


def background_pixel(light_background: bool) -> tuple[int, int, int, int]:
    return WHITE if light_background else BLACK


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def crop(image: np.ndarray, rect: tuple[int, int, int, int]) -> np.ndarray:
    x, y, w, h = rect
    img_h, img_w = image.shape[:2]
    if x < 0 or y < 0 or x + w > img_w or y + h > img_h:
        raise DegenerateCropError(
            f"crop ({x},{y},{w},{h}) exceeds the {img_w}x{img_h} capture"
        )
    return image[y : y + h, x : x + w].copy()


def downscale(image: np.ndarray, factor: float) -> np.ndarray:
    """Nearest-neighbour resize by ``factor``. A factor of 1 returns a copy."""
    if factor == 1.0:
        return image.copy()
    h, w = image.shape[:2]
    new_w = int(w * factor + 0.5)
    new_h = int(h * factor + 0.5)
    if new_w <= 0 or new_h <= 0:
        raise DegenerateCropError(
            f"scaling {w}x{h} by {factor} leaves an empty {new_w}x{new_h} image"
        )
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_NEAREST)


# ---------------------------------------------------------------------------
# Colour adjustments
# ---------------------------------------------------------------------------

def adjust_contrast(image: np.ndarray, contrast: float) -> np.ndarray:
    """Stretch colour channels around mid-grey, leaving alpha untouched.

    ``contrast`` is a percentage: 0 is a no-op, positive values increase
    contrast, negative values flatten it.
    """
    if contrast == 0:
        return image.copy()
    factor = ((100.0 + contrast) / 100.0) ** 2
    levels = np.arange(256, dtype=np.float64)
    lut = np.clip(((levels / 255.0 - 0.5) * factor + 0.5) * 255.0, 0, 255).astype(np.uint8)

    out = image.copy()
    out[..., :3] = lut[image[..., :3]]
    return out


def invert_colors(image: np.ndarray) -> np.ndarray:
    out = image.copy()
    out[..., :3] = 255 - image[..., :3]
    return out


def normalize_brightness(image: np.ndarray) -> np.ndarray:
    """Scale each pixel so its brightest colour channel becomes 255.

    Rounds half-up: (200, 100, 50) becomes (255, 128, 64). Pure black pixels
    are copied unchanged. Alpha is untouched.
    """
    rgb = image[..., :3].astype(np.int32)
    peak = rgb.max(axis=-1, keepdims=True)
    divisor = np.maximum(peak, 1)
    scaled = (rgb * 255 + divisor // 2) // divisor

    out = image.copy()
    out[..., :3] = np.where(peak > 0, scaled, rgb).astype(np.uint8)
    return out


# ---------------------------------------------------------------------------
# Background polarity
# ---------------------------------------------------------------------------

def border_ring(image: np.ndarray) -> np.ndarray:
    """Return the outermost pixels (each corner once) as an (N, C) array."""
    h, w = image.shape[:2]
    ring = np.zeros((h, w), dtype=bool)
    ring[0, :] = True
    ring[-1, :] = True
    ring[:, 0] = True
    ring[:, -1] = True
    return image[ring]


def is_white_background(image: np.ndarray) -> bool:
    """Decide polarity from the mean luma of the border ring.

    The mean uses integer division, so the ring must average at least 128
    to count as light.
    """
    ring = border_ring(image)
    if ring.size == 0:
        raise DegenerateCropError("cannot classify the background of an empty image")
    luma = cv2.cvtColor(ring.reshape(1, -1, 4), cv2.COLOR_RGBA2GRAY)
    mean = int(luma.sum(dtype=np.int64)) // luma.size
    return mean > _LIGHT_BACKGROUND_LUMA


# ---------------------------------------------------------------------------
# Foreground predicate
# ---------------------------------------------------------------------------

def is_foreground(pixel, light_background: bool, margin: int) -> bool:
    """Classify a single RGB(A) pixel as content for the given polarity."""
    total = int(pixel[0]) + int(pixel[1]) + int(pixel[2])
    if light_background:
        return total < _FULL_WHITE_SUM - margin
    return total > margin


def foreground_mask(image: np.ndarray, light_background: bool, margin: int) -> np.ndarray:
    """Vectorised is_foreground(): MASK_BIT where a pixel is content."""
    total = image[..., :3].sum(axis=-1, dtype=np.int32)
    if light_background:
        content = total < _FULL_WHITE_SUM - margin
    else:
        content = total > margin
    return np.where(content, MASK_BIT, 0).astype(np.uint8)


# ---------------------------------------------------------------------------
# Masking
# ---------------------------------------------------------------------------

def filter_pixels(image: np.ndarray, keep: np.ndarray, fill) -> np.ndarray:
    """Keep pixels where ``keep`` is truthy, replace the rest with ``fill``."""
    if image.shape[:2] != keep.shape:
        raise DimensionMismatch(image.shape[:2], keep.shape)
    out = image.copy()
    out[~keep.astype(bool)] = fill
    return out


def mask_and_fill(source: np.ndarray, mask: np.ndarray, active_bit: int, fill) -> np.ndarray:
    """Replace every pixel whose mask value equals ``active_bit`` with ``fill``.

    Raises DimensionMismatch when the mask is not the size of the source.
    """
    if source.shape[:2] != mask.shape:
        raise DimensionMismatch(source.shape[:2], mask.shape)
    out = source.copy()
    out[mask == active_bit] = fill
    return out
