"""Connected-component labelling and size-based region removal.

Labelling uses OpenCV's iterative connected-components pass, so stack depth
does not grow with region size. Every label buffer and count array belongs to
one call and is sized to the image being processed.
"""

from __future__ import annotations

import logging
from enum import IntEnum

import cv2
import numpy as np

from region_ocr_prep.pixel_ops import MASK_BIT

logger = logging.getLogger(__name__)


class Connectivity(IntEnum):
    FOUR = 4
    EIGHT = 8


def candidate_mask(image: np.ndarray, background) -> np.ndarray:
    """True for every pixel that differs from ``background`` in any channel."""
    bg = np.asarray(background, dtype=image.dtype)
    if image.ndim == 2:
        return image != bg
    return np.any(image != bg, axis=-1)


def label_components(
    image: np.ndarray,
    background,
    connectivity: Connectivity | int = Connectivity.FOUR,
) -> tuple[np.ndarray, int]:
    """Label connected non-background pixels.

    Returns ``(labels, count)``: an int32 (H, W) array where 0 is background
    and 1..count identify regions in raster order of their first pixel.
    """
    connectivity = Connectivity(connectivity)
    candidates = candidate_mask(image, background).astype(np.uint8)
    num_labels, labels = cv2.connectedComponents(
        candidates, connectivity=int(connectivity), ltype=cv2.CV_32S,
    )
    count = num_labels - 1
    if count < 2:
        return labels, count

    # OpenCV's block-based scans may number regions out of raster order.
    found, first = np.unique(labels.ravel(), return_index=True)
    order = found[np.argsort(first, kind="stable")]
    order = order[order != 0]
    remap = np.zeros(num_labels, dtype=np.int32)
    remap[order] = np.arange(1, count + 1, dtype=np.int32)
    return remap[labels], count


def region_sizes(labels: np.ndarray, count: int | None = None) -> np.ndarray:
    """Pixel count per label; index 0 holds the background count."""
    if count is None:
        count = int(labels.max()) if labels.size else 0
    return np.bincount(labels.ravel(), minlength=count + 1)


def size_filter_mask(labels: np.ndarray, lower: int, upper: int) -> np.ndarray:
    """Mask (MASK_BIT) every pixel of a region smaller than ``lower`` or larger than ``upper``.

    Bounds are inclusive for keeping: a region of exactly ``lower`` or
    ``upper`` pixels survives. ``lower=0`` keeps all small regions. Label 0
    is never selected.
    """
    sizes = region_sizes(labels)
    remove = (sizes > upper) | (sizes < lower)
    remove[0] = False

    removed = np.flatnonzero(remove)
    if removed.size:
        logger.debug(
            "Size filter [%d, %d] removes %d of %d regions",
            lower, upper, removed.size, sizes.size - 1,
        )
    return np.where(remove[labels], MASK_BIT, 0).astype(np.uint8)
