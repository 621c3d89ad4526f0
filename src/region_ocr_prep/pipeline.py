"""Turn a raw screen capture into an OCR-ready image.

Pipeline:
1. Map the fractional screen region to pixels and crop the capture
2. Optional nearest-neighbour downscale, then contrast stretch
3. Classify the background as light or dark from the border ring
4. Threshold: keep content pixels, paint everything else background
   (InvertThenThreshold first inverts light captures so the rest of the
   pipeline always sees a dark background)
5. Label connected content regions and erase regions that are too small
   (speckles) or too large (icons, panels, UI blocks)
6. Optional per-pixel brightness normalisation
7. Keep only content pixels whose colour falls in one of the most common
   content colour buckets (the text colour)

Every call is independent: no state survives between invocations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from region_ocr_prep.dominant_colors import dominant_colors, keep_dominant_mask
from region_ocr_prep.labelling import Connectivity, label_components, size_filter_mask
from region_ocr_prep.pixel_ops import (
    MASK_BIT,
    adjust_contrast,
    background_pixel,
    crop,
    downscale,
    filter_pixels,
    foreground_mask,
    invert_colors,
    is_white_background,
    mask_and_fill,
    normalize_brightness,
)
from region_ocr_prep.region_mapper import ScreenRegionSpec, map_region

logger = logging.getLogger(__name__)


class PolarityPolicy(str, Enum):
    # Threshold light captures for dark content, dark captures for bright content.
    THRESHOLD_BY_POLARITY = "threshold_by_polarity"
    # Invert light captures, then always threshold for bright content.
    INVERT_THEN_THRESHOLD = "invert_then_threshold"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class PipelineConfig:
    """Tunable parameters for the preprocessing pipeline.

    Defaults suit game subtitles and dialogue boxes captured at native
    resolution.
    """

    # -- Labelling --
    # Pixel adjacency for connected regions: 4 (orthogonal) or 8 (with diagonals).
    connectivity: Connectivity = Connectivity.FOUR

    # -- Region size filter (pixel counts, inclusive keep range) --
    # Regions smaller than this are speckle noise. 0 keeps every small region.
    size_lower: int = 3
    # Regions larger than this are graphics, not glyphs.
    size_upper: int = 1500

    # -- Foreground predicate --
    # How far (in summed RGB) a pixel must be from the background extreme
    # to count as content.
    intensity_margin: int = 96

    # -- Dominant colour filter --
    # Per-channel bucket width for grouping similar colours.
    color_tolerance: int = 32
    # Number of content colour buckets kept in the output.
    dominant_count: int = 3

    polarity_policy: PolarityPolicy = PolarityPolicy.THRESHOLD_BY_POLARITY

    # Scale each content pixel so its brightest channel is 255.
    # Useful for coloured text on dark backgrounds.
    normalize_brightness: bool = False

    # -- Capture conditioning --
    # Contrast stretch in percent. 0 disables.
    contrast: float = 25.0
    # Resize factor applied to the crop. 1.0 keeps native size.
    scale_factor: float = 1.0

    def __post_init__(self) -> None:
        self.connectivity = Connectivity(self.connectivity)
        self.polarity_policy = PolarityPolicy(self.polarity_policy)
        if self.size_lower < 0 or self.size_upper < 0:
            raise ValueError("region size bounds must not be negative")
        if self.size_lower > self.size_upper:
            raise ValueError(
                f"size_lower ({self.size_lower}) exceeds size_upper ({self.size_upper})"
            )
        if self.intensity_margin < 0:
            raise ValueError("intensity_margin must not be negative")
        if self.dominant_count < 1:
            raise ValueError("dominant_count must be at least 1")
        if self.scale_factor <= 0:
            raise ValueError("scale_factor must be positive")


_default_config = PipelineConfig()


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawCapture:
    """A full-screen RGBA capture as delivered by the capture backend."""

    width: int
    height: int
    pixels: bytes

    def __post_init__(self) -> None:
        expected = self.width * self.height * 4
        if len(self.pixels) != expected:
            raise ValueError(
                f"capture {self.width}x{self.height} needs {expected} RGBA bytes, "
                f"got {len(self.pixels)}"
            )

    @classmethod
    def from_array(cls, rgba: np.ndarray) -> RawCapture:
        h, w = rgba.shape[:2]
        return cls(width=w, height=h, pixels=np.ascontiguousarray(rgba, dtype=np.uint8).tobytes())

    def to_array(self) -> np.ndarray:
        """Read-only (H, W, 4) view of the pixel bytes."""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(self.height, self.width, 4)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def clean_region(image: np.ndarray, config: PipelineConfig | None = None) -> np.ndarray:
    """Run steps 2-7 on an already cropped RGBA image."""
    cfg = config or _default_config

    image = downscale(image, cfg.scale_factor)
    image = adjust_contrast(image, cfg.contrast)

    light = is_white_background(image)
    if light and cfg.polarity_policy is PolarityPolicy.INVERT_THEN_THRESHOLD:
        image = invert_colors(image)
        light = False
    bg = background_pixel(light)
    logger.debug("Background: %s (policy=%s)", "light" if light else "dark",
                 cfg.polarity_policy.value)

    content = foreground_mask(image, light, cfg.intensity_margin)
    thresholded = filter_pixels(image, content, bg)

    labels, count = label_components(thresholded, bg, cfg.connectivity)
    removal = size_filter_mask(labels, cfg.size_lower, cfg.size_upper)
    cleaned = mask_and_fill(thresholded, removal, MASK_BIT, bg)
    logger.debug("Labelled %d regions, removed %d px", count,
                 int(np.count_nonzero(removal)))

    if cfg.normalize_brightness:
        cleaned = normalize_brightness(cleaned)

    # Background pixels are excluded from the ranking.
    surviving = foreground_mask(cleaned, light, cfg.intensity_margin).astype(bool)
    ranked = dominant_colors(cleaned[surviving], cfg.dominant_count, cfg.color_tolerance)
    logger.debug("Dominant content colours: %s", ranked)

    keep = surviving & keep_dominant_mask(cleaned, [b for b, _ in ranked], cfg.color_tolerance)
    return filter_pixels(cleaned, keep, bg)


def preprocess(
    capture: RawCapture,
    region: ScreenRegionSpec | str,
    config: PipelineConfig | None = None,
) -> np.ndarray:
    """Crop ``region`` out of ``capture`` and clean it for OCR.

    Returns a new (H, W, 4) RGBA array. Raises a PreprocessError subclass
    when the region is invalid or collapses to nothing.

    Args:
        capture: Full-screen RGBA capture.
        region: ScreenRegionSpec or its ``"(x0,x1,y0,y1)"`` string form.
        config: Optional configuration override. Uses module defaults
                if not provided.
    """
    rect = map_region((capture.width, capture.height), region)
    logger.debug("Region %s -> rect %s on %dx%d capture", region, rect,
                 capture.width, capture.height)
    return clean_region(crop(capture.to_array(), rect), config)
