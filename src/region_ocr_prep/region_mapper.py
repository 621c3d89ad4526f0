"""Map a fractional screen region onto an absolute pixel rectangle.

A region is written as ``"(x0, x1, y0, y1)"``: the horizontal span first,
then the vertical one, each as a fraction of the screen size. For example
``(0, 0.166, 0.75, 0.967)`` selects a strip near the bottom left corner.

Both ends of a span are rounded half-up, so the crop has no bias towards
either edge.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from region_ocr_prep.errors import DegenerateCropError, RegionValidationError

# (x, y, width, height)
PixelRect = tuple[int, int, int, int]


@dataclass(frozen=True)
class ScreenRegionSpec:
    x0: float
    x1: float
    y0: float
    y1: float

    def __post_init__(self) -> None:
        values = (self.x0, self.x1, self.y0, self.y1)
        if any(not 0.0 <= v <= 1.0 for v in values):
            raise RegionValidationError(f"region values must lie in [0, 1]: {values}")
        if self.x1 < self.x0 or self.y1 < self.y0:
            raise RegionValidationError(
                f"region end must not precede its start: {values}"
            )

    @classmethod
    def parse(cls, text: str) -> ScreenRegionSpec:
        """Parse the literal ``"(x0,x1,y0,y1)"`` form.

        Surrounding parentheses and whitespace are optional.
        """
        body = text.strip()
        if body.startswith("("):
            body = body[1:]
        if body.endswith(")"):
            body = body[:-1]

        parts = body.split(",")
        if len(parts) != 4:
            raise RegionValidationError(
                f"expected 4 comma-separated values, got {len(parts)}: {text!r}"
            )
        try:
            x0, x1, y0, y1 = (float(p.strip()) for p in parts)
        except ValueError as e:
            raise RegionValidationError(f"non-numeric region value in {text!r}") from e
        return cls(x0, x1, y0, y1)

    def __str__(self) -> str:
        return f"({self.x0},{self.x1},{self.y0},{self.y1})"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def map_region(resolution: tuple[int, int], region: ScreenRegionSpec | str) -> PixelRect:
    """Convert ``region`` into ``(x, y, width, height)`` for a screen of ``resolution``.

    Raises RegionValidationError for a malformed region and
    DegenerateCropError when the rectangle collapses to nothing.
    """
    if isinstance(region, str):
        region = ScreenRegionSpec.parse(region)

    screen_w, screen_h = resolution
    if screen_w <= 0 or screen_h <= 0:
        raise DegenerateCropError(f"screen resolution is empty: {screen_w}x{screen_h}")

    x_start = _round_half_up(screen_w * region.x0)
    x_end = _round_half_up(screen_w * region.x1)
    y_start = _round_half_up(screen_h * region.y0)
    y_end = _round_half_up(screen_h * region.y1)

    width = x_end - x_start
    height = y_end - y_start
    if width <= 0 or height <= 0:
        raise DegenerateCropError(
            f"region {region} maps to an empty {width}x{height} rectangle "
            f"on a {screen_w}x{screen_h} screen"
        )
    return x_start, y_start, width, height
