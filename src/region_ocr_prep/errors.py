"""Errors raised by the preprocessing pipeline.

Every error is local to one pipeline invocation: the caller reports it and
moves on to the next trigger.
"""

from __future__ import annotations


class PreprocessError(Exception):
    """Base class for all pipeline failures."""


class RegionValidationError(PreprocessError):
    """Screen region string or fractions are malformed or out of range."""


class DegenerateCropError(PreprocessError):
    """Crop rectangle has zero width or height after rounding."""


class DimensionMismatch(PreprocessError):
    """Mask and source image sizes differ."""

    def __init__(self, source_shape: tuple[int, int], mask_shape: tuple[int, int]) -> None:
        super().__init__(
            f"mask {mask_shape[1]}x{mask_shape[0]} does not match "
            f"source {source_shape[1]}x{source_shape[0]}"
        )
        self.source_shape = source_shape
        self.mask_shape = mask_shape


class InvalidToleranceError(PreprocessError):
    """Colour bucket tolerance must be a positive integer."""
