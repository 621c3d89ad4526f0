"""Full-screen capture via mss."""

from __future__ import annotations

import logging

import cv2
import numpy as np
from mss import mss

from region_ocr_prep.pipeline import RawCapture

logger = logging.getLogger(__name__)


class NoScreenError(RuntimeError):
    """No monitor is available to capture."""


def grab_screen(sct=None) -> RawCapture:
    """Capture the first physical monitor as RGBA.

    Pass an open ``mss`` instance to reuse it across captures; mss handles
    are thread-bound, so each thread needs its own.
    """
    if sct is None:
        with mss() as own:
            return grab_screen(own)

    # monitors[0] is the union of all screens; physical screens start at 1.
    screens = sct.monitors[1:]
    if not screens:
        raise NoScreenError("no screen detected")
    if len(screens) >= 2:
        logger.warning("%d screens detected, only the first is captured", len(screens))

    shot = sct.grab(screens[0])
    bgra = np.array(shot, dtype=np.uint8)
    rgba = cv2.cvtColor(bgra, cv2.COLOR_BGRA2RGBA)
    return RawCapture.from_array(rgba)
