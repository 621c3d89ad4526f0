"""OCR worker thread: captures the screen on request, cleans the region, runs OCR.

Triggers (hotkeys, manual requests) only enqueue a request; all capture and
pixel work happens on this worker so input listeners are never blocked.
Requests are served one at a time, and every invocation gets its own id
for any artifact it writes.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Callable

import numpy as np
import pytesseract
from mss import mss
from PIL import Image
from PyQt6.QtCore import QThread, pyqtSignal

from region_ocr_prep.capture import grab_screen
from region_ocr_prep.debug_service import DebugService
from region_ocr_prep.errors import PreprocessError
from region_ocr_prep.pipeline import PipelineConfig, RawCapture, preprocess
from region_ocr_prep.region_mapper import ScreenRegionSpec, map_region

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Minimum dimensions for Tesseract OCR accuracy.
MIN_WIDTH = 600
MIN_HEIGHT = 100

# PSM 6: single uniform block of text. OEM 1: LSTM engine.
_TESSERACT_CONFIG = "--psm 6 --oem 1"


# ---------------------------------------------------------------------------
# OCR engine
# ---------------------------------------------------------------------------

def _upscale(img: Image.Image) -> Image.Image:
    """Upscale small images by an integer factor between 2x and 4x.

    Small capture regions produce blurry characters; Tesseract reads
    better once the image is at least MIN_WIDTH x MIN_HEIGHT.
    """
    w, h = img.size
    scale = 1
    if w < MIN_WIDTH:
        scale = max(scale, (MIN_WIDTH + w - 1) // w)
    if h < MIN_HEIGHT:
        scale = max(scale, (MIN_HEIGHT + h - 1) // h)
    scale = max(scale, 2)
    scale = min(scale, 4)
    return img.resize((w * scale, h * scale), Image.Resampling.NEAREST)


def to_ocr_image(rgba: np.ndarray) -> Image.Image:
    """Flatten a cleaned RGBA buffer to an upscaled RGB PIL image."""
    return _upscale(Image.fromarray(np.ascontiguousarray(rgba[..., :3])))


def recognize(rgba: np.ndarray, language: str = "eng") -> str:
    """Run Tesseract on a cleaned RGBA buffer and return stripped text."""
    return pytesseract.image_to_string(
        to_ocr_image(rgba), lang=language, config=_TESSERACT_CONFIG
    ).strip()


# ---------------------------------------------------------------------------
# Single invocation
# ---------------------------------------------------------------------------

@dataclass
class OcrResult:
    invocation_id: str
    source: str
    text: str
    image: np.ndarray
    elapsed_ms: int


def run_invocation(
    capture: RawCapture,
    region: ScreenRegionSpec | str,
    config: PipelineConfig,
    *,
    source: str = "manual",
    language: str = "eng",
    recognizer: Callable[[np.ndarray, str], str] = recognize,
    debug: DebugService | None = None,
) -> OcrResult:
    """Preprocess one capture and hand the result to ``recognizer``.

    PreprocessError propagates to the caller; nothing is retried.
    """
    invocation_id = uuid.uuid4().hex
    t0 = time.monotonic()

    cleaned = preprocess(capture, region, config)

    if debug:
        x, y, w, h = map_region((capture.width, capture.height), region)
        debug.save_image(invocation_id, "raw", capture.to_array()[y : y + h, x : x + w])
        debug.save_image(invocation_id, "processed", cleaned)

    text = recognizer(cleaned, language)
    elapsed_ms = int((time.monotonic() - t0) * 1000)

    logger.debug("OCR %s (%s, %dms): %r", invocation_id[:8], source, elapsed_ms, text[:200])
    if debug:
        debug.log("OCR", f"{invocation_id} source={source} {elapsed_ms}ms {text!r}")
        debug.save_text(invocation_id, text)

    return OcrResult(invocation_id, source, text, cleaned, elapsed_ms)


# ---------------------------------------------------------------------------
# OCR Worker thread
# ---------------------------------------------------------------------------

class OcrWorker(QThread):
    """Background thread that serves capture requests one at a time.

    Signals:
    - text_recognized(str, str): source of the trigger and the OCR text
    - error_occurred(str): failure of a single invocation
    """
    text_recognized = pyqtSignal(str, str)
    error_occurred = pyqtSignal(str)

    def __init__(self, debug: DebugService | None = None) -> None:
        super().__init__()
        self._requests: Queue[str | None] = Queue()
        self._region: ScreenRegionSpec | None = None
        self._config = PipelineConfig()
        self._language: str = "eng"
        self._debug = debug

    def configure(self, region: str, config: PipelineConfig, language: str) -> None:
        """Set region and pipeline parameters for subsequent requests.

        Raises RegionValidationError for a malformed region string.
        """
        self._region = ScreenRegionSpec.parse(region)
        self._config = config
        self._language = language
        logger.info("OCR configured: region=%s, lang=%s", self._region, language)

    def request_capture(self, source: str = "manual") -> None:
        """Queue a capture. Safe to call from any thread."""
        self._requests.put(source)

    def run(self) -> None:
        try:
            sct = mss()
        except Exception as e:
            logger.error("Screen capture unavailable: %s", e, exc_info=True)
            self.error_occurred.emit(f"Screen capture unavailable: {e}")
            sct = None

        try:
            self._serve_requests(sct)
        finally:
            if sct is not None:
                sct.close()

    def _serve_requests(self, sct) -> None:
        # Without a capture backend every request still gets an error, so
        # callers are never left waiting on a silent thread.
        while True:
            try:
                source = self._requests.get(timeout=0.5)
            except Empty:
                continue

            if source is None:
                break

            if sct is None:
                self.error_occurred.emit("Screen capture unavailable")
                continue

            try:
                self._serve(sct, source)
            except PreprocessError as e:
                logger.error("Capture from %s rejected: %s", source, e)
                self.error_occurred.emit(str(e))
            except Exception as e:
                logger.error("Capture from %s failed: %s", source, e, exc_info=True)
                self.error_occurred.emit(str(e))

    def _serve(self, sct, source: str) -> None:
        if self._region is None:
            self.error_occurred.emit("No screen region configured")
            return

        capture = grab_screen(sct)
        result = run_invocation(
            capture,
            self._region,
            self._config,
            source=source,
            language=self._language,
            debug=self._debug,
        )
        self.text_recognized.emit(source, result.text)

    def stop(self) -> None:
        """Drop pending requests, stop the loop and wait for the thread."""
        while not self._requests.empty():
            try:
                self._requests.get_nowait()
            except Empty:
                break
        self._requests.put(None)
        self.wait(5000)
