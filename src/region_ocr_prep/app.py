from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import uuid

import numpy as np
from PIL import Image
from PyQt6.QtCore import QCoreApplication, QTimer

from region_ocr_prep.debug_service import DebugService, is_debug_enabled
from region_ocr_prep.errors import PreprocessError
from region_ocr_prep.hotkey_manager import HotkeyManager
from region_ocr_prep.ocr_worker import OcrWorker, recognize
from region_ocr_prep.pipeline import RawCapture, preprocess
from region_ocr_prep.settings import AppSettings

logger = logging.getLogger(__name__)


class App:
    """Headless hotkey loop: each press captures, cleans and OCRs the region.

    Recognised text goes to stdout; translation and display are left to
    whatever consumes that stream.
    """

    def __init__(self, settings: AppSettings, persist: bool = True) -> None:
        self._qt_app = QCoreApplication(sys.argv)
        self._qt_app.setApplicationName("RegionOcrPrep")
        self._qt_app.setOrganizationName("RegionOcrPrep")

        self._settings = settings
        self._persist = persist

        self._debug: DebugService | None = None
        if is_debug_enabled():
            self._debug = DebugService()
            logger.info("Debug session dir: %s", self._debug.session_dir)

        self._ocr_worker = OcrWorker(self._debug)
        self._hotkey_manager = HotkeyManager()

        self._ocr_worker.configure(settings.screen_region, settings.pipeline, settings.language)
        self._connect_signals()

        # Wake the event loop periodically so Ctrl+C reaches Python.
        self._signal_timer = QTimer()
        self._signal_timer.timeout.connect(lambda: None)
        self._signal_timer.start(250)
        signal.signal(signal.SIGINT, lambda *_: self._qt_app.quit())

    def _connect_signals(self) -> None:
        self._hotkey_manager.capture_triggered.connect(self._ocr_worker.request_capture)
        self._ocr_worker.text_recognized.connect(self._on_text_recognized)
        self._ocr_worker.error_occurred.connect(self._on_error)

    def _on_text_recognized(self, source: str, text: str) -> None:
        if self._debug:
            self._debug.log("EMIT", f"{source}: {text!r}")
        if text:
            print(text, flush=True)

    def _on_error(self, message: str) -> None:
        if self._debug:
            self._debug.log("ERROR", message)

    def run(self) -> int:
        self._ocr_worker.start()
        self._hotkey_manager.set_hotkey(self._settings.hotkey)
        logger.info("Press %s to capture %s", self._settings.hotkey, self._settings.screen_region)

        exit_code = self._qt_app.exec()

        # Cleanup
        self._hotkey_manager.stop()
        self._ocr_worker.stop()
        if self._persist:
            self._settings.save()

        if self._debug:
            self._debug.shutdown()

        return exit_code


# ---------------------------------------------------------------------------
# Offline mode
# ---------------------------------------------------------------------------

def process_file(
    image_path: str,
    region: str,
    settings: AppSettings,
    output_path: str | None = None,
    run_ocr: bool = True,
) -> tuple[str, str]:
    """Clean a saved screenshot and write the result next to it.

    Without ``output_path`` every call writes a new file, named after the
    input plus a fresh id. Returns ``(output_path, text)``; text is empty
    when ``run_ocr`` is False.
    """
    with Image.open(image_path) as img:
        rgba = np.array(img.convert("RGBA"), dtype=np.uint8)

    cleaned = preprocess(RawCapture.from_array(rgba), region, settings.pipeline)

    if output_path is None:
        stem, _ = os.path.splitext(image_path)
        output_path = f"{stem}.{uuid.uuid4().hex[:12]}.ocr.png"
    Image.fromarray(cleaned).save(output_path)
    logger.info("Cleaned image written to %s", output_path)

    text = recognize(cleaned, settings.language) if run_ocr else ""
    return output_path, text


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="region-ocr-prep",
        description="Capture a screen region on a hotkey and prepare it for OCR.",
    )
    parser.add_argument("--region", help='screen region "(x0,x1,y0,y1)" as fractions')
    parser.add_argument("--hotkey", help="Qt-style capture hotkey, e.g. Ctrl+Alt+T")
    parser.add_argument("--lang", help="Tesseract language, e.g. eng or jpn")
    parser.add_argument("--image", help="process a saved screenshot instead of the screen")
    parser.add_argument("--output", help="where to write the cleaned image (with --image)")
    parser.add_argument("--no-ocr", action="store_true", help="skip Tesseract (with --image)")
    return parser.parse_args(argv)


def _apply_overrides(settings: AppSettings, args: argparse.Namespace) -> bool:
    """Copy command-line overrides onto ``settings``. True if any was given."""
    overridden = False
    if args.region:
        settings.screen_region = args.region
        overridden = True
    if args.hotkey:
        settings.hotkey = args.hotkey
        overridden = True
    if args.lang:
        settings.language = args.lang
        overridden = True
    return overridden


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(
        level=os.environ.get("ROP_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = _parse_args(argv)

    try:
        settings = AppSettings.load()
        # One-off overrides are not written back to the stored settings.
        overridden = _apply_overrides(settings, args)

        if args.image:
            _, text = process_file(
                args.image, settings.screen_region, settings,
                output_path=args.output, run_ocr=not args.no_ocr,
            )
            if text:
                print(text)
            sys.exit(0)

        app = App(settings, persist=not overridden)
    except (PreprocessError, ValueError) as e:
        logger.error("%s", e)
        sys.exit(2)

    sys.exit(app.run())


if __name__ == "__main__":
    main()
