"""Invocation plumbing around the pipeline: OCR hand-off, debug artifacts, worker loop.

Tesseract is replaced by a recording stub; no screen or OCR engine is used.
"""
from __future__ import annotations

import os

import numpy as np
import pytest
from PIL import Image

from region_ocr_prep.debug_service import DebugService
from region_ocr_prep.errors import RegionValidationError
from region_ocr_prep import ocr_worker
from region_ocr_prep.ocr_worker import OcrWorker, _upscale, run_invocation, to_ocr_image
from region_ocr_prep.pipeline import PipelineConfig, RawCapture
from region_ocr_prep.pixel_ops import BLACK, WHITE


def text_capture() -> RawCapture:
    img = np.full((60, 120, 4), WHITE, dtype=np.uint8)
    img[20:30, 20:30] = BLACK
    return RawCapture.from_array(img)


class RecordingRecognizer:
    def __init__(self, text: str = "hello") -> None:
        self.text = text
        self.calls: list[tuple[tuple[int, ...], str]] = []

    def __call__(self, image: np.ndarray, language: str) -> str:
        self.calls.append((image.shape, language))
        return self.text


# ---------------------------------------------------------------------------
# run_invocation
# ---------------------------------------------------------------------------

def test_cleaned_image_is_handed_to_recognizer():
    rec = RecordingRecognizer("hello")
    result = run_invocation(
        text_capture(), "(0,0.5,0,1)", PipelineConfig(),
        source="hotkey", language="jpn", recognizer=rec,
    )
    assert result.text == "hello"
    assert result.source == "hotkey"
    assert rec.calls == [((60, 60, 4), "jpn")]
    assert result.image.shape == (60, 60, 4)


def test_each_invocation_gets_its_own_id():
    rec = RecordingRecognizer()
    ids = {
        run_invocation(text_capture(), "(0,1,0,1)", PipelineConfig(), recognizer=rec).invocation_id
        for _ in range(3)
    }
    assert len(ids) == 3


def test_bad_region_never_reaches_recognizer():
    rec = RecordingRecognizer()
    with pytest.raises(RegionValidationError):
        run_invocation(text_capture(), "(0,1,0)", PipelineConfig(), recognizer=rec)
    assert rec.calls == []


def test_debug_artifacts_are_prefixed_with_invocation_id(tmp_path):
    debug = DebugService(root=str(tmp_path))
    result = run_invocation(
        text_capture(), "(0,1,0,1)", PipelineConfig(),
        recognizer=RecordingRecognizer("abc"), debug=debug,
    )
    debug.shutdown()

    files = set(os.listdir(debug.session_dir))
    rid = result.invocation_id
    assert {f"{rid}_raw.png", f"{rid}_processed.png", f"{rid}_text.txt", "pipeline.log"} <= files

    with Image.open(os.path.join(debug.session_dir, f"{rid}_processed.png")) as img:
        assert img.size == (120, 60)
    with open(os.path.join(debug.session_dir, f"{rid}_text.txt"), encoding="utf-8") as f:
        assert f.read() == "abc"


# ---------------------------------------------------------------------------
# OCR image preparation
# ---------------------------------------------------------------------------

def test_small_image_upscaled_at_most_4x():
    assert _upscale(Image.new("RGB", (100, 20))).size == (400, 80)


def test_large_image_upscaled_2x():
    assert _upscale(Image.new("RGB", (1000, 200))).size == (2000, 400)


def test_ocr_image_drops_alpha():
    img = to_ocr_image(np.full((10, 10, 4), (0, 0, 0, 0), dtype=np.uint8))
    assert img.mode == "RGB"
    assert img.getpixel((0, 0)) == (0, 0, 0)



# ---------------------------------------------------------------------------
# Worker loop (run on the test thread; no event loop needed)
# ---------------------------------------------------------------------------

class FakeScreen:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


def serve_queued(worker: OcrWorker, *sources: str) -> tuple[list, list]:
    texts: list[tuple[str, str]] = []
    errors: list[str] = []
    worker.text_recognized.connect(lambda source, text: texts.append((source, text)))
    worker.error_occurred.connect(errors.append)
    for source in sources:
        worker.request_capture(source)
    worker._requests.put(None)
    worker.run()
    return texts, errors


def test_worker_emits_text_per_request(monkeypatch):
    screen = FakeScreen()
    monkeypatch.setattr(ocr_worker, "mss", lambda: screen)
    monkeypatch.setattr(ocr_worker, "grab_screen", lambda sct: text_capture())
    monkeypatch.setattr(ocr_worker.pytesseract, "image_to_string", lambda *a, **k: " hi \n")

    worker = OcrWorker()
    worker.configure("(0,0.5,0,1)", PipelineConfig(), "eng")
    texts, errors = serve_queued(worker, "hotkey", "manual")

    assert texts == [("hotkey", "hi"), ("manual", "hi")]
    assert errors == []
    assert screen.closed
    assert "frame_processed" not in OcrWorker.__dict__


def test_worker_reports_missing_capture_backend(monkeypatch):
    def no_display():
        raise RuntimeError("XGetImage() failed")

    monkeypatch.setattr(ocr_worker, "mss", no_display)

    worker = OcrWorker()
    worker.configure("(0,1,0,1)", PipelineConfig(), "eng")
    texts, errors = serve_queued(worker, "hotkey", "hotkey")

    assert texts == []
    assert errors[0] == "Screen capture unavailable: XGetImage() failed"
    # Each queued request is still answered.
    assert errors[1:] == ["Screen capture unavailable"] * 2


def test_worker_survives_rejected_region(monkeypatch):
    monkeypatch.setattr(ocr_worker, "mss", FakeScreen)
    monkeypatch.setattr(ocr_worker, "grab_screen", lambda sct: text_capture())

    worker = OcrWorker()
    worker.configure("(0.5,0.5,0,1)", PipelineConfig(), "eng")
    texts, errors = serve_queued(worker, "hotkey")

    assert texts == []
    assert len(errors) == 1
