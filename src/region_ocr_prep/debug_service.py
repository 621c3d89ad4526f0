"""Debug service: per-invocation artifact saving and pipeline logging.

When ``ROP_DEBUG=1`` is set, DebugService creates a session directory under
``.tests/debug/`` and records every triggered capture. Each invocation's
files are prefixed with its unique id, so concurrent triggers never
overwrite each other::

    .tests/debug/session_YYYYMMDD_HHMMSS/
        pipeline.log
        3f2a..._raw.png         # cropped region before cleaning
        3f2a..._processed.png   # image handed to OCR
        3f2a..._text.txt        # OCR result
"""

from __future__ import annotations

import os
import threading
from datetime import datetime

import numpy as np
from PIL import Image

_DEBUG_ROOT = os.path.join(os.path.dirname(__file__), "..", "..", ".tests", "debug")


def is_debug_enabled() -> bool:
    return os.environ.get("ROP_DEBUG", "0") == "1"


class DebugService:
    def __init__(self, root: str = _DEBUG_ROOT) -> None:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._session_dir = os.path.join(root, f"session_{ts}")
        os.makedirs(self._session_dir, exist_ok=True)

        log_path = os.path.join(self._session_dir, "pipeline.log")
        self._log_file = open(log_path, "w", encoding="utf-8")  # noqa: SIM115
        self._lock = threading.Lock()

        self.log("SESSION", f"started at {ts}")

    @property
    def session_dir(self) -> str:
        return self._session_dir

    # ------------------------------------------------------------------
    # Pipeline logging
    # ------------------------------------------------------------------

    def log(self, tag: str, text: str) -> None:
        ts = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        with self._lock:
            self._log_file.write(f"{ts}  [{tag}]  {text}\n")
            self._log_file.flush()

    # ------------------------------------------------------------------
    # Artifact saving
    # ------------------------------------------------------------------

    def save_image(self, invocation_id: str, stage: str, rgba: np.ndarray) -> str:
        path = os.path.join(self._session_dir, f"{invocation_id}_{stage}.png")
        Image.fromarray(np.ascontiguousarray(rgba)).save(path)
        return path

    def save_text(self, invocation_id: str, text: str) -> None:
        path = os.path.join(self._session_dir, f"{invocation_id}_text.txt")
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        self.log("SAVED", invocation_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        self.log("SESSION", "ended")
        with self._lock:
            self._log_file.close()
