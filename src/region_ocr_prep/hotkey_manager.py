from __future__ import annotations

import logging

from pynput import keyboard
from PyQt6.QtCore import QObject, pyqtSignal

logger = logging.getLogger(__name__)


def qt_hotkey_to_pynput(hotkey_str: str) -> str:
    """Convert Qt-style hotkey string to pynput format.

    Example: 'Ctrl+Alt+Shift+F1' -> '<ctrl>+<alt>+<shift>+<f1>'
    Example: 'Ctrl+T' -> '<ctrl>+t'
    """
    mapping = {
        "Ctrl": "<ctrl>",
        "Alt": "<alt>",
        "Shift": "<shift>",
        "Meta": "<cmd>",
        "Super": "<cmd>",
    }

    parts = [p.strip() for p in hotkey_str.split("+") if p.strip()]
    converted = []
    for part in parts:
        if part in mapping:
            converted.append(mapping[part])
        elif len(part) == 1:
            converted.append(part.lower())
        else:
            # Function keys and special keys
            converted.append(f"<{part.lower()}>")
    return "+".join(converted)


class HotkeyManager(QObject):
    """Global capture hotkey.

    pynput calls back on its own listener thread; the callback only emits
    a signal so the Qt receiver does the work on its own thread.
    """
    capture_triggered = pyqtSignal(str)

    def __init__(self) -> None:
        super().__init__()
        self._listener: keyboard.GlobalHotKeys | None = None
        self._capture_hotkey: str = ""

    def set_hotkey(self, hotkey_str: str) -> None:
        self._capture_hotkey = hotkey_str
        self.stop()
        self.start()

    def start(self) -> None:
        if not self._capture_hotkey:
            return

        pynput_str = qt_hotkey_to_pynput(self._capture_hotkey)
        try:
            keyboard.HotKey.parse(pynput_str)
        except ValueError as e:
            logger.warning("Ignoring invalid hotkey %r: %s", self._capture_hotkey, e)
            return

        self._listener = keyboard.GlobalHotKeys({pynput_str: self._on_capture})
        self._listener.daemon = True
        self._listener.start()
        logger.info("Capture hotkey registered: %s", self._capture_hotkey)

    def stop(self) -> None:
        if self._listener:
            self._listener.stop()
            self._listener = None

    def _on_capture(self) -> None:
        self.capture_triggered.emit("hotkey")
