from __future__ import annotations
from PyQt6.QtCore import QObject, pyqtSignal


class AppLogger(QObject):
    """Category logger for MIDI traffic.

    Every message is emitted on ``message_logged`` for a log panel; with
    ``echo`` it is also printed as ``[CATEGORY] message``.
    """

    message_logged = pyqtSignal(str, str)  # category, message

    MIDI = "MIDI"
    SYSEX = "SYSEX"
    GENERAL = "GENERAL"

    def __init__(self, echo: bool = True, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.echo = echo

    def log(self, category: str, message: str) -> None:
        if self.echo:
            print(f"[{category}] {message}", flush=True)
        self.message_logged.emit(category, message)

    def midi(self, message: str) -> None:
        self.log(self.MIDI, message)

    def sysex(self, message: str) -> None:
        """Frame traffic, usually a ``hex_preview`` prefixed with TX or RX."""
        self.log(self.SYSEX, message)

    def general(self, message: str) -> None:
        self.log(self.GENERAL, message)
