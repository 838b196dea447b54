"""Exceptions raised by the Blofeld codec, frame parser and dump session.

None of these are retried internally; each is terminal for the operation
that raised it.
"""

from __future__ import annotations


class SysExError(Exception):
    """Base class for every Blofeld SysEx failure."""


class InvalidLength(SysExError, ValueError):
    def __init__(self, length: int, expected: int) -> None:
        super().__init__(f"SDATA must be {expected} bytes, got {length}")
        self.length = length
        self.expected = expected


class InvalidBank(SysExError, ValueError):
    def __init__(self, bank: str) -> None:
        super().__init__(f"Bank must be a single letter A-H, got {bank!r}")
        self.bank = bank


class InvalidProgram(SysExError, ValueError):
    def __init__(self, program: int) -> None:
        super().__init__(f"Program must be 1-128, got {program}")
        self.program = program


class FrameError(SysExError, ValueError):
    """An inbound dump frame failed validation."""


class LengthMismatch(FrameError):
    def __init__(self, length: int, expected: int) -> None:
        super().__init__(f"Unexpected dump size {length} (want {expected})")
        self.length = length
        self.expected = expected


class NotSysExFrame(FrameError):
    def __init__(self) -> None:
        super().__init__("Message is not a SysEx frame (missing F0/F7)")


class WrongManufacturer(FrameError):
    def __init__(self, manufacturer: int, family: int) -> None:
        super().__init__(
            f"Not a Waldorf Blofeld message "
            f"(manufacturer 0x{manufacturer:02X}, family 0x{family:02X})"
        )
        self.manufacturer = manufacturer
        self.family = family


class WrongMessageType(FrameError):
    def __init__(self, message_type: int, expected: int) -> None:
        super().__init__(
            f"Unexpected message type 0x{message_type:02X} (expected 0x{expected:02X})"
        )
        self.message_type = message_type
        self.expected = expected


class ChecksumMismatch(FrameError):
    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            f"Checksum mismatch: expected 0x{expected:02X} got 0x{received:02X}"
        )
        self.expected = expected
        self.received = received


class RequestSendFailure(SysExError, RuntimeError):
    """The transport refused or failed to transmit an outbound frame."""


class DumpTimeout(SysExError, TimeoutError):
    def __init__(self, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout:g}s waiting for patch dump")
        self.timeout = timeout
