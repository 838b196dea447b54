from __future__ import annotations
from typing import Sequence

from midi.codec import decode, encode
from midi.errors import (
    ChecksumMismatch, InvalidBank, InvalidProgram, LengthMismatch,
    NotSysExFrame, WrongManufacturer, WrongMessageType,
)
from midi.field_map import SDATA_SIZE
from model.patch import Patch

SYSEX_START = 0xF0
SYSEX_END = 0xF7
WALDORF_ID = 0x3E
BLOFELD_ID = 0x13

MSG_SOUND_REQUEST = 0x00  # SNDR
MSG_SOUND_DUMP = 0x10     # SNDD

# A received checksum of 0x7F means "don't check" per the Blofeld docs.
CHECKSUM_WILDCARD = 0x7F

BANKS = "ABCDEFGH"
NUM_PROGRAMS = 128

# F0 3E 13 dev type bank prog [SDATA] chk F7
_HEADER_LEN = 7
DUMP_FRAME_SIZE = _HEADER_LEN + SDATA_SIZE + 2


def bank_to_byte(bank: str) -> int:
    if not isinstance(bank, str) or len(bank) != 1 or bank.upper() not in BANKS:
        raise InvalidBank(bank)
    return BANKS.index(bank.upper())


def program_to_byte(program: int) -> int:
    if not (1 <= program <= NUM_PROGRAMS):
        raise InvalidProgram(program)
    return program - 1


def _device_byte(device_id: int) -> int:
    if not (0 <= device_id <= 0x7F):
        raise ValueError(f"Device ID must be 0-127, got {device_id}")
    return device_id


def checksum(payload: Sequence[int]) -> int:
    """7-bit running sum of the SDATA bytes."""
    chk = 0
    for b in payload:
        chk = (chk + b) & 0x7F
    return chk


def is_sysex(message: Sequence[int]) -> bool:
    return len(message) > 0 and message[0] == SYSEX_START


def build_request_frame(device_id: int, bank: str, program: int) -> bytes:
    """Sound request (SNDR) for one bank/program slot."""
    bank_byte = bank_to_byte(bank)
    prog_byte = program_to_byte(program)
    return bytes([SYSEX_START, WALDORF_ID, BLOFELD_ID, _device_byte(device_id),
                  MSG_SOUND_REQUEST, bank_byte, prog_byte, SYSEX_END])


def build_patch_frame(device_id: int, bank: str, program: int, patch: Patch) -> bytes:
    """Sound dump (SNDD) carrying ``patch`` to one bank/program slot."""
    bank_byte = bank_to_byte(bank)
    prog_byte = program_to_byte(program)
    sdata = encode(patch)
    if any(b > 0x7F for b in sdata):
        raise ValueError("SysEx data bytes must all be <= 0x7F")
    return (bytes([SYSEX_START, WALDORF_ID, BLOFELD_ID, _device_byte(device_id),
                   MSG_SOUND_DUMP, bank_byte, prog_byte])
            + sdata
            + bytes([checksum(sdata), SYSEX_END]))


def parse_response_frame(message: Sequence[int]) -> tuple[Patch, int]:
    """Validate an SNDD frame and decode its SDATA.

    Returns the patch and the device ID the response carries.
    """
    msg = bytes(message)
    if len(msg) != DUMP_FRAME_SIZE:
        raise LengthMismatch(len(msg), DUMP_FRAME_SIZE)
    if msg[0] != SYSEX_START or msg[-1] != SYSEX_END:
        raise NotSysExFrame()
    if msg[1] != WALDORF_ID or msg[2] != BLOFELD_ID:
        raise WrongManufacturer(msg[1], msg[2])
    if msg[4] != MSG_SOUND_DUMP:
        raise WrongMessageType(msg[4], MSG_SOUND_DUMP)

    sdata = msg[_HEADER_LEN:_HEADER_LEN + SDATA_SIZE]
    received = msg[_HEADER_LEN + SDATA_SIZE]
    if received != CHECKSUM_WILDCARD:
        expected = checksum(sdata)
        if expected != received:
            raise ChecksumMismatch(expected, received)

    return decode(sdata), msg[3]


def hex_preview(message: Sequence[int], limit: int = 16) -> str:
    """Short hex rendering of a frame for the log panel."""
    head = bytes(message[:limit]).hex(" ").upper()
    if len(message) > limit:
        return f"{head} ... ({len(message)} bytes)"
    return head
