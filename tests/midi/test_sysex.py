import pytest
from midi.codec import encode
from midi.errors import (
    ChecksumMismatch, FrameError, InvalidBank, InvalidProgram, LengthMismatch,
    NotSysExFrame, WrongManufacturer, WrongMessageType,
)
from midi.field_map import SDATA_SIZE, NAME_OFFSET
from midi.sysex import (
    build_request_frame, build_patch_frame, parse_response_frame, bank_to_byte,
    program_to_byte, checksum, is_sysex, hex_preview, WALDORF_ID, BLOFELD_ID,
    DUMP_FRAME_SIZE, CHECKSUM_WILDCARD, MSG_SOUND_DUMP,
)
from model.patch import Patch


def _dump_frame(sdata: bytes, device_id: int = 0x00, chk: int | None = None) -> bytes:
    if chk is None:
        chk = checksum(sdata)
    return bytes([0xF0, 0x3E, 0x13, device_id, 0x10, 0x00, 0x00]) + sdata + bytes([chk, 0xF7])


def test_waldorf_ids():
    assert WALDORF_ID == 0x3E
    assert BLOFELD_ID == 0x13

def test_dump_frame_size():
    assert DUMP_FRAME_SIZE == 392

def test_request_frame_structure():
    msg = build_request_frame(device_id=0x00, bank="H", program=128)
    assert msg == bytes([0xF0, 0x3E, 0x13, 0x00, 0x00, 0x07, 0x7F, 0xF7])

def test_request_frame_device_id():
    msg = build_request_frame(device_id=0x7F, bank="a", program=1)
    assert msg[3] == 0x7F
    assert msg[5] == 0
    assert msg[6] == 0

def test_request_frame_invalid_device_id():
    with pytest.raises(ValueError):
        build_request_frame(device_id=128, bank="A", program=1)

@pytest.mark.parametrize("bank,expected", [
    ("A", 0), ("B", 1), ("C", 2), ("D", 3), ("E", 4), ("F", 5), ("G", 6), ("H", 7),
    ("a", 0), ("h", 7),
])
def test_bank_mapping(bank, expected):
    assert bank_to_byte(bank) == expected

@pytest.mark.parametrize("bank", ["I", "", "AB", "1"])
def test_invalid_bank(bank):
    with pytest.raises(InvalidBank):
        bank_to_byte(bank)
    with pytest.raises(InvalidBank):
        build_request_frame(0, bank, 1)

def test_program_mapping():
    assert program_to_byte(1) == 0
    assert program_to_byte(128) == 127

@pytest.mark.parametrize("program", [0, 129, -1])
def test_invalid_program(program):
    with pytest.raises(InvalidProgram):
        program_to_byte(program)
    with pytest.raises(InvalidProgram):
        build_patch_frame(0, "A", program, Patch())

def test_checksum_single_byte():
    sdata = bytearray(SDATA_SIZE)
    sdata[100] = 200
    assert checksum(sdata) == 72

def test_checksum_wraps_at_7_bits():
    assert checksum([0x7F, 0x01]) == 0
    assert checksum(bytes(SDATA_SIZE)) == 0

def test_patch_frame_structure():
    p = Patch(name="Lead")
    msg = build_patch_frame(device_id=0x00, bank="B", program=5, patch=p)
    sdata = encode(p)
    assert len(msg) == DUMP_FRAME_SIZE
    assert msg[:7] == bytes([0xF0, 0x3E, 0x13, 0x00, 0x10, 0x01, 0x04])
    assert msg[7:7 + SDATA_SIZE] == sdata
    assert msg[-2] == checksum(sdata)
    assert msg[-1] == 0xF7

def test_patch_frame_rejects_bytes_above_7_bits():
    p = Patch()
    p.filters[0].cutoff = 0xF7
    with pytest.raises(ValueError, match="0x7F"):
        build_patch_frame(0, "A", 1, p)

def test_patch_frame_rejects_high_bit_name():
    with pytest.raises(ValueError, match="0x7F"):
        build_patch_frame(0, "A", 1, Patch(name="Pad\xe9"))

def test_patch_frame_parses_back():
    p = Patch(name="Round Trip", category=3, subcategory=2)
    p.filters[0].cutoff = 100
    patch, device_id = parse_response_frame(build_patch_frame(0x12, "C", 7, p))
    assert device_id == 0x12
    assert patch.name == "Round Trip"
    assert patch.filters[0].cutoff == 100
    assert patch.category == 3

def test_parse_accepts_list_message():
    msg = list(_dump_frame(bytes(SDATA_SIZE), device_id=0x05))
    _, device_id = parse_response_frame(msg)
    assert device_id == 0x05

def test_parse_returns_response_device_id():
    patch, device_id = parse_response_frame(_dump_frame(bytes(SDATA_SIZE), device_id=0x7F))
    assert device_id == 0x7F
    assert patch.name == ""

def test_parse_keeps_sdata_as_baseline():
    sdata = bytearray(SDATA_SIZE)
    sdata[0] = 0x11
    patch, _ = parse_response_frame(_dump_frame(bytes(sdata)))
    assert patch.baseline == bytes(sdata)

@pytest.mark.parametrize("size", [0, 8, 391, 393])
def test_parse_length_mismatch(size):
    with pytest.raises(LengthMismatch):
        parse_response_frame(bytes(size))

def test_parse_missing_f7():
    msg = bytearray(_dump_frame(bytes(SDATA_SIZE)))
    msg[-1] = 0x00
    with pytest.raises(NotSysExFrame):
        parse_response_frame(msg)

def test_parse_missing_f0():
    msg = bytearray(_dump_frame(bytes(SDATA_SIZE)))
    msg[0] = 0x90
    with pytest.raises(NotSysExFrame):
        parse_response_frame(msg)

def test_parse_rejects_other_manufacturer():
    msg = bytearray(_dump_frame(bytes(SDATA_SIZE)))
    msg[1] = 0x42
    with pytest.raises(WrongManufacturer) as exc_info:
        parse_response_frame(msg)
    assert exc_info.value.manufacturer == 0x42

def test_parse_rejects_other_family():
    msg = bytearray(_dump_frame(bytes(SDATA_SIZE)))
    msg[2] = 0x0E
    with pytest.raises(WrongManufacturer):
        parse_response_frame(msg)

def test_parse_rejects_other_message_type():
    msg = bytearray(_dump_frame(bytes(SDATA_SIZE)))
    msg[4] = 0x11
    with pytest.raises(WrongMessageType) as exc_info:
        parse_response_frame(msg)
    assert exc_info.value.message_type == 0x11
    assert exc_info.value.expected == MSG_SOUND_DUMP

def test_parse_length_checked_before_markers():
    with pytest.raises(LengthMismatch):
        parse_response_frame(bytes([0x90, 0x3C, 0x40]))

def test_parse_checksum_mismatch_reports_both_values():
    sdata = bytearray(SDATA_SIZE)
    sdata[100] = 200
    with pytest.raises(ChecksumMismatch) as exc_info:
        parse_response_frame(_dump_frame(bytes(sdata), chk=0x10))
    assert exc_info.value.expected == 72
    assert exc_info.value.received == 0x10

def test_parse_checksum_wildcard_skips_validation():
    sdata = bytearray(SDATA_SIZE)
    sdata[NAME_OFFSET:NAME_OFFSET + 3] = b"Pad"
    patch, _ = parse_response_frame(_dump_frame(bytes(sdata), chk=CHECKSUM_WILDCARD))
    assert patch.name == "Pad"

def test_frame_errors_are_value_errors():
    for exc_cls in (LengthMismatch, NotSysExFrame, WrongManufacturer,
                    WrongMessageType, ChecksumMismatch):
        assert issubclass(exc_cls, FrameError)
        assert issubclass(exc_cls, ValueError)

def test_is_sysex():
    assert is_sysex([0xF0, 0x3E, 0xF7])
    assert not is_sysex([0x90, 60, 100])
    assert not is_sysex([])

def test_hex_preview_truncates():
    assert hex_preview(bytes([0xF0, 0x3E, 0xF7])) == "F0 3E F7"
    preview = hex_preview(bytes(DUMP_FRAME_SIZE), limit=4)
    assert preview == "00 00 00 00 ... (392 bytes)"
