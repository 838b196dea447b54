"""Decode/encode between raw Blofeld SDATA and the structured Patch model.

Every field read or written here comes from ``midi.field_map``; offsets the
map does not address are never read, and on encode they keep whatever the
seed buffer held (the patch's baseline, or zeros).
"""

from __future__ import annotations

from midi.errors import InvalidLength
from midi.field_map import FIELD_MAP, FieldDef, NAME_LENGTH, NAME_OFFSET, SDATA_SIZE
from model.patch import Patch


def decode(raw: bytes | bytearray | list[int], keep_baseline: bool = True) -> Patch:
    """Parse a 383-byte SDATA block into a Patch.

    With ``keep_baseline`` the patch remembers a copy of ``raw`` so a later
    ``encode`` reproduces every unmodeled byte.
    """
    if len(raw) != SDATA_SIZE:
        raise InvalidLength(len(raw), SDATA_SIZE)
    data = bytes(raw)

    p = Patch()
    for fd in FIELD_MAP.codec_fields():
        _set_path(p, fd, data[fd.offset])

    name = data[NAME_OFFSET:NAME_OFFSET + NAME_LENGTH]
    p.name = name.rstrip(b"\x00").decode("latin-1")

    if keep_baseline:
        p.baseline = data
    return p


def encode(patch: Patch) -> bytes:
    """Serialize a Patch to exactly 383 bytes of SDATA.

    Field values are bytes (0-255); only a hand-built baseline of the wrong
    size or a value outside that range can make this fail. Names are Latin-1
    so every byte a device name can hold survives a decode/encode cycle.
    """
    if patch.baseline is None:
        buf = bytearray(SDATA_SIZE)
    else:
        if len(patch.baseline) != SDATA_SIZE:
            raise InvalidLength(len(patch.baseline), SDATA_SIZE)
        buf = bytearray(patch.baseline)

    for fd in FIELD_MAP.codec_fields():
        value = _get_path(patch, fd)
        if fd.sparse and value is None:
            continue
        buf[fd.offset] = int(value)

    name = patch.name.encode("latin-1", errors="replace")[:NAME_LENGTH]
    buf[NAME_OFFSET:NAME_OFFSET + NAME_LENGTH] = name.ljust(NAME_LENGTH, b"\x00")
    return bytes(buf)


def _get_path(patch: Patch, fd: FieldDef):
    obj = patch
    for step in fd.path:
        obj = obj[step] if isinstance(step, int) else getattr(obj, step)
    return obj


def _set_path(patch: Patch, fd: FieldDef, value: int) -> None:
    obj = patch
    for step in fd.path[:-1]:
        obj = obj[step] if isinstance(step, int) else getattr(obj, step)
    last = fd.path[-1]
    if isinstance(last, int):
        obj[last] = value
    else:
        setattr(obj, last, value)
