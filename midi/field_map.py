from __future__ import annotations
from dataclasses import dataclass

SDATA_SIZE = 383

# Marks a per-slot field the device layout gives no address of its own.
ABSENT = None

# ---------------------------------------------------------------------------
# Per-group offset tables (Blofeld SysEx documentation, SDATA table 3.1)
# ---------------------------------------------------------------------------

OSCILLATOR_OFFSETS: tuple[dict[str, int | None], ...] = (
    {"octave": 1, "pitch": 2, "detune": 3, "bend_range": 4, "keytrack": 5,
     "fm_source": 6, "fm": 7, "shape": 8, "pw": 9, "pwm_source": 10, "pwm": 11,
     "limit_wt": 14, "brilliance": 16},
    {"octave": 17, "pitch": 18, "detune": 19, "bend_range": 20, "keytrack": 21,
     "fm_source": 22, "fm": 23, "shape": 24, "pw": 25, "pwm_source": 26, "pwm": 27,
     "limit_wt": 30, "brilliance": 32},
    # Oscillator 3 has no wavetables, so no limit address.
    {"octave": 33, "pitch": 34, "detune": 35, "bend_range": 36, "keytrack": 37,
     "fm_source": 38, "fm": 39, "shape": 40, "pw": 41, "pwm_source": 42, "pwm": 43,
     "limit_wt": ABSENT, "brilliance": 48},
)

FILTER_OFFSETS: tuple[dict[str, int | None], ...] = (
    {"type": 77, "cutoff": 78, "res": 80, "drive": 81, "drive_curve": 82,
     "keytrack": 86, "env_amt": 87, "env_vel": 88, "mod_source": 89, "mod_amount": 90,
     "fm_source": 91, "fm_amount": 92, "pan": 93, "pan_source": 94, "pan_amount": 95},
    {"type": 97, "cutoff": 98, "res": 100, "drive": 101, "drive_curve": 102,
     "keytrack": 106, "env_amt": 107, "env_vel": 108, "mod_source": 109, "mod_amount": 110,
     "fm_source": 111, "fm_amount": 112, "pan": 113, "pan_source": 114, "pan_amount": 115},
)

# Filter env, amp env, env 3
ENVELOPE_OFFSETS: tuple[dict[str, int | None], ...] = tuple(
    {"mode": base, "attack": base + 3, "attack_level": base + 4, "decay": base + 5,
     "sustain": base + 6, "decay2": base + 7, "sustain2": base + 8, "release": base + 9}
    for base in (196, 208, 220)
)

LFO_OFFSETS: tuple[dict[str, int | None], ...] = tuple(
    {"shape": base, "speed": base + 1, "sync": base + 3, "clocked": base + 4,
     "start_phase": base + 5, "delay": base + 6, "fade": base + 7, "keytrack": base + 10}
    for base in (160, 172, 184)
)

EFFECT_OFFSETS: tuple[dict[str, int], ...] = (
    {"type": 128, "mix": 129, "params_start": 130},
    {"type": 144, "mix": 145, "params_start": 146},
)
EFFECT_PARAM_COUNT = 14

MODIFIER_START = 245
MODIFIER_STRIDE = 4
MODIFIER_COUNT = 4
MODIFIER_FIELDS = ("source_a", "source_b", "operator", "constant")

MOD_MATRIX_START = 261
MOD_MATRIX_STRIDE = 3
MOD_MATRIX_COUNT = 16
MOD_MATRIX_FIELDS = ("source", "dest", "amount")

ARP_STEPS_START = 327
ARP_TIMING_START = 343
ARP_STEP_COUNT = 16

SCALAR_OFFSETS: dict[str, int] = {
    "osc2_sync": 49,
    "osc_pitch_source": 50,
    "osc_pitch_amount": 51,
    "master_tune": 52,  # reserved slot on the device
    "glide_mode": 56,
    "glide_rate": 57,
    "unison": 58,
    "unison_detune": 59,
    "mix_osc1": 61,
    "mix_osc1_balance": 62,
    "mix_osc2": 63,
    "mix_osc2_balance": 64,
    "mix_osc3": 65,
    "mix_osc3_balance": 66,
    "mix_noise": 67,
    "mix_noise_balance": 68,
    "mix_noise_color": 69,
    "mix_ring": 71,
    "mix_ring_balance": 72,
    "filter_routing": 117,
    "amp_volume": 121,
    "amp_velocity": 122,
    "amp_mod_source": 123,
    "amp_mod_amount": 124,
    "arp_mode": 311,
    "arp_pattern": 312,
    "arp_clock": 314,
    "arp_length": 315,
    "arp_range": 316,
    "arp_direction": 317,
    "arp_sort": 318,
    "arp_velocity_mode": 319,
    "arp_timing_factor": 320,
    "arp_pattern_reset": 322,
    "arp_pattern_length": 323,
    "arp_tempo": 326,
    "category": 379,
    "subcategory": 380,
}

# Written only when the model holds a value (not None).
SPARSE_FIELDS = frozenset({"category", "subcategory", "master_tune"})

NAME_OFFSET = 363
NAME_LENGTH = 16


@dataclass(frozen=True)
class FieldDef:
    name: str                         # dotted display path, e.g. "filters.1.cutoff"
    path: tuple[str | int, ...]       # attribute/index path into a Patch
    offset: int | None                # None when the slot has no address
    group: str
    sparse: bool = False
    alias_of: str | None = None       # set on intentional duplicates only

    @property
    def absent(self) -> bool:
        return self.offset is None


def _slot_fields(group: str, attr: str, tables) -> list[FieldDef]:
    defs = []
    for slot, table in enumerate(tables):
        for field_name, offset in table.items():
            path = (attr, slot, field_name)
            defs.append(FieldDef(_dotted(path), path, offset, group))
    return defs


def _strided_fields(group: str, attr: str, start: int, stride: int,
                    count: int, names: tuple[str, ...]) -> list[FieldDef]:
    defs = []
    for slot in range(count):
        base = start + slot * stride
        for i, field_name in enumerate(names):
            path = (attr, slot, field_name)
            defs.append(FieldDef(_dotted(path), path, base + i, group))
    return defs


def _dotted(path: tuple[str | int, ...]) -> str:
    return ".".join(str(p) for p in path)


def _build_fields() -> list[FieldDef]:
    defs: list[FieldDef] = []
    defs += _slot_fields("oscillator", "oscillators", OSCILLATOR_OFFSETS)
    defs += _slot_fields("filter", "filters", FILTER_OFFSETS)
    defs += _slot_fields("envelope", "envelopes", ENVELOPE_OFFSETS)
    defs += _slot_fields("lfo", "lfos", LFO_OFFSETS)

    for slot, table in enumerate(EFFECT_OFFSETS):
        for field_name in ("type", "mix"):
            path = ("effects", slot, field_name)
            defs.append(FieldDef(_dotted(path), path, table[field_name], "effect"))
        for i in range(EFFECT_PARAM_COUNT):
            path = ("effects", slot, "params", i)
            defs.append(FieldDef(_dotted(path), path, table["params_start"] + i, "effect"))
        # param1/param2 are the first two bytes of the parameter run
        for i, field_name in enumerate(("param1", "param2")):
            path = ("effects", slot, field_name)
            defs.append(FieldDef(
                _dotted(path), path, table["params_start"] + i, "effect",
                alias_of=_dotted(("effects", slot, "params", i)),
            ))

    defs += _strided_fields("modifier", "modifiers", MODIFIER_START,
                            MODIFIER_STRIDE, MODIFIER_COUNT, MODIFIER_FIELDS)
    defs += _strided_fields("mod_matrix", "mod_matrix", MOD_MATRIX_START,
                            MOD_MATRIX_STRIDE, MOD_MATRIX_COUNT, MOD_MATRIX_FIELDS)

    for i in range(ARP_STEP_COUNT):
        defs.append(FieldDef(f"arp_pattern_steps.{i}", ("arp_pattern_steps", i),
                             ARP_STEPS_START + i, "arpeggiator"))
        defs.append(FieldDef(f"arp_pattern_timing.{i}", ("arp_pattern_timing", i),
                             ARP_TIMING_START + i, "arpeggiator"))

    for field_name, offset in SCALAR_OFFSETS.items():
        defs.append(FieldDef(field_name, (field_name,), offset, _scalar_group(field_name),
                             sparse=field_name in SPARSE_FIELDS))
    return defs


def _scalar_group(field_name: str) -> str:
    for prefix, group in (("mix_", "mixer"), ("glide_", "glide"), ("unison", "unison"),
                          ("amp_", "amp"), ("arp_", "arpeggiator"), ("osc", "oscillator")):
        if field_name.startswith(prefix):
            return group
    return "global"


class FieldMap:
    def __init__(self) -> None:
        self._fields = {f.name: f for f in _build_fields()}

    def get(self, name: str) -> FieldDef | None:
        return self._fields.get(name)

    def list_all(self) -> list[FieldDef]:
        return list(self._fields.values())

    def names(self) -> list[str]:
        return list(self._fields.keys())

    def by_group(self, group: str) -> list[FieldDef]:
        return [f for f in self._fields.values() if f.group == group]

    def codec_fields(self) -> list[FieldDef]:
        """Fields the codec reads and writes: addressed and not an alias."""
        return [f for f in self._fields.values()
                if not f.absent and f.alias_of is None]

    def absent_fields(self) -> list[FieldDef]:
        return [f for f in self._fields.values() if f.absent]

    def aliases(self) -> list[FieldDef]:
        return [f for f in self._fields.values() if f.alias_of is not None]

    def modeled_offsets(self) -> set[int]:
        offsets = {f.offset for f in self.codec_fields()}
        offsets.update(range(NAME_OFFSET, NAME_OFFSET + NAME_LENGTH))
        return offsets


FIELD_MAP = FieldMap()
