from __future__ import annotations
import copy
from dataclasses import dataclass, field, fields

import numpy as np

from midi.field_map import SPARSE_FIELDS

NUM_OSCILLATORS = 3
NUM_FILTERS = 2
NUM_ENVELOPES = 3
NUM_LFOS = 3
NUM_EFFECTS = 2
NUM_MODIFIERS = 4
NUM_MOD_ROUTES = 16
NUM_ARP_STEPS = 16
NUM_EFFECT_PARAMS = 14
NUM_OSC_SHAPES = 5  # pulse, saw, triangle, sine, alt1; skips wavetables/samples


@dataclass
class Oscillator:
    octave: int = 0
    pitch: int = 0  # semitone
    bend_range: int = 0
    keytrack: int = 0
    detune: int = 0
    shape: int = 0
    pw: int = 0
    pwm: int = 0
    pwm_source: int = 0
    fm: int = 0
    fm_source: int = 0
    limit_wt: int = 0
    brilliance: int = 0


@dataclass
class Filter:
    type: int = 0
    cutoff: int = 0
    res: int = 0
    drive: int = 0
    drive_curve: int = 0
    env_amt: int = 0
    env_vel: int = 0
    keytrack: int = 0
    mod_source: int = 0
    mod_amount: int = 0
    fm_source: int = 0
    fm_amount: int = 0
    pan: int = 0
    pan_source: int = 0
    pan_amount: int = 0


@dataclass
class Envelope:
    mode: int = 0
    attack: int = 0
    attack_level: int = 0
    decay: int = 0
    sustain: int = 0
    decay2: int = 0
    sustain2: int = 0
    release: int = 0


@dataclass
class LFO:
    shape: int = 0
    speed: int = 0
    sync: int = 0
    clocked: int = 0
    start_phase: int = 0
    delay: int = 0
    fade: int = 0
    keytrack: int = 0


@dataclass
class Effect:
    type: int = 0
    mix: int = 0
    params: list[int] = field(default_factory=lambda: [0] * NUM_EFFECT_PARAMS)

    # The device addresses its first two parameters inside the parameter run.
    @property
    def param1(self) -> int:
        return self.params[0]

    @param1.setter
    def param1(self, value: int) -> None:
        self.params[0] = value

    @property
    def param2(self) -> int:
        return self.params[1]

    @param2.setter
    def param2(self, value: int) -> None:
        self.params[1] = value


@dataclass
class ModRoute:
    source: int = 0
    amount: int = 0
    dest: int = 0


@dataclass
class Modifier:
    source_a: int = 0
    source_b: int = 0
    operator: int = 0
    constant: int = 0


@dataclass
class Patch:
    """Structured view of one Blofeld sound (SDATA).

    ``category``, ``subcategory`` and ``master_tune`` are None when unset;
    encoding leaves their bytes alone in that case.  ``baseline`` holds the
    raw SDATA a patch was decoded from so encoding can keep unmodeled bytes.
    """

    name: str = ""
    oscillators: list[Oscillator] = field(
        default_factory=lambda: [Oscillator() for _ in range(NUM_OSCILLATORS)])
    osc2_sync: int = 0
    osc_pitch_source: int = 0
    osc_pitch_amount: int = 0

    filters: list[Filter] = field(
        default_factory=lambda: [Filter() for _ in range(NUM_FILTERS)])

    mix_osc1: int = 0
    mix_osc1_balance: int = 0
    mix_osc2: int = 0
    mix_osc2_balance: int = 0
    mix_osc3: int = 0
    mix_osc3_balance: int = 0
    mix_noise: int = 0
    mix_noise_balance: int = 0
    mix_noise_color: int = 0
    mix_ring: int = 0
    mix_ring_balance: int = 0

    filter_routing: int = 0
    glide_mode: int = 0
    glide_rate: int = 0
    unison: int = 0
    unison_detune: int = 0

    envelopes: list[Envelope] = field(
        default_factory=lambda: [Envelope() for _ in range(NUM_ENVELOPES)])
    lfos: list[LFO] = field(default_factory=lambda: [LFO() for _ in range(NUM_LFOS)])
    mod_matrix: list[ModRoute] = field(
        default_factory=lambda: [ModRoute() for _ in range(NUM_MOD_ROUTES)])
    modifiers: list[Modifier] = field(
        default_factory=lambda: [Modifier() for _ in range(NUM_MODIFIERS)])

    arp_mode: int = 0
    arp_pattern: int = 0
    arp_clock: int = 0
    arp_length: int = 0
    arp_range: int = 0
    arp_direction: int = 0
    arp_sort: int = 0
    arp_velocity_mode: int = 0
    arp_timing_factor: int = 0
    arp_pattern_reset: int = 0
    arp_pattern_length: int = 0
    arp_tempo: int = 0
    arp_pattern_steps: list[int] = field(default_factory=lambda: [0] * NUM_ARP_STEPS)
    arp_pattern_timing: list[int] = field(default_factory=lambda: [0] * NUM_ARP_STEPS)

    effects: list[Effect] = field(
        default_factory=lambda: [Effect() for _ in range(NUM_EFFECTS)])

    amp_volume: int = 0
    amp_velocity: int = 0
    amp_mod_source: int = 0
    amp_mod_amount: int = 0

    master_tune: int | None = None
    category: int | None = None
    subcategory: int | None = None

    baseline: bytes | None = field(default=None, repr=False, compare=False)

    def without_baseline(self) -> Patch:
        """Copy of this patch that encodes onto zeros instead of its baseline."""
        clone = copy.deepcopy(self)
        clone.baseline = None
        return clone

    def to_dict(self) -> dict:
        """Return a plain dict keyed by model field names; the baseline is not included."""
        return {f.name: _plain(getattr(self, f.name))
                for f in fields(self) if f.name != "baseline"}

    @classmethod
    def from_dict(cls, d: dict) -> Patch:
        """Build a patch from a (possibly partial) dict produced by ``to_dict``."""
        if "name" in d and not isinstance(d["name"], str):
            raise ValueError(f"Patch name must be a string, got {type(d['name']).__name__}")
        p = cls()
        for key, record_cls in _RECORD_LISTS.items():
            for slot, entry in enumerate(d.get(key, [])[:len(getattr(p, key))]):
                getattr(p, key)[slot] = _record_from_dict(record_cls, entry)
        for key in ("arp_pattern_steps", "arp_pattern_timing"):
            for i, value in enumerate(d.get(key, [])[:NUM_ARP_STEPS]):
                getattr(p, key)[i] = _byte_value(key, value)
        for f in fields(p):
            if f.name in _RECORD_LISTS or f.name in ("arp_pattern_steps", "arp_pattern_timing",
                                                       "baseline"):
                continue
            if f.name in d:
                value = d[f.name]
                if f.name == "name":
                    p.name = value
                elif value is None and f.name in SPARSE_FIELDS:
                    setattr(p, f.name, None)
                else:
                    setattr(p, f.name, _byte_value(f.name, value))
        return p


_RECORD_LISTS = {
    "oscillators": Oscillator,
    "filters": Filter,
    "envelopes": Envelope,
    "lfos": LFO,
    "mod_matrix": ModRoute,
    "modifiers": Modifier,
    "effects": Effect,
}


def _plain(value):
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if hasattr(value, "__dataclass_fields__"):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    return value


def _record_from_dict(record_cls, entry: dict):
    record = record_cls()
    for f in fields(record_cls):
        if f.name not in entry:
            continue
        if f.name == "params":
            for i, value in enumerate(entry["params"][:NUM_EFFECT_PARAMS]):
                record.params[i] = _byte_value("params", value)
        else:
            setattr(record, f.name, _byte_value(f.name, entry[f.name]))
    return record


def _byte_value(name: str, value) -> int:
    if value is None or isinstance(value, bool):
        raise ValueError(f"{name} must be an integer 0-255, got {value!r}")
    n = int(value)
    if not (0 <= n <= 0xFF):
        raise ValueError(f"{name} must be an integer 0-255, got {n}")
    return n


def randomize_oscillators(patch: Patch, seed: int | None = None) -> Patch:
    """Randomize every oscillator parameter in place and return the patch.

    The generator lives only for this call, so a given seed always yields
    the same oscillators. Shapes stay within the basic waveforms.
    """
    rng = np.random.default_rng(seed)
    for osc in patch.oscillators:
        for f in fields(osc):
            if f.name == "shape":
                osc.shape = int(rng.integers(0, NUM_OSC_SHAPES))
            else:
                setattr(osc, f.name, int(rng.integers(0, 128)))
    return patch
