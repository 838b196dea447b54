from __future__ import annotations
from typing import Callable, Sequence

import rtmidi
from core.logger import AppLogger

MessagePredicate = Callable[[Sequence[int]], bool]
MessageHandler = Callable[[Sequence[int]], None]


class MidiDevice:
    """python-rtmidi transport for the Blofeld.

    Outbound frames go through ``send``; inbound messages arrive on the
    rtmidi callback thread and are handed to the single subscriber whose
    predicate accepts them.
    """

    def __init__(self, logger: AppLogger | None = None) -> None:
        self._midi_out = rtmidi.MidiOut()
        self._midi_in = rtmidi.MidiIn()
        self._connected = False
        self._port_name: str | None = None
        self._logger = logger or AppLogger()
        self._subscriber: tuple[MessagePredicate, MessageHandler] | None = None

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def port_name(self) -> str | None:
        return self._port_name

    def connect(self, out_index: int, in_index: int, port_name: str = "") -> None:
        if self._connected:
            self.disconnect()
        try:
            self._midi_out.open_port(out_index)
        except rtmidi.SystemError as exc:
            raise RuntimeError(
                f"Could not open MIDI output port {out_index} '{port_name}'. "
                "It may be in use by another application."
            ) from exc
        self._logger.midi(f"OUT: {port_name} (index {out_index})")
        try:
            try:
                self._midi_in.open_port(in_index)
            except rtmidi.SystemError as exc:
                raise RuntimeError(
                    f"Could not open MIDI input port {in_index}. "
                    "It may be in use by another application."
                ) from exc
            self._logger.midi(f"IN:  index {in_index}")
            # SysEx is filtered out by default
            self._midi_in.ignore_types(sysex=False)
            self._midi_in.set_callback(self._dispatch_midi_input)
        except Exception:
            self._midi_out.close_port()
            raise
        self._connected = True
        self._port_name = port_name

    def disconnect(self) -> None:
        if self._connected:
            self._midi_out.close_port()
            self._midi_in.close_port()
        self._connected = False
        self._port_name = None
        self._subscriber = None

    def send(self, message: Sequence[int]) -> None:
        if not self._connected:
            raise RuntimeError("Not connected to a MIDI device")
        try:
            self._midi_out.send_message(list(message))
        except rtmidi.RtMidiError as exc:
            raise RuntimeError(f"MIDI send failed: {exc}") from exc

    def subscribe(self, predicate: MessagePredicate, handler: MessageHandler) -> None:
        """Route inbound messages accepted by ``predicate`` to ``handler``."""
        self._subscriber = (predicate, handler)

    def unsubscribe(self) -> None:
        self._subscriber = None

    def _dispatch_midi_input(self, event, _data=None) -> None:
        msg = event[0]
        if not msg:
            return
        subscriber = self._subscriber
        if subscriber is not None:
            predicate, handler = subscriber
            if predicate(msg):
                handler(msg)
                return
        if msg[0] == 0xF0:
            self._logger.midi(f"RX sysex: {len(msg)} bytes (unclaimed)")
        else:
            self._logger.midi(f"RX raw: {[hex(b) for b in msg]}")
