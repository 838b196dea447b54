import pytest
from unittest.mock import patch, MagicMock


class FakeRtMidiError(Exception):
    pass


@pytest.fixture
def mock_rtmidi():
    with patch("midi.device.rtmidi") as mock_mod:
        mock_mod.MidiOut.return_value = MagicMock()
        mock_mod.MidiIn.return_value = MagicMock()
        mock_mod.RtMidiError = FakeRtMidiError
        mock_mod.SystemError = FakeRtMidiError
        yield mock_mod


def _connected_device():
    from midi.device import MidiDevice
    dev = MidiDevice()
    dev._connected = True
    return dev


def test_connect_opens_ports_and_enables_sysex(mock_rtmidi):
    from midi.device import MidiDevice
    dev = MidiDevice()
    dev.connect(out_index=2, in_index=1, port_name="Blofeld")
    mock_rtmidi.MidiOut.return_value.open_port.assert_called_once_with(2)
    midi_in = mock_rtmidi.MidiIn.return_value
    midi_in.open_port.assert_called_once_with(1)
    midi_in.ignore_types.assert_called_once_with(sysex=False)
    midi_in.set_callback.assert_called_once()
    assert dev.connected
    assert dev.port_name == "Blofeld"


def test_connect_failure_raises_runtime_error(mock_rtmidi):
    from midi.device import MidiDevice
    mock_rtmidi.MidiOut.return_value.open_port.side_effect = FakeRtMidiError("busy")
    dev = MidiDevice()
    with pytest.raises(RuntimeError, match="Could not open MIDI output port"):
        dev.connect(out_index=0, in_index=0)
    assert not dev.connected


def test_connect_closes_output_when_input_fails(mock_rtmidi):
    from midi.device import MidiDevice
    mock_rtmidi.MidiIn.return_value.open_port.side_effect = FakeRtMidiError("busy")
    dev = MidiDevice()
    with pytest.raises(RuntimeError, match="Could not open MIDI input port"):
        dev.connect(out_index=0, in_index=3)
    mock_rtmidi.MidiOut.return_value.close_port.assert_called_once()
    assert not dev.connected


def test_send_passes_list(mock_rtmidi):
    dev = _connected_device()
    sent = []
    dev._midi_out = type("FakeOut", (), {"send_message": lambda self, m: sent.append(m)})()
    dev.send(bytes([0xF0, 0x3E, 0x13, 0x00, 0x00, 0x00, 0x00, 0xF7]))
    assert sent == [[0xF0, 0x3E, 0x13, 0x00, 0x00, 0x00, 0x00, 0xF7]]


def test_send_not_connected(mock_rtmidi):
    from midi.device import MidiDevice
    dev = MidiDevice()
    with pytest.raises(RuntimeError, match="Not connected"):
        dev.send([0xF0, 0xF7])


def test_send_wraps_rtmidi_errors(mock_rtmidi):
    dev = _connected_device()
    dev._midi_out.send_message.side_effect = FakeRtMidiError("port gone")
    with pytest.raises(RuntimeError, match="MIDI send failed"):
        dev.send([0xF0, 0xF7])


def test_subscriber_receives_matching_messages(mock_rtmidi):
    dev = _connected_device()
    received = []
    dev.subscribe(lambda m: m[0] == 0xF0, received.append)
    dev._dispatch_midi_input(([0x90, 60, 100], 0.0))
    dev._dispatch_midi_input(([0xF0, 0x3E, 0xF7], 0.0))
    assert received == [[0xF0, 0x3E, 0xF7]]


def test_unsubscribe_stops_delivery(mock_rtmidi):
    dev = _connected_device()
    received = []
    dev.subscribe(lambda m: True, received.append)
    dev.unsubscribe()
    dev._dispatch_midi_input(([0xF0, 0x3E, 0xF7], 0.0))
    assert received == []


def test_dispatch_ignores_empty_message(mock_rtmidi):
    dev = _connected_device()
    received = []
    dev.subscribe(lambda m: True, received.append)
    dev._dispatch_midi_input(([], 0.0))
    assert received == []


def test_disconnect_drops_subscriber(mock_rtmidi):
    dev = _connected_device()
    dev.subscribe(lambda m: True, lambda m: None)
    dev.disconnect()
    assert not dev.connected
    assert dev._subscriber is None
