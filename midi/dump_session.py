from __future__ import annotations
import queue
from enum import Enum
from typing import Callable, Protocol, Sequence

from core.config import AppConfig
from core.logger import AppLogger
from midi.errors import DumpTimeout, RequestSendFailure
from midi.sysex import (
    build_patch_frame, build_request_frame, hex_preview, is_sysex, parse_response_frame,
)
from model.patch import Patch

DUMP_TIMEOUT_S = 5.0


class Transport(Protocol):
    def send(self, message: Sequence[int]) -> None: ...


class InboundSource(Protocol):
    def subscribe(self, predicate: Callable[[Sequence[int]], bool],
                  handler: Callable[[Sequence[int]], None]) -> None: ...

    def unsubscribe(self) -> None: ...


class SessionState(Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class DumpSession:
    """One request/response exchange with the Blofeld at a time.

    The inbound slot holds a single message: the device answers a sound
    request with exactly one dump, so anything arriving after the slot is
    filled is dropped rather than buffered.  Callers must not overlap
    exchanges on the same transport.
    """

    def __init__(
        self,
        transport: Transport,
        logger: AppLogger | None = None,
        timeout: float = DUMP_TIMEOUT_S,
        device_id: int = 0,
        bank: str = "A",
        program: int = 1,
    ) -> None:
        self._transport = transport
        self._logger = logger or AppLogger()
        self._timeout = timeout
        self._device_id = device_id
        self._bank = bank
        self._program = program
        self._state = SessionState.IDLE

    @classmethod
    def from_config(
        cls, transport: Transport, config: AppConfig, logger: AppLogger | None = None,
    ) -> DumpSession:
        """Session using the configured timeout, device ID and default slot."""
        return cls(
            transport,
            logger=logger,
            timeout=float(config.dump_timeout_s),
            device_id=int(config.device_id),
            bank=str(config.default_bank),
            program=int(config.default_program),
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def device_id(self) -> int:
        return self._device_id

    @property
    def bank(self) -> str:
        return self._bank

    @property
    def program(self) -> int:
        return self._program

    def _target(self, device_id, bank, program) -> tuple[int, str, int]:
        return (
            self._device_id if device_id is None else device_id,
            self._bank if bank is None else bank,
            self._program if program is None else program,
        )

    def request_dump(
        self,
        inbound: InboundSource,
        device_id: int | None = None,
        bank: str | None = None,
        program: int | None = None,
    ) -> tuple[Patch, int]:
        """Request one sound and wait for the dump.

        Arguments left as None fall back to the session's device ID and slot.
        Returns the decoded patch and the device ID the response came from.
        """
        device_id, bank, program = self._target(device_id, bank, program)
        # Validation errors surface before anything is registered.
        request = build_request_frame(device_id, bank, program)

        slot: queue.Queue = queue.Queue(maxsize=1)

        def capture(message: Sequence[int]) -> None:
            try:
                slot.put_nowait(list(message))
            except queue.Full:
                pass  # only the first response counts

        inbound.subscribe(is_sysex, capture)
        try:
            self._state = SessionState.AWAITING_RESPONSE
            self._logger.midi(
                f"Requesting dump of {bank.upper()}{program:03d} from device 0x{device_id:02X}"
            )
            self._logger.sysex(f"TX {hex_preview(request)}")
            try:
                self._transport.send(request)
            except Exception as exc:
                self._state = SessionState.FAILED
                raise RequestSendFailure(f"Failed to request patch dump: {exc}") from exc

            try:
                message = slot.get(timeout=self._timeout)
            except queue.Empty:
                self._state = SessionState.TIMED_OUT
                self._logger.midi("Timed out waiting for patch dump")
                raise DumpTimeout(self._timeout) from None
        finally:
            inbound.unsubscribe()

        self._logger.sysex(f"RX {hex_preview(message)}")
        try:
            patch, response_device_id = parse_response_frame(message)
        except ValueError:
            self._state = SessionState.FAILED
            raise
        self._state = SessionState.COMPLETED
        self._logger.midi(
            f"Received patch '{patch.name}' from device 0x{response_device_id:02X}"
        )
        return patch, response_device_id

    def send_patch(
        self,
        patch: Patch,
        device_id: int | None = None,
        bank: str | None = None,
        program: int | None = None,
    ) -> None:
        """Write ``patch`` into a bank/program slot (the session's by default)."""
        device_id, bank, program = self._target(device_id, bank, program)
        frame = build_patch_frame(device_id, bank, program, patch)
        self._logger.sysex(f"TX {hex_preview(frame)}")
        try:
            self._transport.send(frame)
        except Exception as exc:
            raise RequestSendFailure(
                f"Failed to send patch to bank {bank.upper()} program {program}: {exc}"
            ) from exc
        self._logger.midi(f"Sent patch '{patch.name}' to {bank.upper()}{program:03d}")
