"""Segmented diagnostic transport: single, first, consecutive and flow-control frames."""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from udscal.frames import (
    AID_PHYSICAL,
    FRAME_SIZE,
    MAX_LENGTH,
    MAX_PDU_BUFFER,
    PDU_DATA_SIZE,
    Confirmation,
    FlowStatus,
    Indication,
    PciType,
    Pdu,
    Result,
    encode_pci,
)
from udscal.timers import Clock, Deadline, TimeUnit

TIMEOUT_AR = 70
TIMEOUT_AS = 70
TIMEOUT_BS = 1500
TIMEOUT_CR = 1500

BLOCK_SIZE = 0
"""Block size advertised in the flow-control frames this layer sends."""

ST_MIN = 15
"""Separation time advertised in the flow-control frames this layer sends."""

MAX_WAIT_FRAMES = 0
"""Flow-control WAIT frames tolerated before a transfer is abandoned."""

FIRST_FRAME_PAYLOAD = 6
SEQUENCE_MODULO = 16


class _SendState(enum.Enum):
    IDLE = enum.auto()
    FIRST = enum.auto()
    CONSECUTIVE = enum.auto()
    WAIT_FLOW_CONTROL = enum.auto()


@dataclass
class _Message:
    node_id: int
    data: bytes


def _ignore(*_args: object) -> None:
    return None


class NetworkLayer:
    """Half-duplex transport layer driven by :meth:`receive_frame` and :meth:`poll`.

    Raw frames go out through ``send_frame``; complete messages and failures
    reach the application through ``on_indication``, the outcome of each sent
    message through ``on_confirm``.
    """

    def __init__(
        self,
        clock: Clock,
        send_frame: Callable[[bytes], None],
        on_indication: Optional[Callable[[Indication], None]] = None,
        on_confirm: Optional[Callable[[Confirmation], None]] = None,
        on_first_frame: Optional[Callable[[int, int], None]] = None,
        physical_address: int = AID_PHYSICAL,
    ) -> None:
        self._send_frame = send_frame
        self.on_indication = on_indication or _ignore
        self.on_confirm = on_confirm or _ignore
        self.on_first_frame = on_first_frame or _ignore
        self.physical_address = physical_address

        self._inbox: deque[Pdu] = deque()

        self._receiving = False
        self._rx_node = 0
        self._rx_expected = 0
        self._rx_buffer = bytearray()
        self._rx_sn = 0
        self._rx_block = BLOCK_SIZE

        self._send_state = _SendState.IDLE
        self._current: Optional[_Message] = None
        self._pending: Optional[_Message] = None
        self._tx_offset = 0
        self._tx_sn = 0
        self._tx_block = 0
        self._tx_stmin = 0
        self._wait_count = 0

        ms = TimeUnit.MILLISECOND
        self._timer_ar = Deadline(clock, ms)
        self._timer_bs = Deadline(clock, ms)
        self._timer_cr = Deadline(clock, ms)
        self._timer_send = Deadline(clock, ms)

    @property
    def queued(self) -> int:
        """Number of received frames waiting for :meth:`poll`."""
        return len(self._inbox)

    @property
    def sending(self) -> bool:
        """True while a message is being transmitted."""
        return self._send_state is not _SendState.IDLE

    def receive_frame(self, node_id: int, data: bytes) -> bool:
        """Queue a received frame; return False when the queue is full and it is dropped."""
        pdu = Pdu.from_bytes(node_id, data)
        if len(self._inbox) >= MAX_PDU_BUFFER:
            return False
        self._inbox.append(pdu)
        return True

    def request(self, data: bytes, target: int) -> None:
        """Ask for ``data`` to be sent to ``target``.

        While another message is in flight the request waits in a single
        pending slot, replacing any request already waiting there.
        """
        payload = bytes(data)
        if len(payload) > MAX_LENGTH:
            raise ValueError(f"message of {len(payload)} bytes exceeds {MAX_LENGTH}")
        message = _Message(target, payload)
        if self._send_state is not _SendState.IDLE:
            self._pending = message
        else:
            self._current = message
            self._send_state = _SendState.FIRST

    def poll(self) -> None:
        """Handle one queued frame, then advance transmission and timeouts."""
        if self._inbox:
            pdu = self._inbox.popleft()
            if pdu.pci_type == PciType.FLOW_CONTROL:
                self._receive_flow_control(pdu)
            else:
                self._receive(pdu)
        self._transmit()

    def send_nrc78(self, sid: int) -> None:
        """Send a 'response pending' negative response for service ``sid``."""
        self._emit(bytes([0x03, 0x7F, sid & 0xFF, 0x78]))

    def _emit(self, frame: bytes) -> None:
        self._send_frame(bytes(frame).ljust(FRAME_SIZE, b"\x00"))

    def _indicate(self, node_id: int, result: Result, data: bytes = b"") -> None:
        self.on_indication(Indication(node_id, data, result))

    def _confirm(self, result: Result) -> None:
        node_id = self._current.node_id if self._current else 0
        self.on_confirm(Confirmation(node_id, result))

    def _receive(self, pdu: Pdu) -> None:
        if self._send_state is not _SendState.IDLE:
            return
        if pdu.pci_type in (PciType.SINGLE, PciType.FIRST):
            self._receiving = False
        if not self._receiving:
            if pdu.pci_type == PciType.SINGLE:
                self._receive_single(pdu)
            elif pdu.pci_type == PciType.FIRST:
                self._receive_first(pdu)
        else:
            self._receive_consecutive(pdu)

    def _receive_single(self, pdu: Pdu) -> None:
        if 1 <= pdu.length_sn <= PDU_DATA_SIZE:
            self._indicate(pdu.node_id, Result.SUCCESS, pdu.data[: pdu.length_sn])

    def _receive_first(self, pdu: Pdu) -> None:
        self._rx_node = pdu.node_id
        length = (pdu.length_sn << 8) + pdu.data[0]
        if length < FRAME_SIZE:
            return
        if length < MAX_LENGTH:
            status = FlowStatus.CONTINUE
            self._rx_expected = length
            self._receiving = True
            self._timer_ar.restart()
            self._timer_cr.restart()
            self._rx_buffer = bytearray(pdu.data[1 : 1 + FIRST_FRAME_PAYLOAD])
            self._rx_sn = 1
            self.on_first_frame(pdu.node_id, length)
        else:
            status = FlowStatus.OVERFLOW
        if pdu.node_id == self.physical_address:
            self._rx_block = BLOCK_SIZE
            self._emit(bytes([encode_pci(PciType.FLOW_CONTROL, status), BLOCK_SIZE, ST_MIN]))

    def _receive_consecutive(self, pdu: Pdu) -> None:
        if self._timer_cr.check(TIMEOUT_CR):
            self._receiving = False
            self._indicate(pdu.node_id, Result.TIMEOUT_CR)
            return
        if pdu.node_id != self._rx_node or pdu.pci_type != PciType.CONSECUTIVE:
            return
        self._timer_cr.restart()
        if pdu.length_sn != self._rx_sn:
            self._receiving = False
            self._indicate(pdu.node_id, Result.WRONG_SN)
            return
        self._rx_sn = (self._rx_sn + 1) % SEQUENCE_MODULO
        remaining = self._rx_expected - len(self._rx_buffer)
        if remaining <= PDU_DATA_SIZE:
            self._rx_buffer += pdu.data[:remaining]
            self._receiving = False
            self._indicate(pdu.node_id, Result.SUCCESS, bytes(self._rx_buffer))
            return
        self._rx_buffer += pdu.data
        self._rx_block = (self._rx_block - 1) & 0xFF
        if self._rx_block == 0 and BLOCK_SIZE:
            self._rx_block = BLOCK_SIZE
            self._emit(bytes([encode_pci(PciType.FLOW_CONTROL, FlowStatus.CONTINUE), BLOCK_SIZE, ST_MIN]))

    def _receive_flow_control(self, pdu: Pdu) -> None:
        if self._send_state is not _SendState.WAIT_FLOW_CONTROL:
            return
        status = pdu.length_sn
        if status == FlowStatus.CONTINUE:
            if self._timer_bs.check(TIMEOUT_BS):
                self._send_state = _SendState.IDLE
                self._confirm(Result.TIMEOUT_BS)
            else:
                self._tx_block = pdu.data[0]
                self._tx_stmin = pdu.data[1]
                self._send_state = _SendState.CONSECUTIVE
        elif status == FlowStatus.WAIT:
            self._timer_bs.restart()
            self._wait_count += 1
            if self._wait_count > MAX_WAIT_FRAMES:
                self._send_state = _SendState.IDLE
                self._confirm(Result.WFT_OVERRUN)
        elif status == FlowStatus.OVERFLOW:
            self._send_state = _SendState.IDLE
            self._confirm(Result.BUFFER_OVERFLOW)
        else:
            self._send_state = _SendState.IDLE
            self._confirm(Result.INVALID_FS)

    def _transmit(self) -> None:
        if self._receiving and self._timer_cr.check(TIMEOUT_CR):
            self._receiving = False
            self._indicate(self._rx_node, Result.TIMEOUT_CR)
        if self._receiving:
            return
        state = self._send_state
        if state is _SendState.IDLE:
            if self._pending is not None:
                self._current, self._pending = self._pending, None
                self._send_state = _SendState.FIRST
        elif state is _SendState.FIRST:
            self._send_first()
        elif state is _SendState.WAIT_FLOW_CONTROL:
            if self._timer_bs.check(TIMEOUT_BS):
                self._send_state = _SendState.IDLE
                self._confirm(Result.TIMEOUT_BS)
        elif state is _SendState.CONSECUTIVE:
            if self._timer_send.check(self._tx_stmin):
                self._send_consecutive()

    def _send_first(self) -> None:
        assert self._current is not None
        data = self._current.data
        if len(data) <= PDU_DATA_SIZE:
            self._send_state = _SendState.IDLE
            self._emit(bytes([encode_pci(PciType.SINGLE, len(data))]) + data)
            self._confirm(Result.SUCCESS)
            return
        pci = encode_pci(PciType.FIRST, (len(data) >> 8) & 0xF)
        self._send_state = _SendState.WAIT_FLOW_CONTROL
        self._wait_count = 0
        self._timer_bs.restart()
        self._tx_offset = FIRST_FRAME_PAYLOAD
        self._tx_sn = 1
        self._emit(bytes([pci, len(data) & 0xFF]) + data[:FIRST_FRAME_PAYLOAD])

    def _send_consecutive(self) -> None:
        assert self._current is not None
        data = self._current.data
        pci = encode_pci(PciType.CONSECUTIVE, self._tx_sn & 0xF)
        self._tx_sn = (self._tx_sn + 1) & 0xFF
        chunk = data[self._tx_offset : self._tx_offset + PDU_DATA_SIZE]
        if len(data) - self._tx_offset > PDU_DATA_SIZE:
            self._emit(bytes([pci]) + chunk)
            if self._tx_block > 0:
                self._tx_block -= 1
                if self._tx_block == 0:
                    self._send_state = _SendState.WAIT_FLOW_CONTROL
                    self._wait_count = 0
                    self._timer_bs.restart()
        else:
            self._send_state = _SendState.IDLE
            self._emit(bytes([pci]) + chunk)
            self._confirm(Result.SUCCESS)
        self._tx_offset += PDU_DATA_SIZE