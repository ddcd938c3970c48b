"""Frame-level definitions for diagnostic transport over CAN."""

from __future__ import annotations

import enum
from dataclasses import dataclass

MAX_LENGTH = 4096
"""Largest message the network layer sends or accepts."""

MAX_PDU_BUFFER = 50
"""Number of received frames queued before further frames are dropped."""

FRAME_SIZE = 8
PDU_DATA_SIZE = FRAME_SIZE - 1

ID_CLM = 0x435
ID_DIAG_FUNCTIONAL = 0x600
ID_DIAG_PHYSICAL = 0x618
ID_DIAG_CLM = 0x619
ID_DEFINE_TARGET = 0x44

AID_PHYSICAL = ID_DIAG_CLM & 0xFF
AID_FUNCTIONAL = ID_DIAG_FUNCTIONAL & 0xFF


class Result(enum.IntEnum):
    """Outcome of a transfer reported to the application."""

    SUCCESS = 0
    TIMEOUT_A = 1
    TIMEOUT_BS = 2
    TIMEOUT_CR = 3
    WRONG_SN = 4
    INVALID_FS = 5
    BUFFER_OVERFLOW = 6
    UNEXPECTED_PDU = 7
    WFT_OVERRUN = 8
    ERROR = 9


class PciType(enum.IntEnum):
    """Protocol control information frame type (high nibble of byte 0)."""

    SINGLE = 0
    FIRST = 1
    CONSECUTIVE = 2
    FLOW_CONTROL = 3


class FlowStatus(enum.IntEnum):
    """Flow status carried in a flow-control frame."""

    CONTINUE = 0
    WAIT = 1
    OVERFLOW = 2


def encode_pci(pci_type: int, length_sn: int) -> int:
    """Pack a frame type and a length or sequence nibble into one byte."""
    if not 0 <= pci_type <= 0xF:
        raise ValueError(f"PCI type must fit in 4 bits, got {pci_type}")
    if not 0 <= length_sn <= 0xF:
        raise ValueError(f"PCI length/SN must fit in 4 bits, got {length_sn}")
    return (int(pci_type) << 4) | length_sn


def decode_pci(byte: int) -> tuple[int, int]:
    """Split a PCI byte into ``(pci_type, length_sn)``."""
    if not 0 <= byte <= 0xFF:
        raise ValueError(f"PCI byte must be within 0..255, got {byte}")
    return byte >> 4, byte & 0xF


@dataclass(frozen=True)
class Pdu:
    """One received CAN frame split into PCI fields and seven data bytes."""

    node_id: int
    pci_type: int
    length_sn: int
    data: bytes

    @classmethod
    def from_bytes(cls, node_id: int, data: bytes) -> "Pdu":
        """Build a PDU from a raw frame, padding the payload with zeros."""
        raw = bytes(data)
        if not raw:
            raise ValueError("a frame needs at least its PCI byte")
        if len(raw) > FRAME_SIZE:
            raise ValueError(f"a frame holds at most {FRAME_SIZE} bytes, got {len(raw)}")
        pci_type, length_sn = decode_pci(raw[0])
        payload = raw[1:].ljust(PDU_DATA_SIZE, b"\x00")
        return cls(node_id, pci_type, length_sn, payload)

    def to_bytes(self) -> bytes:
        """Return the eight-byte frame this PDU was built from."""
        return bytes([encode_pci(self.pci_type, self.length_sn)]) + self.data


@dataclass(frozen=True)
class Indication:
    """A received message, or the failure of one, handed to the application."""

    node_id: int
    data: bytes = b""
    result: Result = Result.SUCCESS

    @property
    def length(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Confirmation:
    """The outcome of a sent message, handed back to the application."""

    node_id: int
    result: Result