"""Diagnostic client application layer: sessions, security access and service dispatch."""

from __future__ import annotations

import enum
from typing import Callable, Optional

from udscal.frames import AID_PHYSICAL, Confirmation, Indication, Result
from udscal.timers import Clock, Deadline, TimeUnit

P2_SERVER = 50
P2_SERVER_EXTENDED = 500
S3_SERVER = 5000
TESTER_PRESENT_INTERVAL = 3000
SECURITY_DELAY_TENTHS = 100

SID_SESSION_CONTROL = 0x10
SID_RESET = 0x11
SID_CLEAR_DIAG_INFO = 0x14
SID_READ_DTC = 0x19
SID_READ_BY_ID = 0x22
SID_READ_BY_ADDRESS = 0x23
SID_SECURITY = 0x27
SID_COMMUNICATION_CONTROL = 0x28
SID_WRITE_BY_ID = 0x2E
SID_IO_CONTROL = 0x2F
SID_ROUTINE_CONTROL = 0x31
SID_REQUEST_DOWNLOAD = 0x34
SID_TRANSFER_DATA = 0x36
SID_EXIT_TRANSFER = 0x37
SID_WRITE_BY_ADDRESS = 0x3D
SID_TESTER_PRESENT = 0x3E
SID_DTC_CONTROL = 0x85

POSITIVE_OFFSET = 0x40
NEGATIVE_RESPONSE = 0x7F

SESSION_TYPE_DEFAULT = 0x01
SESSION_TYPE_PROGRAMMING = 0x02
SESSION_TYPE_EXTENDED = 0x03

SECURITY_REQUEST_SEED_LEVEL1 = 0x01
SECURITY_SEND_KEY_LEVEL1 = 0x02
SECURITY_REQUEST_SEED_LEVEL3 = 0x09
SECURITY_SEND_KEY_LEVEL3 = 0x0A

NRC_SERVICE_NOT_SUPPORTED = 0x11
NRC_SUB_FUNCTION_NOT_SUPPORTED = 0x12
NRC_INCORRECT_LENGTH = 0x13
NRC_CONDITIONS_NOT_CORRECT = 0x22
NRC_REQUEST_SEQUENCE_ERROR = 0x24
NRC_REQUEST_OUT_OF_RANGE = 0x31
NRC_SECURITY_ACCESS_DENIED = 0x33
NRC_INVALID_KEY = 0x35
NRC_EXCEEDED_ATTEMPTS = 0x36
NRC_DELAY_NOT_EXPIRED = 0x37
NRC_PROGRAMMING_FAILURE = 0x72
NRC_WRONG_BLOCK_SEQUENCE = 0x73
NRC_RESPONSE_PENDING = 0x78
NRC_SUB_FUNCTION_NOT_IN_SESSION = 0x7E
NRC_SERVICE_NOT_IN_SESSION = 0x7F

ECU_TARGET = 0x77
QUEUE_TARGET = 0x21
MAX_QUEUED_LENGTH = 50


class SessionMode(enum.IntEnum):
    """Diagnostic session the client asks the ECU to enter."""

    DEFAULT = 0
    PROGRAM = 2
    EXTERN = 3


_SESSION_TYPES = {
    SessionMode.DEFAULT: SESSION_TYPE_DEFAULT,
    SessionMode.PROGRAM: SESSION_TYPE_PROGRAMMING,
    SessionMode.EXTERN: SESSION_TYPE_EXTENDED,
}


class SecurityState(enum.IntEnum):
    """Progress of the security access exchange."""

    LOCK = 0
    SEED1 = 1
    LEVEL1 = 2
    SEED2 = 3
    LEVEL2 = 4
    TIMELOCK = 5


class _AppState(enum.Enum):
    IDLE = enum.auto()
    RESPONSE = enum.auto()
    DEAL_REQUEST = enum.auto()


_RESTART_ON_INDICATION = (Result.TIMEOUT_A, Result.TIMEOUT_CR, Result.WRONG_SN)
_RESTART_ON_CONFIRM = (
    Result.SUCCESS,
    Result.BUFFER_OVERFLOW,
    Result.WFT_OVERRUN,
    Result.INVALID_FS,
    Result.TIMEOUT_BS,
)

KeyFunction = Callable[[int, int], int]
DataHandler = Callable[[bytes], None]


def _ignore(*_args: object) -> None:
    return None


class ApplicationLayer:
    """Tester side of the diagnostic protocol.

    Responses from the ECU arrive through :meth:`on_indication`; :meth:`poll`
    drives session requests, queued messages and timers. Messages go out
    through the network layer given to :meth:`attach`.
    """

    def __init__(
        self,
        clock: Clock,
        key_function: Optional[KeyFunction] = None,
        on_message: Optional[Callable[[Indication], None]] = None,
        on_read_did: Optional[DataHandler] = None,
        on_write_did: Optional[DataHandler] = None,
        on_read_dtc: Optional[DataHandler] = None,
        physical_address: int = AID_PHYSICAL,
    ) -> None:
        self.key_function = key_function
        self.on_message = on_message or _ignore
        self.on_read_did = on_read_did or _ignore
        self.on_write_did = on_write_did or _ignore
        self.on_read_dtc = on_read_dtc or _ignore
        self.physical_address = physical_address

        self.session_mode: Optional[SessionMode] = SessionMode.EXTERN
        self.security_state: Optional[SecurityState] = SecurityState.SEED1
        self.request_seed_level2 = 0x05
        self.send_key_level2 = 0x06
        self.security_error_count = 0
        self.last_seed = 0
        self.last_key = 0
        self.tester_present_count = 0
        self.p3_stopped = False

        self._state = _AppState.IDLE
        self._network = None
        self._queued: Optional[bytes] = None
        self._timer_p3 = Deadline(clock, TimeUnit.MILLISECOND)
        self._timer_security = Deadline(clock, TimeUnit.TENTH_SECOND)

    @property
    def responding(self) -> bool:
        """True after a response was handed to the network and not yet confirmed."""
        return self._state is _AppState.RESPONSE

    def attach(self, network) -> None:
        """Send through ``network`` and receive its indications and confirmations."""
        self._network = network
        network.on_indication = self.on_indication
        network.on_confirm = self.on_confirm
        network.on_first_frame = self.on_first_frame

    def _send(self, data: bytes, target: int) -> None:
        if self._network is None:
            raise RuntimeError("no network layer attached")
        self._network.request(bytes(data), target)

    def respond_nrc(self, sid: int, nrc: int, target: int) -> None:
        """Send a negative response; functional targets get none."""
        if target != self.physical_address:
            return
        self._send(bytes([NEGATIVE_RESPONSE, sid & 0xFF, nrc & 0xFF]), target)
        self._state = _AppState.RESPONSE

    def respond_positive(self, sid: int, sub_function: int, target: int) -> None:
        """Send a two-byte positive response unless the suppress bit is set."""
        if sub_function & 0x80:
            return
        self._send(bytes([(sid + POSITIVE_OFFSET) & 0xFF, sub_function & 0x7F]), target)
        self._state = _AppState.RESPONSE

    def respond_session(self, sid: int, sub_function: int, target: int) -> None:
        """Send a session-control positive response carrying the P2 timings."""
        if sub_function & 0x80:
            return
        payload = bytes(
            [
                (sid + POSITIVE_OFFSET) & 0xFF,
                sub_function & 0x7F,
                P2_SERVER >> 8,
                P2_SERVER & 0xFF,
                P2_SERVER_EXTENDED >> 8,
                P2_SERVER_EXTENDED & 0xFF,
            ]
        )
        self._send(payload, target)
        self._state = _AppState.RESPONSE

    def on_indication(self, indication: Indication) -> None:
        """Handle a message, or a reception failure, from the network layer."""
        if indication.result != Result.SUCCESS:
            if indication.result in _RESTART_ON_INDICATION:
                self._restart_idle()
            return
        self._timer_p3.restart()
        if indication.length < 1:
            return
        self.on_message(indication)
        response_sid = indication.data[0]
        body = indication.data[1:]
        service = response_sid - POSITIVE_OFFSET
        if service == SID_SECURITY:
            self._handle_seed(body)
        elif service == SID_WRITE_BY_ID:
            self.on_write_did(body)
        elif service == SID_WRITE_BY_ADDRESS:
            self.respond_nrc(response_sid, NRC_SERVICE_NOT_SUPPORTED, indication.node_id)
        elif service == SID_READ_DTC:
            self.on_read_dtc(body)
        elif service == SID_READ_BY_ID:
            self.on_read_did(body)

    def _handle_seed(self, body: bytes) -> None:
        padded = body.ljust(5, b"\x00")
        if padded[0] not in (SECURITY_REQUEST_SEED_LEVEL1, self.request_seed_level2):
            return
        seed = int.from_bytes(padded[1:5], "big")
        self.last_seed = seed
        level1 = self.security_state == SecurityState.LEVEL1
        if self.key_function is not None:
            self.last_key = self.key_function(seed, 1 if level1 else 2) & 0xFFFFFFFF
        sub = SECURITY_SEND_KEY_LEVEL1 if level1 else self.send_key_level2
        self._send(bytes([SID_SECURITY, sub]) + self.last_key.to_bytes(4, "big"), ECU_TARGET)
        self.security_state = None

    def on_first_frame(self, node_id: int, length: int) -> None:
        """Hold the S3 timer while a segmented message is arriving."""
        if self._state is _AppState.IDLE:
            self.p3_stopped = True

    def on_confirm(self, confirmation: Confirmation) -> None:
        """Return to idle once a sent message completes or fails."""
        if confirmation.result in _RESTART_ON_CONFIRM:
            self._restart_idle()

    def _restart_idle(self) -> None:
        self._timer_p3.restart()
        self.p3_stopped = False
        self._state = _AppState.IDLE

    def queue(self, data: bytes) -> None:
        """Hold ``data`` to be sent on the next :meth:`poll`."""
        payload = bytes(data)
        if len(payload) > MAX_QUEUED_LENGTH:
            raise ValueError(f"queued message of {len(payload)} bytes exceeds {MAX_QUEUED_LENGTH}")
        self._queued = payload

    def poll(self) -> None:
        """Advance security delay, queued sends, tester-present timing and session requests."""
        if self.security_state == SecurityState.TIMELOCK:
            if self._timer_security.check(SECURITY_DELAY_TENTHS):
                self.security_error_count = (self.security_error_count - 1) & 0xFF
                self.security_state = SecurityState.LOCK
        if self._queued is not None:
            data, self._queued = self._queued, None
            self._send(data, QUEUE_TARGET)
        if self._timer_p3.check(TESTER_PRESENT_INTERVAL):
            self.tester_present_count = (self.tester_present_count + 1) & 0xFFFF
        if self.session_mode is not None:
            session_type = _SESSION_TYPES[self.session_mode]
            self._send(bytes([SID_SESSION_CONTROL, session_type]), ECU_TARGET)
            self.session_mode = None