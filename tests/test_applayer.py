import pytest

from udscal.applayer import (
    ECU_TARGET,
    QUEUE_TARGET,
    ApplicationLayer,
    SecurityState,
    SessionMode,
)
from udscal.frames import AID_PHYSICAL, Confirmation, Indication, Result
from udscal.netlayer import NetworkLayer
from udscal.seedkey import MASK_LEVEL2, mask_key
from udscal.timers import Clock


class FakeNetwork:
    def __init__(self):
        self.sent = []
        self.on_indication = None
        self.on_confirm = None
        self.on_first_frame = None

    def request(self, data, target):
        self.sent.append((bytes(data), target))


def make_app(**kwargs):
    clock = kwargs.pop("clock", None) or Clock()
    app = ApplicationLayer(clock, **kwargs)
    net = FakeNetwork()
    app.attach(net)
    return app, net, clock


def test_attach_wires_callbacks():
    app, net, _ = make_app()
    assert net.on_indication == app.on_indication
    assert net.on_confirm == app.on_confirm
    assert net.on_first_frame == app.on_first_frame


def test_respond_nrc_physical_and_functional():
    app, net, _ = make_app()
    app.respond_nrc(0x22, 0x31, AID_PHYSICAL)
    assert net.sent == [(bytes([0x7F, 0x22, 0x31]), AID_PHYSICAL)]
    assert app.responding
    app.respond_nrc(0x22, 0x31, 0x00)
    assert len(net.sent) == 1


def test_respond_positive_and_suppression():
    app, net, _ = make_app()
    app.respond_positive(0x3E, 0x80, AID_PHYSICAL)
    assert net.sent == []
    app.respond_positive(0x11, 0x01, AID_PHYSICAL)
    assert net.sent == [(bytes([0x51, 0x01]), AID_PHYSICAL)]


def test_respond_session_carries_timings():
    app, net, _ = make_app()
    app.respond_session(0x10, 0x03, AID_PHYSICAL)
    assert net.sent == [(bytes([0x50, 0x03, 0x00, 50, 500 >> 8, 500 & 0xFF]), AID_PHYSICAL)]


def test_poll_requests_extended_session_once():
    app, net, _ = make_app()
    app.poll()
    assert net.sent == [(bytes([0x10, 0x03]), ECU_TARGET)]
    app.poll()
    assert len(net.sent) == 1
    assert app.session_mode is None


def test_poll_requests_programming_session():
    app, net, _ = make_app()
    app.session_mode = SessionMode.PROGRAM
    app.poll()
    assert net.sent == [(bytes([0x10, 0x02]), ECU_TARGET)]


def test_seed_response_sends_key():
    calls = []

    def key_function(seed, level):
        calls.append((seed, level))
        return 0xAABBCCDD

    app, net, _ = make_app(key_function=key_function)
    app.on_indication(Indication(AID_PHYSICAL, bytes([0x67, 0x05, 0x12, 0x34, 0x56, 0x78])))
    assert calls == [(0x12345678, 2)]
    assert net.sent == [(bytes([0x27, 0x06, 0xAA, 0xBB, 0xCC, 0xDD]), ECU_TARGET)]
    assert app.security_state is None


def test_seed_level1_uses_level1_key_sub_function():
    calls = []
    app, net, _ = make_app(key_function=lambda s, lv: calls.append(lv) or 0x01020304)
    app.security_state = SecurityState.LEVEL1
    app.on_indication(Indication(AID_PHYSICAL, bytes([0x67, 0x01, 0, 0, 0, 9])))
    assert calls == [1]
    assert net.sent == [(bytes([0x27, 0x02, 1, 2, 3, 4]), ECU_TARGET)]


def test_seed_with_mask_key_function():
    app, net, _ = make_app(key_function=lambda seed, level: mask_key(seed, MASK_LEVEL2))
    app.on_indication(Indication(AID_PHYSICAL, bytes([0x67, 0x01, 0xDE, 0xAD, 0xBE, 0xEF])))
    key = mask_key(0xDEADBEEF, MASK_LEVEL2)
    assert net.sent[0][0][2:] == key.to_bytes(4, "big")
    assert app.last_seed == 0xDEADBEEF


def test_unknown_security_sub_function_ignored():
    app, net, _ = make_app(key_function=lambda s, lv: 1)
    app.on_indication(Indication(AID_PHYSICAL, bytes([0x67, 0x02, 1, 2, 3, 4])))
    assert net.sent == []


def test_without_key_function_previous_key_reused():
    app, net, _ = make_app()
    app.on_indication(Indication(AID_PHYSICAL, bytes([0x67, 0x01, 1, 2, 3, 4])))
    assert net.sent == [(bytes([0x27, 0x06, 0, 0, 0, 0]), ECU_TARGET)]


def test_service_dispatch():
    read_did, write_did, read_dtc, messages = [], [], [], []
    app, net, _ = make_app(
        on_message=messages.append,
        on_read_did=read_did.append,
        on_write_did=write_did.append,
        on_read_dtc=read_dtc.append,
    )
    app.on_indication(Indication(AID_PHYSICAL, bytes([0x62, 0xF1, 0x90, 0x41])))
    app.on_indication(Indication(AID_PHYSICAL, bytes([0x6E, 0xF1, 0x90])))
    app.on_indication(Indication(AID_PHYSICAL, bytes([0x59, 0x02, 0xFF])))
    assert read_did == [bytes([0xF1, 0x90, 0x41])]
    assert write_did == [bytes([0xF1, 0x90])]
    assert read_dtc == [bytes([0x02, 0xFF])]
    assert len(messages) == 3
    assert net.sent == []


def test_write_by_address_response_gets_nrc():
    app, net, _ = make_app()
    app.on_indication(Indication(AID_PHYSICAL, bytes([0x7D, 0x00])))
    assert net.sent == [(bytes([0x7F, 0x7D, 0x11]), AID_PHYSICAL)]


def test_empty_message_ignored():
    messages = []
    app, net, _ = make_app(on_message=messages.append)
    app.on_indication(Indication(AID_PHYSICAL, b""))
    assert messages == []


def test_failed_indication_not_dispatched():
    messages = []
    app, _, _ = make_app(on_message=messages.append)
    app.on_first_frame(AID_PHYSICAL, 20)
    assert app.p3_stopped
    app.on_indication(Indication(AID_PHYSICAL, b"", Result.WRONG_SN))
    assert messages == []
    assert not app.p3_stopped


def test_confirm_returns_to_idle():
    app, _, _ = make_app()
    app.respond_positive(0x10, 0x01, AID_PHYSICAL)
    assert app.responding
    app.on_confirm(Confirmation(AID_PHYSICAL, Result.SUCCESS))
    assert not app.responding
    app.on_first_frame(AID_PHYSICAL, 20)
    assert app.p3_stopped


def test_first_frame_while_responding_keeps_p3():
    app, _, _ = make_app()
    app.respond_positive(0x10, 0x01, AID_PHYSICAL)
    app.on_first_frame(AID_PHYSICAL, 20)
    assert not app.p3_stopped


def test_queue_sent_on_poll():
    app, net, _ = make_app()
    app.session_mode = None
    app.queue(b"\x22\xf1\x90")
    app.poll()
    assert net.sent == [(b"\x22\xf1\x90", QUEUE_TARGET)]
    app.poll()
    assert len(net.sent) == 1


def test_queue_too_long_rejected():
    app, _, _ = make_app()
    with pytest.raises(ValueError):
        app.queue(bytes(51))


def test_poll_without_network_raises():
    app = ApplicationLayer(Clock())
    with pytest.raises(RuntimeError):
        app.poll()


def test_tester_present_counter():
    app, _, clock = make_app()
    app.session_mode = None
    app.poll()
    assert app.tester_present_count == 0
    for _ in range(3000):
        clock.tick_ms()
    app.poll()
    assert app.tester_present_count == 1


def test_security_timelock_expires():
    app, _, _ = make_app(clock=Clock(tenths=100))
    app.session_mode = None
    app.security_state = SecurityState.TIMELOCK
    app.poll()
    assert app.security_state == SecurityState.LOCK
    assert app.security_error_count == 255


def test_with_real_network_layer():
    frames = []
    clock = Clock()
    net = NetworkLayer(clock, frames.append)
    app = ApplicationLayer(clock)
    app.attach(net)
    app.poll()
    net.poll()
    assert frames == [bytes([0x02, 0x10, 0x03, 0, 0, 0, 0, 0])]
    assert not app.responding