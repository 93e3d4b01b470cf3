"""Session sequencing tests against stub transports and a fake simulator."""

from __future__ import annotations

import logging

import pytest

from flightaxis.errors import ReplyTimeoutError, SendError
from flightaxis.protocol import EXCHANGE_ACTION, HANDSHAKE_ACTION, HANDSHAKE_PAYLOAD, ControlInput
from flightaxis.session import SessionController, SessionState
from flightaxis.transport import ConnectionPool

from tests.helpers import StubCodec, StubPool, build_reply

HANDSHAKE = HANDSHAKE_ACTION
EXCHANGE = EXCHANGE_ACTION


def _controller(pool: StubPool, codec: StubCodec) -> SessionController:
    return SessionController(pool, codec=codec)  # type: ignore[arg-type]


def test_handshake_happens_once_before_exchanges() -> None:
    codec = StubCodec(default=build_reply())
    controller = _controller(StubPool(), codec)

    assert controller.session_state is SessionState.NOT_READY
    for _ in range(3):
        assert controller.update(ControlInput()) is True

    assert codec.actions() == [HANDSHAKE, EXCHANGE, EXCHANGE, EXCHANGE]
    assert codec.sent[0][1] == HANDSHAKE_PAYLOAD
    assert controller.ready
    assert controller.statistics == {
        "handshakes": 1,
        "exchanges": 3,
        "refreshes": 3,
        "failures": 0,
    }
    assert controller.state.airspeed_mps == 12.5


def test_failed_handshake_is_retried_on_next_update() -> None:
    codec = StubCodec(default=build_reply())
    codec.script(HANDSHAKE, ReplyTimeoutError("no reply"), ReplyTimeoutError("no reply"))
    controller = _controller(StubPool(), codec)

    assert controller.update(ControlInput()) is False
    assert controller.update(ControlInput()) is False
    assert not controller.ready
    assert codec.actions() == [HANDSHAKE, HANDSHAKE]

    assert controller.update(ControlInput()) is True
    assert controller.update(ControlInput()) is True

    assert codec.actions() == [HANDSHAKE, HANDSHAKE, HANDSHAKE, EXCHANGE, EXCHANGE]
    assert controller.statistics["handshakes"] == 1
    assert controller.statistics["failures"] == 2


def test_unreachable_endpoint_keeps_session_not_ready() -> None:
    pool = StubPool(failures=2)
    codec = StubCodec()
    controller = _controller(pool, codec)

    assert controller.update(ControlInput()) is False
    assert controller.update(ControlInput()) is False

    assert codec.sent == []
    assert controller.session_state is SessionState.NOT_READY
    assert controller.state.revision == 0


def test_failed_exchange_leaves_state_untouched() -> None:
    codec = StubCodec()
    codec.script(
        EXCHANGE,
        build_reply({"m-airspeed_MPS": "20"}),
        ReplyTimeoutError("stalled"),
    )
    controller = _controller(StubPool(), codec)

    assert controller.update(ControlInput()) is True
    assert controller.state.airspeed_mps == 20.0
    revision = controller.state.revision

    assert controller.update(ControlInput()) is False

    assert controller.state.airspeed_mps == 20.0
    assert controller.state.revision == revision
    assert controller.ready


def test_send_failure_counts_as_failed_update() -> None:
    codec = StubCodec(default=build_reply())
    codec.fail_send(EXCHANGE, SendError("broken pipe"))
    controller = _controller(StubPool(), codec)

    assert controller.update(ControlInput()) is False
    assert controller.update(ControlInput()) is True
    assert controller.statistics["failures"] == 1
    assert controller.statistics["exchanges"] == 1


def test_each_transaction_uses_a_fresh_socket_that_is_closed() -> None:
    pool = StubPool()
    codec = StubCodec(default=build_reply())
    controller = _controller(pool, codec)

    for _ in range(4):
        controller.update(ControlInput())

    assert [sock.ident for sock in pool.leased] == [0, 1, 2, 3, 4]
    assert all(sock.closed for sock in pool.leased)


def test_exchange_payload_carries_control_inputs() -> None:
    codec = StubCodec(default=build_reply())
    controller = _controller(StubPool(), codec)

    controller.update(ControlInput(aileron=0.25, throttle=0.09))

    action, payload = codec.sent[-1]
    assert action == EXCHANGE
    assert payload.count("<item>") == 12
    assert payload.startswith(
        "<pControlInputs><m-selectedChannels>4095</m-selectedChannels>"
        "<m-channelValues-0to1><item>0.25</item><item>0.5</item><item>0.09</item>"
    )


def test_only_first_failure_of_a_streak_is_a_warning(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="flightaxis.session")
    codec = StubCodec(default=build_reply())
    codec.script(HANDSHAKE, *(ReplyTimeoutError("no reply") for _ in range(3)))
    controller = _controller(StubPool(), codec)

    for _ in range(3):
        controller.update(ControlInput())

    failures = [
        record
        for record in caplog.records
        if getattr(record, "event", None) == "session.transaction_failed"
    ]
    assert [record.levelno for record in failures] == [logging.WARNING, logging.DEBUG, logging.DEBUG]
    assert [record.consecutive_failures for record in failures] == [1, 2, 3]


def test_close_shuts_down_pool() -> None:
    pool = StubPool()
    controller = _controller(pool, StubCodec())

    controller.close()

    assert pool.shutdown_calls == 1


def test_end_to_end_against_fake_host(fake_host) -> None:
    with ConnectionPool(fake_host.endpoint, 3, connect_timeout=1.0) as pool:
        controller = SessionController(pool, request_timeout=1.0)
        results = [controller.update(ControlInput(throttle=0.5)) for _ in range(3)]

    assert results == [True, True, True]
    assert fake_host.actions() == [HANDSHAKE, EXCHANGE, EXCHANGE, EXCHANGE]
    assert controller.state.airspeed_mps == 12.5
    assert controller.state.altitude_agl_m == 4.25
    assert controller.state.engine_running == 1.0
    exchange_body = fake_host.requests[1].body
    assert b"<item>0.5</item>" in exchange_body
    assert exchange_body.count(b"<item>") == 12


def test_dropped_handshake_is_retried_against_fake_host(fake_host) -> None:
    fake_host.fail_handshakes = 1
    with ConnectionPool(fake_host.endpoint, 2, connect_timeout=1.0) as pool:
        controller = SessionController(pool, request_timeout=0.5)
        first = controller.update(ControlInput())
        second = controller.update(ControlInput())

    assert first is False
    assert second is True
    assert fake_host.actions() == [HANDSHAKE, HANDSHAKE, EXCHANGE]
    assert fake_host.actions(answered_only=True) == [HANDSHAKE, EXCHANGE]
    assert controller.statistics["handshakes"] == 1
