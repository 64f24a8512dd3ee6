"""Tests for event framing and broadcast fan-out."""

import json
from unittest.mock import MagicMock, patch

from sse_relay.services.fanout import BroadcastEvent, FanoutEngine, serialize_payload
from sse_relay.services.registry import (
    CLIENT_QUEUE_MAXSIZE,
    ConnectionRegistry,
    Subscriber,
    SubscriberWriteError,
)


def _registered(registry: ConnectionRegistry, count: int) -> list[Subscriber]:
    subscribers = [Subscriber(f"10.0.0.{i}") for i in range(count)]
    for subscriber in subscribers:
        registry.add(subscriber)
    return subscribers


def test_encode_two_line_record():
    frame = BroadcastEvent(data="fire", event="alert").encode()
    assert frame == b"event: alert\ndata: fire\n\n"


def test_encode_defaults_event_type_to_message():
    assert BroadcastEvent(data="ok").encode() == b"event: message\ndata: ok\n\n"
    assert BroadcastEvent(data="ok", event="").encode() == b"event: message\ndata: ok\n\n"


def test_encode_ping_has_empty_data():
    assert BroadcastEvent(data="", event="ping").encode() == b"event: ping\ndata: \n\n"


def test_encode_multiline_payload_as_data_lines():
    frame = BroadcastEvent(data="line1\nline2").encode()
    assert frame == b"event: message\ndata: line1\ndata: line2\n\n"


def test_serialize_payload():
    assert serialize_payload("plain") == "plain"
    assert serialize_payload({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'
    assert serialize_payload(5) == "5"
    assert serialize_payload(True) == "true"
    assert serialize_payload(None) == "null"
    assert serialize_payload({"title": "テスト"}) == '{"title":"テスト"}'


def test_structured_payload_round_trips():
    payload = {"id": 7, "tags": ["a", "b"], "nested": {"ok": True, "v": None}}
    frame = BroadcastEvent(data=payload, event="update").encode().decode()

    event_line, data_line, terminator, _ = frame.split("\n", 3)
    assert event_line == "event: update"
    assert terminator == ""
    assert json.loads(data_line.removeprefix("data: ")) == payload


async def test_broadcast_reaches_every_subscriber_once():
    registry = ConnectionRegistry()
    subscribers = _registered(registry, 3)
    engine = FanoutEngine(registry)

    await engine.broadcast(BroadcastEvent(data="fire", event="alert"))

    for subscriber in subscribers:
        assert await subscriber.receive(timeout=0.1) == b"event: alert\ndata: fire\n\n"
        assert await subscriber.receive(timeout=0.01) is None


async def test_broadcast_serializes_once_per_pass():
    registry = ConnectionRegistry()
    _registered(registry, 4)
    engine = FanoutEngine(registry)

    with patch(
        "sse_relay.services.fanout.serialize_payload", return_value="{}"
    ) as mock_serialize:
        await engine.broadcast(BroadcastEvent(data={"k": "v"}))

    mock_serialize.assert_called_once_with({"k": "v"})


async def test_broadcast_with_no_subscribers_is_noop():
    engine = FanoutEngine(ConnectionRegistry())
    await engine.broadcast(BroadcastEvent(data="nobody"))


async def test_failed_write_drops_subscriber_and_continues():
    registry = ConnectionRegistry()
    first, broken, last = _registered(registry, 3)
    broken.send = MagicMock(side_effect=SubscriberWriteError("broken pipe"))
    engine = FanoutEngine(registry)

    await engine.broadcast(BroadcastEvent(data="x"))

    assert broken.closed
    assert broken not in registry
    assert registry.count() == 2
    assert await first.receive(timeout=0.1) == b"event: message\ndata: x\n\n"
    assert await last.receive(timeout=0.1) == b"event: message\ndata: x\n\n"


async def test_full_queue_subscriber_is_dropped():
    registry = ConnectionRegistry()
    stalled, healthy = _registered(registry, 2)
    for _ in range(CLIENT_QUEUE_MAXSIZE):
        stalled.send(b"backlog")
    engine = FanoutEngine(registry)

    await engine.broadcast(BroadcastEvent(data="fresh"))

    assert stalled not in registry
    assert await healthy.receive(timeout=0.1) == b"event: message\ndata: fresh\n\n"


async def test_disconnect_during_pass_does_not_stop_delivery():
    """A subscriber removed mid-pass must not break delivery to the others."""
    registry = ConnectionRegistry()
    first, second, third = _registered(registry, 3)
    original_send = first.send

    def send_and_disconnect_second(frame: bytes) -> None:
        original_send(frame)
        registry.remove(second.handle)
        second.close()

    first.send = send_and_disconnect_second
    engine = FanoutEngine(registry)

    await engine.broadcast(BroadcastEvent(data="x"))

    assert registry.snapshot() == [first, third]
    assert await first.receive(timeout=0.1) == b"event: message\ndata: x\n\n"
    assert await third.receive(timeout=0.1) == b"event: message\ndata: x\n\n"


def test_encode_bare_carriage_return_is_a_line_break():
    frame = BroadcastEvent(data="a\rb").encode()
    assert frame == b"event: message\ndata: a\ndata: b\n\n"
