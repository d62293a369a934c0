import logging

from chordshift.events import EventBus


def test_publish_calls_subscribers_in_order():
    bus = EventBus()
    calls = []
    bus.subscribe("x", lambda name, payload: calls.append(("first", payload)))
    bus.subscribe("x", lambda name, payload: calls.append(("second", payload)))
    bus.publish("x", {"n": 1})
    assert calls == [("first", {"n": 1}), ("second", {"n": 1})]


def test_publish_without_payload():
    bus = EventBus()
    calls = []
    bus.subscribe("x", lambda name, payload: calls.append((name, payload)))
    bus.publish("x")
    bus.publish("other")
    assert calls == [("x", {})]


def test_unsubscribe():
    bus = EventBus()
    calls = []

    def handler(name, payload):
        calls.append(name)

    bus.subscribe("x", handler)
    assert bus.unsubscribe("x", handler)
    assert not bus.unsubscribe("x", handler)
    bus.publish("x")
    assert calls == []


def test_failing_handler_is_logged_and_skipped(caplog):
    bus = EventBus()
    calls = []

    def broken(name, payload):
        raise RuntimeError("boom")

    bus.subscribe("x", broken)
    bus.subscribe("x", lambda name, payload: calls.append(name))
    with caplog.at_level(logging.ERROR, logger="chordshift.events"):
        bus.publish("x")
    assert calls == ["x"]
    assert "Event handler for x failed" in caplog.text
