import pytest
from enum import Enum, auto
from engine.core.events import EventBus, Event, GameEvent, MessageCategory, post_message

class MockEvent(Enum):
    TEST_EVENT = auto()
    OTHER_EVENT = auto()

def test_event_bus_subscribe_publish(event_bus):
    received = []
    def handler(event):
        received.append(event)

    event_bus.subscribe(MockEvent.TEST_EVENT, handler)
    event_bus.publish(MockEvent.TEST_EVENT, data="test")

    assert len(received) == 1
    assert received[0].type == MockEvent.TEST_EVENT
    assert received[0].data["data"] == "test"
    assert received[0]["data"] == "test"
    assert received[0].get("missing", 7) == 7

def test_event_bus_unsubscribe(event_bus):
    received = []
    def handler(event):
        received.append(event)

    event_bus.subscribe(MockEvent.TEST_EVENT, handler)
    event_bus.unsubscribe(MockEvent.TEST_EVENT, handler)
    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 0

def test_unsubscribe_callable(event_bus):
    received = []
    unsubscribe = event_bus.subscribe(MockEvent.TEST_EVENT, received.append, weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)
    unsubscribe()
    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 1
    assert not event_bus.has_subscribers(MockEvent.TEST_EVENT)

def test_event_priority(event_bus):
    order = []

    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("low"), priority=1, weak=False)
    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("high"), priority=10, weak=False)
    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("normal"), priority=5, weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)

    assert order == ["high", "normal", "low"]

def test_equal_priority_keeps_subscription_order(event_bus):
    order = []

    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("first"), weak=False)
    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("second"), weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)

    assert order == ["first", "second"]

def test_event_consumption(event_bus):
    received = []

    def consumer(event):
        received.append("consumer")
        event.consume()

    def later_handler(event):
        received.append("later")

    event_bus.subscribe(MockEvent.TEST_EVENT, consumer, priority=10)
    event_bus.subscribe(MockEvent.TEST_EVENT, later_handler, priority=5)

    event = event_bus.publish(MockEvent.TEST_EVENT)

    assert received == ["consumer"]
    assert event.consumed

def test_one_shot_handler(event_bus):
    received = []
    event_bus.subscribe(MockEvent.TEST_EVENT, received.append, one_shot=True, weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)
    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 1

def test_weak_handler_is_dropped(event_bus):
    received = []

    class Listener:
        def on_event(self, event):
            received.append(event)

    listener = Listener()
    event_bus.subscribe(MockEvent.TEST_EVENT, listener.on_event)
    del listener

    event_bus.publish(MockEvent.TEST_EVENT)

    assert received == []
    assert not event_bus.has_subscribers(MockEvent.TEST_EVENT)

def test_failing_handler_does_not_stop_delivery(event_bus, caplog):
    received = []

    def broken(event):
        raise RuntimeError("boom")

    event_bus.subscribe(MockEvent.TEST_EVENT, broken, priority=10)
    event_bus.subscribe(MockEvent.TEST_EVENT, received.append, weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 1
    assert "Error in event handler" in caplog.text

def test_reentrant_publish_delivers_nested_event_first(event_bus):
    order = []

    def outer(event):
        order.append("outer start")
        assert event_bus.is_publishing
        event_bus.publish(MockEvent.OTHER_EVENT)
        order.append("outer end")

    def inner(event):
        order.append("inner")

    event_bus.subscribe(MockEvent.TEST_EVENT, outer)
    event_bus.subscribe(MockEvent.OTHER_EVENT, inner)

    event_bus.publish(MockEvent.TEST_EVENT)

    assert order == ["outer start", "inner", "outer end"]
    assert not event_bus.is_publishing

def test_handler_added_during_publish_waits_for_next_event(event_bus):
    received = []

    def late(event):
        received.append("late")

    def subscriber(event):
        event_bus.subscribe(MockEvent.TEST_EVENT, late, weak=False)

    event_bus.subscribe(MockEvent.TEST_EVENT, subscriber, one_shot=True, weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)
    assert received == []

    event_bus.publish(MockEvent.TEST_EVENT)
    assert received == ["late"]

def test_publish_event_and_clear(event_bus):
    received = []
    event_bus.subscribe(MockEvent.TEST_EVENT, received.append, weak=False)
    event_bus.subscribe(MockEvent.OTHER_EVENT, received.append, weak=False)

    event_bus.publish_event(Event(type=MockEvent.TEST_EVENT, data={"x": 1}))
    event_bus.clear(MockEvent.TEST_EVENT)
    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 1
    assert event_bus.has_subscribers(MockEvent.OTHER_EVENT)

    event_bus.clear()
    assert not event_bus.has_subscribers(MockEvent.OTHER_EVENT)

def test_post_message(event_bus):
    received = []
    event_bus.subscribe(GameEvent.UI_MESSAGE, received.append, weak=False)

    post_message(event_bus, MessageCategory.LOOT, "Picked up: Stimpak")

    assert received[0]["category"] == MessageCategory.LOOT
    assert received[0]["text"] == "Picked up: Stimpak"
