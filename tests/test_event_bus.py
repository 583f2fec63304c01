import logging
import os
import sys
import threading

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from smartlogger.event_bus import EventBus, EVENT_WRITE_FAILURE


def test_publish_reaches_subscribers():
    bus = EventBus()
    received = []
    bus.subscribe(EVENT_WRITE_FAILURE, lambda message, error: received.append((message, str(error))))
    delivered = bus.publish(EVENT_WRITE_FAILURE, "msg", OSError("disk full"))
    assert delivered == 1
    assert received == [("msg", "disk full")]

def test_publish_without_subscribers():
    bus = EventBus()
    assert bus.publish("nothing_here", 1, 2) == 0

def test_non_callable_rejected(caplog):
    caplog.set_level(logging.ERROR)
    bus = EventBus()
    assert bus.subscribe(EVENT_WRITE_FAILURE, "not callable") is False
    assert "non-callable" in caplog.text
    assert not bus.has_subscribers(EVENT_WRITE_FAILURE)

def test_unsubscribe():
    bus = EventBus()
    received = []

    def handler(message, error):
        received.append(message)

    bus.subscribe(EVENT_WRITE_FAILURE, handler)
    assert bus.unsubscribe(EVENT_WRITE_FAILURE, handler)
    assert not bus.has_subscribers(EVENT_WRITE_FAILURE)
    bus.publish(EVENT_WRITE_FAILURE, "ignored", None)
    assert received == []

def test_unsubscribe_unknown(caplog):
    caplog.set_level(logging.WARNING)
    bus = EventBus()
    assert bus.unsubscribe("fake_event", print) is False
    bus.subscribe("real_event", print)
    assert bus.unsubscribe("real_event", len) is False
    assert "was not found" in caplog.text

def test_failing_callback_does_not_stop_others(caplog):
    caplog.set_level(logging.ERROR)
    bus = EventBus()
    received = []

    def broken(message, error):
        raise ValueError("handler failed!")

    bus.subscribe(EVENT_WRITE_FAILURE, broken)
    bus.subscribe(EVENT_WRITE_FAILURE, lambda message, error: received.append(message))
    assert bus.publish(EVENT_WRITE_FAILURE, "still delivered", None) == 1
    assert received == ["still delivered"]
    assert "error executing callback broken" in caplog.text

def test_callback_may_unsubscribe_itself():
    bus = EventBus()
    calls = []

    def once(message, error):
        calls.append(message)
        bus.unsubscribe(EVENT_WRITE_FAILURE, once)

    bus.subscribe(EVENT_WRITE_FAILURE, once)
    bus.publish(EVENT_WRITE_FAILURE, "first", None)
    bus.publish(EVENT_WRITE_FAILURE, "second", None)
    assert calls == ["first"]

def test_concurrent_publish():
    bus = EventBus()
    counter = {"n": 0}
    lock = threading.Lock()

    def handler(message, error):
        with lock:
            counter["n"] += 1

    bus.subscribe(EVENT_WRITE_FAILURE, handler)
    threads = [threading.Thread(target=lambda: [bus.publish(EVENT_WRITE_FAILURE, "m", None) for _ in range(50)])
               for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert counter["n"] == 400
