"""Tests for the change feed and the session event queue."""
from return_reward.errors import StoreUnavailable
from return_reward.realtime.queue import EventQueue


def test_listen_emits_initial_snapshot(bare_feed):
    received = []
    bare_feed.listen("items", lambda: {"a": 1}, received.append)
    assert received == [{"a": 1}]


def test_publish_delivers_fresh_snapshot_per_listener(bare_feed):
    state = {"count": 0}
    first, second = [], []
    bare_feed.listen("items", lambda: state["count"], first.append)
    bare_feed.listen("items", lambda: state["count"], second.append)

    state["count"] = 2
    bare_feed.publish("items")

    assert first == [0, 2]
    assert second == [0, 2]


def test_publish_only_reaches_matching_topic(bare_feed):
    received = []
    bare_feed.listen("chats", lambda: "chats", received.append)
    bare_feed.publish("items")
    assert received == ["chats"]


def test_cancel_is_idempotent_and_stops_delivery(bare_feed):
    received = []
    subscription = bare_feed.listen("items", lambda: "x", received.append)

    assert subscription.cancel() is True
    assert subscription.cancel() is False
    bare_feed.publish("items")

    assert received == ["x"]
    assert bare_feed.listener_count("items") == 0


def test_queued_delivery_dropped_after_cancel(bare_feed):
    queue = EventQueue()
    received = []
    subscription = bare_feed.listen("items", lambda: "snap", received.append, dispatch=queue.post)
    bare_feed.publish("items")
    assert len(queue) == 2

    subscription.cancel()
    queue.drain()

    assert received == []


def test_fetch_failure_goes_to_error_channel(bare_feed):
    errors, received = [], []

    def fetch():
        raise StoreUnavailable("load items")

    bare_feed.listen("items", fetch, received.append, errors.append)

    assert received == []
    assert len(errors) == 1
    assert errors[0].operation == "load items"


def test_queue_runs_events_in_order_including_ones_posted_while_draining():
    queue = EventQueue()
    order = []

    def first():
        order.append("first")
        queue.post(order.append, "third")

    queue.post(first)
    queue.post(order.append, "second")

    assert queue.drain() == 3
    assert order == ["first", "second", "third"]
    assert len(queue) == 0


def test_nested_drain_does_not_reenter():
    queue = EventQueue()
    seen = []

    def nested():
        seen.append(queue.drain())

    queue.post(nested)
    queue.drain()
    assert seen == [0]


def test_on_post_hook_called():
    calls = []
    queue = EventQueue(on_post=lambda: calls.append(1))
    queue.post(lambda: None)
    queue.post(lambda: None)
    assert len(calls) == 2
