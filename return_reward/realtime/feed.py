"""
Change Feed for live store subscriptions.

Stores publish a topic after every committed write; every listener on that
topic recomputes its snapshot and receives it through its dispatcher.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from return_reward.errors import StoreUnavailable

logger = logging.getLogger(__name__)

Dispatch = Callable[..., None]


def call_now(fn: Callable[..., None], *args: Any) -> None:
    """Default dispatcher: deliver synchronously in the publisher's context."""
    fn(*args)


class Subscription:
    """Handle for one live subscription. `cancel()` tears it down exactly once."""

    def __init__(
        self,
        feed: "ChangeFeed",
        topic: str,
        fetch: Callable[[], Any],
        on_change: Callable[[Any], None],
        on_error: Optional[Callable[[StoreUnavailable], None]],
        dispatch: Dispatch,
    ):
        self.feed = feed
        self.topic = topic
        self.fetch = fetch
        self.on_change = on_change
        self.on_error = on_error
        self.dispatch = dispatch
        self.active = True

    def cancel(self) -> bool:
        """Stop delivery. Returns False if the subscription was already cancelled."""
        if not self.active:
            return False
        self.active = False
        self.feed._remove(self)
        return True

    def _deliver(self, callback: Callable[[Any], None], payload: Any) -> None:
        # Deliveries queued before cancel() must not reach the callback
        if self.active:
            callback(payload)

    def __repr__(self) -> str:
        state = "active" if self.active else "cancelled"
        return f"<Subscription {self.topic} {state}>"


class ChangeFeed:
    """Thread-safe registry of subscriptions keyed by topic."""

    def __init__(self):
        self._lock = threading.RLock()
        self._listeners: Dict[str, List[Subscription]] = {}

    def listen(
        self,
        topic: str,
        fetch: Callable[[], Any],
        on_change: Callable[[Any], None],
        on_error: Optional[Callable[[StoreUnavailable], None]] = None,
        dispatch: Optional[Dispatch] = None,
    ) -> Subscription:
        """Register a listener and emit its initial snapshot."""
        subscription = Subscription(self, topic, fetch, on_change, on_error, dispatch or call_now)
        with self._lock:
            self._listeners.setdefault(topic, []).append(subscription)
        logger.debug(f"Listener added on {topic}. Total on topic: {self.listener_count(topic)}")
        self._emit(subscription)
        return subscription

    def publish(self, *topics: str) -> None:
        """Notify every listener of the given topics that their data changed."""
        for topic in topics:
            with self._lock:
                listeners = list(self._listeners.get(topic, ()))
            for subscription in listeners:
                self._emit(subscription)

    def listener_count(self, topic: Optional[str] = None) -> int:
        with self._lock:
            if topic is not None:
                return len(self._listeners.get(topic, ()))
            return sum(len(subs) for subs in self._listeners.values())

    def _emit(self, subscription: Subscription) -> None:
        if not subscription.active:
            return
        try:
            snapshot = subscription.fetch()
        except StoreUnavailable as exc:
            logger.error(f"Snapshot for {subscription.topic} failed: {exc.message}")
            if subscription.on_error is not None:
                subscription.dispatch(subscription._deliver, subscription.on_error, exc)
            return
        subscription.dispatch(subscription._deliver, subscription.on_change, snapshot)

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            listeners = self._listeners.get(subscription.topic)
            if not listeners:
                return
            if subscription in listeners:
                listeners.remove(subscription)
            if not listeners:
                del self._listeners[subscription.topic]
        logger.debug(f"Listener removed from {subscription.topic}")
