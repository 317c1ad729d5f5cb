"""Serialized event queue processed by one session controller."""
from collections import deque
from typing import Any, Callable, Deque, Optional, Tuple


class EventQueue:
    """
    FIFO of pending callbacks for a single session.

    Events are only ever run from `drain()`, one at a time, so controller
    logic never executes concurrently with itself.
    """

    def __init__(self, on_post: Optional[Callable[[], None]] = None):
        self._pending: Deque[Tuple[Callable[..., None], Tuple[Any, ...]]] = deque()
        self._draining = False
        self.on_post = on_post

    def post(self, fn: Callable[..., None], *args: Any) -> None:
        self._pending.append((fn, args))
        if self.on_post is not None:
            self.on_post()

    def drain(self) -> int:
        """Run pending events until the queue is empty. Returns how many ran."""
        if self._draining:
            # Events posted while draining are picked up by the outer loop
            return 0
        self._draining = True
        processed = 0
        try:
            while self._pending:
                fn, args = self._pending.popleft()
                fn(*args)
                processed += 1
        finally:
            self._draining = False
        return processed

    def __len__(self) -> int:
        return len(self._pending)
