"""
Publish/subscribe primitive used for change notifications.

Usage:
    emitter: EventEmitter[None] = EventEmitter()
    on_did_change = emitter.event

    subscription = on_did_change(lambda _: print("changed"))
    emitter.fire(None)
    subscription.dispose()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], object]


class Subscription:
    """Handle returned by subscribing; disposing it removes the listener."""

    def __init__(self, on_dispose: Callable[[], None] | None = None) -> None:
        self._on_dispose = on_dispose

    @property
    def disposed(self) -> bool:
        return self._on_dispose is None

    def dispose(self) -> None:
        on_dispose, self._on_dispose = self._on_dispose, None
        if on_dispose is not None:
            on_dispose()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    @classmethod
    def combine(cls, *subscriptions: Subscription) -> Subscription:
        """One subscription that disposes all of ``subscriptions``."""

        def dispose_all() -> None:
            for subscription in subscriptions:
                subscription.dispose()

        return cls(dispose_all)


class EventEmitter(Generic[T]):
    """
    Synchronous fan-out of events to registered listeners.

    Listeners run in subscription order on the caller's stack. A listener
    that raises is logged and skipped; the rest still receive the event.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener[T]] = []
        self._disposed = False

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def event(self, listener: Listener[T]) -> Subscription:
        """Subscribe ``listener``. Subscribing to a disposed emitter is a no-op."""
        if self._disposed:
            return Subscription()
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(remove)

    def fire(self, payload: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception:
                logger.exception("Event listener %r failed", listener)

    def dispose(self) -> None:
        self._disposed = True
        self._listeners.clear()
