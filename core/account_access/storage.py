"""
Secret storage backend interface.

The allow-list is persisted through an opaque, asynchronous key/value store
that encrypts at rest and reports changes (including changes made by other
processes). Anything implementing SecretStorage can back a ledger;
InMemorySecretStorage is the in-process implementation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .events import EventEmitter, Subscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecretStorageChangeEvent:
    """A stored value changed. ``key`` names the affected entry."""

    key: str


@runtime_checkable
class SecretStorage(Protocol):
    """Async key/value secret store with change notifications."""

    async def get(self, key: str) -> str | None: ...

    async def store(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...

    def on_did_change(
        self, listener: Callable[[SecretStorageChangeEvent], object]
    ) -> Subscription: ...


class InMemorySecretStorage:
    """
    Dict-backed SecretStorage.

    Fires a change event for every store and for every delete of a key that
    existed. Values are held as given; nothing is encrypted.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._on_did_change: EventEmitter[SecretStorageChangeEvent] = EventEmitter()
        self.on_did_change = self._on_did_change.event

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    async def store(self, key: str, value: str) -> None:
        self._values[key] = value
        logger.debug("Stored secret %s", key)
        self._on_did_change.fire(SecretStorageChangeEvent(key))

    async def delete(self, key: str) -> None:
        if self._values.pop(key, None) is None:
            return
        logger.debug("Deleted secret %s", key)
        self._on_did_change.fire(SecretStorageChangeEvent(key))

    def keys(self) -> list[str]:
        return sorted(self._values)

    def peek(self, key: str) -> str | None:
        """Synchronous read of the raw stored value."""
        return self._values.get(key)

    def dispose(self) -> None:
        self._on_did_change.dispose()
