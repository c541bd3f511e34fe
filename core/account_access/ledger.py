"""
Account Access Ledger.

Persists one scope's allow-list in SecretStorage as a JSON array of account
identifiers. The ledger is parameterized by an ordered list of keys: the
first is the current key, the rest are legacy keys still read as a fallback
and still written so older readers keep seeing the same list.

Storage convention:
    accounts-{cloud_name}                               →  '["id-1","id-2"]'
    accounts-{cloud_name}-{client_id}-{authority}       →  '["id-1","id-2"]'   (legacy)

Usage:
    ledger = AccountAccessLedger(storage, IdentityScope(
        cloud_name="AzureCloud", client_id="client", authority="https://login/common/",
    ))

    ids = await ledger.get()          # None when nothing is stored
    await ledger.store(["id-1"])      # written to every key
    await ledger.delete()             # removed from every key
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterable

from pydantic import StrictStr, TypeAdapter, ValidationError

from .config import AccountAccessConfig, default_config
from .errors import CorruptedStorageError
from .events import EventEmitter, Subscription
from .models import IdentityScope
from .storage import SecretStorage, SecretStorageChangeEvent

logger = logging.getLogger(__name__)

_ALLOW_LIST = TypeAdapter(list[StrictStr])


def encode_allow_list(value: Iterable[str]) -> str:
    """Serialize identifiers as a compact JSON array, dropping repeats."""
    return json.dumps(list(dict.fromkeys(value)), separators=(",", ":"))


def decode_allow_list(key: str, raw: str) -> list[str]:
    """Parse a stored allow-list, raising CorruptedStorageError if malformed."""
    try:
        return _ALLOW_LIST.validate_json(raw)
    except ValidationError as exc:
        raise CorruptedStorageError(key, str(exc)) from exc


class AccountAccessLedger:
    """
    Reads and writes one scope's allow-list across its current and legacy keys.

    ``on_did_change`` fires (without payload) whenever the backend reports a
    change to any of the ledger's keys; call ``get()`` to see the new value.
    """

    def __init__(
        self,
        storage: SecretStorage,
        scope: IdentityScope,
        config: AccountAccessConfig | None = None,
    ) -> None:
        config = config or default_config
        self._storage = storage
        self._scope = scope
        self._keys = scope.storage_keys(include_legacy=config.migrate_legacy_keys)

        self._on_did_change: EventEmitter[None] = EventEmitter()
        self._disposable: Subscription | None = Subscription.combine(
            Subscription(self._on_did_change.dispose),
            storage.on_did_change(self._handle_storage_change),
        )

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @property
    def scope(self) -> IdentityScope:
        return self._scope

    @property
    def key(self) -> str:
        return self._keys[0]

    @property
    def legacy_keys(self) -> list[str]:
        return self._keys[1:]

    @property
    def keys(self) -> list[str]:
        return list(self._keys)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_did_change(self, listener: Callable[[None], object]) -> Subscription:
        return self._on_did_change.event(listener)

    def _handle_storage_change(self, event: SecretStorageChangeEvent) -> None:
        if event.key in self._keys:
            self._on_did_change.fire(None)

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    async def get(self) -> list[str] | None:
        """
        Load the allow-list.

        Reads the current key first. If it is empty, the legacy keys are
        tried in order and the first value found is copied forward into the
        current key before being returned.

        Returns:
            The stored identifiers, or None if no key holds a value.

        Raises:
            CorruptedStorageError: If the value found is not a JSON string array.
        """
        raw = await self._storage.get(self.key)
        if raw:
            return decode_allow_list(self.key, raw)

        for legacy_key in self.legacy_keys:
            legacy_raw = await self._storage.get(legacy_key)
            if not legacy_raw:
                continue
            value = decode_allow_list(legacy_key, legacy_raw)
            await self._migrate_forward(legacy_key, legacy_raw)
            return value

        return None

    async def _migrate_forward(self, legacy_key: str, raw: str) -> None:
        # A failed copy is retried by the next get() that finds the current key empty.
        try:
            await self._storage.store(self.key, raw)
        except Exception as exc:
            logger.warning("Could not migrate %s to %s: %s", legacy_key, self.key, exc)
            return
        logger.info("Migrated account access list from %s to %s", legacy_key, self.key)

    async def store(self, value: Iterable[str]) -> None:
        """Write ``value`` to every key concurrently. Both writes must succeed."""
        serialized = encode_allow_list(value)
        await asyncio.gather(*(self._storage.store(key, serialized) for key in self._keys))
        logger.debug("Stored account access list for %s under %d key(s)", self.key, len(self._keys))

    async def delete(self) -> None:
        """Remove the allow-list from every key concurrently."""
        await asyncio.gather(*(self._storage.delete(key) for key in self._keys))
        logger.debug("Deleted account access list for %s", self.key)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        if self._disposable is None:
            return
        self._disposable.dispose()
        self._disposable = None
