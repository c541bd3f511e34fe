"""
Account Access Registry.

Answers "may the application use this account?" synchronously from an
in-memory copy of the scope's allow-list, and keeps that copy current by
re-reading the ledger whenever storage reports a change.

Usage:
    registry = AccountAccessRegistry.for_scope(
        storage, "AzureCloud", client_id, "https://login.microsoftonline.com/common/"
    )
    await registry.initialize()

    registry.on_did_account_access_change(lambda _: print("access changed"))

    await registry.set_allowed_access(account, True)
    assert registry.is_allowed_access(account)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from .config import AccountAccessConfig, default_config
from .events import EventEmitter, Subscription
from .ledger import AccountAccessLedger
from .models import AccountInfo, IdentityScope, RegistryState, account_identifier
from .storage import SecretStorage

logger = logging.getLogger(__name__)


class AccountAccess(Protocol):
    """What account pickers and token providers need from an allow-list."""

    def on_did_account_access_change(self, listener: Callable[[None], object]) -> Subscription: ...

    def is_allowed_access(self, account: AccountInfo | str) -> bool: ...

    async def set_allowed_access(self, account: AccountInfo | str, allowed: bool) -> None: ...


class AccountAccessRegistry:
    """
    Cached allow-list for one identity scope.

    The cache has a single writer: ``_apply``. It is filled by ``initialize``
    and refreshed after each mutation and after every ledger change.
    ``on_did_account_access_change`` fires only when the set of allowed
    identifiers actually differs from the cached one, so migration copies
    and dual-write echoes stay silent.

    Mutations are serialized with background refreshes and return only after
    the cache reflects them.
    """

    def __init__(self, ledger: AccountAccessLedger) -> None:
        self._ledger = ledger
        self._value: list[str] = []
        self._state = RegistryState.UNINITIALIZED

        self._on_did_account_access_change: EventEmitter[None] = EventEmitter()
        # Held by mutations and by background refreshes so no ledger read
        # overlaps a dual write or delete.
        self._lock = asyncio.Lock()
        self._pending_refreshes: set[asyncio.Task[None]] = set()
        # Refreshes are numbered so an older read never overwrites a newer one.
        self._started_generation = 0
        self._applied_generation = 0
        self._disposed = False
        self._writing = False

        self.last_error: Exception | None = None
        self._subscription = ledger.on_did_change(self._handle_ledger_change)

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def for_scope(
        cls,
        storage: SecretStorage,
        cloud_name: str,
        client_id: str,
        authority: str,
        config: AccountAccessConfig | None = None,
    ) -> AccountAccessRegistry:
        """Create a registry (and its ledger) for one (cloud, client, authority) scope."""
        config = config or default_config
        scope = IdentityScope(
            cloud_name=cloud_name,
            client_id=client_id,
            authority=authority,
            key_prefix=config.key_prefix,
        )
        return cls(AccountAccessLedger(storage, scope, config))

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def ledger(self) -> AccountAccessLedger:
        return self._ledger

    @property
    def allowed_accounts(self) -> frozenset[str]:
        """Snapshot of the cached allowed identifiers."""
        return frozenset(self._value)

    def on_did_account_access_change(self, listener: Callable[[None], object]) -> Subscription:
        return self._on_did_account_access_change.event(listener)

    # ------------------------------------------------------------------
    # Queries / mutations
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Load the allow-list for the first time.

        Raises:
            CorruptedStorageError: If the stored allow-list cannot be parsed.
                The registry stays uninitialized and may be initialized again.
        """
        self._state = RegistryState.INITIALIZING
        try:
            await self._refresh()
        except Exception:
            self._state = RegistryState.UNINITIALIZED
            raise
        self._state = RegistryState.READY
        logger.debug("Account access for %s ready (%d allowed)", self._ledger.key, len(self._value))

    def is_allowed_access(self, account: AccountInfo | str) -> bool:
        return account_identifier(account) in self._value

    async def set_allowed_access(self, account: AccountInfo | str, allowed: bool) -> None:
        """
        Allow or deny ``account`` and wait until the cache reflects it.

        Allowing an allowed account and denying an unknown one write nothing.
        Denying the last allowed account deletes the stored list.
        """
        if self._state is not RegistryState.READY:
            logger.warning(
                "Ignoring access change for %s: registry is %s", self._ledger.key, self._state.value
            )
            return

        account_id = account_identifier(account)
        async with self._lock:
            if allowed:
                if account_id in self._value:
                    return
                await self._write([*self._value, account_id])
            else:
                remaining = [i for i in self._value if i != account_id]
                if len(remaining) == len(self._value):
                    return
                await self._write(remaining)
            await self._refresh()

    async def _write(self, value: list[str]) -> None:
        self._writing = True
        try:
            if value:
                await self._ledger.store(value)
            else:
                await self._ledger.delete()
        except Exception:
            # Some keys may have been written; let the cache catch up with them.
            self._schedule_refresh()
            raise
        finally:
            self._writing = False

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def _handle_ledger_change(self, _: None) -> None:
        if self._disposed or self._state is RegistryState.UNINITIALIZED:
            return
        if self._writing:
            # The write in progress refreshes once every key is written.
            return
        self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        task = asyncio.get_running_loop().create_task(self._refresh_in_background())
        self._pending_refreshes.add(task)
        task.add_done_callback(self._pending_refreshes.discard)

    async def _refresh_in_background(self) -> None:
        try:
            async with self._lock:
                await self._refresh()
        except Exception as exc:
            self.last_error = exc
            logger.error(
                "Failed to refresh account access for %s, keeping %d cached: %s",
                self._ledger.key,
                len(self._value),
                exc,
            )

    async def _refresh(self) -> None:
        self._started_generation += 1
        generation = self._started_generation

        value = await self._ledger.get()

        if generation < self._applied_generation:
            logger.debug("Discarding stale account access read for %s", self._ledger.key)
            return
        self._applied_generation = generation
        self.last_error = None
        self._apply(value or [])

    def _apply(self, value: list[str]) -> None:
        previous = set(self._value)
        self._value = list(value)
        if previous == set(self._value):
            logger.debug("Account access for %s unchanged", self._ledger.key)
            return
        logger.debug(
            "Account access for %s changed: %d -> %d allowed",
            self._ledger.key,
            len(previous),
            len(self._value),
        )
        self._on_did_account_access_change.fire(None)

    async def wait_for_pending_refreshes(self) -> None:
        """Wait until refreshes triggered by storage changes have finished."""
        while self._pending_refreshes:
            await asyncio.gather(*list(self._pending_refreshes))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._subscription.dispose()
        for task in self._pending_refreshes:
            task.cancel()
        self._pending_refreshes.clear()
        self._ledger.dispose()
        self._on_did_account_access_change.dispose()
