"""Shared fixtures for account access tests."""

from __future__ import annotations

import pytest

from account_access import (
    AccountAccessConfig,
    AccountAccessLedger,
    AccountAccessRegistry,
    IdentityScope,
    InMemorySecretStorage,
)

CLOUD = "AzureCloud"
CLIENT_ID = "aebc6443-996d-45c2-90f0-388ff96faa56"
AUTHORITY = "https://login.microsoftonline.com/organizations/"

CURRENT_KEY = f"accounts-{CLOUD}"
LEGACY_KEY = f"accounts-{CLOUD}-{CLIENT_ID}-{AUTHORITY}"


class RecordingSecretStorage(InMemorySecretStorage):
    """InMemorySecretStorage that records writes and can fail on chosen keys."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        super().__init__(initial)
        self.stores: list[tuple[str, str]] = []
        self.deletes: list[str] = []
        self.fail_store_keys: set[str] = set()
        self.fail_get_keys: set[str] = set()

    async def get(self, key: str) -> str | None:
        if key in self.fail_get_keys:
            raise OSError(f"backend unavailable for {key}")
        return await super().get(key)

    async def store(self, key: str, value: str) -> None:
        if key in self.fail_store_keys:
            raise OSError(f"backend refused write to {key}")
        self.stores.append((key, value))
        await super().store(key, value)

    async def delete(self, key: str) -> None:
        self.deletes.append(key)
        await super().delete(key)

    def reset_calls(self) -> None:
        self.stores.clear()
        self.deletes.clear()


@pytest.fixture
def storage() -> RecordingSecretStorage:
    return RecordingSecretStorage()


@pytest.fixture
def config() -> AccountAccessConfig:
    return AccountAccessConfig()


@pytest.fixture
def scope() -> IdentityScope:
    return IdentityScope(cloud_name=CLOUD, client_id=CLIENT_ID, authority=AUTHORITY)


@pytest.fixture
def ledger(storage, scope, config):
    ledger = AccountAccessLedger(storage, scope, config)
    yield ledger
    ledger.dispose()


@pytest.fixture
def registry(storage, config):
    registry = AccountAccessRegistry.for_scope(storage, CLOUD, CLIENT_ID, AUTHORITY, config)
    yield registry
    registry.dispose()
