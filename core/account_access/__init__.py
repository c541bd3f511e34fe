"""
Account access: which provider accounts an application may use.

Keeps a per-scope allow-list of account identifiers in secret storage,
migrates it from the legacy per-client key, and notifies listeners when the
effective set of allowed accounts changes.

Usage:
    from account_access import AccountAccessRegistry, InMemorySecretStorage

    registry = AccountAccessRegistry.for_scope(
        InMemorySecretStorage(), "AzureCloud", client_id, authority
    )
    await registry.initialize()

    await registry.set_allowed_access(account, True)
    if registry.is_allowed_access(account):
        ...
"""

from .config import AccountAccessConfig, default_config
from .errors import AccountAccessError, CorruptedStorageError
from .events import EventEmitter, Subscription
from .ledger import AccountAccessLedger
from .models import AccountInfo, IdentityScope, RegistryState
from .registry import AccountAccess, AccountAccessRegistry
from .storage import InMemorySecretStorage, SecretStorage, SecretStorageChangeEvent

__all__ = [
    # Registry
    "AccountAccess",
    "AccountAccessRegistry",
    "RegistryState",
    # Ledger
    "AccountAccessLedger",
    # Models
    "AccountInfo",
    "IdentityScope",
    # Storage
    "SecretStorage",
    "SecretStorageChangeEvent",
    "InMemorySecretStorage",
    # Events
    "EventEmitter",
    "Subscription",
    # Config
    "AccountAccessConfig",
    "default_config",
    # Errors
    "AccountAccessError",
    "CorruptedStorageError",
]
