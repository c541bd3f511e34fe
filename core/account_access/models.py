"""
Data models for account access.

IdentityScope names one allow-list namespace and derives the storage keys it
lives under. AccountInfo is the slice of an authenticated provider account
that access decisions look at.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_KEY_PREFIX = "accounts"


class IdentityScope(BaseModel):
    """
    A (cloud, client, authority) triple identifying one allow-list.

    Storage convention:
        current key  →  "{prefix}-{cloud_name}"
        legacy key   →  "{prefix}-{cloud_name}-{client_id}-{authority}"
        e.g. ("AzureCloud", "aebc6443-...", "https://login.microsoftonline.com/common/")
             →  "accounts-AzureCloud"
             →  "accounts-AzureCloud-aebc6443-...-https://login.microsoftonline.com/common/"

    Attributes:
        cloud_name: Provider / cloud name (e.g. "AzureCloud")
        client_id: Application (client) identifier registered with the provider
        authority: Authority URL the client signs in against
        key_prefix: Prefix shared by both storage keys
    """

    model_config = ConfigDict(frozen=True)

    cloud_name: str = Field(min_length=1)
    client_id: str
    authority: str
    key_prefix: str = DEFAULT_KEY_PREFIX

    @property
    def key(self) -> str:
        """The current storage key."""
        return f"{self.key_prefix}-{self.cloud_name}"

    @property
    def legacy_key(self) -> str:
        """The per-client key used before allow-lists were shared across clients."""
        return f"{self.key_prefix}-{self.cloud_name}-{self.client_id}-{self.authority}"

    def storage_keys(self, include_legacy: bool = True) -> list[str]:
        """Ordered keys for this scope: current first, then legacy fallbacks."""
        if include_legacy:
            return [self.key, self.legacy_key]
        return [self.key]


class AccountInfo(BaseModel):
    """
    An authenticated account as reported by the identity provider.

    Only ``home_account_id`` takes part in access decisions; the other
    fields are carried for callers that want to display the account.
    """

    model_config = ConfigDict(frozen=True)

    home_account_id: str = Field(min_length=1)
    username: str | None = None
    environment: str | None = None
    tenant_id: str | None = None

    def __str__(self) -> str:
        return self.username or self.home_account_id


class RegistryState(str, Enum):
    """Lifecycle of an AccountAccessRegistry."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


def account_identifier(account: AccountInfo | str) -> str:
    """Return the identifier stored in the allow-list for ``account``."""
    if isinstance(account, AccountInfo):
        return account.home_account_id
    return account
