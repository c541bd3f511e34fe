"""Exceptions raised by the account access layer."""

from __future__ import annotations


class AccountAccessError(Exception):
    """Base class for account access errors."""


class CorruptedStorageError(AccountAccessError):
    """
    A stored allow-list exists but is not a JSON array of strings.

    Attributes:
        key: Storage key holding the malformed value
    """

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Stored allow-list under {key!r} is corrupted: {reason}")
        self.key = key
        self.reason = reason
