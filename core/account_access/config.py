"""Account access configuration."""

import os
from dataclasses import dataclass

from .models import DEFAULT_KEY_PREFIX

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class AccountAccessConfig:
    key_prefix: str = DEFAULT_KEY_PREFIX
    # Keep reading (and dual-writing) the per-client legacy key.
    migrate_legacy_keys: bool = True

    @classmethod
    def from_env(cls) -> "AccountAccessConfig":
        """Build a config from HIVE_ACCOUNT_ACCESS_* environment variables."""
        config = cls()
        prefix = os.environ.get("HIVE_ACCOUNT_ACCESS_KEY_PREFIX")
        if prefix:
            config.key_prefix = prefix
        legacy = os.environ.get("HIVE_ACCOUNT_ACCESS_LEGACY_KEYS")
        if legacy is not None:
            config.migrate_legacy_keys = legacy.strip().lower() not in _FALSE_VALUES
        return config


default_config = AccountAccessConfig.from_env()
