from __future__ import annotations

import logging
import sqlite3

from .oracle import OracleError, OracleProvider
from .persistence import API_KEY_KEY, LocalStore

logger = logging.getLogger(__name__)


class KeyManager:
    """Stores the oracle credential and keeps the provider in step with it.

    A stored key wins over the environment fallback.
    """

    def __init__(self, store: LocalStore, provider: OracleProvider, *, env_key: str | None = None) -> None:
        self._store = store
        self._provider = provider
        self._env_key = env_key

    def current(self) -> str | None:
        return self._stored() or self._env_key

    def has_stored_key(self) -> bool:
        return self._stored() is not None

    def activate(self) -> None:
        self._provider.set_credential(self.current())

    def validate_and_store(self, key: str) -> bool:
        """Probe the oracle with ``key``; persist and activate it only if it works."""

        key = key.strip()
        if key == "":
            return False
        client = self._provider.build_probe_client(key)
        try:
            client.probe()
        except OracleError as err:
            logger.warning("API key validation failed: %s", err)
            return False
        finally:
            client.close()

        self._store.put(API_KEY_KEY, key)
        self._provider.set_credential(key)
        return True

    def clear(self) -> None:
        self._store.delete(API_KEY_KEY)
        self._provider.set_credential(self._env_key)

    def _stored(self) -> str | None:
        try:
            return self._store.get(API_KEY_KEY)
        except sqlite3.DatabaseError as err:
            logger.warning("stored API key unreadable: %s", err)
            return None
