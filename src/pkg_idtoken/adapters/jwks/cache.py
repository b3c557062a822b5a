from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, Optional

from ...domain.constants import DEFAULT_KEY_SET_TTL, DEFAULT_MIN_REFRESH_INTERVAL
from ...domain.entities import AsymmetricKey, KeySet
from ...domain.exceptions import KeyNotFoundError, KeyRetrievalError
from ...domain.ports import Clock, KeySetFetcher
from ..system_clock import SystemClock

logger = logging.getLogger(__name__)


class KeySetCache:
    """
    In-memory cache of published key sets, keyed by authority URL.

    - Reads of a present snapshot take no lock.
    - Fetches are single-flight per authority: callers racing on the same
      authority wait on that authority's lock and then reuse whatever the
      fetch that ran while they waited produced. Other authorities are not
      blocked.
    - A failed fetch leaves the previous snapshot in place. When that
      snapshot has only outlived its TTL it keeps being served, with a
      warning, and the next attempt waits for the minimum refresh interval.
      A first fetch, a forced refresh and an unknown-kid re-fetch raise
      KeyRetrievalError.
    """

    def __init__(
        self,
        fetcher: KeySetFetcher,
        *,
        clock: Optional[Clock] = None,
        min_refresh_interval: timedelta = DEFAULT_MIN_REFRESH_INTERVAL,
        ttl: Optional[timedelta] = DEFAULT_KEY_SET_TTL,
    ) -> None:
        self._fetcher = fetcher
        self._clock = clock or SystemClock()
        self._min_refresh_interval = min_refresh_interval
        self._ttl = ttl

        self._entries: Dict[str, KeySet] = {}
        self._failures: Dict[str, datetime] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def get(self, authority: str, *, force_refresh: bool = False) -> KeySet:
        """
        Return the current KeySet of ``authority``, fetching it if needed.

        Raises:
            KeyRetrievalError
        """
        current = self._entries.get(authority)
        if current is None or force_refresh:
            return self._refresh(authority, seen=current)
        if not self._expired(current) or self._recently_failed(authority):
            return current
        try:
            return self._refresh(authority, seen=current)
        except KeyRetrievalError:
            logger.warning("Serving expired key set for %s", authority)
            return current

    def get_key(self, authority: str, kid: Optional[str]) -> AsymmetricKey:
        """
        Return the key for ``kid`` (or the sole key when ``kid`` is None).

        An unknown ``kid`` triggers at most one re-fetch, and only when the
        cached snapshot is older than the minimum refresh interval.

        Raises:
            KeyNotFoundError
            KeyRetrievalError
        """
        key_set = self.get(authority)
        key = key_set.select(kid)
        if key is not None:
            return key

        if kid is None or not self._refresh_allowed(key_set):
            raise KeyNotFoundError(authority, kid)

        logger.info("Unknown kid %r for %s; refreshing key set", kid, authority)
        key_set = self._refresh(authority, seen=key_set)
        key = key_set.select(kid)
        if key is None:
            raise KeyNotFoundError(authority, kid)
        return key

    def peek(self, authority: str) -> Optional[KeySet]:
        """Return the cached snapshot without fetching."""
        return self._entries.get(authority)

    def invalidate(self, authority: Optional[str] = None) -> None:
        """Drop the snapshot of one authority, or all snapshots."""
        with self._registry_lock:
            if authority is None:
                self._entries.clear()
                self._failures.clear()
            else:
                self._entries.pop(authority, None)
                self._failures.pop(authority, None)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _lock_for(self, authority: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(authority)
            if lock is None:
                lock = self._locks[authority] = threading.Lock()
            return lock

    def _age(self, key_set: KeySet) -> timedelta:
        return self._clock.now() - key_set.fetched_at

    def _expired(self, key_set: KeySet) -> bool:
        return self._ttl is not None and self._age(key_set) >= self._ttl

    def _recently_failed(self, authority: str) -> bool:
        failed_at = self._failures.get(authority)
        return (
            failed_at is not None
            and self._clock.now() - failed_at < self._min_refresh_interval
        )

    def _refresh_allowed(self, key_set: KeySet) -> bool:
        return (
            self._age(key_set) >= self._min_refresh_interval
            and not self._recently_failed(key_set.authority)
        )

    def _refresh(self, authority: str, *, seen: Optional[KeySet]) -> KeySet:
        """
        Fetch a new snapshot unless another caller replaced ``seen`` while we
        were waiting for the lock.
        """
        with self._lock_for(authority):
            current = self._entries.get(authority)
            if current is not None and current is not seen:
                return current

            try:
                key_set = self._fetcher.fetch(authority, self._clock.now())
            except KeyRetrievalError as exc:
                self._failures[authority] = self._clock.now()
                logger.warning("Key set fetch for %s failed: %s", authority, exc)
                raise

            self._entries[authority] = key_set
            self._failures.pop(authority, None)
            logger.info("Cached %d signing key(s) for %s", len(key_set), authority)
            return key_set
