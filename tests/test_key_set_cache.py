import threading
import time
from datetime import timedelta

import pytest

from pkg_idtoken.adapters.jwks.cache import KeySetCache
from pkg_idtoken.domain.exceptions import KeyNotFoundError, KeyRetrievalError

from conftest import ISSUER, StubFetcher, public_jwk

OTHER = "https://other-tenant.example.com/"


def _cache(fetcher, clock, **kwargs):
    kwargs.setdefault("min_refresh_interval", timedelta(seconds=30))
    return KeySetCache(fetcher, clock=clock, **kwargs)


def test_miss_fetches_once_then_hits(fetcher, clock):
    cache = _cache(fetcher, clock)
    assert cache.peek(ISSUER) is None

    first = cache.get(ISSUER)
    second = cache.get(ISSUER)

    assert first is second
    assert fetcher.calls == 1
    assert first.fetched_at == clock.now()
    assert cache.peek(ISSUER) is first


def test_force_refresh_replaces_snapshot(fetcher, clock):
    cache = _cache(fetcher, clock)
    first = cache.get(ISSUER)
    second = cache.get(ISSUER, force_refresh=True)

    assert second is not first
    assert fetcher.calls == 2
    assert cache.peek(ISSUER) is second


def test_ttl_expiry_refetches(fetcher, clock):
    cache = _cache(fetcher, clock, ttl=timedelta(minutes=10))
    cache.get(ISSUER)
    clock.advance(599)
    cache.get(ISSUER)
    assert fetcher.calls == 1

    clock.advance(1)
    cache.get(ISSUER)
    assert fetcher.calls == 2


def test_no_ttl_keeps_snapshot(fetcher, clock):
    cache = _cache(fetcher, clock, ttl=None)
    cache.get(ISSUER)
    clock.advance(86400 * 30)
    cache.get(ISSUER)
    assert fetcher.calls == 1


def test_get_key_by_kid_and_sole_key(fetcher, clock):
    cache = _cache(fetcher, clock)
    assert cache.get_key(ISSUER, "key-1").key_id == "key-1"
    assert cache.get_key(ISSUER, None).key_id == "key-1"
    assert fetcher.calls == 1


def test_missing_kid_without_sole_key(rsa_key, other_rsa_key, clock):
    fetcher = StubFetcher(
        {ISSUER: {"keys": [public_jwk(rsa_key, "key-1"), public_jwk(other_rsa_key, "key-2")]}}
    )
    cache = _cache(fetcher, clock)

    with pytest.raises(KeyNotFoundError) as info:
        cache.get_key(ISSUER, None)
    assert info.value.kid is None
    # an absent kid is not a rotation signal
    assert fetcher.calls == 1


def test_unknown_kid_on_fresh_snapshot_fails_without_refetch(fetcher, clock):
    cache = _cache(fetcher, clock)
    cache.get(ISSUER)
    clock.advance(29)

    with pytest.raises(KeyNotFoundError):
        cache.get_key(ISSUER, "key-unknown")
    with pytest.raises(KeyNotFoundError):
        cache.get_key(ISSUER, "key-unknown")
    assert fetcher.calls == 1


def test_unknown_kid_on_stale_snapshot_refetches_once(fetcher, clock):
    cache = _cache(fetcher, clock)
    cache.get(ISSUER)
    clock.advance(30)

    with pytest.raises(KeyNotFoundError) as info:
        cache.get_key(ISSUER, "key-unknown")
    assert info.value.kid == "key-unknown"
    assert fetcher.calls == 2

    # the refetched snapshot is fresh again: no amplification
    with pytest.raises(KeyNotFoundError):
        cache.get_key(ISSUER, "key-unknown")
    assert fetcher.calls == 2


def test_rotated_key_is_picked_up(rsa_key, other_rsa_key, fetcher, clock):
    cache = _cache(fetcher, clock)
    cache.get(ISSUER)

    fetcher.documents[ISSUER] = {
        "keys": [public_jwk(rsa_key, "key-1"), public_jwk(other_rsa_key, "key-2")]
    }
    clock.advance(60)

    key = cache.get_key(ISSUER, "key-2")
    assert key.key_id == "key-2"
    assert fetcher.calls == 2
    assert len(cache.peek(ISSUER)) == 2


def test_expired_snapshot_is_served_when_refresh_fails(fetcher, clock, caplog):
    cache = _cache(fetcher, clock, ttl=timedelta(minutes=10))
    snapshot = cache.get(ISSUER)

    fetcher.error = KeyRetrievalError("connection reset")
    clock.advance(601)
    with caplog.at_level("WARNING", logger="pkg_idtoken.adapters.jwks.cache"):
        assert cache.get(ISSUER) is snapshot
    assert "Serving expired key set" in caplog.text
    assert fetcher.calls == 2

    # no new attempt inside the minimum refresh interval
    clock.advance(10)
    assert cache.get(ISSUER) is snapshot
    assert cache.get_key(ISSUER, "key-1") is snapshot.select("key-1")
    with pytest.raises(KeyNotFoundError):
        cache.get_key(ISSUER, "key-2")
    assert fetcher.calls == 2

    fetcher.error = None
    clock.advance(20)
    refreshed = cache.get(ISSUER)
    assert refreshed is not snapshot
    assert fetcher.calls == 3


def test_forced_and_unknown_kid_refresh_failures_propagate(fetcher, clock):
    cache = _cache(fetcher, clock, ttl=timedelta(minutes=10))
    snapshot = cache.get(ISSUER)

    fetcher.error = KeyRetrievalError("connection reset")
    with pytest.raises(KeyRetrievalError):
        cache.get(ISSUER, force_refresh=True)
    assert cache.peek(ISSUER) is snapshot

    clock.advance(31)
    with pytest.raises(KeyRetrievalError):
        cache.get_key(ISSUER, "key-2")
    assert cache.peek(ISSUER) is snapshot
    assert fetcher.calls == 3


def test_failed_first_fetch_caches_nothing(clock):
    fetcher = StubFetcher()
    cache = _cache(fetcher, clock)
    with pytest.raises(KeyRetrievalError):
        cache.get(ISSUER)
    assert cache.peek(ISSUER) is None


def test_invalidate(fetcher, rsa_key, clock):
    fetcher.documents[OTHER] = {"keys": [public_jwk(rsa_key, "key-9")]}
    cache = _cache(fetcher, clock)
    cache.get(ISSUER)
    cache.get(OTHER)

    cache.invalidate(ISSUER)
    assert cache.peek(ISSUER) is None
    assert cache.peek(OTHER) is not None

    cache.invalidate()
    assert cache.peek(OTHER) is None


def test_concurrent_misses_share_one_fetch(fetcher, clock):
    cache = _cache(fetcher, clock)
    fetcher.gate = threading.Event()
    results = []
    errors = []

    def worker():
        try:
            results.append(cache.get(ISSUER))
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()

    assert fetcher.entered.wait(timeout=5)
    time.sleep(0.05)  # let the other workers queue up behind the fetch
    fetcher.gate.set()
    for t in threads:
        t.join(timeout=5)

    assert not errors
    assert len(results) == 8
    assert all(r is results[0] for r in results)
    assert fetcher.calls == 1


def test_fetch_does_not_block_other_authorities(fetcher, rsa_key, clock):
    fetcher.documents[OTHER] = {"keys": [public_jwk(rsa_key, "key-9")]}
    cache = _cache(fetcher, clock)
    cached_other = cache.get(OTHER)
    fetcher.entered.clear()

    fetcher.gate = threading.Event()
    slow = threading.Thread(target=cache.get, args=(ISSUER,))
    slow.start()
    try:
        assert fetcher.entered.wait(timeout=5)
        # ISSUER's fetch is still in flight; OTHER is served from cache
        assert cache.get(OTHER) is cached_other
        assert slow.is_alive()
    finally:
        fetcher.gate.set()
        slow.join(timeout=5)

    assert cache.peek(ISSUER) is not None
