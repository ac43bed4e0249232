"""Tests for the TTL read-through cache."""

import threading
import time

from infrastructure import CacheKeys, ReadThroughCache


class TestReadThroughCache:

    def test_get_returns_fresh_value(self, cache):
        cache.set('k', {'a': 1}, ttl=10)

        assert cache.get('k') == {'a': 1}

    def test_missing_key(self, cache):
        assert cache.get('missing') is None

    def test_value_available_until_deadline(self, cache, clock):
        cache.set('k', 'v', ttl=10)
        clock.advance(10)

        assert cache.get('k') == 'v'

    def test_expired_entry_is_absent_and_evicted(self, cache, clock):
        cache.set('k', 'v', ttl=10)
        clock.advance(10.5)

        assert cache.get('k') is None
        assert len(cache) == 0
        assert cache.get_stats()['expirations'] == 1

    def test_default_ttl(self, cache, clock):
        cache.set('k', 'v')
        clock.advance(299)
        assert cache.get('k') == 'v'

        clock.advance(2)
        assert cache.get('k') is None

    def test_set_overwrites_and_resets_deadline(self, cache, clock):
        cache.set('k', 'old', ttl=10)
        clock.advance(8)
        cache.set('k', 'new', ttl=10)
        clock.advance(8)

        assert cache.get('k') == 'new'

    def test_delete(self, cache):
        cache.set('k', 'v')

        assert cache.delete('k') is True
        assert cache.get('k') is None
        assert cache.delete('k') is False

    def test_cleanup_evicts_only_expired(self, cache, clock):
        cache.set('short', 1, ttl=5)
        cache.set('long', 2, ttl=60)
        clock.advance(30)

        assert cache.cleanup() == 1
        assert len(cache) == 1
        assert cache.get('long') == 2

    def test_stats(self, cache):
        cache.set('k', 'v')
        cache.get('k')
        cache.get('missing')

        stats = cache.get_stats()

        assert stats['hits'] == 1
        assert stats['misses'] == 1
        assert stats['hit_rate'] == 0.5
        assert stats['size'] == 1

    def test_clear(self, cache):
        cache.set('a', 1)
        cache.set('b', 2)

        cache.clear()

        assert len(cache) == 0

    def test_concurrent_writers_leave_one_whole_value(self, cache):
        def writer(n):
            for _ in range(200):
                cache.set('doc', {'writer': n, 'items': [n] * 5})

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        value = cache.get('doc')
        assert value['items'] == [value['writer']] * 5


class TestSweeper:

    def test_sweeper_evicts_expired_entries(self):
        cache = ReadThroughCache(default_ttl=0.01)
        cache.set('k', 'v')
        cache.start_sweeper(interval=0.02)
        try:
            deadline = time.monotonic() + 2
            while len(cache) and time.monotonic() < deadline:
                time.sleep(0.02)
            assert len(cache) == 0
        finally:
            cache.stop_sweeper()

        assert cache.sweeper_running is False

    def test_start_twice_keeps_one_thread(self):
        cache = ReadThroughCache()
        cache.start_sweeper(interval=10)
        first = cache._sweeper
        try:
            cache.start_sweeper(interval=10)
            assert cache._sweeper is first
        finally:
            cache.stop_sweeper()

    def test_stop_without_start(self):
        ReadThroughCache().stop_sweeper()


def test_cache_keys():
    assert CacheKeys.calendar_events('abc') == 'calendar_events_abc'
    assert CacheKeys.user_info('u1') == 'user_info_u1'
    assert CacheKeys.custom_holidays() == 'custom_holidays'
