"""
Result Cache Tests

TTL behaviour is driven by a fake clock, nothing sleeps.
"""

from memlayer.cache import ALL_MEMORIES_KEY, ResultCache


class TestTTL:

    def test_served_at_four_minutes(self, fake_clock):
        cache = ResultCache(ttl_seconds=300, clock=fake_clock)
        cache.set(ALL_MEMORIES_KEY, ["m1", "m2"])
        fake_clock.advance(4 * 60)
        assert cache.get(ALL_MEMORIES_KEY) == ["m1", "m2"]

    def test_expired_at_six_minutes(self, fake_clock):
        cache = ResultCache(ttl_seconds=300, clock=fake_clock)
        cache.set(ALL_MEMORIES_KEY, ["m1"])
        fake_clock.advance(6 * 60)
        assert cache.get(ALL_MEMORIES_KEY) is None
        assert len(cache) == 0

    def test_expires_exactly_at_ttl(self, fake_clock):
        cache = ResultCache(ttl_seconds=300, clock=fake_clock)
        cache.set("k", 1)
        fake_clock.advance(300)
        assert cache.get("k") is None

    def test_overwrite_restarts_ttl(self, fake_clock):
        cache = ResultCache(ttl_seconds=300, clock=fake_clock)
        cache.set("k", "old")
        fake_clock.advance(200)
        cache.set("k", "new")
        fake_clock.advance(200)
        assert cache.get("k") == "new"


class TestBookkeeping:

    def test_hits_and_misses(self, fake_clock):
        cache = ResultCache(clock=fake_clock)
        cache.get("absent")
        cache.set("k", [])
        cache.get("k")
        assert (cache.hits, cache.misses) == (1, 1)

    def test_empty_list_is_a_hit(self, fake_clock):
        cache = ResultCache(clock=fake_clock)
        cache.set("k", [])
        assert cache.get("k") == []

    def test_clear_drops_everything(self, fake_clock):
        cache = ResultCache(clock=fake_clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert len(cache) == 0
        assert cache.get("a") is None

    def test_oldest_entry_evicted(self, fake_clock):
        cache = ResultCache(max_entries=2, clock=fake_clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3

    def test_instances_do_not_share_entries(self, fake_clock):
        first = ResultCache(clock=fake_clock)
        second = ResultCache(clock=fake_clock)
        first.set(ALL_MEMORIES_KEY, ["m"])
        assert second.get(ALL_MEMORIES_KEY) is None
