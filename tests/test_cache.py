from utils.cache import TTLCache


class FakeTimer:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestTTLCache:
    def test_hit_before_ttl(self):
        timer = FakeTimer()
        cache = TTLCache(60, timer=timer)
        cache.set("k", {"v": 1})
        timer.now += 59
        assert cache.get("k") == {"v": 1}

    def test_stale_entry_is_dropped(self):
        timer = FakeTimer()
        cache = TTLCache(60, timer=timer)
        cache.set("k", "value")
        timer.now += 60
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_zero_ttl_disables_caching(self):
        cache = TTLCache(0)
        cache.set("k", "value")
        assert cache.get("k") is None

    def test_evicts_oldest_when_full(self):
        timer = FakeTimer()
        cache = TTLCache(600, timer=timer, max_entries=2)
        cache.set("a", 1)
        timer.now += 1
        cache.set("b", 2)
        timer.now += 1
        cache.set("c", 3)
        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_clear(self):
        cache = TTLCache(60)
        cache.set("a", 1)
        cache.clear()
        assert cache.get("a") is None
