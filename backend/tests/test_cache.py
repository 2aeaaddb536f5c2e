from agora.services.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_get_and_set():
    cache = TTLCache()
    cache.set("a", 1)

    assert cache.get("a") == 1
    assert "a" in cache
    assert cache.get("missing", "default") == "default"


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=300, clock=clock)
    cache.set("a", 1)

    clock.now = 299.9
    assert cache.get("a") == 1

    clock.now = 300.0
    assert cache.get("a") is None
    assert len(cache) == 0


def test_least_recently_used_evicted():
    cache = TTLCache(max_size=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")

    cache.set("c", 3)

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache


def test_invalidate_and_clear():
    cache = TTLCache()
    cache.set(("text", "context"), "x")
    cache.set("other", "y")

    cache.invalidate(("text", "context"))
    assert ("text", "context") not in cache

    cache.clear()
    assert len(cache) == 0
