from search_cache import SearchCache, cache_key


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_set_then_get_returns_payload():
    cache = SearchCache(ttl=60, clock=FakeClock())
    payload = {"results": [{"episodeId": "e1"}], "count": 1}

    cache.set("Hello", payload)

    assert cache.get("Hello") == payload


def test_key_is_trimmed_and_lowercased():
    cache = SearchCache(ttl=60, clock=FakeClock())
    cache.set("  Podcast ", {"count": 0})

    assert cache.get("podcast") == {"count": 0}
    assert cache_key("  Podcast ") == "search:podcast"


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = SearchCache(ttl=60, clock=clock)
    cache.set("q", {"count": 0})

    clock.now += 59
    assert cache.get("q") is not None
    clock.now += 2
    assert cache.get("q") is None
    assert len(cache) == 0


def test_per_entry_ttl_overrides_default():
    clock = FakeClock()
    cache = SearchCache(ttl=3600, clock=clock)
    cache.set("short", {"n": 1}, ttl=5)

    clock.now += 6
    assert cache.get("short") is None


def test_zero_ttl_is_not_replaced_by_default():
    clock = FakeClock()
    cache = SearchCache(ttl=3600, clock=clock)
    cache.set("now-only", {"n": 1}, ttl=0)

    clock.now += 1
    assert cache.get("now-only") is None


def test_returned_payload_is_a_snapshot():
    cache = SearchCache(ttl=60, clock=FakeClock())
    cache.set("q", {"results": []})

    got = cache.get("q")
    got["results"].append("mutated")

    assert cache.get("q") == {"results": []}


def test_invalidate_one_or_all():
    cache = SearchCache(ttl=60, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)

    cache.invalidate("A ")
    assert cache.get("a") is None
    assert cache.get("b") == 2

    cache.invalidate()
    assert len(cache) == 0


def test_sweep_and_stats_remove_expired_entries():
    clock = FakeClock()
    cache = SearchCache(ttl=10, clock=clock)
    cache.set("old", 1)
    clock.now += 5
    cache.set("new", 2)
    clock.now += 6

    stats = cache.stats()

    assert stats == {"size": 1, "keys": ["search:new"]}


def test_undecodable_entry_is_treated_as_miss(caplog):
    cache = SearchCache(ttl=60, clock=FakeClock())
    cache.set("q", {"ok": True})
    cache._entries["search:q"].data = "{not json"
    caplog.set_level("WARNING")

    assert cache.get("q") is None
    assert len(cache) == 0
    assert any("undecodable" in r.message for r in caplog.records)


def test_sweeper_thread_starts_and_stops():
    cache = SearchCache(ttl=60, sweep_interval=0.01)
    cache.start_sweeper()
    assert cache._sweeper is not None and cache._sweeper.is_alive()

    cache.stop_sweeper()
    assert cache._sweeper is None


def test_sweeper_disabled_without_interval():
    cache = SearchCache(ttl=60)
    cache.start_sweeper()
    assert cache._sweeper is None
