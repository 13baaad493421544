import threading
import time

import pytest

from mdmbridge.cache import MetricKeyCache
from mdmbridge.models import MetricIdentity


class CountingFactory:
    """
    A handle factory that records every call and hands out a
    fresh object each time.
    """

    def __init__(self, delay: "float" = 0.0) -> "None":
        self.calls: "list[tuple[str, MetricIdentity]]" = []
        self._delay = delay
        self._lock = threading.Lock()

    def __call__(self, account: "str", identity: "MetricIdentity") -> "object":
        # widen the window between the miss and the insert
        if self._delay:
            time.sleep(self._delay)
        with self._lock:
            self.calls.append((account, identity))
        return object()


def _identity(namespace: "str" = "Memory", metric: "str" = "Free") -> "MetricIdentity":
    return MetricIdentity(namespace, metric, "Region", "InstanceName")


class TestMetricIdentityKey:
    def test_equal_identities_share_key(self) -> "None":
        assert _identity().key == _identity().key

    def test_embedded_separator_does_not_collide(self) -> "None":
        a = MetricIdentity("a|b", "c", "d", "e")
        b = MetricIdentity("a", "b|c", "d", "e")
        assert a.key != b.key

    def test_embedded_escape_does_not_collide(self) -> "None":
        a = MetricIdentity("a\\", "b", "c", "d")
        b = MetricIdentity("a", "\\b", "c", "d")
        assert a.key != b.key


class TestMetricKeyCache:
    def test_miss_creates_handle(self) -> "None":
        factory = CountingFactory()
        cache = MetricKeyCache(factory)

        handle = cache.resolve("acct", _identity())

        assert handle is not None
        assert factory.calls == [("acct", _identity())]
        assert cache.created == 1
        assert len(cache) == 1
        assert _identity() in cache

    def test_hit_returns_same_handle(self) -> "None":
        factory = CountingFactory()
        cache = MetricKeyCache(factory)

        first = cache.resolve("acct", _identity())
        for _ in range(10):
            assert cache.resolve("acct", _identity()) is first

        assert len(factory.calls) == 1
        assert cache.created == 1

    def test_distinct_identities_get_distinct_handles(self) -> "None":
        factory = CountingFactory()
        cache = MetricKeyCache(factory)

        memory = cache.resolve("acct", _identity("Memory", "Free"))
        cpu = cache.resolve("acct", _identity("Processor", "Free"))
        used = cache.resolve("acct", _identity("Memory", "Used"))

        assert len({id(memory), id(cpu), id(used)}) == 3
        assert cache.created == 3

    def test_dimension_names_are_part_of_identity(self) -> "None":
        cache = MetricKeyCache(CountingFactory())
        a = cache.resolve("acct", MetricIdentity("Memory", "Free", "Region", "X"))
        b = cache.resolve("acct", MetricIdentity("Memory", "Free", "Region", "Y"))
        assert a is not b

    def test_none_handle_is_cached(self) -> "None":
        calls = []

        def factory(account: "str", identity: "MetricIdentity") -> "None":
            calls.append(identity)

        cache = MetricKeyCache(factory)
        assert cache.resolve("acct", _identity()) is None
        assert cache.resolve("acct", _identity()) is None
        assert len(calls) == 1

    def test_factory_error_propagates_and_caches_nothing(self) -> "None":
        def factory(account: "str", identity: "MetricIdentity") -> "object":
            raise RuntimeError("backend unavailable")

        cache = MetricKeyCache(factory)
        with pytest.raises(RuntimeError):
            cache.resolve("acct", _identity())

        assert len(cache) == 0
        assert _identity() not in cache

    def test_contains_rejects_other_types(self) -> "None":
        cache = MetricKeyCache(CountingFactory())
        cache.resolve("acct", _identity())
        assert _identity().key not in cache


class TestMetricKeyCacheConcurrency:
    @pytest.mark.parametrize("attempt", range(20))
    def test_concurrent_resolve_creates_one_handle(self, attempt: "int") -> "None":
        factory = CountingFactory(delay=0.001)
        cache = MetricKeyCache(factory)
        thread_count = 16
        barrier = threading.Barrier(thread_count)
        handles: "list[object]" = []
        handles_lock = threading.Lock()

        def worker() -> "None":
            barrier.wait()
            handle = cache.resolve("acct", _identity())
            with handles_lock:
                handles.append(handle)

        threads = [threading.Thread(target=worker) for _ in range(thread_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(handles) == thread_count
        assert len({id(h) for h in handles}) == 1
        assert len(factory.calls) == 1
        assert cache.created == 1

    def test_concurrent_mixed_identities(self) -> "None":
        factory = CountingFactory()
        cache = MetricKeyCache(factory)
        identities = [_identity(metric=f"counter-{i}") for i in range(8)]
        barrier = threading.Barrier(8)

        def worker() -> "None":
            barrier.wait()
            for _ in range(50):
                for identity in identities:
                    cache.resolve("acct", identity)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(factory.calls) == len(identities)
        assert len(cache) == len(identities)
