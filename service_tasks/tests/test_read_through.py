"""
Tests for the read-through cache and the invalidation hook.
"""

from unittest.mock import AsyncMock

import pytest

from service_tasks.app.cache.cache_store import CacheStore
from service_tasks.app.cache.read_through import ReadThroughCache
from service_tasks.app.cache.version import DEFAULT_VERSION_KEY, VersionTag
from service_tasks.app.models import CacheStatus, Outcome
from shared.errors import RecordNotFoundError
from shared.metrics import MetricsCollector
from shared.test_helpers import FakeKeyValueStore


LIST_URL = "https://tasks.example.com/tasks?per_page=5&page=2"


@pytest.fixture
def kv_store():
    """In-memory key-value store."""
    return FakeKeyValueStore()


@pytest.fixture
def metrics():
    """Metrics collector with its own registry."""
    return MetricsCollector("tasks")


@pytest.fixture
def cache(kv_store, metrics):
    """ReadThroughCache over the fake store with a 120s TTL."""
    tokens = iter(f"v{i}" for i in range(1, 100))
    version_tag = VersionTag(kv_store, token_factory=lambda: next(tokens))
    return ReadThroughCache(CacheStore(kv_store, metrics=metrics), version_tag, 120, metrics=metrics)


def ok_fetch(result, **kwargs):
    return AsyncMock(side_effect=lambda: Outcome.ok(result, **kwargs))


def sample(metrics, name, **labels):
    return metrics.registry.get_sample_value(name, labels) or 0


class TestReadThroughList:
    """Test cases for cached list requests."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, cache, kv_store):
        fetch = ok_fetch([{"id": 1}], result_info={"page": 2, "per_page": 5, "total_count": 1})

        first = await cache.list(LIST_URL, fetch)
        second = await cache.list(LIST_URL, fetch)

        assert fetch.await_count == 1
        assert first.cache_status == CacheStatus.MISS
        assert second.cache_status == CacheStatus.HIT
        assert second.to_payload() == first.to_payload()
        assert kv_store.keys("tasks:cache:v1:list:") == ["tasks:cache:v1:list:/tasks?page=2&per_page=5"]
        assert kv_store.ttl_of("tasks:cache:v1:list:/tasks?page=2&per_page=5") == 120

    @pytest.mark.asyncio
    async def test_equivalent_urls_share_entry(self, cache):
        fetch = ok_fetch([])

        await cache.list("https://a.example/tasks?b=2&a=1", fetch)
        second = await cache.list("http://b.example/tasks?a=1&b=2", fetch)

        assert fetch.await_count == 1
        assert second.cache_status == CacheStatus.HIT

    @pytest.mark.asyncio
    async def test_malformed_url_bypasses_cache(self, cache, kv_store, metrics):
        fetch = ok_fetch([])

        outcome = await cache.list("/tasks?page=1", fetch)

        assert outcome.success
        assert outcome.cache_status == CacheStatus.BYPASS
        assert fetch.await_count == 1
        assert kv_store.calls == []
        assert sample(metrics, "cache_requests_total", operation="list", result="bypass") == 1

    @pytest.mark.asyncio
    async def test_version_read_fault_fetches_and_skips_put(self, cache, kv_store):
        kv_store.fail_get = True
        fetch = ok_fetch([{"id": 1}])

        outcome = await cache.list(LIST_URL, fetch)

        assert outcome.success
        assert outcome.cache_status == CacheStatus.BYPASS
        assert kv_store.calls_for("put") == []

    @pytest.mark.asyncio
    async def test_version_recovered_after_fetch_is_used_for_put(self, cache, kv_store):
        kv_store.fail_get = True

        async def fetch():
            kv_store.fail_get = False
            return Outcome.ok([{"id": 1}])

        outcome = await cache.list(LIST_URL, fetch)

        assert outcome.cache_status == CacheStatus.BYPASS
        assert "tasks:cache:v1:list:/tasks?page=2&per_page=5" in kv_store.data

    @pytest.mark.asyncio
    async def test_entry_get_fault_is_a_miss(self, cache, kv_store):
        fetch = ok_fetch([{"id": 1}])
        await cache.list(LIST_URL, fetch)

        entry_key = "tasks:cache:v1:list:/tasks?page=2&per_page=5"
        original_get = kv_store.get

        async def flaky_get(key):
            if key == entry_key:
                raise ConnectionError("entry read refused")
            return await original_get(key)

        kv_store.get = flaky_get
        outcome = await cache.list(LIST_URL, fetch)

        assert outcome.success
        assert outcome.cache_status == CacheStatus.MISS
        assert fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_entry_put_fault_returns_fresh_result(self, cache, kv_store, metrics):
        kv_store.fail_put_keys.add("tasks:cache:v1:list:/tasks?page=2&per_page=5")
        fetch = ok_fetch([{"id": 1}])

        outcome = await cache.list(LIST_URL, fetch)

        assert outcome.success
        assert outcome.result == [{"id": 1}]
        assert sample(metrics, "cache_errors_total", stage="put") == 1


class TestReadThroughRead:
    """Test cases for cached single-record reads."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, cache, kv_store):
        fetch = ok_fetch({"id": 7, "name": "x"})

        await cache.read(7, fetch)
        second = await cache.read("7", fetch)

        assert fetch.await_count == 1
        assert second.cache_status == CacheStatus.HIT
        assert second.result == {"id": 7, "name": "x"}
        assert "tasks:cache:v1:read:7" in kv_store.data

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self, cache, kv_store):
        fetch = AsyncMock(side_effect=lambda: Outcome.failure(RecordNotFoundError()))

        first = await cache.read(7, fetch)
        second = await cache.read(7, fetch)

        assert fetch.await_count == 2
        assert not first.success and not second.success
        assert first.status_code == 404
        assert second.cache_status == CacheStatus.MISS
        assert kv_store.keys("tasks:cache:v1:read:") == []

    @pytest.mark.asyncio
    async def test_non_success_cached_value_is_ignored(self, cache, kv_store):
        await kv_store.put(DEFAULT_VERSION_KEY, "v1")
        await kv_store.put("tasks:cache:v1:read:7", '{"success": false, "errors": []}', 60)
        fetch = ok_fetch({"id": 7})

        outcome = await cache.read(7, fetch)

        assert outcome.cache_status == CacheStatus.MISS
        assert fetch.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("record_id", [None, "", True])
    async def test_invalid_identifier_bypasses_cache(self, cache, kv_store, record_id):
        fetch = AsyncMock(return_value=Outcome.failure(RecordNotFoundError()))

        outcome = await cache.read(record_id, fetch)

        assert outcome.cache_status == CacheStatus.BYPASS
        assert kv_store.calls == []


class TestInvalidateOnSuccess:
    """Test cases for the mutation invalidation hook."""

    @pytest.mark.asyncio
    async def test_success_replaces_generation(self, cache, kv_store, metrics):
        fetch = ok_fetch({"id": 1})
        await cache.read(1, fetch)

        outcome = Outcome.ok({"id": 2}, status_code=201)
        returned = await cache.invalidate_on_success(outcome)
        after = await cache.read(1, fetch)

        assert returned is outcome
        assert kv_store.data[DEFAULT_VERSION_KEY].value == "v2"
        assert after.cache_status == CacheStatus.MISS
        assert fetch.await_count == 2
        assert sample(metrics, "cache_invalidations_total", status="ok") == 1

    @pytest.mark.asyncio
    async def test_failure_keeps_generation(self, cache, kv_store):
        await cache.version_tag.get_version()

        outcome = Outcome.failure(RecordNotFoundError())
        returned = await cache.invalidate_on_success(outcome)

        assert returned is outcome
        assert kv_store.data[DEFAULT_VERSION_KEY].value == "v1"

    @pytest.mark.asyncio
    async def test_invalidation_fault_is_swallowed(self, cache, kv_store, metrics):
        kv_store.fail_put = True
        outcome = Outcome.ok({"id": 1}, status_code=201)

        returned = await cache.invalidate_on_success(outcome)

        assert returned is outcome
        assert returned.status_code == 201
        assert sample(metrics, "cache_invalidations_total", status="error") == 1

    @pytest.mark.asyncio
    async def test_invalidation_is_not_retried(self, cache, kv_store):
        kv_store.fail_put = True

        await cache.invalidate_on_success(Outcome.ok({"id": 1}))

        assert kv_store.calls_for("put") == [DEFAULT_VERSION_KEY]
