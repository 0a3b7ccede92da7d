"""
Read-through caching for task list/read and invalidation for task writes.
"""

from typing import Awaitable, Callable, Optional

from shared.errors import CacheUnavailableError, MalformedInputError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..models import CacheStatus, Outcome
from .cache_store import CacheStore
from .keys import (
    CacheKeyBuilder,
    LIST_OPERATION,
    READ_OPERATION,
    RecordId,
    canonicalize_url_for_cache,
    record_subject,
)
from .version import VersionTag


Fetch = Callable[[], Awaitable[Outcome]]


class ReadThroughCache:
    """Wraps record operations with the versioned read-through cache.

    Reads resolve the current generation, look up the versioned key, and fall
    back to the record store on a miss. Writes replace the generation after a
    successful mutation. Cache faults never change what the caller receives.
    """

    def __init__(
        self,
        cache_store: CacheStore,
        version_tag: VersionTag,
        ttl_seconds: int,
        *,
        key_builder: Optional[CacheKeyBuilder] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.cache_store = cache_store
        self.version_tag = version_tag
        self.ttl_seconds = ttl_seconds
        self.key_builder = key_builder or CacheKeyBuilder()
        self.metrics = metrics
        self.logger = get_logger("tasks.cache.read_through")

    async def list(self, url: str, fetch: Fetch) -> Outcome:
        """Serve a list request for ``url`` through the cache."""
        try:
            subject = canonicalize_url_for_cache(url)
        except MalformedInputError as e:
            return await self._bypass(LIST_OPERATION, e, fetch)
        return await self._serve(LIST_OPERATION, subject, fetch)

    async def read(self, record_id: RecordId, fetch: Fetch) -> Outcome:
        """Serve a single-record read through the cache."""
        try:
            subject = record_subject(record_id)
        except MalformedInputError as e:
            return await self._bypass(READ_OPERATION, e, fetch)
        return await self._serve(READ_OPERATION, subject, fetch)

    async def invalidate_on_success(self, outcome: Outcome) -> Outcome:
        """Replace the cache generation when ``outcome`` is a success.

        The outcome is returned unchanged whether or not the replacement
        reached the store.
        """
        if not outcome.success:
            return outcome

        try:
            await self.version_tag.invalidate()
        except CacheUnavailableError as e:
            self.logger.warning(
                "Cache invalidation failed; entries stay live until TTL",
                error=e.message,
                details=e.details,
                ttl_seconds=self.ttl_seconds
            )
            self._count("cache_invalidations_total", status="error")
        else:
            self._count("cache_invalidations_total", status="ok")
        return outcome

    async def _serve(self, operation: str, subject: str, fetch: Fetch) -> Outcome:
        cache_key = await self._resolve_key(operation, subject)

        if cache_key is not None:
            cached = Outcome.from_payload(await self.cache_store.get(cache_key))
            if cached is not None:
                cached.cache_status = CacheStatus.HIT
                self._count("cache_requests_total", operation=operation, result="hit")
                self.logger.debug("Cache hit", cache_key=cache_key)
                return cached

        fresh = await fetch()
        fresh.cache_status = CacheStatus.MISS if cache_key is not None else CacheStatus.BYPASS
        self._count("cache_requests_total", operation=operation, result=fresh.cache_status.value)

        # No negative caching.
        if not fresh.success:
            return fresh

        if cache_key is None:
            cache_key = await self._resolve_key(operation, subject)
            if cache_key is None:
                return fresh

        await self.cache_store.put(cache_key, fresh.to_payload(), self.ttl_seconds)
        return fresh

    async def _resolve_key(self, operation: str, subject: str) -> Optional[str]:
        try:
            version = await self.version_tag.get_version()
        except CacheUnavailableError as e:
            self.logger.warning(
                "Cache version unavailable; serving uncached",
                operation=operation,
                error=e.message,
                details=e.details
            )
            self._count("cache_errors_total", stage="version")
            return None
        return self.key_builder.compose(version, operation, subject)

    async def _bypass(self, operation: str, error: MalformedInputError, fetch: Fetch) -> Outcome:
        self.logger.warning(
            "Cache bypassed for malformed input",
            operation=operation,
            error=error.message,
            details=error.details
        )
        self._count("cache_requests_total", operation=operation, result=CacheStatus.BYPASS.value)
        outcome = await fetch()
        outcome.cache_status = CacheStatus.BYPASS
        return outcome

    def _count(self, metric_name: str, **labels) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, **labels)
