"""
JSON cache adapter over the key-value service.
"""

import json
from typing import Any, Optional

from shared.config import MIN_CACHE_TTL_SECONDS
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .kv_store import KeyValueStore


class CacheStore:
    """Fail-open JSON cache.

    A fault talking to the key-value service turns into a miss on ``get`` and
    a no-op on ``put``; nothing raised by the store reaches the caller.
    """

    def __init__(self, kv_store: KeyValueStore, *, metrics: Optional[MetricsCollector] = None):
        self.kv_store = kv_store
        self.metrics = metrics
        self.logger = get_logger("tasks.cache.store")

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value for ``key`` or None on miss or fault."""
        try:
            raw = await self.kv_store.get(key)
        except Exception as e:
            self._record_fault("get", key, e)
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            self._record_fault("decode", key, e)
            await self.evict(key)
            return None

    async def put(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Store ``value`` as JSON for ``ttl_seconds``; return False on fault."""
        ttl = max(MIN_CACHE_TTL_SECONDS, int(ttl_seconds))
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            self._record_fault("encode", key, e)
            return False

        try:
            await self.kv_store.put(key, payload, ttl_seconds=ttl)
        except Exception as e:
            self._record_fault("put", key, e)
            return False

        self.logger.debug("Cached value", cache_key=key, ttl=ttl)
        return True

    async def evict(self, key: str) -> bool:
        """Best-effort removal of a single entry."""
        try:
            await self.kv_store.delete(key)
            return True
        except Exception as e:
            self._record_fault("evict", key, e)
            return False

    def _record_fault(self, stage: str, key: str, error: Exception) -> None:
        self.logger.warning(
            "Cache store fault",
            stage=stage,
            cache_key=key,
            error=str(error),
            error_type=type(error).__name__
        )
        if self.metrics:
            self.metrics.increment_counter("cache_errors_total", stage=stage)
