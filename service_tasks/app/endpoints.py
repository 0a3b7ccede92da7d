"""
Task operations as seen by the HTTP layer.

List and read go through the read-through cache; create, update and delete
replace the cache generation after they succeed. With no cache configured
every call goes straight to the store.
"""

from typing import Optional

from .cache.read_through import ReadThroughCache
from .models import CacheStatus, Outcome, TaskFields, TaskListQuery
from .persistence.base import TaskStore


class TaskEndpoints:
    """Cache-aware facade over a ``TaskStore``."""

    def __init__(self, store: TaskStore, cache: Optional[ReadThroughCache] = None):
        self.store = store
        self.cache = cache

    async def list(self, url: str, query: TaskListQuery) -> Outcome:
        fetch = lambda: self.store.list(query)  # noqa: E731
        if self.cache is None:
            return self._uncached(await fetch())
        return await self.cache.list(url, fetch)

    async def read(self, task_id: int) -> Outcome:
        fetch = lambda: self.store.read(task_id)  # noqa: E731
        if self.cache is None:
            return self._uncached(await fetch())
        return await self.cache.read(task_id, fetch)

    async def create(self, fields: TaskFields) -> Outcome:
        return await self._invalidate(await self.store.create(fields))

    async def update(self, task_id: int, fields: TaskFields) -> Outcome:
        return await self._invalidate(await self.store.update(task_id, fields))

    async def delete(self, task_id: int) -> Outcome:
        return await self._invalidate(await self.store.delete(task_id))

    async def _invalidate(self, outcome: Outcome) -> Outcome:
        if self.cache is None:
            return outcome
        return await self.cache.invalidate_on_success(outcome)

    @staticmethod
    def _uncached(outcome: Outcome) -> Outcome:
        outcome.cache_status = CacheStatus.BYPASS
        return outcome
