"""
In-process task store for local runs and tests.
"""

from typing import Any, Dict, List

from shared.errors import RecordNotFoundError
from shared.logging import get_logger
from ..models import (
    SEARCH_FIELDS,
    OrderDirection,
    Outcome,
    Task,
    TaskFields,
    TaskListQuery,
)


class InMemoryTaskStore:
    """Dictionary-backed task store with incrementing ids."""

    def __init__(self):
        self.logger = get_logger("tasks.persistence.memory")
        self._tasks: Dict[int, Task] = {}
        self._next_id = 1

    async def start(self):
        self.logger.info("In-memory task store started")

    async def stop(self):
        self.logger.info("In-memory task store stopped", tasks=len(self._tasks))

    async def health_check(self) -> bool:
        return True

    async def create(self, fields: TaskFields) -> Outcome[Dict[str, Any]]:
        task = Task(id=self._next_id, **fields.model_dump())
        self._tasks[task.id] = task
        self._next_id += 1
        self.logger.info("Task created", task_id=task.id)
        return Outcome.ok(self._serialize(task), status_code=201)

    async def read(self, task_id: int) -> Outcome[Dict[str, Any]]:
        task = self._tasks.get(task_id)
        if task is None:
            return Outcome.failure(RecordNotFoundError())
        return Outcome.ok(self._serialize(task))

    async def update(self, task_id: int, fields: TaskFields) -> Outcome[Dict[str, Any]]:
        if task_id not in self._tasks:
            return Outcome.failure(RecordNotFoundError())
        task = Task(id=task_id, **fields.model_dump())
        self._tasks[task_id] = task
        self.logger.info("Task updated", task_id=task_id)
        return Outcome.ok(self._serialize(task))

    async def delete(self, task_id: int) -> Outcome[Dict[str, Any]]:
        task = self._tasks.pop(task_id, None)
        if task is None:
            return Outcome.failure(RecordNotFoundError())
        self.logger.info("Task deleted", task_id=task_id)
        return Outcome.ok(self._serialize(task))

    async def list(self, query: TaskListQuery) -> Outcome[List[Dict[str, Any]]]:
        tasks = list(self._tasks.values())

        if query.completed is not None:
            tasks = [t for t in tasks if t.completed == query.completed]

        if query.search:
            needle = query.search.lower()
            tasks = [
                t for t in tasks
                if any(needle in (getattr(t, name) or "").lower() for name in SEARCH_FIELDS)
            ]

        # Ties fall back to id so paging is stable.
        order_field = query.order_by.value
        tasks.sort(
            key=lambda t: (getattr(t, order_field), t.id),
            reverse=query.order_by_direction == OrderDirection.DESC
        )

        page = tasks[query.offset:query.offset + query.per_page]
        return Outcome.ok(
            [self._serialize(t) for t in page],
            result_info={
                "page": query.page,
                "per_page": query.per_page,
                "total_count": len(tasks),
            }
        )

    @staticmethod
    def _serialize(task: Task) -> Dict[str, Any]:
        return task.model_dump(mode="json")
