"""
Task store contract.
"""

from typing import Any, Dict, List, Protocol

from ..models import Outcome, TaskFields, TaskListQuery


class TaskStore(Protocol):
    """Record store operations consumed by the task endpoints."""

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    async def health_check(self) -> bool:
        ...

    async def create(self, fields: TaskFields) -> Outcome[Dict[str, Any]]:
        ...

    async def read(self, task_id: int) -> Outcome[Dict[str, Any]]:
        ...

    async def update(self, task_id: int, fields: TaskFields) -> Outcome[Dict[str, Any]]:
        ...

    async def delete(self, task_id: int) -> Outcome[Dict[str, Any]]:
        ...

    async def list(self, query: TaskListQuery) -> Outcome[List[Dict[str, Any]]]:
        ...
