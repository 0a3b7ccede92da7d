"""
Tasks service: task records behind a versioned read-through cache.
"""

from typing import Optional

from fastapi import Body, Query, Request
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import CacheUnavailableError

from .cache.cache_store import CacheStore
from .cache.keys import CacheKeyBuilder
from .cache.kv_store import KeyValueStore, RedisKeyValueStore
from .cache.read_through import ReadThroughCache
from .cache.version import VersionTag
from .endpoints import TaskEndpoints
from .models import OrderDirection, Outcome, TaskFields, TaskListQuery, TaskOrderField
from .persistence.base import TaskStore
from .persistence.memory import InMemoryTaskStore
from .persistence.postgres import PostgresTaskStore


class TasksService(BaseService):
    """Tasks service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        kv_store: Optional[KeyValueStore] = None,
        task_store: Optional[TaskStore] = None,
    ):
        super().__init__("tasks", 8000, config)

        # Initialize components
        self.kv_store = kv_store if kv_store is not None else RedisKeyValueStore(self.config.redis_url)
        self.task_store = task_store if task_store is not None else self._build_task_store()

        self.key_builder = CacheKeyBuilder(self.config.cache_namespace)
        self.version_tag = VersionTag(self.kv_store, self.key_builder.version_key)
        self.cache: Optional[ReadThroughCache] = None
        if self.config.cache_enabled:
            self.cache = ReadThroughCache(
                CacheStore(self.kv_store, metrics=self.metrics),
                self.version_tag,
                self.config.cache_ttl_seconds,
                key_builder=self.key_builder,
                metrics=self.metrics
            )
        self.endpoints = TaskEndpoints(self.task_store, self.cache)

        self._setup_tasks_routes()

    def _build_task_store(self) -> TaskStore:
        if self.config.store_backend == "postgres":
            return PostgresTaskStore(self.config.postgres_dsn)
        return InMemoryTaskStore()

    def _setup_tasks_routes(self):
        """Set up tasks-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "tasks",
                "message": "Tasks service is running",
                "version": "1.0.0",
                "cache_enabled": self.cache is not None,
                "cache_ttl_seconds": self.config.cache_ttl_seconds
            }

        @self.app.post("/cache/tasks/invalidate")
        async def invalidate_cache():
            """Force a new cache generation."""
            try:
                version = await self.version_tag.invalidate()
            except CacheUnavailableError as e:
                self.logger.warning("Manual cache invalidation failed", error=e.message, details=e.details)
                self.metrics.increment_counter("cache_invalidations_total", status="error")
                return {"success": False, "invalidated": False, "error": e.message}

            self.metrics.increment_counter("cache_invalidations_total", status="ok")
            self.logger.info("Cache invalidated manually", version=version)
            return {"success": True, "invalidated": True, "version": version}

        @self.app.get("/tasks")
        async def list_tasks(
            request: Request,
            page: int = Query(1, ge=1, description="Page number"),
            per_page: int = Query(20, ge=1, le=100, description="Page size"),
            search: Optional[str] = Query(None, description="Search name, slug and description"),
            order_by: TaskOrderField = Query(TaskOrderField.ID, description="Sort field"),
            order_by_direction: OrderDirection = Query(OrderDirection.DESC, description="Sort direction"),
            completed: Optional[bool] = Query(None, description="Filter on completion"),
        ):
            """List tasks."""
            query = TaskListQuery(
                page=page,
                per_page=per_page,
                search=search,
                order_by=order_by,
                order_by_direction=order_by_direction,
                completed=completed
            )
            return self._respond(await self.endpoints.list(str(request.url), query))

        @self.app.post("/tasks")
        async def create_task(fields: TaskFields = Body(...)):
            """Create a task."""
            return self._respond(await self.endpoints.create(fields))

        @self.app.get("/tasks/{task_id}")
        async def read_task(task_id: int):
            """Get a single task."""
            return self._respond(await self.endpoints.read(task_id))

        @self.app.put("/tasks/{task_id}")
        async def update_task(task_id: int, fields: TaskFields = Body(...)):
            """Replace a task."""
            return self._respond(await self.endpoints.update(task_id, fields))

        @self.app.delete("/tasks/{task_id}")
        async def delete_task(task_id: int):
            """Delete a task."""
            return self._respond(await self.endpoints.delete(task_id))

    @staticmethod
    def _respond(outcome: Outcome) -> JSONResponse:
        headers = {}
        if outcome.cache_status is not None:
            headers["X-Cache"] = outcome.cache_status.value.upper()
        return JSONResponse(
            status_code=outcome.status_code,
            content=outcome.to_payload(),
            headers=headers
        )

    async def _check_dependencies(self):
        """Check tasks service dependencies."""
        dependencies = {}

        # Check Redis
        try:
            dependencies["redis"] = "ok" if await self.kv_store.ping() else "error"
        except Exception:
            dependencies["redis"] = "error"

        # Check record store
        try:
            dependencies["store"] = "ok" if await self.task_store.health_check() else "error"
        except Exception:
            dependencies["store"] = "error"

        return dependencies

    async def start(self):
        """Start tasks service components."""
        await self.task_store.start()

        # Startup never fails on the key-value store.
        if self.cache is not None and not await self.kv_store.ping():
            self.logger.warning("Key-value store unreachable; serving uncached until it recovers")

        self.logger.info(
            "Tasks service started",
            cache_enabled=self.cache is not None,
            cache_ttl_seconds=self.config.cache_ttl_seconds,
            store_backend=type(self.task_store).__name__
        )

    async def stop(self):
        """Stop tasks service components."""
        await self.task_store.stop()
        await self.kv_store.close()

        self.logger.info("Tasks service stopped")


def create_app():
    """Create tasks service application."""
    service = TasksService()
    return service.app


if __name__ == "__main__":
    service = TasksService()
    service.run()
