"""
PostgreSQL task store.
"""

from typing import Any, Dict, List, Optional

import asyncpg

from shared.errors import (
    RecordConflictError,
    RecordNotFoundError,
    ServiceException,
    UnderlyingOperationFailedError,
)
from shared.logging import get_logger
from ..models import (
    SEARCH_FIELDS,
    OrderDirection,
    Outcome,
    Task,
    TaskFields,
    TaskListQuery,
)


COLUMNS = "id, name, slug, description, completed, due_date"


class PostgresTaskStore:
    """asyncpg-backed task store."""

    def __init__(self, dsn: str, *, pool: Optional[asyncpg.Pool] = None):
        self.dsn = dsn
        self.logger = get_logger("tasks.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = pool

    async def start(self):
        """Start the persistence layer."""
        try:
            if self.pool is None:
                self.pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=2,
                    max_size=10,
                    command_timeout=30
                )

            await self._create_tables()

            self.logger.info("PostgreSQL task store started")

        except Exception as e:
            self.logger.error("Failed to start PostgreSQL task store", error=str(e))
            raise ServiceException("POSTGRES_START_FAILED", str(e), status_code=503) from e

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL task store stopped")

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id SERIAL PRIMARY KEY,
                    name TEXT NOT NULL,
                    slug TEXT NOT NULL,
                    description TEXT,
                    completed BOOLEAN NOT NULL DEFAULT FALSE,
                    due_date TIMESTAMP WITH TIME ZONE NOT NULL
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks(due_date);
            """)

    async def create(self, fields: TaskFields) -> Outcome[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"""
                    INSERT INTO tasks (name, slug, description, completed, due_date)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING {COLUMNS}
                """, fields.name, fields.slug, fields.description, fields.completed, fields.due_date)
        except (asyncpg.PostgresError, OSError) as e:
            return self._store_failure("create", e)

        self.logger.info("Task created", task_id=row["id"])
        return Outcome.ok(self._row_to_payload(row), status_code=201)

    async def read(self, task_id: int) -> Outcome[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"SELECT {COLUMNS} FROM tasks WHERE id = $1", task_id)
        except (asyncpg.PostgresError, OSError) as e:
            return self._store_failure("read", e, task_id=task_id)

        if not row:
            return Outcome.failure(RecordNotFoundError())
        return Outcome.ok(self._row_to_payload(row))

    async def update(self, task_id: int, fields: TaskFields) -> Outcome[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"""
                    UPDATE tasks
                    SET name = $2, slug = $3, description = $4, completed = $5, due_date = $6
                    WHERE id = $1
                    RETURNING {COLUMNS}
                """, task_id, fields.name, fields.slug, fields.description, fields.completed, fields.due_date)
        except (asyncpg.PostgresError, OSError) as e:
            return self._store_failure("update", e, task_id=task_id)

        if not row:
            return Outcome.failure(RecordNotFoundError())
        self.logger.info("Task updated", task_id=task_id)
        return Outcome.ok(self._row_to_payload(row))

    async def delete(self, task_id: int) -> Outcome[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"DELETE FROM tasks WHERE id = $1 RETURNING {COLUMNS}", task_id)
        except (asyncpg.PostgresError, OSError) as e:
            return self._store_failure("delete", e, task_id=task_id)

        if not row:
            self.logger.warning("Task not found for deletion", task_id=task_id)
            return Outcome.failure(RecordNotFoundError())
        self.logger.info("Task deleted", task_id=task_id)
        return Outcome.ok(self._row_to_payload(row))

    async def list(self, query: TaskListQuery) -> Outcome[List[Dict[str, Any]]]:
        where, args = self._build_filters(query)
        direction = "DESC" if query.order_by_direction == OrderDirection.DESC else "ASC"
        # order_by is an enum member, never raw user text.
        order_clause = f"ORDER BY {query.order_by.value} {direction}, id {direction}"

        try:
            async with self.pool.acquire() as conn:
                total = await conn.fetchval(f"SELECT COUNT(*) FROM tasks {where}", *args)
                rows = await conn.fetch(
                    f"SELECT {COLUMNS} FROM tasks {where} {order_clause} "
                    f"LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}",
                    *args, query.per_page, query.offset
                )
        except (asyncpg.PostgresError, OSError) as e:
            return self._store_failure("list", e)

        return Outcome.ok(
            [self._row_to_payload(row) for row in rows],
            result_info={
                "page": query.page,
                "per_page": query.per_page,
                "total_count": total or 0,
            }
        )

    @staticmethod
    def _build_filters(query: TaskListQuery):
        clauses: List[str] = []
        args: List[Any] = []

        if query.completed is not None:
            args.append(query.completed)
            clauses.append(f"completed = ${len(args)}")

        if query.search:
            args.append(f"%{query.search}%")
            placeholder = f"${len(args)}"
            clauses.append("(" + " OR ".join(f"{name} ILIKE {placeholder}" for name in SEARCH_FIELDS) + ")")

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, args

    def _store_failure(self, operation: str, error: Exception, **context) -> Outcome:
        if isinstance(error, asyncpg.IntegrityConstraintViolationError):
            self.logger.warning("Task constraint violated", operation=operation, error=str(error), **context)
            return Outcome.failure(RecordConflictError(details={"operation": operation}))

        self.logger.error("Task store error", operation=operation, error=str(error), **context)
        return Outcome.failure(UnderlyingOperationFailedError(
            "STORE_ERROR",
            "Record store error",
            {"operation": operation},
            status_code=500
        ))

    @staticmethod
    def _row_to_payload(row) -> Dict[str, Any]:
        return Task(**dict(row)).model_dump(mode="json")

    async def health_check(self) -> bool:
        """Check database health."""
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception:
            return False
