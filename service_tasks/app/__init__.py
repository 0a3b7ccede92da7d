"""
Tasks Service package.

This package serves task records over HTTP with a versioned read-through
cache in front of list and read. It provides:

- app.main: API surface for task CRUD, cache invalidation and health.
- app.endpoints: Cache-aware operations used by the routes.
- app.cache: Key construction, generation token, JSON cache adapter and the
  read-through wrapper.
- app.persistence: In-memory and PostgreSQL task stores.

Guidelines:
- Cache faults never change the response a caller receives.
- Only successful list/read results are cached.
- Every successful mutation replaces the cache generation.
"""
