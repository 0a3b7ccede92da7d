"""
Cache package for the Tasks service.

Provides the versioned read-through cache in front of the task store:

- keys: canonical cache key construction
- kv_store: key-value service protocol and its Redis implementation
- version: generation token used to invalidate every entry at once
- cache_store: fail-open JSON adapter with TTLs
- read_through: list/read wrappers and the mutation invalidation hook
"""
